"""Validation of WebAssembly modules described as Python objects: limits, index spaces and function-body typing."""

__version__ = "0.1.0"