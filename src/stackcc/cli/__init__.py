"""
stackcc Command-Line Interface
==============================

- **stackcc**: compile a source file to NASM assembly

Implemented as a Click application with help and error reporting.
"""

__all__ = ["stackcc"]
