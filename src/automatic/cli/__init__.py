"""
autoMATic Command-Line Interface
================================

This package provides the ``automc`` command-line compiler, implemented
as a Click application with consistent error reporting and exit codes.
"""

__all__ = ["automc"]
