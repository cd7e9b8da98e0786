"""TraceVault Shared Module.

This package contains shared utilities, constants, and error handling used
across TraceVault.
"""

__all__ = ["cache_utils", "constants", "errors", "logging"]
