"""Delegation module for the installed native loader.

This module hands host lifecycle calls to the real module:
- DelegationLoader: Load-by-path and invoke an exported entry point
- DelegationResult: Typed outcome (unavailable, load error, invoked)
"""

from .delegation import (
    DelegationLoader,
    DelegationResult,
    DelegationStatus,
    module_path_for,
)

__all__ = [
    "DelegationLoader",
    "DelegationResult",
    "DelegationStatus",
    "module_path_for",
]
