"""Utility module for the auto-loader.

This module provides cross-cutting utilities:
- Logging: Configured logging with secret redaction
- Validators: Structural checks for downloaded files
"""
