"""Self-updating native module loader for Garry's Mod Integration.

Checks the release feeds on host startup, installs newer binaries and the
addon archive, then hands control to the installed loader module.
"""

__version__ = "1.0.0"
