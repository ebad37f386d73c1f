"""Configuration module for the auto-loader.

This module handles host paths, components and settings:
- Paths: Host-defined directories and well-known files
- PlatformKey: Platform suffix used in asset names
- ComponentSpec: Tracked components and their release feeds
- SettingsManager: JSON-based settings persistence
- CredentialManager: Optional API token storage via keyring
"""
