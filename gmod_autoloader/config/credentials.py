"""Secure credential storage for the auto-loader.

Uses the system keyring (Windows Credential Manager, macOS Keychain,
Linux Secret Service) to look up an optional GitHub API token. Anonymous
API access works but is rate limited per IP, which matters on shared
game server hosts.

The token is stored with the keyring command line tool:

    keyring set gmod-autoloader github:default
"""

from typing import Optional

import keyring
from keyring.errors import KeyringError


class CredentialManager:
    """API token lookup using system keyring."""

    SERVICE_NAME = "gmod-autoloader"
    DEFAULT_ACCOUNT = "default"

    def _make_key(self, account: str) -> str:
        """
        Create a unique key for the token.

        Args:
            account: Account label the token belongs to

        Returns:
            Unique key string
        """
        return f"github:{account}"

    def get_token(self, account: str = DEFAULT_ACCOUNT) -> Optional[str]:
        """
        Retrieve the saved token.

        Args:
            account: Account label

        Returns:
            Token string or None if not found or the keyring is unavailable
        """
        try:
            return keyring.get_password(self.SERVICE_NAME, self._make_key(account))
        except KeyringError:
            return None
