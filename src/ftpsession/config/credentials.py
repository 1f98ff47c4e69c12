"""Secure credential storage for ftpsession.

Uses the system keyring (Windows Credential Manager, macOS Keychain,
Linux Secret Service) so FTP passwords never land in settings.json.
"""

import logging
from typing import Optional

import keyring
from keyring.errors import KeyringError


logger = logging.getLogger("ftpsession.credentials")


class CredentialManager:
    """Password storage keyed by FTP host and user name."""

    SERVICE_NAME = "ftpsession"

    def __init__(self, service_name: Optional[str] = None):
        self._service_name = service_name or self.SERVICE_NAME

    @property
    def service_name(self) -> str:
        return self._service_name

    @staticmethod
    def make_key(host: str, username: str) -> str:
        """Keyring user field for a host/user pair."""
        return f"{host}:{username}"

    def save_password(self, host: str, username: str, password: str) -> bool:
        """
        Save FTP password securely.

        Args:
            host: FTP host
            username: FTP username
            password: Password to save

        Returns:
            True if saved successfully, False otherwise
        """
        try:
            keyring.set_password(self._service_name, self.make_key(host, username), password)
            return True
        except KeyringError as e:
            logger.warning(f"Could not store password for {username}@{host}: {e}")
            return False

    def get_password(self, host: str, username: str) -> Optional[str]:
        """
        Retrieve saved password.

        Returns:
            Password string or None if not found or the keyring is unavailable
        """
        try:
            return keyring.get_password(self._service_name, self.make_key(host, username))
        except KeyringError as e:
            logger.debug(f"Keyring lookup failed for {username}@{host}: {e}")
            return None

    def delete_password(self, host: str, username: str) -> bool:
        """
        Remove saved password.

        Returns:
            True if deleted successfully, False otherwise
        """
        try:
            keyring.delete_password(self._service_name, self.make_key(host, username))
            return True
        except KeyringError:
            return False

    def has_password(self, host: str, username: str) -> bool:
        """True if a password is saved for host/user."""
        return self.get_password(host, username) is not None
