"""Configuration module for ftpsession.

This module handles saved settings and credentials:
- SettingsManager: JSON-based settings persistence
- CredentialManager: Secure credential storage via keyring
- Paths: Application data directory discovery
- SessionSettings: Settings dataclass
"""
