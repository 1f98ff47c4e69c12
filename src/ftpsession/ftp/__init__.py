"""FTP operations module for ftpsession.

This module handles all FTP-related functionality:
- FTPSession: Single-connection session with a non-raising, fluent API
- FTPEngine / FtplibEngine: Capability interface and its ftplib implementation
- Result: Ok / Err operation outcomes
- Exceptions: FTP-specific error types
"""
