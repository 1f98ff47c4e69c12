"""FTP-specific exceptions for ftpsession.

Exception hierarchy describing every way a session operation can fail.
Sessions never raise these across their boundary; they are carried
inside ``Err`` results and recorded as the session's last error.
"""

from typing import Optional


class FTPError(Exception):
    """Base exception for all FTP-related errors."""

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class FTPConnectionError(FTPError):
    """Failed to establish or release the FTP control connection."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        original_error: Exception = None,
        message: Optional[str] = None,
    ):
        self.host = host
        self.port = port
        if message is None:
            message = f"Unable to connect to {host}:{port}"
        super().__init__(message, original_error)


class FTPTimeoutError(FTPConnectionError):
    """Connecting to the FTP server timed out."""

    def __init__(self, host: str, port: int, timeout: int):
        self.timeout = timeout
        super().__init__(
            host,
            port,
            message=f"Unable to connect to {host}:{port}: timed out after {timeout} seconds",
        )


class FTPAlreadyConnectedError(FTPConnectionError):
    """Connect attempted while the session already owns a connection."""

    def __init__(self, host: str, port: int):
        super().__init__(
            host,
            port,
            message=f"Already connected to {host}:{port}; close the session first",
        )


class FTPCloseError(FTPConnectionError):
    """The engine reported a failure while closing the connection."""

    def __init__(self, original_error: Exception = None):
        super().__init__(message="Unable to close connection", original_error=original_error)


class FTPAuthenticationError(FTPError):
    """FTP authentication (login) failed."""

    def __init__(self, username: str, original_error: Exception = None):
        self.username = username
        message = f"Login incorrect for user '{username}'"
        super().__init__(message, original_error)


class FTPNotConnectedError(FTPError):
    """Operation attempted without active FTP connection."""

    def __init__(self, operation: str = "Operation"):
        self.operation = operation
        message = f"Not connected: {operation} requires an active FTP connection"
        super().__init__(message)


class FTPCommandError(FTPError):
    """The server refused a command that is not tied to a remote path."""

    def __init__(self, operation: str, original_error: Exception = None):
        self.operation = operation
        super().__init__(f"Unable to {operation}", original_error)


class FTPPathError(FTPError):
    """Remote path operation failed.

    FTP servers answer "550" for both missing entries and denied access,
    so the two are reported through this single class.
    """

    def __init__(self, path: str, operation: str, original_error: Exception = None):
        self.path = path
        self.operation = operation
        message = f"Unable to {operation}"
        if path:
            message = f"{message} '{path}'"
        super().__init__(message, original_error)


class FTPUnsupportedOptionError(FTPError):
    """Unknown runtime option, or a value the option does not accept."""

    def __init__(self, option, message: Optional[str] = None):
        self.option = option
        super().__init__(message or f"Unsupported option: {option}")


class FTPTransferError(FTPError):
    """Failed to download or upload a file."""

    def __init__(
        self,
        direction: str,
        local_file: str,
        remote_file: str,
        original_error: Exception = None
    ):
        self.direction = direction
        self.local_file = local_file
        self.remote_file = remote_file
        if direction == "get":
            message = f"Unable to get or save file '{local_file}' from '{remote_file}'"
        else:
            message = f"Unable to put file '{local_file}' to '{remote_file}'"
        super().__init__(message, original_error)
