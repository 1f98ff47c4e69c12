"""FTP session for ftpsession.

FTPSession owns at most one engine connection and exposes the
connect / login / navigate / transfer / administer operations. Every
operation returns a Result: ``Ok`` (the session itself for chainable
operations, otherwise the value) or ``Err`` carrying an FTPError that is
also recorded as the session's last error.
"""

import logging
import os
import socket
from datetime import datetime
from typing import Any, BinaryIO, Callable, Optional, Sequence, Tuple, Union

from ftpsession.ftp.connection import FTPConnection, Option, TransferMode
from ftpsession.ftp.engine import FTPEngine, FtplibEngine
from ftpsession.ftp.exceptions import (
    FTPAlreadyConnectedError,
    FTPAuthenticationError,
    FTPCloseError,
    FTPCommandError,
    FTPConnectionError,
    FTPError,
    FTPNotConnectedError,
    FTPPathError,
    FTPTimeoutError,
    FTPTransferError,
    FTPUnsupportedOptionError,
)
from ftpsession.ftp.result import Err, Ok, Result
from ftpsession.utils.validators import (
    validate_offset,
    validate_port,
    validate_remote_path,
    validate_timeout,
)


logger = logging.getLogger("ftpsession.session")


def _local_path(local_file) -> str:
    """Local path as a string, or "" if local_file is not a path."""
    if not isinstance(local_file, (str, os.PathLike)):
        return ""
    return os.fsdecode(local_file)


class FTPSession:
    """
    A single FTP control connection with a fluent, non-raising API.

    Usage:
        with FTPSession() as session:
            result = (
                session.connect("ftp.example.com")
                .and_then(lambda s: s.login("user", "secret"))
                .and_then(lambda s: s.put("remote.txt", "local.txt", FTPSession.BINARY))
            )
            if not result:
                print(result.message)

    Not safe for concurrent use from several threads.
    """

    ASCII = TransferMode.ASCII
    BINARY = TransferMode.BINARY
    TIMEOUT_SEC = Option.TIMEOUT_SEC
    AUTOSEEK = Option.AUTOSEEK

    DEFAULT_PORT = 21
    DEFAULT_TIMEOUT = 90

    def __init__(self, engine: Optional[FTPEngine] = None):
        """
        Initialize a disconnected session.

        Args:
            engine: FTP engine to drive, defaults to FtplibEngine
        """
        self._engine = engine if engine is not None else FtplibEngine()
        self._connection: Optional[FTPConnection] = None
        self._last_error: Optional[FTPError] = None

    def __repr__(self) -> str:
        if self._connection is None:
            return "<FTPSession disconnected>"
        return f"<FTPSession {self._connection.host}:{self._connection.port}>"

    def __enter__(self) -> "FTPSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._connection is not None:
            self.close()

    def __del__(self):
        if getattr(self, "_connection", None) is not None:
            self.close()

    @property
    def engine(self) -> FTPEngine:
        """The engine this session drives."""
        return self._engine

    @property
    def connection(self) -> Optional[FTPConnection]:
        """The owned connection, None while disconnected."""
        return self._connection

    @property
    def is_connected(self) -> bool:
        """True if a connection is owned."""
        return self._connection is not None

    @property
    def last_error(self) -> Optional[FTPError]:
        """Error of the most recent failed operation."""
        return self._last_error

    # Error slot

    def set_error(self, error: Union[str, FTPError]) -> Err:
        """
        Record an error as the session's last error.

        Args:
            error: Message or FTPError to record

        Returns:
            Err carrying the recorded error
        """
        if not isinstance(error, FTPError):
            error = FTPError(str(error))
        self._last_error = error
        logger.warning(str(error))
        return Err(error)

    def get_error(self) -> Optional[str]:
        """Message of the most recent failure, or None if nothing failed yet."""
        if self._last_error is None:
            return None
        return str(self._last_error)

    def _require_connection(self, operation: str) -> Optional[Err]:
        if self._connection is None:
            return self.set_error(FTPNotConnectedError(operation))
        return None

    def _path_command(
        self,
        operation: str,
        path: str,
        call: Callable[[FTPConnection], bool],
        checks: Sequence[Tuple[bool, Optional[str]]] = ()
    ) -> Result:
        """Run a chainable engine call that targets one remote path."""
        error = self._require_connection(operation)
        if error is not None:
            return error

        for is_valid, message in (validate_remote_path(path), *checks):
            if not is_valid:
                return self.set_error(FTPPathError(path, operation, ValueError(message)))

        if not call(self._connection):
            return self.set_error(FTPPathError(path, operation, self._engine.last_error()))

        logger.debug(f"{operation}: {path}")
        return Ok(self)

    # Connection lifecycle

    def connect(
        self,
        host: str,
        use_tls: bool = False,
        port: int = DEFAULT_PORT,
        timeout: int = DEFAULT_TIMEOUT
    ) -> Result:
        """
        Open the control connection.

        Args:
            host: Server host name or address
            use_tls: Use explicit FTPS (AUTH TLS)
            port: Control port
            timeout: Socket timeout in seconds

        Returns:
            Ok(session), or Err with FTPConnectionError (FTPTimeoutError if
            the server did not answer in time, FTPAlreadyConnectedError if
            this session is already connected)
        """
        if self._connection is not None:
            return self.set_error(
                FTPAlreadyConnectedError(self._connection.host, self._connection.port)
            )

        if not isinstance(host, str) or not host.strip():
            return self.set_error(FTPConnectionError(host, port, ValueError("Host is required")))
        for is_valid, message in (validate_port(port), validate_timeout(timeout)):
            if not is_valid:
                return self.set_error(FTPConnectionError(host, port, ValueError(message)))

        logger.debug(f"Connecting to {host}:{port} (tls={use_tls}, timeout={timeout})")
        connection = self._engine.open(host, use_tls, port, timeout)
        if connection is None:
            original = self._engine.last_error()
            if isinstance(original, socket.timeout):
                return self.set_error(FTPTimeoutError(host, port, timeout))
            return self.set_error(FTPConnectionError(host, port, original))

        self._connection = connection
        logger.info(f"Connected to {host}:{port}" + (" over TLS" if use_tls else ""))
        return Ok(self)

    def login(self, username: str = "anonymous", password: str = "") -> Result:
        """
        Authenticate on the open connection.

        Args:
            username: FTP user name
            password: FTP password

        Returns:
            Ok(session), or Err with FTPAuthenticationError
        """
        error = self._require_connection("login")
        if error is not None:
            return error

        if not isinstance(username, str) or not isinstance(password, str):
            return self.set_error(FTPAuthenticationError(
                username, TypeError("User name and password must be strings")
            ))

        if not self._engine.authenticate(self._connection, username, password):
            return self.set_error(FTPAuthenticationError(username, self._engine.last_error()))

        logger.info(f"Logged in as '{username}'")
        return Ok(self)

    def close(self) -> Result:
        """
        Release the connection.

        The session is disconnected afterwards even if the engine reports
        a failure. Closing a disconnected session returns Err but never
        raises.

        Returns:
            Ok(session), or Err with FTPCloseError / FTPNotConnectedError
        """
        error = self._require_connection("close")
        if error is not None:
            return error

        connection = self._connection
        self._connection = None
        if not self._engine.close_connection(connection):
            return self.set_error(FTPCloseError(self._engine.last_error()))

        logger.info(f"Disconnected from {connection.host}:{connection.port}")
        return Ok(self)

    def passive(self, enabled: bool = True) -> Result:
        """Switch passive mode on or off."""
        error = self._require_connection("change passive mode")
        if error is not None:
            return error

        if not self._engine.set_passive_mode(self._connection, enabled):
            return self.set_error(
                FTPCommandError("change passive mode", self._engine.last_error())
            )

        logger.debug(f"Passive mode {'on' if enabled else 'off'}")
        return Ok(self)

    # Directories

    def change_directory(self, path: str) -> Result:
        """Change the remote working directory."""
        return self._path_command(
            "change directory",
            path,
            lambda conn: self._engine.change_working_directory(conn, path),
        )

    def parent_directory(self) -> Result:
        """Change to the parent of the remote working directory."""
        error = self._require_connection("get parent folder")
        if error is not None:
            return error

        if not self._engine.change_to_parent_directory(self._connection):
            return self.set_error(
                FTPPathError("", "get parent folder", self._engine.last_error())
            )
        return Ok(self)

    def get_directory(self) -> Result:
        """
        Get the remote working directory.

        Returns:
            Ok(path), or Err with FTPPathError
        """
        error = self._require_connection("get directory name")
        if error is not None:
            return error

        path = self._engine.get_working_directory(self._connection)
        if path is None:
            return self.set_error(
                FTPPathError("", "get directory name", self._engine.last_error())
            )
        return Ok(path)

    def create_directory(self, path: str) -> Result:
        """Create a remote directory."""
        return self._path_command(
            "create directory",
            path,
            lambda conn: self._engine.make_directory(conn, path),
        )

    def remove_directory(self, path: str) -> Result:
        """Remove an empty remote directory."""
        return self._path_command(
            "remove directory",
            path,
            lambda conn: self._engine.remove_directory(conn, path),
        )

    def list_directory(self, path: str = ".") -> Result:
        """
        List entry names of a remote directory.

        Args:
            path: Remote directory, defaults to the working directory

        Returns:
            Ok(names) sorted ascending, or Err with FTPPathError
        """
        error = self._require_connection("list directory")
        if error is not None:
            return error

        is_valid, message = validate_remote_path(path)
        if not is_valid:
            return self.set_error(FTPPathError(path, "list directory", ValueError(message)))

        names = self._engine.list_names(self._connection, path)
        if names is None:
            return self.set_error(FTPPathError(path, "list directory", self._engine.last_error()))

        logger.debug(f"Listed {len(names)} entries in {path}")
        return Ok(sorted(names))

    # Files

    def delete(self, path: str) -> Result:
        """Delete a remote file."""
        return self._path_command(
            "delete file",
            path,
            lambda conn: self._engine.delete_file(conn, path),
        )

    def size(self, remote_file: str) -> Result:
        """
        Get the size of a remote file.

        Returns:
            Ok(byte_count), or Err with FTPPathError when the server cannot
            report it (missing file, or SIZE not supported)
        """
        error = self._require_connection("get file size")
        if error is not None:
            return error

        is_valid, message = validate_remote_path(remote_file)
        if not is_valid:
            return self.set_error(FTPPathError(remote_file, "get file size", ValueError(message)))

        size = self._engine.file_size(self._connection, remote_file)
        if size < 0:
            return self.set_error(
                FTPPathError(remote_file, "get file size", self._engine.last_error())
            )
        return Ok(size)

    def modified_time(self, remote_file: str, fmt: Optional[str] = None) -> Result:
        """
        Get the last modification time of a remote file.

        Args:
            remote_file: Remote file path
            fmt: Optional strftime format; the time is rendered in local time

        Returns:
            Ok(unix_timestamp) or Ok(formatted_string), or Err with FTPPathError
        """
        error = self._require_connection("get modified time")
        if error is not None:
            return error

        is_valid, message = validate_remote_path(remote_file)
        if not is_valid:
            return self.set_error(
                FTPPathError(remote_file, "get modified time", ValueError(message))
            )

        if fmt is not None and not isinstance(fmt, str):
            return self.set_error(FTPPathError(
                remote_file, "get modified time", TypeError(f"Format must be a string, got {fmt!r}")
            ))

        timestamp = self._engine.modified_time(self._connection, remote_file)
        if timestamp < 0:
            return self.set_error(
                FTPPathError(remote_file, "get modified time", self._engine.last_error())
            )

        if fmt is not None:
            return Ok(datetime.fromtimestamp(timestamp).strftime(fmt))
        return Ok(timestamp)

    def rename(self, old_path: str, new_path: str) -> Result:
        """Rename a remote file or directory."""
        is_valid, message = validate_remote_path(new_path)
        return self._path_command(
            "rename",
            old_path,
            lambda conn: self._engine.rename_entry(conn, old_path, new_path),
            checks=[(is_valid, f"New name: {message}")],
        )

    def chmod(self, mode: int, path: str) -> Result:
        """
        Change permissions of a remote entry (SITE CHMOD).

        Args:
            mode: Permission bits, e.g. 0o644
            path: Remote path
        """
        mode_ok = not isinstance(mode, bool) and isinstance(mode, int) and 0 <= mode <= 0o7777
        return self._path_command(
            "change permissions",
            path,
            lambda conn: self._engine.change_permissions(conn, mode, path),
            checks=[(mode_ok, f"Invalid mode {mode!r}")],
        )

    # Transfers

    def _transfer(
        self,
        direction: str,
        local_label: str,
        remote_file: str,
        mode: Union[TransferMode, str],
        offset: int,
        call: Callable[[FTPConnection, TransferMode], bool],
        checks: Sequence[Tuple[bool, Optional[str]]] = ()
    ) -> Result:
        """Validate transfer arguments and run the engine call."""
        error = self._require_connection(f"{direction} file")
        if error is not None:
            return error

        try:
            mode = TransferMode(mode)
        except (ValueError, TypeError):
            return self.set_error(FTPTransferError(
                direction, local_label, remote_file, ValueError(f"Unknown transfer mode {mode!r}")
            ))

        for is_valid, message in (*checks, validate_remote_path(remote_file), validate_offset(offset)):
            if not is_valid:
                return self.set_error(
                    FTPTransferError(direction, local_label, remote_file, ValueError(message))
                )

        if not call(self._connection, mode):
            return self.set_error(FTPTransferError(
                direction, local_label, remote_file, self._engine.last_error()
            ))

        arrow = "<-" if direction == "get" else "->"
        logger.debug(f"{direction}: {local_label} {arrow} {remote_file} ({mode.value}, offset {offset})")
        return Ok(self)

    def get(
        self,
        local_file: Union[str, os.PathLike],
        remote_file: str,
        mode: TransferMode = TransferMode.ASCII,
        resume_offset: int = 0
    ) -> Result:
        """
        Download a remote file to a local path.

        Args:
            local_file: Local destination path
            remote_file: Remote source path
            mode: TransferMode.ASCII or TransferMode.BINARY
            resume_offset: Byte offset to resume the download from

        Returns:
            Ok(session), or Err with FTPTransferError
        """
        local_path = _local_path(local_file)
        return self._transfer(
            "get",
            local_path,
            remote_file,
            mode,
            resume_offset,
            lambda conn, transfer_mode: self._engine.download_to_file(
                conn, local_path, remote_file, transfer_mode, resume_offset
            ),
            checks=[(bool(local_path), "Local file is required")],
        )

    def put(
        self,
        remote_file: str,
        local_file: Union[str, os.PathLike],
        mode: TransferMode = TransferMode.ASCII,
        start_offset: int = 0
    ) -> Result:
        """
        Upload a local file to a remote path.

        Args:
            remote_file: Remote destination path
            local_file: Local source path
            mode: TransferMode.ASCII or TransferMode.BINARY
            start_offset: Byte offset to start the upload from

        Returns:
            Ok(session), or Err with FTPTransferError
        """
        local_path = _local_path(local_file)
        return self._transfer(
            "put",
            local_path,
            remote_file,
            mode,
            start_offset,
            lambda conn, transfer_mode: self._engine.upload_from_file(
                conn, remote_file, local_path, transfer_mode, start_offset
            ),
            checks=[(bool(local_path), "Local file is required")],
        )

    @staticmethod
    def _stream_check(stream: BinaryIO, method: str) -> Tuple[bool, Optional[str]]:
        if stream is None or getattr(stream, "closed", False):
            return False, "Stream is not open"
        if not callable(getattr(stream, method, None)):
            return False, f"Stream has no {method}() method"
        return True, None

    def stream_get(
        self,
        stream: BinaryIO,
        remote_file: str,
        mode: TransferMode = TransferMode.ASCII,
        resume_offset: int = 0
    ) -> Result:
        """Download a remote file into an already open binary stream."""
        return self._transfer(
            "get",
            str(getattr(stream, "name", "<stream>")),
            remote_file,
            mode,
            resume_offset,
            lambda conn, transfer_mode: self._engine.download_to_stream(
                conn, stream, remote_file, transfer_mode, resume_offset
            ),
            checks=[self._stream_check(stream, "write")],
        )

    def stream_put(
        self,
        remote_file: str,
        stream: BinaryIO,
        mode: TransferMode = TransferMode.ASCII,
        start_offset: int = 0
    ) -> Result:
        """Upload an already open binary stream to a remote file."""
        return self._transfer(
            "put",
            str(getattr(stream, "name", "<stream>")),
            remote_file,
            mode,
            start_offset,
            lambda conn, transfer_mode: self._engine.upload_from_stream(
                conn, remote_file, stream, transfer_mode, start_offset
            ),
            checks=[self._stream_check(stream, "read")],
        )

    # Options

    @staticmethod
    def _coerce_option(name: Union[Option, str]) -> Optional[Option]:
        if isinstance(name, Option):
            return name
        try:
            return Option(name)
        except (ValueError, TypeError):
            return None

    def get_option(self, name: Union[Option, str]) -> Result:
        """
        Read a runtime option.

        Args:
            name: Option.TIMEOUT_SEC or Option.AUTOSEEK (or their values)

        Returns:
            Ok(value), or Err with FTPUnsupportedOptionError
        """
        option = self._coerce_option(name)
        if option is None:
            return self.set_error(FTPUnsupportedOptionError(name))

        error = self._require_connection("get option")
        if error is not None:
            return error

        return Ok(self._engine.get_option(self._connection, option))

    def set_option(self, name: Union[Option, str], value: Any) -> Result:
        """
        Change a runtime option.

        Values are checked before the engine is contacted: TIMEOUT_SEC
        must be greater than zero, AUTOSEEK must be a bool.

        Returns:
            Ok(session), or Err with FTPUnsupportedOptionError for a bad
            name/value and FTPCommandError if the engine refuses
        """
        option = self._coerce_option(name)
        if option is None:
            return self.set_error(FTPUnsupportedOptionError(name))

        if option is Option.TIMEOUT_SEC:
            is_valid, message = validate_timeout(value)
            if not is_valid:
                return self.set_error(FTPUnsupportedOptionError(option, message))
        elif not isinstance(value, bool):
            return self.set_error(
                FTPUnsupportedOptionError(option, "Autoseek value must be boolean")
            )

        error = self._require_connection("set option")
        if error is not None:
            return error

        if not self._engine.set_option(self._connection, option, value):
            return self.set_error(FTPCommandError("set option", self._engine.last_error()))

        logger.debug(f"Option {option.value} set to {value!r}")
        return Ok(self)

    # Server-side commands

    def allocate(self, byte_count: int) -> Result:
        """Ask the server to reserve space for an upload (ALLO)."""
        error = self._require_connection("allocate")
        if error is not None:
            return error

        is_valid, _ = validate_offset(byte_count)
        if not is_valid:
            return self.set_error(FTPCommandError(
                "allocate", ValueError(f"Byte count must be a non-negative integer, got {byte_count!r}")
            ))

        if not self._engine.preallocate(self._connection, byte_count):
            return self.set_error(FTPCommandError("allocate", self._engine.last_error()))
        return Ok(self)

    def exec(self, command: str) -> Result:
        """Run a raw command on the server (SITE EXEC)."""
        error = self._require_connection("exec command")
        if error is not None:
            return error

        if not isinstance(command, str) or not command.strip():
            return self.set_error(FTPCommandError("exec command", ValueError("Command is required")))

        if not self._engine.execute_raw_command(self._connection, command):
            return self.set_error(FTPCommandError("exec command", self._engine.last_error()))

        logger.debug(f"Executed: {command}")
        return Ok(self)
