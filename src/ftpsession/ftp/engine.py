"""FTP engine for ftpsession.

FTPEngine is the narrow capability surface a session drives. Engine
methods never raise: they answer with a boolean, a value, ``None`` or
``-1`` and keep the underlying exception available via ``last_error()``.
FtplibEngine implements the surface over the standard library ftplib.
"""

import logging
import os
import ssl
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from ftplib import FTP, FTP_TLS, all_errors, error_perm, error_reply, error_temp
from typing import Any, BinaryIO, Callable, List, Optional

from ftpsession.ftp.connection import FTPConnection, Option, TransferMode


logger = logging.getLogger("ftpsession.engine")

B_CRLF = b"\r\n"


class FTPEngine(ABC):
    """Capabilities a session needs from an FTP implementation."""

    @abstractmethod
    def open(self, host: str, use_tls: bool, port: int, timeout: int) -> Optional[FTPConnection]:
        """Open a control connection, or return None."""

    @abstractmethod
    def authenticate(self, conn: FTPConnection, username: str, password: str) -> bool:
        """Log in on an open connection."""

    @abstractmethod
    def close_connection(self, conn: FTPConnection) -> bool:
        """Close the connection."""

    @abstractmethod
    def set_passive_mode(self, conn: FTPConnection, enabled: bool) -> bool:
        """Switch passive data connections on or off."""

    @abstractmethod
    def change_working_directory(self, conn: FTPConnection, path: str) -> bool:
        """CWD"""

    @abstractmethod
    def change_to_parent_directory(self, conn: FTPConnection) -> bool:
        """CDUP"""

    @abstractmethod
    def get_working_directory(self, conn: FTPConnection) -> Optional[str]:
        """PWD"""

    @abstractmethod
    def make_directory(self, conn: FTPConnection, path: str) -> bool:
        """MKD"""

    @abstractmethod
    def remove_directory(self, conn: FTPConnection, path: str) -> bool:
        """RMD"""

    @abstractmethod
    def list_names(self, conn: FTPConnection, path: str) -> Optional[List[str]]:
        """NLST, in whatever order the server sends."""

    @abstractmethod
    def delete_file(self, conn: FTPConnection, path: str) -> bool:
        """DELE"""

    @abstractmethod
    def file_size(self, conn: FTPConnection, path: str) -> int:
        """SIZE, -1 on error."""

    @abstractmethod
    def modified_time(self, conn: FTPConnection, path: str) -> int:
        """MDTM as a unix timestamp, -1 on error."""

    @abstractmethod
    def rename_entry(self, conn: FTPConnection, old_path: str, new_path: str) -> bool:
        """RNFR/RNTO"""

    @abstractmethod
    def download_to_file(
        self,
        conn: FTPConnection,
        local_file: str,
        remote_file: str,
        mode: TransferMode,
        resume_offset: int
    ) -> bool:
        """
        Download a remote file into a local path.

        With a resume offset and autoseek on, the tail is appended at the
        offset. Otherwise the file is replaced only after a complete
        transfer.
        """

    @abstractmethod
    def upload_from_file(
        self,
        conn: FTPConnection,
        remote_file: str,
        local_file: str,
        mode: TransferMode,
        start_offset: int
    ) -> bool:
        """Upload a local path to a remote file."""

    @abstractmethod
    def download_to_stream(
        self,
        conn: FTPConnection,
        stream: BinaryIO,
        remote_file: str,
        mode: TransferMode,
        resume_offset: int
    ) -> bool:
        """Download a remote file into an open binary stream."""

    @abstractmethod
    def upload_from_stream(
        self,
        conn: FTPConnection,
        remote_file: str,
        stream: BinaryIO,
        mode: TransferMode,
        start_offset: int
    ) -> bool:
        """Upload an open binary stream to a remote file."""

    @abstractmethod
    def get_option(self, conn: FTPConnection, option: Option) -> Any:
        """Current value of a runtime option."""

    @abstractmethod
    def set_option(self, conn: FTPConnection, option: Option, value: Any) -> bool:
        """Change a runtime option."""

    @abstractmethod
    def preallocate(self, conn: FTPConnection, byte_count: int) -> bool:
        """ALLO"""

    @abstractmethod
    def change_permissions(self, conn: FTPConnection, mode: int, path: str) -> bool:
        """SITE CHMOD"""

    @abstractmethod
    def execute_raw_command(self, conn: FTPConnection, command: str) -> bool:
        """SITE EXEC"""

    @abstractmethod
    def last_error(self) -> Optional[Exception]:
        """Underlying exception of the most recent failed call."""


def parse_mdtm_response(response: str) -> int:
    """
    Parse an MDTM reply into a unix timestamp.

    Args:
        response: Raw reply, e.g. "213 20240131120000" or with ".123" fraction

    Returns:
        Seconds since the epoch (MDTM times are UTC), or -1 if unparsable
    """
    if not response.startswith("213"):
        return -1

    value = response[3:].strip().split(".")[0]
    try:
        stamp = datetime.strptime(value, "%Y%m%d%H%M%S")
    except ValueError:
        return -1
    return int(stamp.replace(tzinfo=timezone.utc).timestamp())


def parse_list_line(line: str) -> Optional[str]:
    """
    Extract the entry name from one LIST line.

    Handles Unix-style lines ("drwxr-xr-x 2 user group 4096 Jan 1 12:00 name")
    and DOS-style lines ("01-01-24 12:00PM <DIR> name"). Symlink targets
    ("name -> target") are stripped.

    Returns:
        Entry name, or None for blank and "total N" lines
    """
    line = line.rstrip("\r\n")
    if not line.strip() or line.startswith("total "):
        return None

    parts = line.split(None, 8)
    if len(parts) == 9 and parts[0][:1] in "-dlbcps":
        name = parts[8]
        if parts[0].startswith("l") and " -> " in name:
            name = name.split(" -> ", 1)[0]
        return name

    parts = line.split(None, 3)
    if len(parts) == 4 and (parts[2] == "<DIR>" or parts[2].isdigit()):
        return parts[3]

    return line.split()[-1]


def _is_empty_listing(error: Exception) -> bool:
    """Some servers answer NLST on an empty directory with 450/550."""
    return isinstance(error, (error_perm, error_temp)) and "no files found" in str(error).lower()


def _is_unsupported_command(error: Exception) -> bool:
    """500/502 replies: command unrecognized or not implemented."""
    return isinstance(error, error_perm) and str(error)[:3] in ("500", "502")


class FtplibEngine(FTPEngine):
    """FTPEngine backed by ftplib.FTP / ftplib.FTP_TLS."""

    # Block size for FTP transfers (8KB)
    BLOCK_SIZE = 8192

    def __init__(self):
        """Initialize the engine."""
        self._last_error: Optional[Exception] = None

    def last_error(self) -> Optional[Exception]:
        return self._last_error

    def _fail(self, operation: str, error: Exception) -> None:
        """Remember an underlying failure."""
        self._last_error = error
        logger.debug(f"{operation} failed: {error!r}")

    def _run(self, operation: str, func: Callable, *args) -> bool:
        """Call an ftplib method, mapping ftplib errors to False."""
        try:
            func(*args)
        except all_errors as e:
            self._fail(operation, e)
            return False
        return True

    # Connection lifecycle

    def open(self, host: str, use_tls: bool, port: int, timeout: int) -> Optional[FTPConnection]:
        self._last_error = None
        ftp = FTP_TLS() if use_tls else FTP()
        ftp.set_debuglevel(0)

        try:
            ftp.connect(host=host, port=port, timeout=timeout)
            if use_tls:
                # AUTH TLS before any credentials are sent
                ftp.auth()
        except all_errors as e:
            self._fail("open", e)
            ftp.close()
            return None

        return FTPConnection(ftp=ftp, host=host, port=port, use_tls=use_tls)

    def authenticate(self, conn: FTPConnection, username: str, password: str) -> bool:
        try:
            conn.ftp.login(user=username, passwd=password)
            if conn.is_secure:
                conn.ftp.prot_p()
        except all_errors as e:
            self._fail("authenticate", e)
            return False
        return True

    def close_connection(self, conn: FTPConnection) -> bool:
        if conn.ftp.sock is None:
            self._fail("close", EOFError("connection already closed"))
            return False

        try:
            conn.ftp.quit()
        except all_errors as e:
            self._fail("close", e)
            conn.ftp.close()
            return False
        return True

    def set_passive_mode(self, conn: FTPConnection, enabled: bool) -> bool:
        conn.ftp.set_pasv(enabled)
        return True

    # Directories

    def change_working_directory(self, conn: FTPConnection, path: str) -> bool:
        return self._run("cwd", conn.ftp.cwd, path)

    def change_to_parent_directory(self, conn: FTPConnection) -> bool:
        return self._run("cdup", conn.ftp.voidcmd, "CDUP")

    def get_working_directory(self, conn: FTPConnection) -> Optional[str]:
        try:
            return conn.ftp.pwd()
        except all_errors as e:
            self._fail("pwd", e)
            return None

    def make_directory(self, conn: FTPConnection, path: str) -> bool:
        return self._run("mkd", conn.ftp.mkd, path)

    def remove_directory(self, conn: FTPConnection, path: str) -> bool:
        return self._run("rmd", conn.ftp.rmd, path)

    def list_names(self, conn: FTPConnection, path: str) -> Optional[List[str]]:
        try:
            return conn.ftp.nlst(path)
        except all_errors as e:
            if _is_empty_listing(e):
                return []
            if _is_unsupported_command(e):
                logger.debug(f"NLST not supported ({e}), falling back to LIST")
                return self._list_names_from_list(conn, path)
            self._fail("nlst", e)
            return None

    def _list_names_from_list(self, conn: FTPConnection, path: str) -> Optional[List[str]]:
        """Extract entry names from a Unix-style LIST response."""
        lines: List[str] = []
        try:
            conn.ftp.dir(path, lines.append)
        except all_errors as e:
            if _is_empty_listing(e):
                return []
            self._fail("list", e)
            return None

        names = []
        for line in lines:
            name = parse_list_line(line)
            if name and name not in (".", ".."):
                names.append(name)
        return names

    # Files

    def delete_file(self, conn: FTPConnection, path: str) -> bool:
        return self._run("dele", conn.ftp.delete, path)

    def file_size(self, conn: FTPConnection, path: str) -> int:
        try:
            # Many servers refuse SIZE in ASCII mode
            conn.ftp.voidcmd("TYPE I")
            size = conn.ftp.size(path)
        except all_errors as e:
            self._fail("size", e)
            return -1

        if size is None:
            self._fail("size", error_reply(f"Unexpected SIZE reply for {path}"))
            return -1
        return size

    def modified_time(self, conn: FTPConnection, path: str) -> int:
        try:
            response = conn.ftp.sendcmd(f"MDTM {path}")
        except all_errors as e:
            self._fail("mdtm", e)
            return -1

        timestamp = parse_mdtm_response(response)
        if timestamp == -1:
            self._fail("mdtm", error_reply(response))
        return timestamp

    def rename_entry(self, conn: FTPConnection, old_path: str, new_path: str) -> bool:
        return self._run("rename", conn.ftp.rename, old_path, new_path)

    # Transfers

    def download_to_file(
        self,
        conn: FTPConnection,
        local_file: str,
        remote_file: str,
        mode: TransferMode,
        resume_offset: int
    ) -> bool:
        if resume_offset and conn.autoseek:
            return self._download_resume(conn, local_file, remote_file, mode, resume_offset)

        # Existing local content is only replaced once the whole file arrived
        partial = f"{local_file}.part"
        try:
            with open(partial, "wb") as fp:
                retrieved = self._retrieve(conn, fp, remote_file, mode, resume_offset)
            if retrieved:
                os.replace(partial, local_file)
                return True
        except OSError as e:
            self._fail("download", e)

        try:
            if os.path.exists(partial):
                os.remove(partial)
        except OSError as e:
            logger.debug(f"Could not remove {partial}: {e!r}")
        return False

    def _download_resume(
        self,
        conn: FTPConnection,
        local_file: str,
        remote_file: str,
        mode: TransferMode,
        resume_offset: int
    ) -> bool:
        """Append the remote tail to the local file at resume_offset."""
        file_mode = "r+b" if os.path.exists(local_file) else "wb"
        try:
            with open(local_file, file_mode) as fp:
                fp.seek(resume_offset)
                fp.truncate()
                return self._retrieve(conn, fp, remote_file, mode, resume_offset)
        except OSError as e:
            self._fail("download", e)
            return False

    def upload_from_file(
        self,
        conn: FTPConnection,
        remote_file: str,
        local_file: str,
        mode: TransferMode,
        start_offset: int
    ) -> bool:
        try:
            with open(local_file, "rb") as fp:
                if start_offset:
                    fp.seek(start_offset)
                return self._store(conn, fp, remote_file, mode, start_offset)
        except OSError as e:
            self._fail("upload", e)
            return False

    def download_to_stream(
        self,
        conn: FTPConnection,
        stream: BinaryIO,
        remote_file: str,
        mode: TransferMode,
        resume_offset: int
    ) -> bool:
        try:
            if resume_offset and conn.autoseek:
                stream.seek(resume_offset)
        except (OSError, ValueError) as e:
            self._fail("download", e)
            return False
        return self._retrieve(conn, stream, remote_file, mode, resume_offset)

    def upload_from_stream(
        self,
        conn: FTPConnection,
        remote_file: str,
        stream: BinaryIO,
        mode: TransferMode,
        start_offset: int
    ) -> bool:
        try:
            if start_offset and conn.autoseek:
                stream.seek(start_offset)
        except (OSError, ValueError) as e:
            self._fail("upload", e)
            return False
        return self._store(conn, stream, remote_file, mode, start_offset)

    def _retrieve(
        self,
        conn: FTPConnection,
        fp: BinaryIO,
        remote_file: str,
        mode: TransferMode,
        rest: int
    ) -> bool:
        command = f"RETR {remote_file}"
        try:
            if mode is TransferMode.BINARY:
                conn.ftp.retrbinary(command, fp.write, self.BLOCK_SIZE, rest or None)
            else:
                self._retrieve_ascii(conn.ftp, command, fp, rest or None)
        except (ValueError, *all_errors) as e:
            self._fail("download", e)
            return False
        return True

    def _store(
        self,
        conn: FTPConnection,
        fp: BinaryIO,
        remote_file: str,
        mode: TransferMode,
        rest: int
    ) -> bool:
        command = f"STOR {remote_file}"
        try:
            if mode is TransferMode.BINARY:
                conn.ftp.storbinary(command, fp, self.BLOCK_SIZE, rest=rest or None)
            else:
                self._store_ascii(conn.ftp, command, fp, rest or None)
        except (ValueError, *all_errors) as e:
            self._fail("upload", e)
            return False
        return True

    def _retrieve_ascii(self, ftp: FTP, command: str, fp: BinaryIO, rest: Optional[int]) -> None:
        """RETR in TYPE A, writing lines with LF endings."""
        ftp.voidcmd("TYPE A")
        with ftp.transfercmd(command, rest) as data_conn:
            with data_conn.makefile("rb") as reader:
                for line in reader:
                    if line.endswith(B_CRLF):
                        line = line[:-2] + b"\n"
                    fp.write(line)
            if isinstance(data_conn, ssl.SSLSocket):
                data_conn.unwrap()
        ftp.voidresp()

    def _store_ascii(self, ftp: FTP, command: str, fp: BinaryIO, rest: Optional[int]) -> None:
        """STOR in TYPE A, sending lines with CRLF endings."""
        ftp.voidcmd("TYPE A")
        with ftp.transfercmd(command, rest) as data_conn:
            while True:
                line = fp.readline()
                if not line:
                    break
                if line[-2:] != B_CRLF:
                    if line[-1] in B_CRLF:
                        line = line[:-1]
                    line = line + B_CRLF
                data_conn.sendall(line)
            if isinstance(data_conn, ssl.SSLSocket):
                data_conn.unwrap()
        ftp.voidresp()

    # Options

    def get_option(self, conn: FTPConnection, option: Option) -> Any:
        if option is Option.TIMEOUT_SEC:
            return conn.timeout
        if option is Option.AUTOSEEK:
            return conn.autoseek
        self._fail("get_option", ValueError(f"Unknown option {option!r}"))
        return None

    def set_option(self, conn: FTPConnection, option: Option, value: Any) -> bool:
        try:
            if option is Option.TIMEOUT_SEC:
                conn.timeout = value
            elif option is Option.AUTOSEEK:
                conn.autoseek = value
            else:
                raise ValueError(f"Unknown option {option!r}")
        except (OSError, ValueError) as e:
            self._fail("set_option", e)
            return False
        return True

    # Server-side commands

    def preallocate(self, conn: FTPConnection, byte_count: int) -> bool:
        return self._run("allo", conn.ftp.voidcmd, f"ALLO {byte_count}")

    def change_permissions(self, conn: FTPConnection, mode: int, path: str) -> bool:
        return self._run("chmod", conn.ftp.voidcmd, f"SITE CHMOD {mode:o} {path}")

    def execute_raw_command(self, conn: FTPConnection, command: str) -> bool:
        return self._run("exec", conn.ftp.voidcmd, f"SITE EXEC {command}")
