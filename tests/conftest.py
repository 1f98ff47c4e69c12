"""Pytest configuration and shared fixtures for ftpsession tests."""

import posixpath
from dataclasses import dataclass
from ftplib import error_perm
from pathlib import Path
from typing import Dict, List, Optional, Set
from unittest.mock import MagicMock

import pytest

from ftpsession.ftp.connection import FTPConnection, Option
from ftpsession.ftp.engine import FTPEngine
from ftpsession.ftp.session import FTPSession


# Test constants
TEST_FTP_HOST = "127.0.0.1"
TEST_FTP_PORT = 2121
TEST_FTP_USER = "testuser"
TEST_FTP_PASS = "testpass"

# Fixed MDTM answer for every fake file: 2023-11-14 22:13:20 UTC
FAKE_MTIME = 1700000000


@dataclass
class MockFTPConfig:
    """Configuration for mock FTP server in tests."""
    host: str = TEST_FTP_HOST
    port: int = TEST_FTP_PORT
    username: str = TEST_FTP_USER
    password: str = TEST_FTP_PASS


class FakeEngine(FTPEngine):
    """
    In-memory FTP engine.

    Keeps a tiny remote filesystem, records every call by method name and
    fails any method whose name is in ``failing``.
    """

    def __init__(self, users: Optional[Dict[str, str]] = None):
        self.calls: List[str] = []
        self.failing: Set[str] = set()
        self.refuse_open = False
        self.open_error: Exception = ConnectionRefusedError("[Errno 111] Connection refused")
        self.error: Optional[Exception] = None
        self.users = users if users is not None else {TEST_FTP_USER: TEST_FTP_PASS, "anonymous": ""}
        self.dirs: Set[str] = {"/"}
        self.files: Dict[str, bytes] = {}
        self.permissions: Dict[str, int] = {}
        self.commands: List[str] = []
        self.options: Dict[Option, object] = {}
        self.cwd = "/"
        self.passive = True
        self.closed: List[FTPConnection] = []

    # helpers

    def _record(self, name: str) -> bool:
        self.calls.append(name)
        if name in self.failing:
            self.error = error_perm(f"550 {name} refused")
            return False
        return True

    def _refuse(self, message: str) -> bool:
        self.error = error_perm(f"550 {message}")
        return False

    def _abs(self, path: str) -> str:
        return posixpath.normpath(posixpath.join(self.cwd, path))

    def _children(self, directory: str) -> List[str]:
        prefix = directory.rstrip("/") + "/"
        entries = [p for p in self.dirs | set(self.files) if p != directory and p.startswith(prefix)]
        return [p for p in entries if "/" not in p[len(prefix):]]

    def add_file(self, path: str, data: bytes) -> None:
        self.files[self._abs(path)] = data

    # FTPEngine

    def open(self, host, use_tls, port, timeout):
        self.calls.append("open")
        if self.refuse_open:
            self.error = self.open_error
            return None
        self.options = {Option.TIMEOUT_SEC: timeout, Option.AUTOSEEK: True}
        return FTPConnection(ftp=MagicMock(), host=host, port=port, use_tls=use_tls)

    def authenticate(self, conn, username, password):
        if not self._record("authenticate"):
            return False
        if self.users.get(username) != password:
            return self._refuse("Login incorrect.")
        return True

    def close_connection(self, conn):
        self.closed.append(conn)
        return self._record("close_connection")

    def set_passive_mode(self, conn, enabled):
        if not self._record("set_passive_mode"):
            return False
        self.passive = enabled
        return True

    def change_working_directory(self, conn, path):
        if not self._record("change_working_directory"):
            return False
        target = self._abs(path)
        if target not in self.dirs:
            return self._refuse(f"{path}: No such file or directory.")
        self.cwd = target
        return True

    def change_to_parent_directory(self, conn):
        if not self._record("change_to_parent_directory"):
            return False
        if self.cwd == "/":
            return self._refuse("Already at root.")
        self.cwd = posixpath.dirname(self.cwd)
        return True

    def get_working_directory(self, conn):
        if not self._record("get_working_directory"):
            return None
        return self.cwd

    def make_directory(self, conn, path):
        if not self._record("make_directory"):
            return False
        target = self._abs(path)
        if target in self.dirs or target in self.files:
            return self._refuse(f"{path}: File exists.")
        if posixpath.dirname(target) not in self.dirs:
            return self._refuse(f"{path}: No such file or directory.")
        self.dirs.add(target)
        return True

    def remove_directory(self, conn, path):
        if not self._record("remove_directory"):
            return False
        target = self._abs(path)
        if target == "/" or target not in self.dirs or self._children(target):
            return self._refuse(f"{path}: Cannot remove.")
        self.dirs.discard(target)
        return True

    def list_names(self, conn, path):
        if not self._record("list_names"):
            return None
        target = self._abs(path)
        if target not in self.dirs:
            self.error = error_perm(f"550 {path}: No such file or directory.")
            return None
        # Deliberately unsorted, as real servers often are
        return sorted((posixpath.basename(p) for p in self._children(target)), reverse=True)

    def delete_file(self, conn, path):
        if not self._record("delete_file"):
            return False
        target = self._abs(path)
        if target not in self.files:
            return self._refuse(f"{path}: No such file.")
        del self.files[target]
        return True

    def file_size(self, conn, path):
        if not self._record("file_size"):
            return -1
        data = self.files.get(self._abs(path))
        if data is None:
            self.error = error_perm(f"550 {path}: No such file.")
            return -1
        return len(data)

    def modified_time(self, conn, path):
        if not self._record("modified_time"):
            return -1
        if self._abs(path) not in self.files:
            self.error = error_perm(f"550 {path}: No such file.")
            return -1
        return FAKE_MTIME

    def rename_entry(self, conn, old_path, new_path):
        if not self._record("rename_entry"):
            return False
        source, target = self._abs(old_path), self._abs(new_path)
        if source in self.files:
            self.files[target] = self.files.pop(source)
        elif source in self.dirs and not self._children(source):
            self.dirs.discard(source)
            self.dirs.add(target)
        else:
            return self._refuse(f"{old_path}: Cannot rename.")
        return True

    def download_to_file(self, conn, local_file, remote_file, mode, resume_offset):
        if not self._record("download_to_file"):
            return False
        data = self.files.get(self._abs(remote_file))
        if data is None:
            return self._refuse(f"{remote_file}: No such file.")
        file_mode = "r+b" if resume_offset and Path(local_file).exists() else "wb"
        with open(local_file, file_mode) as fp:
            fp.seek(resume_offset)
            fp.write(data[resume_offset:])
        return True

    def upload_from_file(self, conn, remote_file, local_file, mode, start_offset):
        if not self._record("upload_from_file"):
            return False
        data = Path(local_file).read_bytes()[start_offset:]
        target = self._abs(remote_file)
        self.files[target] = self.files.get(target, b"")[:start_offset] + data
        return True

    def download_to_stream(self, conn, stream, remote_file, mode, resume_offset):
        if not self._record("download_to_stream"):
            return False
        data = self.files.get(self._abs(remote_file))
        if data is None:
            return self._refuse(f"{remote_file}: No such file.")
        stream.write(data[resume_offset:])
        return True

    def upload_from_stream(self, conn, remote_file, stream, mode, start_offset):
        if not self._record("upload_from_stream"):
            return False
        target = self._abs(remote_file)
        self.files[target] = self.files.get(target, b"")[:start_offset] + stream.read()
        return True

    def get_option(self, conn, option):
        self.calls.append("get_option")
        return self.options[option]

    def set_option(self, conn, option, value):
        if not self._record("set_option"):
            return False
        self.options[option] = value
        return True

    def preallocate(self, conn, byte_count):
        return self._record("preallocate")

    def change_permissions(self, conn, mode, path):
        if not self._record("change_permissions"):
            return False
        target = self._abs(path)
        if target not in self.files and target not in self.dirs:
            return self._refuse(f"{path}: No such file.")
        self.permissions[target] = mode
        return True

    def execute_raw_command(self, conn, command):
        if not self._record("execute_raw_command"):
            return False
        self.commands.append(command)
        return True

    def last_error(self):
        return self.error


@pytest.fixture
def ftp_config() -> MockFTPConfig:
    """Provide mock FTP configuration for tests."""
    return MockFTPConfig()


@pytest.fixture
def fake_engine() -> FakeEngine:
    """Provide a fresh in-memory engine."""
    return FakeEngine()


@pytest.fixture
def session(fake_engine: FakeEngine) -> FTPSession:
    """Provide a disconnected session backed by the fake engine."""
    return FTPSession(engine=fake_engine)


@pytest.fixture
def connected_session(session: FTPSession, fake_engine: FakeEngine) -> FTPSession:
    """Provide a session connected and logged in to the fake engine."""
    assert session.connect(TEST_FTP_HOST, port=TEST_FTP_PORT, timeout=30)
    assert session.login(TEST_FTP_USER, TEST_FTP_PASS)
    fake_engine.calls.clear()
    return session


@pytest.fixture
def temp_settings_file(tmp_path: Path) -> Path:
    """Provide a temporary settings file path for testing."""
    return tmp_path / "settings.json"
