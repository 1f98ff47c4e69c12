"""Unit tests for input validators."""

import pytest

from ftpsession.utils.validators import (
    validate_file_path,
    validate_host,
    validate_hostname,
    validate_ip_address,
    validate_offset,
    validate_port,
    validate_remote_path,
    validate_timeout,
)


class TestHostValidation:
    """Tests for host, IP and hostname validation."""

    @pytest.mark.parametrize("ip", ["127.0.0.1", "192.168.1.100", " 10.0.0.1 "])
    def test_valid_ip(self, ip):
        """Test valid IPv4 addresses."""
        assert validate_ip_address(ip) == (True, None)

    @pytest.mark.parametrize("ip", ["256.1.1.1", "1.2.3", "a.b.c.d"])
    def test_invalid_ip(self, ip):
        """Test malformed IPv4 addresses."""
        is_valid, error = validate_ip_address(ip)

        assert is_valid is False
        assert "Invalid IP address format" in error

    @pytest.mark.parametrize("hostname", ["localhost", "ftp.example.com", "my-server"])
    def test_valid_hostname(self, hostname):
        """Test valid hostnames."""
        assert validate_hostname(hostname) == (True, None)

    @pytest.mark.parametrize("hostname", ["-bad.example.com", "has space", "under_score.com"])
    def test_invalid_hostname(self, hostname):
        """Test malformed hostnames."""
        assert validate_hostname(hostname)[0] is False

    def test_host_accepts_ip_or_hostname(self):
        """Test validate_host accepts both forms."""
        assert validate_host("192.168.1.100")[0] is True
        assert validate_host("ftp.example.com")[0] is True

    @pytest.mark.parametrize("host,message", [
        ("", "Host is required"),
        ("   ", "Host is required"),
        ("not a host", "Invalid host: not a host"),
    ])
    def test_invalid_host(self, host, message):
        """Test empty and malformed hosts."""
        is_valid, error = validate_host(host)

        assert is_valid is False
        assert error.startswith(message)


class TestPortAndTimeout:
    """Tests for port and timeout validation."""

    @pytest.mark.parametrize("port", [1, 21, 2121, 65535, "21"])
    def test_valid_port(self, port):
        """Test ports in range, including numeric strings."""
        assert validate_port(port) == (True, None)

    @pytest.mark.parametrize("port", [0, -1, 65536])
    def test_port_out_of_range(self, port):
        """Test ports outside 1-65535."""
        assert validate_port(port) == (False, f"Port must be between 1 and 65535, got {port}")

    def test_port_not_a_number(self):
        """Test non-numeric ports."""
        assert validate_port("ftp") == (False, "Port must be a number")

    @pytest.mark.parametrize("timeout", [1, 90, 0.5])
    def test_valid_timeout(self, timeout):
        """Test positive timeouts."""
        assert validate_timeout(timeout) == (True, None)

    @pytest.mark.parametrize("timeout", [0, -5])
    def test_timeout_not_positive(self, timeout):
        """Test zero and negative timeouts."""
        assert validate_timeout(timeout) == (False, "Timeout value must be greater than zero")

    @pytest.mark.parametrize("timeout", ["30", None, True])
    def test_timeout_not_a_number(self, timeout):
        """Test strings, None and booleans are refused."""
        assert validate_timeout(timeout) == (False, "Timeout value must be a number")


class TestOffsetAndPaths:
    """Tests for offsets and remote/local paths."""

    @pytest.mark.parametrize("offset", [0, 1, 10 ** 12])
    def test_valid_offset(self, offset):
        """Test non-negative integers."""
        assert validate_offset(offset) == (True, None)

    def test_negative_offset(self):
        """Test negative offsets."""
        assert validate_offset(-1) == (False, "Offset cannot be negative, got -1")

    @pytest.mark.parametrize("offset", [1.5, "10", False])
    def test_offset_not_an_integer(self, offset):
        """Test floats, strings and booleans are refused."""
        assert validate_offset(offset) == (False, "Offset must be an integer")

    @pytest.mark.parametrize("path", ["file.txt", "/pub/dir", "dir with spaces/a b.txt", "."])
    def test_valid_remote_path(self, path):
        """Test absolute and relative remote paths."""
        assert validate_remote_path(path) == (True, None)

    @pytest.mark.parametrize("path", ["", "   ", None])
    def test_remote_path_required(self, path):
        """Test empty remote paths."""
        assert validate_remote_path(path) == (False, "Remote path is required")

    @pytest.mark.parametrize("path", ["a\r\nDELE b", "a\nb"])
    def test_remote_path_with_line_breaks(self, path):
        """Test paths that would inject extra commands."""
        assert validate_remote_path(path) == (False, "Remote path cannot contain line breaks")

    def test_local_file_exists(self, tmp_path):
        """Test an existing local file."""
        local = tmp_path / "a.bin"
        local.write_bytes(b"x")

        assert validate_file_path(local) == (True, None)
        assert validate_file_path(str(local)) == (True, None)

    def test_local_file_missing(self, tmp_path):
        """Test a missing file, unless existence is not required."""
        missing = tmp_path / "missing.bin"

        assert validate_file_path(missing) == (False, f"File does not exist: {missing}")
        assert validate_file_path(missing, must_exist=False) == (True, None)

    def test_local_path_is_directory(self, tmp_path):
        """Test a directory is not a file."""
        assert validate_file_path(tmp_path) == (False, f"Path is not a file: {tmp_path}")

    def test_local_path_required(self):
        """Test an empty path."""
        assert validate_file_path("") == (False, "File path is required")

    @pytest.mark.parametrize("path", [42, ["/pub"], b"/pub"])
    def test_remote_path_must_be_string(self, path):
        """Test non-string paths are refused instead of raising."""
        assert validate_remote_path(path) == (False, "Remote path must be a string")
