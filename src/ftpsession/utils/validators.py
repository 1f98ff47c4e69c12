"""Input validators for ftpsession.

Validation functions for connection parameters, remote paths and
transfer offsets. Each returns an ``(is_valid, error_message)`` tuple.
"""

import re
from pathlib import Path
from typing import Optional, Tuple


# IPv4 address pattern
IPV4_PATTERN = re.compile(
    r'^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}'
    r'(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$'
)

# Hostname pattern (simplified)
HOSTNAME_PATTERN = re.compile(
    r'^(?=.{1,253}$)(?!-)[A-Za-z0-9-]{1,63}(?<!-)(\.[A-Za-z0-9-]{1,63})*$'
)


def validate_ip_address(ip: str) -> Tuple[bool, Optional[str]]:
    """
    Validate an IPv4 address.

    Args:
        ip: IP address string to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not ip or not ip.strip():
        return False, "IP address is required"

    ip = ip.strip()

    if IPV4_PATTERN.match(ip):
        return True, None

    return False, f"Invalid IP address format: {ip}"


def validate_hostname(hostname: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a hostname.

    Args:
        hostname: Hostname string to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not hostname or not hostname.strip():
        return False, "Hostname is required"

    hostname = hostname.strip()

    if HOSTNAME_PATTERN.match(hostname):
        return True, None

    return False, f"Invalid hostname format: {hostname}"


def validate_host(host: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a host (IP address or hostname).

    Args:
        host: Host string to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not host or not host.strip():
        return False, "Host is required"

    host = host.strip()

    is_valid_ip, _ = validate_ip_address(host)
    if is_valid_ip:
        return True, None

    is_valid_hostname, _ = validate_hostname(host)
    if is_valid_hostname:
        return True, None

    return False, f"Invalid host: {host}. Must be a valid IP address or hostname."


def validate_port(port: int) -> Tuple[bool, Optional[str]]:
    """
    Validate a port number.

    Args:
        port: Port number to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(port, int):
        try:
            port = int(port)
        except (ValueError, TypeError):
            return False, "Port must be a number"

    if port < 1 or port > 65535:
        return False, f"Port must be between 1 and 65535, got {port}"

    return True, None


def validate_timeout(timeout: int) -> Tuple[bool, Optional[str]]:
    """
    Validate a timeout value in seconds.

    Args:
        timeout: Timeout in seconds

    Returns:
        Tuple of (is_valid, error_message)
    """
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        return False, "Timeout value must be a number"

    if timeout <= 0:
        return False, "Timeout value must be greater than zero"

    return True, None


def validate_offset(offset: int) -> Tuple[bool, Optional[str]]:
    """Validate a resume/start offset for a transfer."""
    if isinstance(offset, bool) or not isinstance(offset, int):
        return False, "Offset must be an integer"

    if offset < 0:
        return False, f"Offset cannot be negative, got {offset}"

    return True, None


def validate_remote_path(path: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a remote FTP path.

    Relative paths are allowed; they resolve against the server-side
    working directory.

    Args:
        path: Remote path to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not path or (isinstance(path, str) and not path.strip()):
        return False, "Remote path is required"

    if not isinstance(path, str):
        return False, "Remote path must be a string"

    if "\r" in path or "\n" in path:
        return False, "Remote path cannot contain line breaks"

    return True, None


def validate_file_path(path: Path, must_exist: bool = True) -> Tuple[bool, Optional[str]]:
    """
    Validate a local file path.

    Args:
        path: Path to validate
        must_exist: If True, file must exist

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not path:
        return False, "File path is required"

    if isinstance(path, str):
        path = Path(path)

    if must_exist:
        if not path.exists():
            return False, f"File does not exist: {path}"
        if not path.is_file():
            return False, f"Path is not a file: {path}"

    return True, None
