"""FTP connection handle for ftpsession.

Provides the TransferMode and Option enums and the FTPConnection
dataclass that an engine hands back from a successful open.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from ftplib import FTP, FTP_TLS
from typing import Optional


class TransferMode(Enum):
    """FTP transfer type."""
    ASCII = "ascii"
    BINARY = "binary"


class Option(Enum):
    """Runtime options supported by a connection."""
    TIMEOUT_SEC = "timeout_sec"
    AUTOSEEK = "autoseek"


@dataclass
class FTPConnection:
    """A live control connection owned by a session."""
    ftp: FTP
    host: str
    port: int = 21
    use_tls: bool = False
    autoseek: bool = True
    connected_at: datetime = field(default_factory=datetime.now)

    @property
    def is_secure(self) -> bool:
        """True if the control channel runs over TLS."""
        return isinstance(self.ftp, FTP_TLS)

    @property
    def timeout(self) -> Optional[float]:
        """Socket timeout in seconds."""
        return self.ftp.timeout

    @timeout.setter
    def timeout(self, value: float) -> None:
        self.ftp.timeout = value
        if self.ftp.sock is not None:
            self.ftp.sock.settimeout(value)
