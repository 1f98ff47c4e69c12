"""ftpsession - a single-session FTP client facade.

Typical use:

    from ftpsession import FTPSession

    with FTPSession() as session:
        result = session.connect("ftp.example.com").and_then(lambda s: s.login())
        if not result:
            print(session.get_error())
"""

from ftpsession.ftp.connection import Option, TransferMode
from ftpsession.ftp.result import Err, Ok, Result
from ftpsession.ftp.session import FTPSession

__version__ = "1.0.0"

__all__ = [
    "FTPSession",
    "Option",
    "TransferMode",
    "Ok",
    "Err",
    "Result",
    "__version__",
]
