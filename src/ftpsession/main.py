"""Command line entry point for ftpsession.

Runs one FTP session per invocation: connect, log in, perform a single
command, close. Connection parameters default to the saved settings and
the password to the system keyring.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ftpsession.config.credentials import CredentialManager
from ftpsession.config.paths import get_log_file_path
from ftpsession.config.settings import SessionSettings, SettingsManager
from ftpsession.ftp.connection import Option, TransferMode
from ftpsession.ftp.result import Ok, Result
from ftpsession.ftp.session import FTPSession
from ftpsession.utils.logging import get_logger, setup_logging
from ftpsession.utils.validators import validate_file_path, validate_host


def _emit(value) -> Result:
    if isinstance(value, list):
        for item in value:
            print(item)
    else:
        print(value)
    return Ok(value)


def _octal(value: str) -> int:
    try:
        return int(value, 8)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid octal mode: {value}")


def _cmd_ls(session: FTPSession, args: argparse.Namespace, mode: TransferMode) -> Result:
    return session.list_directory(args.path).and_then(_emit)


def _cmd_pwd(session: FTPSession, args: argparse.Namespace, mode: TransferMode) -> Result:
    return session.get_directory().and_then(_emit)


def _cmd_get(session: FTPSession, args: argparse.Namespace, mode: TransferMode) -> Result:
    local = args.local or Path(args.remote).name
    return session.get(local, args.remote, mode, args.resume)


def _cmd_put(session: FTPSession, args: argparse.Namespace, mode: TransferMode) -> Result:
    is_valid, message = validate_file_path(Path(args.local))
    if not is_valid:
        return session.set_error(message)
    remote = args.remote or Path(args.local).name
    return session.put(remote, args.local, mode, args.resume)


def _cmd_mkdir(session: FTPSession, args: argparse.Namespace, mode: TransferMode) -> Result:
    return session.create_directory(args.path)


def _cmd_rmdir(session: FTPSession, args: argparse.Namespace, mode: TransferMode) -> Result:
    return session.remove_directory(args.path)


def _cmd_rm(session: FTPSession, args: argparse.Namespace, mode: TransferMode) -> Result:
    return session.delete(args.path)


def _cmd_mv(session: FTPSession, args: argparse.Namespace, mode: TransferMode) -> Result:
    return session.rename(args.old, args.new)


def _cmd_size(session: FTPSession, args: argparse.Namespace, mode: TransferMode) -> Result:
    return session.size(args.path).and_then(_emit)


def _cmd_mtime(session: FTPSession, args: argparse.Namespace, mode: TransferMode) -> Result:
    return session.modified_time(args.path, args.format).and_then(_emit)


def _cmd_chmod(session: FTPSession, args: argparse.Namespace, mode: TransferMode) -> Result:
    return session.chmod(args.mode, args.path)


def _cmd_site(session: FTPSession, args: argparse.Namespace, mode: TransferMode) -> Result:
    return session.exec(" ".join(args.words))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ftpsession",
        description="Run a single command against an FTP server.",
    )
    parser.add_argument("--host", help="FTP server (default: saved host)")
    parser.add_argument("--port", type=int, help="Control port (default: saved port or 21)")
    parser.add_argument("--tls", action="store_true", default=None, help="Use explicit FTPS")
    parser.add_argument("--user", help="User name (default: saved user or anonymous)")
    parser.add_argument("--password", help="Password (default: keyring entry)")
    parser.add_argument("--timeout", type=int, help="Socket timeout in seconds")
    parser.add_argument("--active", action="store_true", help="Use active mode data connections")
    parser.add_argument("--ascii", action="store_true", help="Transfer in ASCII mode")
    parser.add_argument("--save", action="store_true",
                        help="Remember connection settings and password after success")
    parser.add_argument("--log", action="store_true", help="Also log to the ftpsession log file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    ls_parser = subparsers.add_parser("ls", help="List entry names, sorted")
    ls_parser.add_argument("path", nargs="?", default=".")
    ls_parser.set_defaults(handler=_cmd_ls)

    pwd_parser = subparsers.add_parser("pwd", help="Print the remote working directory")
    pwd_parser.set_defaults(handler=_cmd_pwd)

    get_parser = subparsers.add_parser("get", help="Download a file")
    get_parser.add_argument("remote")
    get_parser.add_argument("local", nargs="?")
    get_parser.add_argument("--resume", type=int, default=0, metavar="OFFSET")
    get_parser.set_defaults(handler=_cmd_get)

    put_parser = subparsers.add_parser("put", help="Upload a file")
    put_parser.add_argument("local")
    put_parser.add_argument("remote", nargs="?")
    put_parser.add_argument("--resume", type=int, default=0, metavar="OFFSET")
    put_parser.set_defaults(handler=_cmd_put)

    for name, handler, help_text in (
        ("mkdir", _cmd_mkdir, "Create a directory"),
        ("rmdir", _cmd_rmdir, "Remove an empty directory"),
        ("rm", _cmd_rm, "Delete a file"),
        ("size", _cmd_size, "Print a file size in bytes"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("path")
        sub.set_defaults(handler=handler)

    mv_parser = subparsers.add_parser("mv", help="Rename a file or directory")
    mv_parser.add_argument("old")
    mv_parser.add_argument("new")
    mv_parser.set_defaults(handler=_cmd_mv)

    mtime_parser = subparsers.add_parser("mtime", help="Print a file modification time")
    mtime_parser.add_argument("path")
    mtime_parser.add_argument("--format", help="strftime format instead of a unix timestamp")
    mtime_parser.set_defaults(handler=_cmd_mtime)

    chmod_parser = subparsers.add_parser("chmod", help="Change permissions (SITE CHMOD)")
    chmod_parser.add_argument("mode", type=_octal, help="Octal mode, e.g. 644")
    chmod_parser.add_argument("path")
    chmod_parser.set_defaults(handler=_cmd_chmod)

    site_parser = subparsers.add_parser("site", help="Run a raw command (SITE EXEC)")
    site_parser.add_argument("words", nargs="+")
    site_parser.set_defaults(handler=_cmd_site)

    subparsers.add_parser("forget", help="Reset saved settings and remove the saved password")

    return parser


def _resolve_settings(args: argparse.Namespace, saved: SessionSettings) -> SessionSettings:
    """Command line values win over saved ones."""
    return SessionSettings(
        host=args.host or saved.host,
        port=args.port or saved.port,
        use_tls=saved.use_tls if args.tls is None else args.tls,
        username=args.user or saved.username,
        passive_mode=False if args.active else saved.passive_mode,
        timeout=args.timeout or saved.timeout,
        autoseek=saved.autoseek,
        transfer_mode=TransferMode.ASCII.value if args.ascii else saved.transfer_mode,
    )


def _forget(
    settings: SessionSettings,
    settings_manager: SettingsManager,
    credential_manager: CredentialManager,
    logger: logging.Logger
) -> int:
    """Drop the saved settings and the password saved for them. Never connects."""
    if settings.host and credential_manager.delete_password(settings.host, settings.username):
        logger.info(f"Removed saved password for {settings.username}@{settings.host}")
    settings_manager.reset()
    logger.info("Saved settings reset")
    return 0


def main(
    argv: Optional[List[str]] = None,
    settings_manager: Optional[SettingsManager] = None,
    credential_manager: Optional[CredentialManager] = None,
    session: Optional[FTPSession] = None
) -> int:
    """
    Run the command line tool.

    Returns:
        Process exit code (0 on success, 1 on failure)
    """
    args = _build_parser().parse_args(argv)

    setup_logging(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        log_file=get_log_file_path() if args.log else None,
    )
    logger = get_logger("cli")

    settings_manager = settings_manager or SettingsManager()
    credential_manager = credential_manager or CredentialManager()
    settings = _resolve_settings(args, settings_manager.load())

    if args.command == "forget":
        return _forget(settings, settings_manager, credential_manager, logger)

    if not settings.host:
        print("error: no host given and none saved (use --host)", file=sys.stderr)
        return 1

    is_valid, message = validate_host(settings.host)
    if not is_valid:
        print(f"error: {message}", file=sys.stderr)
        return 1

    password = args.password
    if password is None:
        password = credential_manager.get_password(settings.host, settings.username) or ""

    with session or FTPSession() as ftp:
        result = (
            ftp.connect(settings.host, settings.use_tls, settings.port, settings.timeout)
            .and_then(lambda s: s.login(settings.username, password))
            .and_then(lambda s: s.passive(settings.passive_mode))
            .and_then(lambda s: s.set_option(Option.AUTOSEEK, settings.autoseek))
            .and_then(lambda s: args.handler(s, args, settings.mode))
        )

    if not result:
        print(f"error: {result.message}", file=sys.stderr)
        return 1

    if args.save:
        settings_manager.save(settings)
        if password:
            credential_manager.save_password(settings.host, settings.username, password)
        logger.info(f"Saved settings for {settings.username}@{settings.host}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
