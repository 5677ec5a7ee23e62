"""Command parser for CLI input."""

import shlex

from common.constants import MAX_ARCHIVE_FILES
from vaultcli.models import (
    CommandRequest,
    DownloadCommand,
    ListCommand,
    LoginCommand,
    MkdirCommand,
    RemoveCommand,
    RenameCommand,
    UploadCommand,
    ZipCommand,
)


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a command object.

    Args:
        input_line: Raw user input from REPL

    Returns:
        One of the command dataclasses in vaultcli.models

    Raises:
        ParseError: If command syntax is invalid
    """
    if not input_line.strip():
        raise ParseError("Empty command")

    try:
        tokens = shlex.split(input_line)
    except ValueError as e:
        raise ParseError(f"Invalid syntax: {e}")

    if not tokens:
        raise ParseError("Empty command")

    command_name = tokens[0]
    args = tokens[1:]

    if command_name == "ls":
        return _parse_ls(args)
    elif command_name == "mkdir":
        return _parse_mkdir(args)
    elif command_name == "rm":
        return _parse_rm(args)
    elif command_name == "mv":
        return _parse_mv(args)
    elif command_name == "upload":
        return _parse_upload(args)
    elif command_name == "download":
        return _parse_download(args)
    elif command_name == "zip":
        return _parse_zip(args)
    elif command_name == "login":
        return _parse_login(args)
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _parse_ls(args: list[str]) -> ListCommand:
    """Parse 'ls [path]' command."""
    if len(args) > 1:
        raise ParseError("ls takes at most 1 argument: [path]")
    return ListCommand(path=args[0] if args else "")


def _parse_mkdir(args: list[str]) -> MkdirCommand:
    """Parse 'mkdir <name> [path]' command."""
    if len(args) not in (1, 2):
        raise ParseError("mkdir requires 1 or 2 arguments: <name> [path]")
    return MkdirCommand(name=args[0], path=args[1] if len(args) == 2 else "")


def _parse_rm(args: list[str]) -> RemoveCommand:
    """Parse 'rm <path>' command."""
    if len(args) != 1:
        raise ParseError("rm requires exactly 1 argument: <path>")
    return RemoveCommand(path=args[0])


def _parse_mv(args: list[str]) -> RenameCommand:
    """Parse 'mv <path> <new-name>' command."""
    if len(args) != 2:
        raise ParseError("mv requires exactly 2 arguments: <path> <new-name>")
    path, new_name = args
    if "/" in new_name:
        raise ParseError("mv renames in place; <new-name> cannot contain '/'")
    return RenameCommand(path=path, new_name=new_name)


def _take_option(args: list[str], option: str, command: str) -> tuple[list[str], str | None]:
    """Remove '<option> <value>' from args, returning the rest and the value."""
    if option not in args:
        return args, None

    index = args.index(option)
    if index + 1 >= len(args):
        raise ParseError(f"{command}: {option} requires a value")
    value = args[index + 1]
    return args[:index] + args[index + 2:], value


def _parse_upload(args: list[str]) -> UploadCommand:
    """Parse 'upload <file>... [--to <path>]' command."""
    files, remote_path = _take_option(args, "--to", "upload")
    if not files:
        raise ParseError("upload requires at least one file")
    return UploadCommand(file_list=tuple(files), remote_path=remote_path or "")


def _parse_download(args: list[str]) -> DownloadCommand:
    """Parse 'download <remote-path> [--password <pw>]' command."""
    rest, password = _take_option(args, "--password", "download")
    if len(rest) != 1:
        raise ParseError("download requires exactly 1 path: <remote-path> [--password <pw>]")
    return DownloadCommand(remote_path=rest[0], password=password)


def _parse_zip(args: list[str]) -> ZipCommand:
    """Parse 'zip <path>...' command."""
    if not args:
        raise ParseError("zip requires at least one path")
    if len(args) > MAX_ARCHIVE_FILES:
        raise ParseError(f"zip accepts at most {MAX_ARCHIVE_FILES} paths")
    return ZipCommand(paths=tuple(args))


def _parse_login(args: list[str]) -> LoginCommand:
    """Parse 'login <username> <password>' command."""
    if len(args) != 2:
        raise ParseError("login requires exactly 2 arguments: <username> <password>")

    username, password = args
    return LoginCommand(username=username, password=password)
