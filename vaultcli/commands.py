"""Command handler functions for CLI operations."""

from typing import Optional

from common.logging_config import get_logger
from vaultcli.config import Config
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
from vaultcli.vault_client import VaultClient

logger = get_logger(__name__)


_client: Optional[VaultClient] = None


def get_client() -> VaultClient:
    """
    Get or create global VaultClient instance.

    Returns:
        VaultClient instance
    """
    global _client
    if _client is None:
        logger.debug("Creating new VaultClient instance")
        _client = VaultClient(Config())
    return _client


def handle_list(cmd: ListCommand, client: Optional[VaultClient] = None) -> str:
    """
    Handle 'ls' command.

    Args:
        cmd: ListCommand with the folder path
        client: Optional VaultClient for dependency injection (testing)

    Returns:
        Formatted folder listing
    """
    client = client or get_client()
    return client.list_items(cmd.path)


def handle_mkdir(cmd: MkdirCommand, client: Optional[VaultClient] = None) -> str:
    client = client or get_client()
    return client.create_folder(cmd.name, cmd.path)


def handle_remove(cmd: RemoveCommand, client: Optional[VaultClient] = None) -> str:
    client = client or get_client()
    return client.delete_item(cmd.path)


def handle_rename(cmd: RenameCommand, client: Optional[VaultClient] = None) -> str:
    client = client or get_client()
    return client.rename_item(cmd.path, cmd.new_name)


def handle_upload(cmd: UploadCommand, client: Optional[VaultClient] = None) -> str:
    """
    Handle 'upload' command.

    Args:
        cmd: UploadCommand with local files and destination folder
        client: Optional VaultClient for dependency injection (testing)

    Returns:
        One result line per file
    """
    logger.info(f"Executing upload command: {len(cmd.file_list)} file(s) to '{cmd.remote_path or '/'}'")
    client = client or get_client()
    return client.upload(list(cmd.file_list), cmd.remote_path)


def handle_download(cmd: DownloadCommand, client: Optional[VaultClient] = None) -> str:
    """
    Handle 'download' command.

    Args:
        cmd: DownloadCommand with remote path and optional password
        client: Optional VaultClient for dependency injection (testing)

    Returns:
        Success or error message with download results
    """
    logger.info(f"Executing download command: path={cmd.remote_path}")
    client = client or get_client()
    return client.download(cmd.remote_path, cmd.password)


def handle_zip(cmd: ZipCommand, client: Optional[VaultClient] = None) -> str:
    client = client or get_client()
    return client.download_zip(list(cmd.paths))


def handle_login(cmd: LoginCommand, client: Optional[VaultClient] = None) -> str:
    client = client or get_client()
    return client.login(cmd.username, cmd.password)


HANDLERS = {
    ListCommand: handle_list,
    MkdirCommand: handle_mkdir,
    RemoveCommand: handle_remove,
    RenameCommand: handle_rename,
    UploadCommand: handle_upload,
    DownloadCommand: handle_download,
    ZipCommand: handle_zip,
    LoginCommand: handle_login,
}


def dispatch_command(cmd_obj: CommandRequest, client: Optional[VaultClient] = None) -> str:
    """Dispatch parsed command to appropriate handler."""
    handler = HANDLERS.get(type(cmd_obj))
    if handler is None:
        return f"Unknown command type: {type(cmd_obj)}"
    return handler(cmd_obj, client)
