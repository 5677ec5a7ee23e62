"""Tests for CLI command handlers."""

from unittest.mock import Mock

from vaultcli.commands import (
    dispatch_command,
    handle_download,
    handle_list,
    handle_login,
    handle_mkdir,
    handle_remove,
    handle_rename,
    handle_upload,
    handle_zip,
)
from vaultcli.models import (
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


def test_handle_list():
    mock_client = Mock(spec=VaultClient)
    mock_client.list_items.return_value = "Folder 'docs' is empty."

    result = handle_list(ListCommand(path='docs'), client=mock_client)

    assert result == "Folder 'docs' is empty."
    mock_client.list_items.assert_called_once_with('docs')


def test_handle_mkdir_rm_mv():
    mock_client = Mock(spec=VaultClient)

    handle_mkdir(MkdirCommand(name='q1', path='reports'), client=mock_client)
    handle_remove(RemoveCommand(path='reports/q1'), client=mock_client)
    handle_rename(RenameCommand(path='a.txt', new_name='b.txt'), client=mock_client)

    mock_client.create_folder.assert_called_once_with('q1', 'reports')
    mock_client.delete_item.assert_called_once_with('reports/q1')
    mock_client.rename_item.assert_called_once_with('a.txt', 'b.txt')


def test_handle_upload():
    """Test upload handler passes a list of files and the destination."""
    mock_client = Mock(spec=VaultClient)
    mock_client.upload.return_value = "Uploaded: docs/a.txt (1.00 KiB)"

    cmd = UploadCommand(file_list=('a.txt', 'b.txt'), remote_path='docs')
    result = handle_upload(cmd, client=mock_client)

    assert 'Uploaded' in result
    mock_client.upload.assert_called_once_with(['a.txt', 'b.txt'], 'docs')


def test_handle_download_with_password():
    mock_client = Mock(spec=VaultClient)
    mock_client.download.return_value = "Downloaded: key.pem (1.00 KiB)"

    result = handle_download(DownloadCommand(remote_path='key.pem', password='pw'), client=mock_client)

    assert 'Downloaded' in result
    mock_client.download.assert_called_once_with('key.pem', 'pw')


def test_handle_zip_and_login():
    mock_client = Mock(spec=VaultClient)

    handle_zip(ZipCommand(paths=('a.txt', 'b.txt')), client=mock_client)
    handle_login(LoginCommand(username='admin', password='pw'), client=mock_client)

    mock_client.download_zip.assert_called_once_with(['a.txt', 'b.txt'])
    mock_client.login.assert_called_once_with('admin', 'pw')


def test_dispatch_command_routes_by_type():
    mock_client = Mock(spec=VaultClient)
    mock_client.delete_item.return_value = 'Deleted: a.txt'

    assert dispatch_command(RemoveCommand(path='a.txt'), client=mock_client) == 'Deleted: a.txt'


def test_dispatch_unknown_command():
    assert dispatch_command(object(), client=Mock(spec=VaultClient)).startswith('Unknown command type')
