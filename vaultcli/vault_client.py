"""HTTP client for communicating with the vault server."""

import asyncio
import posixpath
import sys
import time
import uuid
from pathlib import Path
from typing import Callable, List, Optional

import httpx

from common.logging_config import get_logger
from vaultcli.config import Config
from vaultcli.downloader import DownloadManager, save_to_directory
from vaultcli.errors import PasswordRequiredError, VaultClientError, describe_error
from vaultcli.models import DownloadItem, UploadItem
from vaultcli.uploader import UploadOrchestrator
from vaultcli.utils import format_eta, format_file_size, progress_line

logger = get_logger(__name__)


class VaultClient:
    """HTTP client for the vault API with retry logic and error handling."""

    def __init__(
        self,
        config: Config,
        transport: Optional[httpx.BaseTransport] = None,
        async_transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize vault client.

        Args:
            config: Configuration instance
            transport: Optional transport for the synchronous session (testing)
            async_transport: Optional transport for chunked transfers (testing)
            sleep: Delay function used between retries
        """
        self.config = config
        self.async_transport = async_transport
        self.sleep = sleep
        self.session = httpx.Client(
            base_url=config.get_base_url(),
            timeout=config.get_timeout(),
            transport=transport,
        )
        self.request_id = None
        logger.info(f"Initialized VaultClient [base_url={config.get_base_url()}]")

    def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        max_retries: Optional[int] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic on 5xx errors and network failures.

        Args:
            method: HTTP method (GET, POST, DELETE, etc.)
            endpoint: API endpoint path
            max_retries: Max retry attempts (uses config default if None)
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            HTTP response object

        Raises:
            ConnectionError: If max retries exceeded or connection fails
        """
        retry_config = self.config.get_retry_config()
        max_retries = max_retries if max_retries is not None else retry_config['max_retries']
        backoff = retry_config['retry_backoff_multiplier']

        last_exception = None

        self.request_id = str(uuid.uuid4())
        kwargs.setdefault('headers', {})
        kwargs['headers']['X-Request-ID'] = self.request_id

        logger.debug(f"Making request: {method} {endpoint} [request_id={self.request_id}]")

        for attempt in range(max_retries + 1):
            try:
                response = self.session.request(method, endpoint, **kwargs)

                logger.debug(
                    f"Response received: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                )

                if 400 <= response.status_code < 500:
                    logger.warning(
                        f"Client error: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                    )
                    return response

                if response.status_code >= 500 and attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Server error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} status={response.status_code}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    self.sleep(delay)
                    continue

                return response

            except (httpx.ConnectError, httpx.TimeoutException) as e:
                last_exception = e
                if attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Network error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} error={type(e).__name__}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    self.sleep(delay)
                    continue
                logger.error(
                    f"Network error (max retries exceeded): {method} {endpoint} error={e} [request_id={self.request_id}]"
                )

        if isinstance(last_exception, httpx.TimeoutException):
            raise ConnectionError("Request timed out. Server may be overloaded.")
        raise ConnectionError("Cannot connect to vault server. Is it running?")

    def _format_error(self, response: httpx.Response) -> str:
        """
        Map HTTP errors to user-friendly messages.

        Args:
            response: HTTP response object

        Returns:
            User-friendly error message
        """
        code, message = describe_error(response)
        if code in ('UNKNOWN', 'VALIDATION_ERROR'):
            try:
                detail = response.json().get('detail')
            except ValueError:
                detail = None
            if isinstance(detail, str) and detail and detail != message:
                return f"{message}: {detail}"
        return message

    def _async_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.get_base_url(),
            timeout=self.config.get_timeout(),
            transport=self.async_transport,
        )

    def login(self, username: str, password: str) -> str:
        """
        Check credentials against the vault.

        Args:
            username: Vault username
            password: Vault password

        Returns:
            Success or error message
        """
        logger.info(f"Attempting to login user: {username}")
        try:
            response = self._request_with_retry(
                'POST',
                '/auth/login',
                json={'username': username, 'password': password}
            )
        except ConnectionError as e:
            logger.error(f"Connection error during login: {e}")
            return f"Error: {e}"

        if response.status_code == 200:
            self.config.set_username(username)
            logger.info(f"Login successful for user: {username}")
            return "Login successful!"

        logger.warning(f"Login failed for user: {username} status={response.status_code}")
        return f"Login failed: {self._format_error(response)}"

    def fetch_items(self, path: str = "") -> List[dict]:
        """
        Fetch a folder listing.

        Returns:
            List of item dictionaries (name, path, kind, size, lastModified)

        Raises:
            ConnectionError: If the server cannot be reached
            VaultClientError: If the server answers with an error
        """
        response = self._request_with_retry('GET', '/api/files', params={'path': path})
        if response.status_code != 200:
            raise VaultClientError(self._format_error(response), code=describe_error(response)[0])
        return response.json()['items']

    def list_items(self, path: str = "") -> str:
        """
        List a remote folder.

        Returns:
            Formatted listing, folders first
        """
        try:
            items = self.fetch_items(path)
        except (ConnectionError, VaultClientError) as e:
            return f"Error: {e}"

        if not items:
            return f"Folder '{path or '/'}' is empty."

        folders = [item for item in items if item['kind'] == 'folder']
        files = [item for item in items if item['kind'] == 'file']

        output = [f"{len(folders)} folder(s), {len(files)} file(s) in '{path or '/'}':"]
        for folder in folders:
            output.append(f"  [dir]  {folder['name']}/")
        for file_meta in files:
            output.append(f"  [file] {file_meta['name']}  ({format_file_size(file_meta['size'])})")
        return '\n'.join(output)

    def create_folder(self, name: str, path: str = "") -> str:
        try:
            response = self._request_with_retry(
                'POST',
                '/api/folders',
                json={'currentPath': path, 'folderName': name}
            )
        except ConnectionError as e:
            return f"Error: {e}"

        if response.status_code == 201:
            return f"Created folder: {response.json()['path']}"
        return f"Error: {self._format_error(response)}"

    def delete_item(self, path: str) -> str:
        try:
            response = self._request_with_retry('DELETE', '/api/files', params={'path': path})
        except ConnectionError as e:
            return f"Error: {e}"

        if response.status_code == 200:
            return f"Deleted: {path}"
        return f"Error: {self._format_error(response)}"

    def rename_item(self, path: str, new_name: str) -> str:
        try:
            response = self._request_with_retry(
                'POST',
                '/api/files/rename',
                json={'itemPath': path, 'newName': new_name}
            )
        except ConnectionError as e:
            return f"Error: {e}"

        if response.status_code == 200:
            return f"Renamed: {path} -> {response.json()['path']}"
        return f"Error: {self._format_error(response)}"

    def download_zip(self, paths: List[str]) -> str:
        """
        Download several files as one ZIP archive into the download directory.

        Returns:
            Success message with the saved archive path
        """
        try:
            response = self._request_with_retry('POST', '/api/download/zip', json={'files': paths})
        except ConnectionError as e:
            return f"Error: {e}"

        if response.status_code != 200:
            return f"Error: {self._format_error(response)}"

        disposition = response.headers.get('Content-Disposition', '')
        archive_name = 'selected_files.zip'
        if 'filename="' in disposition:
            archive_name = disposition.split('filename="', 1)[1].rstrip('"') or archive_name

        output_dir = self.config.get_download_dir()
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
            output_file = output_dir / archive_name
            output_file.write_bytes(response.content)
        except OSError as e:
            return f"Error writing file: {e}"

        return f"Downloaded: {archive_name} ({format_file_size(len(response.content))})\nSaved to: {output_file.absolute()}"

    def upload(self, file_paths: List[str], remote_path: str = "") -> str:
        """
        Upload local files in chunks, concurrently.

        Args:
            file_paths: Local file paths
            remote_path: Destination folder relative to the vault root

        Returns:
            One result line per file
        """
        results = []
        valid_paths = []
        for file_path in file_paths:
            path = Path(file_path).expanduser()
            if not path.is_file():
                results.append(f"Error: Not a file: {file_path}")
                continue
            valid_paths.append(path)

        if valid_paths:
            items = asyncio.run(self._upload_async(valid_paths, remote_path))
            sys.stdout.write('\n')
            sys.stdout.flush()
            for item in items:
                if item.status == "completed":
                    results.append(f"Uploaded: {item.remote_path} ({format_file_size(item.size)})")
                else:
                    results.append(f"Error uploading {item.path}: {item.error}")

        return '\n'.join(results) if results else "No files uploaded."

    async def _upload_async(self, paths: List[Path], remote_path: str) -> List[UploadItem]:
        def show(item: UploadItem) -> None:
            done = item.size * item.progress // 100
            sys.stdout.write('\r' + progress_line("Uploading", item.name, done, item.size, item.progress))
            sys.stdout.flush()

        async with self._async_client() as client:
            orchestrator = UploadOrchestrator(client, chunk_size=self.config.get_upload_chunk_size(), on_update=show)
            return await orchestrator.upload_files(paths, remote_path)

    def download(self, remote_path: str, password: Optional[str] = None) -> str:
        """
        Download a file with parallel range requests.

        Args:
            remote_path: File path relative to the vault root
            password: Vault password for sensitive files

        Returns:
            Success message with the saved path, or an error message
        """
        remote_path = remote_path.strip('/')
        parent, name = posixpath.split(remote_path)

        try:
            items = self.fetch_items(parent)
        except (ConnectionError, VaultClientError) as e:
            return f"Error: {e}"

        entry = next((item for item in items if item['name'] == name), None)
        if entry is None or entry['kind'] != 'file':
            return "Error: File not found on server."

        try:
            item = asyncio.run(self._download_async(remote_path, name, entry['size'], password))
        except PasswordRequiredError as e:
            return f"Password required: {e.reason}\nRun: download {remote_path} --password <password>"
        except VaultClientError as e:
            return f"Error: {e}"
        except httpx.HTTPError as e:
            return f"Error: Cannot reach vault server ({type(e).__name__})"

        sys.stdout.write('\n')
        sys.stdout.flush()

        if item.status != "completed":
            return f"Error downloading {remote_path}: {item.error}"
        return f"Downloaded: {name} ({format_file_size(item.size)})\nSaved to: {Path(item.saved_path).absolute()}"

    async def _download_async(self, remote_path: str, name: str, size: int, password: Optional[str]) -> DownloadItem:
        def show(item: DownloadItem) -> None:
            suffix = f"ETA {format_eta(item.eta)}"
            sys.stdout.write('\r' + progress_line("Downloading", item.name, item.downloaded_bytes, item.size, item.progress, suffix))
            sys.stdout.flush()

        async with self._async_client() as client:
            manager = DownloadManager(
                client,
                save=save_to_directory(self.config.get_download_dir()),
                max_chunks=self.config.get_download_concurrency(),
                on_update=show,
            )
            return await manager.add_to_queue(remote_path, name, size, password)

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()
