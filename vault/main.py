"""Entry point for the vault server."""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.logging_config import setup_logging
from vault.auth import PasswordGate
from vault.cleanup_task import SessionReaper, TokenSweeper
from vault.config import VAULT_HOST, VAULT_PORT, Settings
from vault.exceptions import (
    FileNotFoundError,
    IncompleteUploadError,
    InvalidCredentialsError,
    InvalidNameError,
    InvalidTokenError,
    ItemExistsError,
    MissingTokenError,
    PathTraversalError,
    RangeNotSatisfiableError,
    StorageIOError,
    UploadSessionNotFoundError,
    ValidationError,
    VaultException,
)
from vault.routes import auth_router, download_router, file_router, upload_router
from vault.services import ArchiveService, DownloadService, FileService, UploadService
from vault.storage import ensure_directory
from vault.token_store import JsonTokenFile, TokenStore
from vault.upload_sessions import UploadSessionRegistry

logger = setup_logging('vault')


def _error_response(
    request: Request,
    exc: Exception,
    status_code: int,
    code: str,
    label: str,
    headers: Optional[dict] = None,
    log_traceback: bool = False,
) -> JSONResponse:
    request_id = getattr(request.state, 'request_id', 'unknown')
    message = f"{label}: {exc} [request_id={request_id}] path={request.url.path}"
    if log_traceback:
        logger.error(message, exc_info=True)
    else:
        logger.warning(message)
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "code": code},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the vault exception hierarchy onto HTTP responses.

    FastAPI picks the handler of the most specific class in the MRO, so the
    ValidationError subclasses keep their own codes.
    """

    @app.exception_handler(InvalidNameError)
    async def invalid_name_handler(request: Request, exc: InvalidNameError):
        return _error_response(request, exc, status.HTTP_400_BAD_REQUEST, "INVALID_NAME", "Invalid name error")

    @app.exception_handler(PathTraversalError)
    async def path_traversal_handler(request: Request, exc: PathTraversalError):
        return _error_response(request, exc, status.HTTP_400_BAD_REQUEST, "PATH_TRAVERSAL", "Path traversal attempt")

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return _error_response(request, exc, status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR", "Validation error")

    @app.exception_handler(MissingTokenError)
    async def missing_token_handler(request: Request, exc: MissingTokenError):
        return _error_response(request, exc, status.HTTP_400_BAD_REQUEST, "MISSING_TOKEN", "Missing token error")

    @app.exception_handler(InvalidCredentialsError)
    async def invalid_credentials_handler(request: Request, exc: InvalidCredentialsError):
        return _error_response(
            request, exc, status.HTTP_401_UNAUTHORIZED, "INVALID_CREDENTIALS", "Invalid credentials error"
        )

    @app.exception_handler(InvalidTokenError)
    async def invalid_token_handler(request: Request, exc: InvalidTokenError):
        return _error_response(request, exc, status.HTTP_403_FORBIDDEN, "INVALID_TOKEN", "Invalid token error")

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(request: Request, exc: FileNotFoundError):
        return _error_response(request, exc, status.HTTP_404_NOT_FOUND, "FILE_NOT_FOUND", "File not found error")

    @app.exception_handler(UploadSessionNotFoundError)
    async def upload_session_not_found_handler(request: Request, exc: UploadSessionNotFoundError):
        return _error_response(
            request, exc, status.HTTP_404_NOT_FOUND, "UPLOAD_SESSION_NOT_FOUND", "Upload session not found error"
        )

    @app.exception_handler(ItemExistsError)
    async def item_exists_handler(request: Request, exc: ItemExistsError):
        return _error_response(request, exc, status.HTTP_409_CONFLICT, "ITEM_EXISTS", "Item exists error")

    @app.exception_handler(IncompleteUploadError)
    async def incomplete_upload_handler(request: Request, exc: IncompleteUploadError):
        return _error_response(request, exc, status.HTTP_409_CONFLICT, "INCOMPLETE_UPLOAD", "Incomplete upload error")

    @app.exception_handler(RangeNotSatisfiableError)
    async def range_not_satisfiable_handler(request: Request, exc: RangeNotSatisfiableError):
        return _error_response(
            request,
            exc,
            status.HTTP_416_REQUESTED_RANGE_NOT_SATISFIABLE,
            "RANGE_NOT_SATISFIABLE",
            "Range not satisfiable error",
            headers={"Content-Range": f"bytes */{exc.file_size}"},
        )

    @app.exception_handler(StorageIOError)
    async def storage_io_handler(request: Request, exc: StorageIOError):
        return _error_response(
            request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "STORAGE_IO_ERROR", "Storage I/O error",
            log_traceback=True,
        )

    @app.exception_handler(VaultException)
    async def vault_exception_handler(request: Request, exc: VaultException):
        return _error_response(
            request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", "Vault exception",
            log_traceback=True,
        )


def create_app(settings: Optional[Settings] = None, clock: Callable[[], float] = time.time) -> FastAPI:
    """
    Build the vault application and its services.

    Args:
        settings: Runtime settings (default: read from the environment)
        clock: Time source shared by the token store and upload sessions

    Returns:
        Configured FastAPI application; services live on app.state
    """
    settings = settings or Settings()

    ensure_directory(settings.storage_root)
    ensure_directory(settings.upload_temp_dir)

    token_store = TokenStore(
        JsonTokenFile(settings.token_file),
        clock=clock,
        expiry_seconds=settings.token_expiry_seconds,
    )
    sessions = UploadSessionRegistry(settings.upload_temp_dir, clock=clock)
    password_gate = PasswordGate.from_settings(settings)
    upload_service = UploadService(settings.storage_root, sessions)

    token_sweeper = TokenSweeper(token_store, settings.token_sweep_interval_seconds)
    session_reaper = SessionReaper(
        upload_service,
        interval_seconds=settings.session_reap_interval_seconds,
        max_age_seconds=settings.session_max_age_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Vault server starting up (storage root: {settings.storage_root})")
        if not password_gate.enabled:
            logger.warning("No vault password configured, sensitive downloads are not gated")

        await token_sweeper.start()
        await session_reaper.start()
        try:
            yield
        finally:
            logger.info("Vault server shutting down...")
            await token_sweeper.stop()
            await session_reaper.stop()

    app = FastAPI(
        title="File Vault",
        description="Self-hosted file vault with chunked uploads and range downloads",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.token_store = token_store
    app.state.password_gate = password_gate
    app.state.upload_service = upload_service
    app.state.download_service = DownloadService(
        settings.storage_root, token_store, password_gate, temp_dir=settings.upload_temp_dir
    )
    app.state.file_service = FileService(settings.storage_root, temp_dir=settings.upload_temp_dir)
    app.state.archive_service = ArchiveService(settings.storage_root, temp_dir=settings.upload_temp_dir)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Middleware to log all HTTP requests and responses.
        """
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()

        logger.info(f"Request started: {request.method} {request.url.path} [request_id={request_id}]")

        response = await call_next(request)

        duration = time.time() - start_time

        logger.info(
            f"Request completed: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
        )

        response.headers["X-Request-ID"] = request_id

        return response

    register_exception_handlers(app)

    app.include_router(auth_router)
    app.include_router(file_router)
    app.include_router(upload_router)
    app.include_router(download_router)

    @app.get("/")
    async def root():
        """
        Root endpoint for health check.
        """
        return {"message": "File Vault API", "status": "running"}

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint.
        Returns 200 if service is alive.
        """
        return {"status": "healthy", "service": "vault", "tokens": len(token_store)}

    return app


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "vault.main:create_app",
        factory=True,
        host=VAULT_HOST,
        port=VAULT_PORT,
    )


if __name__ == "__main__":
    main()
