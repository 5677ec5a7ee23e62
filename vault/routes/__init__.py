"""API routes package."""

from vault.routes.auth_routes import router as auth_router
from vault.routes.download_routes import router as download_router
from vault.routes.file_routes import router as file_router
from vault.routes.upload_routes import router as upload_router

__all__ = ["auth_router", "download_router", "file_router", "upload_router"]
