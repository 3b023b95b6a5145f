"""Debug endpoints for development and troubleshooting."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException

from espresso_gallery.auth import AdminAuth
from espresso_gallery.config import settings
from espresso_gallery.media import ArtifactStore, get_artifact_store

router = APIRouter(prefix="/api/debug", tags=["debug"])


@router.get("/files")
async def get_upload_files(
    auth: AdminAuth,
    artifacts: Annotated[ArtifactStore, Depends(get_artifact_store)],
) -> dict[str, Any]:
    """File counts and a sample of names for each upload directory (dev mode only)."""
    if not settings.dev_mode:
        raise HTTPException(status_code=404, detail="Not found")

    directories: dict[str, Any] = {}
    for backend in artifacts.backends:
        exists = backend.root.is_dir()
        files = await backend.list_files()
        directories[backend.name] = {
            "path": str(backend.root),
            "exists": exists,
            "fileCount": len(files),
            "sampleFiles": files[:5],
        }
    return {"directories": directories}
