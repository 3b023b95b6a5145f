"""Artifact storage: every upload is written to each configured directory.

The primary directory (``uploads/``) doubles as the staging area for raw
intake files. The public mirror (``client/public/uploads/``) is what the static
file mount serves. ``ArtifactStore.put`` either leaves the file in every
backend or in none.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from functools import lru_cache
from pathlib import Path

import aiofiles
import aiofiles.os

from espresso_gallery.config import settings
from espresso_gallery.errors import StorageError

logger = logging.getLogger(__name__)

SAFE_FILENAME = re.compile(r"^[A-Za-z0-9_.-]+$")


def validate_filename(filename: str) -> str:
    """Reject anything that is not a bare, safe filename.

    Raises:
        ValueError: If the name contains path separators or other characters.
    """
    if not filename or not SAFE_FILENAME.match(filename) or filename in (".", ".."):
        raise ValueError(f"Unsafe filename: {filename!r}")
    return filename


class FilesystemBackend:
    """One directory on local disk."""

    def __init__(self, name: str, root: str | Path) -> None:
        self.name = name
        self.root = Path(root).resolve()

    def __repr__(self) -> str:
        return f"FilesystemBackend({self.name!r}, {str(self.root)!r})"

    def path_for(self, filename: str) -> Path:
        path = (self.root / validate_filename(filename)).resolve()
        if path.parent != self.root:
            raise ValueError(f"Path escapes {self.name} root: {filename!r}")
        return path

    async def ensure(self) -> None:
        await aiofiles.os.makedirs(self.root, exist_ok=True)

    async def write(self, filename: str, data: bytes) -> Path:
        """Write atomically: temp file in the same directory, then rename."""
        path = self.path_for(filename)
        temp_file = path.with_suffix(path.suffix + ".tmp")
        await self.ensure()
        try:
            async with aiofiles.open(temp_file, "wb") as f:
                await f.write(data)
            await aiofiles.os.replace(temp_file, path)
        except OSError:
            if await aiofiles.os.path.exists(temp_file):
                await aiofiles.os.remove(temp_file)
            raise
        return path

    async def delete(self, filename: str) -> bool:
        """Delete a file. Returns False if it was not there."""
        try:
            await aiofiles.os.remove(self.path_for(filename))
        except FileNotFoundError:
            return False
        return True

    async def exists(self, filename: str) -> bool:
        return await aiofiles.os.path.isfile(self.path_for(filename))

    async def list_files(self) -> list[str]:
        if not await aiofiles.os.path.isdir(self.root):
            return []
        names = await aiofiles.os.listdir(self.root)
        return sorted(n for n in names if not n.endswith(".tmp"))


class ArtifactStore:
    """Writes, removes and addresses upload artifacts across backends."""

    def __init__(self, backends: Sequence[FilesystemBackend], url_prefix: str = "/uploads") -> None:
        if not backends:
            raise ValueError("ArtifactStore needs at least one backend")
        self.backends = list(backends)
        self.url_prefix = url_prefix.rstrip("/")

    @property
    def primary(self) -> FilesystemBackend:
        return self.backends[0]

    @property
    def staging_dir(self) -> Path:
        return self.primary.root

    async def ensure_dirs(self) -> None:
        for backend in self.backends:
            await backend.ensure()

    def url_for(self, filename: str) -> str:
        return f"{self.url_prefix}/{validate_filename(filename)}"

    def filename_from_url(self, url: str | None) -> str | None:
        """Basename of a root-relative url; None for absolute or empty urls."""
        if not url or url.startswith(("http://", "https://")):
            return None
        name = url.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]
        return name if name and SAFE_FILENAME.match(name) else None

    async def put(self, filename: str, data: bytes) -> str:
        """Write ``data`` to every backend and return its public url.

        Raises:
            StorageError: a write failed; copies already written were removed.
        """
        written: list[FilesystemBackend] = []
        for backend in self.backends:
            try:
                await backend.write(filename, data)
            except (OSError, ValueError) as e:
                logger.error(f"Failed to write {filename} to {backend.name}: {e}")
                for done in written:
                    await self._delete_quietly(done, filename)
                raise StorageError(
                    f"Failed to store {filename}", detail={"backend": backend.name, "error": str(e)}
                ) from e
            written.append(backend)

        logger.info(f"Stored {filename} ({len(data):,} bytes) in {len(written)} location(s)")
        return self.url_for(filename)

    async def remove(self, filename: str) -> int:
        """Best-effort delete from every backend. Returns copies removed, never raises."""
        removed = 0
        for backend in self.backends:
            if await self._delete_quietly(backend, filename):
                removed += 1
        return removed

    async def locate(self, filename: str) -> list[str]:
        """Names of the backends currently holding ``filename``."""
        return [b.name for b in self.backends if await b.exists(filename)]

    async def _delete_quietly(self, backend: FilesystemBackend, filename: str) -> bool:
        try:
            return await backend.delete(filename)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not remove {filename} from {backend.name}: {e}")
            return False


def build_artifact_store(
    uploads_dir: str | Path, public_uploads_dir: str | Path | None, url_prefix: str = "/uploads"
) -> ArtifactStore:
    backends = [FilesystemBackend("uploads", uploads_dir)]
    if public_uploads_dir:
        backends.append(FilesystemBackend("public", public_uploads_dir))
    return ArtifactStore(backends, url_prefix=url_prefix)


@lru_cache
def get_artifact_store() -> ArtifactStore:
    """Process-wide store built from settings (FastAPI dependency)."""
    return build_artifact_store(
        settings.uploads_dir, settings.public_uploads_dir, settings.uploads_url_prefix
    )
