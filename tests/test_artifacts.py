"""Tests for dual-directory artifact storage."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from espresso_gallery.errors import StorageError
from espresso_gallery.media.artifacts import (
    ArtifactStore,
    FilesystemBackend,
    build_artifact_store,
    validate_filename,
)


@pytest.fixture
def store(tmp_path: Path) -> ArtifactStore:
    return build_artifact_store(tmp_path / "uploads", tmp_path / "public", "/uploads")


class TestValidateFilename:
    @pytest.mark.parametrize("name", ["processed_1_a.jpg", "image-123-456.png", "a.b.c"])
    def test_accepts_bare_names(self, name: str) -> None:
        assert validate_filename(name) == name

    @pytest.mark.parametrize("name", ["", ".", "..", "../x.jpg", "a/b.jpg", "a\\b.jpg", "x y.jpg"])
    def test_rejects_unsafe_names(self, name: str) -> None:
        with pytest.raises(ValueError):
            validate_filename(name)


class TestArtifactStore:
    async def test_put_writes_every_backend(self, store: ArtifactStore, tmp_path: Path) -> None:
        url = await store.put("processed_1_test.jpg", b"jpeg-bytes")

        assert url == "/uploads/processed_1_test.jpg"
        assert (tmp_path / "uploads" / "processed_1_test.jpg").read_bytes() == b"jpeg-bytes"
        assert (tmp_path / "public" / "processed_1_test.jpg").read_bytes() == b"jpeg-bytes"
        assert await store.locate("processed_1_test.jpg") == ["uploads", "public"]

    async def test_put_leaves_no_temp_files(self, store: ArtifactStore, tmp_path: Path) -> None:
        await store.put("a.jpg", b"x")
        leftovers = list((tmp_path / "uploads").glob("*.tmp")) + list(
            (tmp_path / "public").glob("*.tmp")
        )
        assert leftovers == []

    async def test_put_rolls_back_on_partial_failure(
        self, store: ArtifactStore, tmp_path: Path
    ) -> None:
        public = store.backends[1]
        with (
            patch.object(public, "write", side_effect=OSError("disk full")),
            pytest.raises(StorageError) as exc_info,
        ):
            await store.put("b.jpg", b"data")

        assert exc_info.value.detail["backend"] == "public"
        assert not (tmp_path / "uploads" / "b.jpg").exists()
        assert not (tmp_path / "public" / "b.jpg").exists()

    async def test_put_rejects_unsafe_name(self, store: ArtifactStore) -> None:
        with pytest.raises(StorageError):
            await store.put("../escape.jpg", b"data")

    async def test_remove_counts_copies(self, store: ArtifactStore, tmp_path: Path) -> None:
        await store.put("c.jpg", b"data")
        (tmp_path / "public" / "c.jpg").unlink()

        assert await store.remove("c.jpg") == 1
        assert await store.remove("c.jpg") == 0
        assert await store.locate("c.jpg") == []

    async def test_remove_never_raises(self, store: ArtifactStore) -> None:
        assert await store.remove("../../etc/passwd") == 0

    async def test_list_files_ignores_temp(self, store: ArtifactStore, tmp_path: Path) -> None:
        await store.put("d.jpg", b"data")
        (tmp_path / "uploads" / "e.jpg.tmp").write_bytes(b"partial")
        assert await store.primary.list_files() == ["d.jpg"]

    async def test_list_files_missing_dir(self, tmp_path: Path) -> None:
        backend = FilesystemBackend("nowhere", tmp_path / "missing")
        assert await backend.list_files() == []

    async def test_ensure_dirs(self, store: ArtifactStore, tmp_path: Path) -> None:
        await store.ensure_dirs()
        assert (tmp_path / "uploads").is_dir()
        assert (tmp_path / "public").is_dir()


class TestUrls:
    def test_filename_from_url(self, store: ArtifactStore) -> None:
        assert store.filename_from_url("/uploads/processed_1_a.jpg") == "processed_1_a.jpg"
        assert store.filename_from_url("uploads\\processed_1_a.jpg") == "processed_1_a.jpg"
        assert store.filename_from_url("https://cdn.example.com/a.jpg") is None
        assert store.filename_from_url("") is None
        assert store.filename_from_url(None) is None

    def test_single_backend_store(self, tmp_path: Path) -> None:
        store = build_artifact_store(tmp_path / "only", None)
        assert [b.name for b in store.backends] == ["uploads"]
        assert store.staging_dir == (tmp_path / "only").resolve()

    def test_store_needs_backend(self) -> None:
        with pytest.raises(ValueError):
            ArtifactStore([])
