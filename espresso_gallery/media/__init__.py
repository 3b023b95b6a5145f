"""Media intake: validation, transcoding and dual-directory storage."""

from espresso_gallery.media.artifacts import (
    ArtifactStore,
    FilesystemBackend,
    build_artifact_store,
    get_artifact_store,
)
from espresso_gallery.media.pipeline import StoredArtifact, UploadPipeline
from espresso_gallery.media.policy import (
    CONTENT_UPLOAD,
    GALLERY_UPLOAD,
    PROFILE_IMAGE_UPLOAD,
    TranscodeOptions,
    UploadPolicy,
)

__all__ = [
    "ArtifactStore",
    "FilesystemBackend",
    "build_artifact_store",
    "get_artifact_store",
    "StoredArtifact",
    "UploadPipeline",
    "CONTENT_UPLOAD",
    "GALLERY_UPLOAD",
    "PROFILE_IMAGE_UPLOAD",
    "TranscodeOptions",
    "UploadPolicy",
]
