"""Per-endpoint upload limits."""

from dataclasses import dataclass

MB = 1024 * 1024

IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/webp"})
VIDEO_TYPES = frozenset({"video/mp4"})

# Pillow format name -> canonical short name
DECODED_FORMATS = {"JPEG": "jpeg", "PNG": "png", "WEBP": "webp"}


@dataclass(frozen=True)
class TranscodeOptions:
    """Output box and JPEG quality for normalized images."""

    max_width: int
    max_height: int
    quality: int = 80


@dataclass(frozen=True)
class UploadPolicy:
    """Limits applied to one upload endpoint."""

    name: str
    max_bytes: int
    min_width: int
    min_height: int
    allowed_types: frozenset[str]
    transcode: TranscodeOptions

    @property
    def max_megabytes(self) -> int:
        return self.max_bytes // MB

    def allows(self, content_type: str | None) -> bool:
        return (content_type or "").lower() in self.allowed_types


GALLERY_UPLOAD = UploadPolicy(
    name="gallery",
    max_bytes=5 * MB,
    min_width=400,
    min_height=400,
    allowed_types=IMAGE_TYPES,
    transcode=TranscodeOptions(max_width=1200, max_height=800, quality=80),
)

CONTENT_UPLOAD = UploadPolicy(
    name="content",
    max_bytes=50 * MB,
    min_width=480,
    min_height=360,
    allowed_types=IMAGE_TYPES | VIDEO_TYPES,
    transcode=TranscodeOptions(max_width=2000, max_height=2000, quality=80),
)

PROFILE_IMAGE_UPLOAD = UploadPolicy(
    name="profile-image",
    max_bytes=5 * MB,
    min_width=400,
    min_height=400,
    allowed_types=IMAGE_TYPES,
    transcode=TranscodeOptions(max_width=1920, max_height=1080, quality=85),
)
