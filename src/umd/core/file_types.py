"""Supported file types and their MIME types.

Extensions are stored lowercase without the leading dot, which is the form
used throughout scan results and conversion records.
"""

from __future__ import annotations

from enum import Enum


class FileType(Enum):
    """Category of a convertible file, used to pick a conversion strategy."""

    IMAGE = "image"
    PDF = "pdf"
    DOCX = "docx"
    PPTX = "pptx"


IMAGE_EXTENSIONS: frozenset[str] = frozenset(
    {"png", "jpg", "jpeg", "webp", "gif", "bmp", "tiff", "tif", "svg"}
)
PDF_EXTENSIONS: frozenset[str] = frozenset({"pdf"})
DOCX_EXTENSIONS: frozenset[str] = frozenset({"docx"})
PPTX_EXTENSIONS: frozenset[str] = frozenset({"ppt", "pptx"})

DOCUMENT_EXTENSIONS: frozenset[str] = PDF_EXTENSIONS | DOCX_EXTENSIONS | PPTX_EXTENSIONS
ALL_SUPPORTED_EXTENSIONS: frozenset[str] = IMAGE_EXTENSIONS | DOCUMENT_EXTENSIONS

_EXTENSION_TYPES: dict[str, FileType] = {
    **{ext: FileType.IMAGE for ext in IMAGE_EXTENSIONS},
    **{ext: FileType.PDF for ext in PDF_EXTENSIONS},
    **{ext: FileType.DOCX for ext in DOCX_EXTENSIONS},
    **{ext: FileType.PPTX for ext in PPTX_EXTENSIONS},
}

_MIME_TYPES: dict[str, str] = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "tiff": "image/tiff",
    "tif": "image/tiff",
    "svg": "image/svg+xml",
    "pdf": "application/pdf",
    "docx": (
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    ),
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": (
        "application/vnd.openxmlformats-officedocument.presentationml.presentation"
    ),
}


def _normalize_extension(extension: str) -> str:
    return extension.lower().lstrip(".")


def is_supported_extension(extension: str) -> bool:
    """Check whether an extension (with or without dot) is convertible."""
    return _normalize_extension(extension) in ALL_SUPPORTED_EXTENSIONS


def get_file_type(extension: str) -> FileType | None:
    """Map an extension to its FileType, or None if unsupported."""
    return _EXTENSION_TYPES.get(_normalize_extension(extension))


def get_mime_type(extension: str) -> str | None:
    """Map an extension to its MIME type, or None if unsupported."""
    return _MIME_TYPES.get(_normalize_extension(extension))
