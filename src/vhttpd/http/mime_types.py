"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps a file's extension to the Content-Type we send for it.

    index.html   → text/html; charset=utf-8
    kitten.jpg   → image/jpeg
    notes.xyz    → application/octet-stream      (unknown: treat as binary)

Text types get a charset parameter; binary types don't. An unknown or
missing extension never fails, it just falls back to octet-stream.

=============================================================================
"""

from pathlib import Path
from typing import Optional


MIME_TYPES = {
    # Text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".xml": "text/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".bmp": "image/bmp",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Audio / video
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # Documents and archives
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".gz": "application/gzip",
    ".tar": "application/x-tar",
    ".wasm": "application/wasm",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

# application/* and image/* types that are still text on the wire
_TEXT_APPLICATION_TYPES = frozenset({
    "application/json",
    "image/svg+xml",
})


def get_mime_type(path: str | Path, default: Optional[str] = None) -> str:
    """
    MIME type for path, by extension (case-insensitive).

        >>> get_mime_type("/srv/htdocs1/kitten.JPG")
        'image/jpeg'
        >>> get_mime_type("README")
        'application/octet-stream'
    """
    extension = Path(path).suffix.lower()
    return MIME_TYPES.get(extension, default or DEFAULT_MIME_TYPE)


def is_text_type(mime_type: str) -> bool:
    return mime_type.startswith("text/") or mime_type in _TEXT_APPLICATION_TYPES


def get_content_type(path: str | Path, charset: str = "utf-8") -> str:
    """
    Full Content-Type header value for path.

        >>> get_content_type("index.html")
        'text/html; charset=utf-8'
        >>> get_content_type("kitten.jpg")
        'image/jpeg'
    """
    mime_type = get_mime_type(path)
    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type
