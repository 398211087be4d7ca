"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to the MIME type sent in the Content-Type header of
static file responses. The type is always derived from the file being
served, never hardcoded per route.

    index.html   → text/html
    styles.css   → text/css
    app.js       → text/javascript
    spring.svg   → image/svg+xml
    spring.png   → image/png
    mystery.bin  → application/octet-stream   (unknown = binary)

The value is the bare type with no charset parameter; the files in the
document root are served byte-for-byte and the server does not claim to
know their encoding.

=============================================================================
"""

from pathlib import Path
from typing import Optional, Union


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================
#
# Keys are lowercase extensions including the dot.
#
# =============================================================================

MIME_TYPES = {
    # -------------------------------------------------------------------------
    # TEXT TYPES
    # -------------------------------------------------------------------------
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",      # Modern standard (was application/javascript)
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",

    # -------------------------------------------------------------------------
    # IMAGE TYPES
    # -------------------------------------------------------------------------
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",

    # -------------------------------------------------------------------------
    # FONT TYPES
    # -------------------------------------------------------------------------
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # -------------------------------------------------------------------------
    # OTHER
    # -------------------------------------------------------------------------
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".wasm": "application/wasm",
    ".map": "application/json",    # Source maps
}

DEFAULT_MIME_TYPE = "application/octet-stream"


def get_mime_type(path: Union[str, Path], default: Optional[str] = None) -> str:
    """
    Get the MIME type for a file based on its extension.

    Args:
        path: File path or name with extension.
        default: Fallback for unknown extensions.
                 application/octet-stream if not given.

    Examples:
        >>> get_mime_type("/public/styles.css")
        'text/css'
        >>> get_mime_type("SPRING.PNG")
        'image/png'
        >>> get_mime_type("unknown.xyz")
        'application/octet-stream'
    """
    if isinstance(path, str):
        path = Path(path)

    extension = path.suffix.lower()  # .PNG → .png
    return MIME_TYPES.get(extension, default or DEFAULT_MIME_TYPE)
