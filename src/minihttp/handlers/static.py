"""
=============================================================================
STATIC FILE RESOLVER
=============================================================================

Answers every request that no handler claimed.

=============================================================================
FLOW
=============================================================================

    GET /classic.html
        │
        ├── in allowlist? ──── no ───► 404 Not Found (no body)
        │
        yes
        │
        ├── resolve  public/classic.html
        ├── MIME from extension      → text/html
        │
        ├── templated? ─── yes ───► read text, "{time}" → now, encode,
        │                           Content-Length = encoded length
        │
        no
        │
        └── open, fstat size, stream exactly that many bytes

=============================================================================
THE ALLOWLIST
=============================================================================

Only paths in the allowlist are ever served. A file that exists in the
document root but is not listed is a 404 like any other miss. Existence
on disk is not enough.

Because lookups are exact-match against a fixed set, request paths
like "/../secret" can never reach the filesystem.

=============================================================================
ERRORS
=============================================================================

If an allowlisted file cannot be opened or read (deleted, permission
denied) the OSError propagates. The allowlist promised the file exists,
so this is a broken deployment, not a missing page, and it is logged
as a failed connection instead of being quietly reported as a 404.

=============================================================================
"""

import os
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Union

from ..http.request import Request
from ..http.response import ResponseWriter
from ..http.status_codes import HTTPStatus
from ..http.mime_types import get_mime_type


logger = logging.getLogger(__name__)

TIME_MARKER = "{time}"


class StaticFileResolver:
    """
    Serves allowlisted files from a document root.

    Usage:
        resolver = StaticFileResolver(
            root_dir="public",
            allowed_paths=["/index.html", "/classic.html"],
            templated_paths=["/classic.html"],
        )
        resolver.serve(request, conn.writer)
    """

    def __init__(
        self,
        root_dir: Union[str, Path],
        allowed_paths: Iterable[str],
        templated_paths: Iterable[str] = (),
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Args:
            root_dir: Document root. Must be an existing directory.
            allowed_paths: Request paths that may be served.
            templated_paths: Subset of allowed_paths served with "{time}"
                             substituted.
            clock: Source of the substituted time. Called once per
                   templated request.

        Raises:
            ValueError: root_dir is not a directory.
        """
        self.root_dir = Path(root_dir).resolve()
        self.allowed_paths = frozenset(allowed_paths)
        self.templated_paths = frozenset(templated_paths)
        self._clock = clock

        if not self.root_dir.is_dir():
            raise ValueError(f"Static root directory does not exist: {root_dir}")

        missing = [p for p in sorted(self.allowed_paths) if not self.file_path(p).is_file()]
        if missing:
            logger.warning(f"Allowlisted files missing from {self.root_dir}: {', '.join(missing)}")

    def is_servable(self, path: str) -> bool:
        return path in self.allowed_paths

    def file_path(self, path: str) -> Path:
        """Filesystem location of a request path under the root."""
        return self.root_dir / path.lstrip("/")

    def serve(self, request: Request, writer: ResponseWriter) -> None:
        """
        Write the response for a request no handler matched.

        Raises:
            OSError: An allowlisted file could not be read.
        """
        if not self.is_servable(request.path):
            writer.write_status_only(HTTPStatus.NOT_FOUND)
            return

        file_path = self.file_path(request.path)
        mime_type = get_mime_type(file_path)

        if request.path in self.templated_paths:
            self._serve_template(file_path, mime_type, writer)
            return

        # Size is taken from the open descriptor before any byte is
        # written, so Content-Length matches what we copy.
        with file_path.open("rb") as f:
            size = os.fstat(f.fileno()).st_size
            writer.write_file(HTTPStatus.OK, mime_type, f, size)

    def _serve_template(self, file_path: Path, mime_type: str, writer: ResponseWriter) -> None:
        # Decoded from bytes so line endings stay exactly as on disk
        template = file_path.read_bytes().decode("utf-8")
        content = template.replace(TIME_MARKER, self._clock().isoformat()).encode("utf-8")
        writer.write_with_body(HTTPStatus.OK, mime_type, content)
