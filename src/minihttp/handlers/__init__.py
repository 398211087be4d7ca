"""
=============================================================================
BUILT-IN HANDLERS
=============================================================================

StaticFileResolver
    The fallback for every request no registered handler claims:
    allowlisted files from the document root, with MIME detection and
    per-request "{time}" substitution for templated pages.

=============================================================================
"""

from .static import StaticFileResolver, TIME_MARKER

__all__ = [
    "StaticFileResolver",
    "TIME_MARKER",
]
