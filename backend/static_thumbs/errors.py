"""
Static Thumbs Errors

Failures raised inside the resize pipeline. None of them reach the client:
the dispatcher catches and logs them, then defers or serves the source.
"""


class StaticThumbsError(Exception):
    """Base class for resize pipeline failures."""


class StaleCacheError(StaticThumbsError):
    """Source file was modified after its cached variant was written."""

    def __init__(self, source_path, cache_path):
        self.source_path = source_path
        self.cache_path = cache_path
        super().__init__(
            f"Source {source_path} is newer than cached variant {cache_path}; "
            "not regenerating"
        )


class SourceMissingError(StaticThumbsError):
    """Source file does not exist or is not a regular file."""


class TransformError(StaticThumbsError):
    """Transform engine could not produce the requested variant."""
