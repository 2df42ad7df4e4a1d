"""Exception types for the shc2es plumbing.

The normalization core never raises for a record: classification
failures are returned as data. These exceptions cover configuration,
the device registry and the Elasticsearch sink.
"""

from __future__ import annotations

from typing import Optional


class Shc2esError(Exception):
    """Base class for all shc2es errors.

    ``code`` is a stable string for programmatic handling.
    """
    code = "SHC2ES_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        if code is not None:
            self.code = code


class ValidationError(Shc2esError):
    """An environment variable is missing or malformed."""
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, variable: str, code: Optional[str] = None):
        super().__init__(message, code)
        self.variable = variable


class RegistryError(Shc2esError):
    """The device registry file exists but cannot be read."""
    code = "REGISTRY_ERROR"

    def __init__(self, message: str, path: str, code: Optional[str] = None):
        super().__init__(message, code)
        self.path = path


class IndexingError(Shc2esError):
    """A bulk request to Elasticsearch failed as a whole."""
    code = "INDEXING_ERROR"

    def __init__(self, message: str, index: str, code: Optional[str] = None):
        super().__init__(message, code)
        self.index = index
