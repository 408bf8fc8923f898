"""
Application exception types.

InputError is raised by request validation and never reaches the cache or
scoring layer. UpstreamFailure is raised when the product store cannot be
reached or returns unusable data. DegradedAnalysis marks an AI collaborator
failure; it is caught inside the AI services and turned into a default
result instead of failing the request.
"""


class InputError(ValueError):
    """Unsupported condition, budget, description or image in a request."""


class UpstreamFailure(Exception):
    """The product store could not provide the catalog."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class DegradedAnalysis(Exception):
    """An AI collaborator was unavailable or returned unusable output."""
