"""Exception types shared by the crawler, the dispatch layer and the SDK client."""

from typing import Optional


class NexusError(Exception):
    """Base exception for Nexus errors."""


# ------------------------------------------------------------------
# Build time (non-fatal for the crawl as a whole)
# ------------------------------------------------------------------


class DescriptorMissing(NexusError):
    """No domain descriptor file in a directory; the subtree is pruned."""

    def __init__(self, path: str):
        super().__init__(f"Domain descriptor not found: {path}")
        self.path = path


class DescriptorInvalid(NexusError):
    """The domain descriptor exists but cannot be parsed or validated."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Invalid domain descriptor {path}: {reason}")
        self.path = path
        self.reason = reason


class ExtractionFailed(NexusError):
    """Signatures could not be extracted from a declared domain."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Signature extraction failed for {path}: {reason}")
        self.path = path
        self.reason = reason


# ------------------------------------------------------------------
# Request time (fatal to one request only)
# ------------------------------------------------------------------


class ParameterNotFound(NexusError):
    """No payload key matches a declared parameter under any rule."""

    def __init__(self, name: str):
        super().__init__(f"param {name} not found in request params")
        self.name = name


class InvocationFailed(NexusError):
    """The underlying operation raised or reported a failure."""


class OperationNotFound(NexusError):
    """No handler is registered for the requested operation id."""

    def __init__(self, operation_id: str):
        super().__init__(f"Unknown operation: {operation_id}")
        self.operation_id = operation_id


class OperationFailed(NexusError):
    """A dispatched operation answered with a non-2xx response."""

    def __init__(self, operation_id: str, message: str, status_code: int):
        super().__init__(message)
        self.operation_id = operation_id
        self.status_code = status_code


class NexusClientError(NexusError):
    """Error returned to SDK callers for non-2xx responses or transport failures."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
