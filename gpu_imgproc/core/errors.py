"""Error taxonomy for device buffers, streams and dispatchers.

Every error is raised at the offending call (construction, invocation or
stream drain) and carries the name of the operation that failed.
"""
from __future__ import annotations


class ImgprocError(RuntimeError):
    """Base class for all gpu_imgproc failures."""

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        self.operation = operation
        if operation:
            message = f"{operation}: {message}"
        super().__init__(message)


class AllocationError(ImgprocError):
    """Device memory could not be reserved."""


class ShapeMismatch(ImgprocError):
    """Buffer dimensions conflict across paired operands or a reused buffer."""


class InvalidParameter(ImgprocError, ValueError):
    """A dispatcher or buffer was configured with an out-of-range value."""


class EmptyInput(ImgprocError):
    """An operation was invoked on an empty or released buffer."""


class TypeMismatch(ImgprocError, TypeError):
    """Element type is incompatible with the requested operation."""


class StreamClosed(ImgprocError):
    """Work was submitted to an execution stream that has been closed."""


class CudaUnavailable(ImgprocError):
    """The installed OpenCV build has no usable CUDA device or module."""


class NativeError(ImgprocError):
    """A native OpenCV failure that has no more specific category."""

    def __init__(self, message: str, *, operation: str | None = None, code: int | None = None) -> None:
        self.code = code
        super().__init__(message, operation=operation)
