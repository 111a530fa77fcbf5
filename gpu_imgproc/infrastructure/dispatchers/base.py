"""Shared contract and helpers for native operation dispatchers."""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from typing import Any

from gpu_imgproc.core.element_type import ElementType
from gpu_imgproc.core.errors import EmptyInput, InvalidParameter, ShapeMismatch, TypeMismatch
from gpu_imgproc.infrastructure import native_bridge
from gpu_imgproc.infrastructure.device_buffer import DeviceBuffer
from gpu_imgproc.infrastructure.execution_stream import ExecutionStream
from logger.filtered_logger import LogChannel, debug

NativeCall = Callable[[dict[str, Any]], Any]


class Dispatcher(ABC):
    """Parameterised adapter around one native OpenCV CUDA algorithm.

    Subclasses validate and assign their parameters, then call
    ``super().__init__()``; after that the instance is immutable. The native
    algorithm object is created on first use and reused across calls and
    streams.
    """

    operation = "dispatcher"

    def __init__(self) -> None:
        object.__setattr__(self, "_native", None)
        object.__setattr__(self, "_initialized", True)
        debug(LogChannel.DISPATCH, f"Constructed {self!r}")

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_initialized", False):
            raise AttributeError(f"{type(self).__name__} parameters are immutable")
        super().__setattr__(name, value)

    @abstractmethod
    def _create_native(self) -> Any:
        """Build the native algorithm object for the configured parameters."""

    def _native_object(self) -> Any:
        native = self._native
        if native is None:
            with native_bridge.native_errors(f"{self.operation}.create"):
                native = self._create_native()
            object.__setattr__(self, "_native", native)
        return native

    def release(self) -> None:
        """Drop the cached native object; a later call builds a fresh one."""
        if self._native is not None:
            object.__setattr__(self, "_native", None)
            debug(LogChannel.DISPATCH, f"Released native object of {type(self).__name__}")

    def __enter__(self) -> Dispatcher:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def _params(self) -> dict[str, Any]:
        return {
            name: value for name, value in vars(self).items()
            if not name.startswith("_")
        }

    def __repr__(self) -> str:
        params = ", ".join(f"{name}={value!r}" for name, value in self._params().items())
        return f"{type(self).__name__}({params})"


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def require_positive(operation: str, name: str, value: float) -> None:
    if not value > 0:
        raise InvalidParameter(f"{name} must be > 0, got {value!r}", operation=operation)


def require_non_negative(operation: str, name: str, value: float) -> None:
    if not value >= 0:
        raise InvalidParameter(f"{name} must be >= 0, got {value!r}", operation=operation)


def require_stream(operation: str, stream: ExecutionStream | None) -> None:
    if stream is None:
        raise InvalidParameter("an execution stream is required for asynchronous calls", operation=operation)


def require_input(operation: str, buffer: DeviceBuffer, name: str = "src") -> None:
    if buffer is None or buffer.empty():
        raise EmptyInput(f"{name} buffer is empty", operation=operation)


def require_type(operation: str, buffer: DeviceBuffer, allowed: Iterable[ElementType], name: str = "src") -> None:
    allowed = tuple(allowed)
    actual = buffer.element_type
    if actual not in allowed:
        expected = ", ".join(str(element_type) for element_type in allowed)
        raise TypeMismatch(f"{name} must be one of [{expected}], got {actual}", operation=operation)


def require_same_type(operation: str, first: DeviceBuffer, second: DeviceBuffer, names: tuple[str, str]) -> None:
    if first.element_type != second.element_type:
        raise TypeMismatch(
            f"{names[0]} is {first.element_type} but {names[1]} is {second.element_type}",
            operation=operation,
        )


def require_same_size(operation: str, first: DeviceBuffer, second: DeviceBuffer, names: tuple[str, str]) -> None:
    if (first.rows, first.cols) != (second.rows, second.cols):
        raise ShapeMismatch(
            f"{names[0]} is {first.rows}x{first.cols} but {names[1]} is {second.rows}x{second.cols}",
            operation=operation,
        )


# ---------------------------------------------------------------------------
# Invocation
# ---------------------------------------------------------------------------

def dispatch(
    operation: str,
    call: NativeCall,
    *,
    inputs: Sequence[DeviceBuffer],
    outputs: Sequence[DeviceBuffer],
    stream: ExecutionStream | None = None,
) -> Any:
    """Run ``call`` synchronously or enqueue it on ``stream``.

    ``call`` receives the keyword arguments selecting the stream (empty for
    the synchronous path) and returns the native output(s), which the output
    buffers adopt. Both paths hand the native layer identical arguments.
    """
    stream_kwargs: dict[str, Any] = {} if stream is None else {"stream": stream.native}
    debug(LogChannel.DISPATCH, f"{operation} ({'sync' if stream is None else stream.name})")
    with native_bridge.native_errors(operation):
        result = call(stream_kwargs)
    if len(outputs) == 1:
        if result is not None:
            outputs[0]._adopt(result)
        value: Any = outputs[0]
    else:
        for output, native in zip(outputs, result or ()):
            if native is not None:
                output._adopt(native)
        value = tuple(outputs)
    if stream is None:
        return value
    return stream.enqueue(operation, (*inputs, *outputs), value=value)

