from __future__ import annotations

from collections.abc import Callable, Iterable
from threading import Lock
from typing import TYPE_CHECKING, Any

from gpu_imgproc.core.errors import CudaUnavailable, StreamClosed
from gpu_imgproc.infrastructure import native_bridge
from logger.filtered_logger import LogChannel, debug, warning

try:
    import torch
except Exception:  # pragma: no cover
    torch = None  # type: ignore[assignment]

if TYPE_CHECKING:
    from gpu_imgproc.infrastructure.device_buffer import DeviceBuffer


class PendingWork:
    """Handle for operations enqueued on an execution stream.

    The handle completes when its stream is drained. Until then the host
    arrays and device buffers it references must stay untouched.
    """

    def __init__(
        self,
        label: str,
        stream: ExecutionStream,
        buffers: tuple[DeviceBuffer, ...],
        value: Any = None,
        keepalive: Any = None,
    ) -> None:
        self.label = label
        self.stream = stream
        self.buffers = buffers
        self._value = value
        self._keepalive = keepalive
        self._completed = False
        self._callbacks: list[Callable[[PendingWork], None]] = []
        self._lock = Lock()

    @property
    def completed(self) -> bool:
        return self._completed

    def done(self) -> bool:
        """Return True once the work has finished, without blocking."""
        if self._completed:
            return True
        return self.stream.query_if_complete()

    def wait(self) -> None:
        if not self._completed:
            self.stream.wait_for_completion()

    def result(self) -> Any:
        """Block until the work has finished and return its value (e.g. the downloaded array)."""
        self.wait()
        return self._value

    def add_done_callback(self, fn: Callable[[PendingWork], None]) -> None:
        with self._lock:
            if not self._completed:
                self._callbacks.append(fn)
                return
        fn(self)

    def _finish(self) -> list[Callable[[PendingWork], None]]:
        """Mark the work complete and untrack its buffers; return the callbacks still to run."""
        with self._lock:
            if self._completed:
                return []
            self._completed = True
            callbacks, self._callbacks = self._callbacks, []
            self._keepalive = None
        for buffer in self.buffers:
            buffer._untrack(self)
        return callbacks

    def _run_callbacks(self, callbacks: list[Callable[[PendingWork], None]]) -> list[Exception]:
        errors: list[Exception] = []
        for fn in callbacks:
            try:
                fn(self)
            except Exception as exc:
                warning(LogChannel.STREAM, f"Done callback of {self.label} on '{self.stream.name}' failed: {exc}")
                errors.append(exc)
        return errors

    def __repr__(self) -> str:
        state = "done" if self._completed else "pending"
        return f"PendingWork({self.label!r}, stream={self.stream.name!r}, {state})"


class ExecutionStream:
    """Ordered queue of device operations backed by a ``cv2.cuda.Stream``.

    Work enqueued on one stream runs in submission order. Results become
    visible to the host only after ``wait_for_completion``.
    """

    def __init__(self, native: Any = None, *, name: str = "stream") -> None:
        self.name = name
        self._native = native if native is not None else native_bridge.new_stream()
        self._owner: Any = None
        self._pending: list[PendingWork] = []
        self._lock = Lock()
        self._closed = False
        debug(LogChannel.STREAM, f"Created execution stream '{name}'")

    @classmethod
    def from_torch(cls, torch_stream: Any = None, *, name: str = "torch") -> ExecutionStream:
        """Wrap a PyTorch CUDA stream so OpenCV work is ordered with PyTorch work."""
        if torch_stream is None:
            if torch is None or not torch.cuda.is_available():
                raise CudaUnavailable("PyTorch with CUDA is required to create a torch stream", operation="from_torch")
            torch_stream = torch.cuda.Stream()
        handle = int(torch_stream.cuda_stream)
        stream = cls(native_bridge.wrap_stream(handle), name=name)
        # The wrapped handle is only valid while the torch stream object lives.
        stream._owner = torch_stream
        return stream

    @property
    def native(self) -> Any:
        if self._closed:
            raise StreamClosed(f"stream '{self.name}' is closed")
        return self._native

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def enqueue(
        self,
        label: str,
        buffers: Iterable[DeviceBuffer | None],
        *,
        value: Any = None,
        keepalive: Any = None,
    ) -> PendingWork:
        """Record work already submitted to ``self.native`` and return its handle."""
        if self._closed:
            raise StreamClosed(f"stream '{self.name}' is closed", operation=label)
        tracked = tuple(buffer for buffer in buffers if buffer is not None)
        work = PendingWork(label, self, tracked, value=value, keepalive=keepalive)
        with self._lock:
            self._pending.append(work)
        for buffer in tracked:
            buffer._track(work)
        debug(LogChannel.STREAM, f"[{self.name}] enqueued {label} ({len(tracked)} buffers)")
        return work

    def wait_for_completion(self) -> None:
        """Block until every operation enqueued so far has finished."""
        native = self.native
        try:
            with native_bridge.native_errors(f"{self.name}.wait_for_completion"):
                native.waitForCompletion()
        except Exception:
            # the native failure is reported; callback failures are only logged
            self._complete_pending()
            raise
        drained, errors = self._complete_pending()
        if drained:
            debug(LogChannel.STREAM, f"[{self.name}] drained {drained} operations")
        if errors:
            raise errors[0]

    def query_if_complete(self) -> bool:
        native = self.native
        with native_bridge.native_errors(f"{self.name}.query_if_complete"):
            complete = bool(native.queryIfComplete())
        if complete:
            _, errors = self._complete_pending()
            if errors:
                raise errors[0]
        return complete

    def close(self) -> None:
        if self._closed:
            return
        try:
            self.wait_for_completion()
        finally:
            self._closed = True
            self._native = None
            self._owner = None
            debug(LogChannel.STREAM, f"Closed execution stream '{self.name}'")

    def _complete_pending(self) -> tuple[int, list[Exception]]:
        """Complete every pending handle, then run their callbacks; return the count and callback errors."""
        with self._lock:
            pending, self._pending = self._pending, []
        finished = [(work, work._finish()) for work in pending]
        errors: list[Exception] = []
        for work, callbacks in finished:
            errors.extend(work._run_callbacks(callbacks))
        return len(pending), errors

    def __enter__(self) -> ExecutionStream:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else f"{self.pending_count} pending"
        return f"ExecutionStream({self.name!r}, {state})"
