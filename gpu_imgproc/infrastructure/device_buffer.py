from __future__ import annotations

from threading import RLock
from typing import Any

import numpy

from gpu_imgproc.core.element_type import CV_8UC1, ElementType
from gpu_imgproc.core.errors import EmptyInput, InvalidParameter, ShapeMismatch
from gpu_imgproc.infrastructure import native_bridge
from gpu_imgproc.infrastructure.execution_stream import ExecutionStream, PendingWork
from logger.filtered_logger import LogChannel, debug, warning


class DeviceBuffer:
    """Owning wrapper around a ``cv2.cuda.GpuMat``.

    Use it as a context manager to guarantee release on every exit path::

        with DeviceBuffer.from_host(image) as src, DeviceBuffer() as edges:
            detector.detect(src, edges)
            result = edges.download()

    Once a buffer holds data its rows, cols and element type are fixed for
    uploads; dispatchers may still resize a buffer passed as their output.
    Single-channel data always downloads as ``(rows, cols)``, even when it
    was uploaded from a ``(rows, cols, 1)`` array.
    """

    def __init__(self, native: Any = None, *, parent: DeviceBuffer | None = None) -> None:
        self._native = native if native is not None else native_bridge.new_gpu_mat()
        self._parent = parent
        self._lock = RLock()
        self._in_flight: list[PendingWork] = []
        self._released = False

    @classmethod
    def with_size(cls, rows: int, cols: int, element_type: ElementType = CV_8UC1) -> DeviceBuffer:
        if rows <= 0 or cols <= 0:
            raise InvalidParameter(f"buffer size must be positive, got {rows}x{cols}", operation="DeviceBuffer.with_size")
        native = native_bridge.new_gpu_mat(rows, cols, element_type.type_code)
        debug(LogChannel.TRANSFER, f"Allocated {rows}x{cols} {element_type} device buffer")
        return cls(native)

    @classmethod
    def from_host(cls, host: numpy.ndarray) -> DeviceBuffer:
        buffer = cls()
        try:
            buffer.upload(host)
        except Exception:
            buffer.release()
            raise
        return buffer

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def native(self) -> Any:
        if self._released:
            raise EmptyInput("device buffer has been released")
        return self._native

    @property
    def released(self) -> bool:
        return self._released

    @property
    def rows(self) -> int:
        if self._released:
            return 0
        return int(self._native.size()[1])

    @property
    def cols(self) -> int:
        if self._released:
            return 0
        return int(self._native.size()[0])

    @property
    def element_type(self) -> ElementType:
        return ElementType.from_type_code(self.native.type())

    @property
    def shape(self) -> tuple[int, ...]:
        return self.element_type.host_shape(self.rows, self.cols)

    @property
    def in_flight_count(self) -> int:
        with self._lock:
            return sum(1 for work in self._in_flight if not work.completed)

    def empty(self) -> bool:
        if self._released:
            return True
        return bool(self._native.empty()) or self.rows == 0 or self.cols == 0

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def upload(self, host: numpy.ndarray) -> None:
        """Copy host pixels into device memory, blocking until the copy is done."""
        host = self._prepare_upload(host, "DeviceBuffer.upload")
        with native_bridge.native_errors("DeviceBuffer.upload"):
            self.native.upload(host)
        debug(LogChannel.TRANSFER, f"Uploaded {host.shape} {host.dtype}")

    def upload_async(self, host: numpy.ndarray, stream: ExecutionStream) -> PendingWork:
        """Enqueue the copy on ``stream``; ``host`` must stay unmodified until the stream drains."""
        host = self._prepare_upload(host, "DeviceBuffer.upload_async")
        with native_bridge.native_errors("DeviceBuffer.upload_async"):
            self.native.upload(host, stream.native)
        return stream.enqueue("upload", (self,), keepalive=host)

    def download(self, host: numpy.ndarray | None = None) -> numpy.ndarray:
        """Copy device pixels back to the host, blocking until the copy is done."""
        self._require_data("DeviceBuffer.download")
        if host is None:
            with native_bridge.native_errors("DeviceBuffer.download"):
                result = self.native.download()
            return result
        self._check_host_target(host, "DeviceBuffer.download")
        with native_bridge.native_errors("DeviceBuffer.download"):
            result = self.native.download(dst=host)
        if result is not None and result is not host:
            numpy.copyto(host, numpy.asarray(result).reshape(host.shape))
        debug(LogChannel.TRANSFER, f"Downloaded {host.shape} {host.dtype}")
        return host

    def download_async(self, host: numpy.ndarray | None, stream: ExecutionStream) -> PendingWork:
        """Enqueue the copy on ``stream``; read the array only via ``result()`` or after draining."""
        self._require_data("DeviceBuffer.download_async")
        if host is None:
            host = numpy.empty(self.shape, dtype=self.element_type.numpy_dtype)
        self._check_host_target(host, "DeviceBuffer.download_async")
        with native_bridge.native_errors("DeviceBuffer.download_async"):
            self.native.download(stream.native, host)
        return stream.enqueue("download", (self,), value=host)

    def reshape(self, channels: int, rows: int = 0) -> DeviceBuffer:
        """Return a view of the same device memory with a new channel count and/or row count."""
        self._require_data("DeviceBuffer.reshape")
        if channels < 0 or rows < 0:
            raise InvalidParameter(f"reshape arguments must be >= 0, got ({channels}, {rows})", operation="DeviceBuffer.reshape")
        with native_bridge.native_errors("DeviceBuffer.reshape"):
            native = self.native.reshape(int(channels), int(rows))
        return DeviceBuffer(native, parent=self)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def release(self) -> None:
        """Free the device memory. Safe to call any number of times.

        Streams that still hold work referencing this buffer are drained first.
        """
        with self._lock:
            if self._released:
                return
            in_flight = [work for work in self._in_flight if not work.completed]
        for work in in_flight:
            warning(LogChannel.STREAM, f"Releasing buffer with in-flight {work.label}; draining '{work.stream.name}'")
            work.wait()
        with self._lock:
            if self._released:
                return
            self._released = True
            native, self._native = self._native, None
            self._parent = None
            self._in_flight.clear()
        with native_bridge.native_errors("DeviceBuffer.release"):
            native.release()

    def __enter__(self) -> DeviceBuffer:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        if self.empty():
            return "DeviceBuffer(empty)"
        return f"DeviceBuffer({self.rows}x{self.cols} {self.element_type})"

    # ------------------------------------------------------------------
    # Internal helpers used by streams and dispatchers
    # ------------------------------------------------------------------

    def _adopt(self, native: Any) -> None:
        """Take over the GpuMat a native call wrote its output into."""
        with self._lock:
            if self._released:
                raise EmptyInput("cannot write into a released device buffer")
            if native is not self._native:
                self._native = native

    def _track(self, work: PendingWork) -> None:
        with self._lock:
            foreign = [
                other for other in self._in_flight
                if not other.completed and other.stream is not work.stream
            ]
            self._in_flight.append(work)
        if foreign:
            warning(
                LogChannel.STREAM,
                f"Buffer used by '{work.stream.name}' while '{foreign[0].stream.name}' still has "
                f"{foreign[0].label} in flight; wait on that stream first",
            )

    def _untrack(self, work: PendingWork) -> None:
        with self._lock:
            if work in self._in_flight:
                self._in_flight.remove(work)

    def _require_data(self, operation: str) -> None:
        if self.empty():
            raise EmptyInput("device buffer is empty", operation=operation)

    def _prepare_upload(self, host: numpy.ndarray, operation: str) -> numpy.ndarray:
        element_type = ElementType.from_array(host)
        rows, cols = int(host.shape[0]), int(host.shape[1])
        if rows == 0 or cols == 0:
            raise EmptyInput(f"host image has zero size {host.shape}", operation=operation)
        if self._released:
            raise EmptyInput("device buffer has been released", operation=operation)
        if not self.empty():
            current = (self.rows, self.cols, self.element_type)
            if current != (rows, cols, element_type):
                raise ShapeMismatch(
                    f"buffer is {current[0]}x{current[1]} {current[2]}, host image is {rows}x{cols} {element_type}",
                    operation=operation,
                )
        if host.ndim == 3 and host.shape[2] == 1:
            # a GpuMat has no trailing unit axis; single-channel images come back as (rows, cols)
            host = host.reshape(rows, cols)
        return numpy.ascontiguousarray(host)

    def _check_host_target(self, host: numpy.ndarray, operation: str) -> None:
        expected_shape = self.shape
        expected_dtype = self.element_type.numpy_dtype
        if tuple(host.shape) != expected_shape or host.dtype != expected_dtype:
            raise ShapeMismatch(
                f"host array is {host.shape} {host.dtype}, buffer needs {expected_shape} {expected_dtype}",
                operation=operation,
            )
        if not host.flags["C_CONTIGUOUS"]:
            raise ShapeMismatch("host array must be C-contiguous", operation=operation)
