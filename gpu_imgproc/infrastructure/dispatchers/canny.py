from __future__ import annotations

from typing import Any

from gpu_imgproc.config import dispatcher_defaults
from gpu_imgproc.core.element_type import CV_8UC1
from gpu_imgproc.core.errors import InvalidParameter
from gpu_imgproc.infrastructure import native_bridge
from gpu_imgproc.infrastructure.device_buffer import DeviceBuffer
from gpu_imgproc.infrastructure.dispatchers.base import (
    Dispatcher,
    dispatch,
    require_stream,
    require_input,
    require_non_negative,
    require_type,
)
from gpu_imgproc.infrastructure.execution_stream import ExecutionStream, PendingWork

_APERTURE_SIZES = (3, 5, 7)


class CannyEdgeDetector(Dispatcher):
    """Canny edge detection on a CV_8UC1 image; the edge map has the input's size."""

    operation = "CannyEdgeDetector.detect"

    def __init__(
        self,
        low_threshold: float,
        high_threshold: float,
        aperture_size: int = 3,
        l2_gradient: bool = False,
    ) -> None:
        require_non_negative(self.operation, "low_threshold", low_threshold)
        require_non_negative(self.operation, "high_threshold", high_threshold)
        if aperture_size not in _APERTURE_SIZES:
            raise InvalidParameter(f"aperture_size must be one of {_APERTURE_SIZES}, got {aperture_size}", operation=self.operation)
        self.low_threshold = float(low_threshold)
        self.high_threshold = float(high_threshold)
        self.aperture_size = int(aperture_size)
        self.l2_gradient = bool(l2_gradient)
        super().__init__()

    @classmethod
    def from_config(cls, config: dict[str, Any] | None = None) -> CannyEdgeDetector:
        params = dispatcher_defaults("canny", config)
        return cls(
            low_threshold=params.get("low_threshold", 50.0),
            high_threshold=params.get("high_threshold", 100.0),
            aperture_size=params.get("aperture_size", 3),
            l2_gradient=params.get("l2_gradient", False),
        )

    def _create_native(self) -> Any:
        return native_bridge.cuda_function("createCannyEdgeDetector")(
            self.low_threshold, self.high_threshold, self.aperture_size, self.l2_gradient
        )

    def detect(self, src: DeviceBuffer, edges: DeviceBuffer) -> DeviceBuffer:
        return self._run(src, edges, None)

    def detect_async(self, src: DeviceBuffer, edges: DeviceBuffer, stream: ExecutionStream) -> PendingWork:
        require_stream(self.operation, stream)
        return self._run(src, edges, stream)

    def _run(self, src: DeviceBuffer, edges: DeviceBuffer, stream: ExecutionStream | None) -> Any:
        require_input(self.operation, src)
        require_type(self.operation, src, (CV_8UC1,))
        native = self._native_object()

        def call(stream_kwargs: dict[str, Any]) -> Any:
            return native.detect(src.native, edges=edges.native, **stream_kwargs)

        return dispatch(self.operation, call, inputs=(src,), outputs=(edges,), stream=stream)
