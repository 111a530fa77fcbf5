from __future__ import annotations

from typing import Any

from gpu_imgproc.core.bayer_pattern import BayerPattern
from gpu_imgproc.core.element_type import CV_8UC1, CV_16UC1
from gpu_imgproc.core.errors import InvalidParameter
from gpu_imgproc.infrastructure import native_bridge
from gpu_imgproc.infrastructure.device_buffer import DeviceBuffer
from gpu_imgproc.infrastructure.dispatchers.base import (
    Dispatcher,
    dispatch,
    require_stream,
    require_input,
    require_type,
)
from gpu_imgproc.infrastructure.execution_stream import ExecutionStream, PendingWork

_DESTINATION_CHANNELS = (3, 4)


class Demosaicer(Dispatcher):
    """Reconstructs a BGR(A) image from a single-channel Bayer mosaic."""

    operation = "Demosaicer.convert"

    def __init__(self, pattern: BayerPattern, destination_channels: int = 3) -> None:
        if not isinstance(pattern, BayerPattern):
            raise InvalidParameter(f"pattern must be a BayerPattern, got {pattern!r}", operation=self.operation)
        if destination_channels not in _DESTINATION_CHANNELS:
            raise InvalidParameter(
                f"destination_channels must be one of {_DESTINATION_CHANNELS}, got {destination_channels}",
                operation=self.operation,
            )
        self.pattern = pattern
        self.destination_channels = int(destination_channels)
        super().__init__()

    def _create_native(self) -> Any:
        return native_bridge.cuda_function("demosaicing")

    def convert(self, src: DeviceBuffer, dst: DeviceBuffer) -> DeviceBuffer:
        return self._run(src, dst, None)

    def convert_async(self, src: DeviceBuffer, dst: DeviceBuffer, stream: ExecutionStream) -> PendingWork:
        require_stream(self.operation, stream)
        return self._run(src, dst, stream)

    def _run(self, src: DeviceBuffer, dst: DeviceBuffer, stream: ExecutionStream | None) -> Any:
        require_input(self.operation, src)
        require_type(self.operation, src, (CV_8UC1, CV_16UC1))
        demosaicing = self._native_object()
        code = self.pattern.to_bgr_code

        def call(stream_kwargs: dict[str, Any]) -> Any:
            return demosaicing(src.native, code, dst=dst.native, dcn=self.destination_channels, **stream_kwargs)

        return dispatch(self.operation, call, inputs=(src,), outputs=(dst,), stream=stream)
