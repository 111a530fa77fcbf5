"""Hough line and segment detectors.

Both take a binary edge map (typically the output of ``CannyEdgeDetector``).
``HoughLinesDetector`` writes a 1 x N CV_32FC2 buffer of (radius, angle)
pairs; ``HoughSegmentDetector`` writes a 1 x N CV_32SC4 buffer with one
(x1, y1, x2, y2) record per segment.
"""
from __future__ import annotations

from typing import Any

import numpy

from gpu_imgproc.config import dispatcher_defaults
from gpu_imgproc.core.element_type import CV_8UC1
from gpu_imgproc.infrastructure import native_bridge
from gpu_imgproc.infrastructure.device_buffer import DeviceBuffer
from gpu_imgproc.infrastructure.dispatchers.base import (
    Dispatcher,
    dispatch,
    require_stream,
    require_input,
    require_non_negative,
    require_positive,
    require_type,
)
from gpu_imgproc.infrastructure.execution_stream import ExecutionStream, PendingWork

DEFAULT_MAX_LINES = 4096


class _HoughDispatcher(Dispatcher):

    def detect(self, src: DeviceBuffer, lines: DeviceBuffer) -> DeviceBuffer:
        return self._run(src, lines, None)

    def detect_async(self, src: DeviceBuffer, lines: DeviceBuffer, stream: ExecutionStream) -> PendingWork:
        require_stream(self.operation, stream)
        return self._run(src, lines, stream)

    def _run(self, src: DeviceBuffer, lines: DeviceBuffer, stream: ExecutionStream | None) -> Any:
        require_input(self.operation, src)
        require_type(self.operation, src, (CV_8UC1,))
        native = self._native_object()

        def call(stream_kwargs: dict[str, Any]) -> Any:
            return native.detect(src.native, lines=lines.native, **stream_kwargs)

        return dispatch(self.operation, call, inputs=(src,), outputs=(lines,), stream=stream)


class HoughLinesDetector(_HoughDispatcher):
    operation = "HoughLinesDetector.detect"

    def __init__(
        self,
        rho: float,
        theta: float,
        threshold: int,
        do_sort: bool = False,
        max_lines: int = DEFAULT_MAX_LINES,
    ) -> None:
        require_positive(self.operation, "rho", rho)
        require_positive(self.operation, "theta", theta)
        require_positive(self.operation, "threshold", threshold)
        require_positive(self.operation, "max_lines", max_lines)
        self.rho = float(rho)
        self.theta = float(theta)
        self.threshold = int(threshold)
        self.do_sort = bool(do_sort)
        self.max_lines = int(max_lines)
        super().__init__()

    @classmethod
    def from_config(cls, config: dict[str, Any] | None = None) -> HoughLinesDetector:
        params = dispatcher_defaults("hough_lines", config)
        return cls(
            rho=params.get("rho", 1.0),
            theta=numpy.deg2rad(params.get("theta_degrees", 1.0)),
            threshold=params.get("threshold", 50),
            do_sort=params.get("do_sort", True),
            max_lines=params.get("max_lines", DEFAULT_MAX_LINES),
        )

    def _create_native(self) -> Any:
        return native_bridge.cuda_function("createHoughLinesDetector")(
            self.rho, self.theta, self.threshold, self.do_sort, self.max_lines
        )

    @staticmethod
    def lines(host: numpy.ndarray | None) -> numpy.ndarray:
        """Return downloaded detector output as an (N, 2) array of (radius, angle)."""
        if host is None or host.size == 0:
            return numpy.empty((0, 2), dtype=numpy.float32)
        return numpy.asarray(host, dtype=numpy.float32).reshape(-1, 2)


class HoughSegmentDetector(_HoughDispatcher):
    operation = "HoughSegmentDetector.detect"

    def __init__(
        self,
        rho: float,
        theta: float,
        min_line_length: int,
        max_line_gap: int,
        max_lines: int = DEFAULT_MAX_LINES,
        threshold: int = -1,
    ) -> None:
        require_positive(self.operation, "rho", rho)
        require_positive(self.operation, "theta", theta)
        require_positive(self.operation, "min_line_length", min_line_length)
        require_non_negative(self.operation, "max_line_gap", max_line_gap)
        require_positive(self.operation, "max_lines", max_lines)
        self.rho = float(rho)
        self.theta = float(theta)
        self.min_line_length = int(min_line_length)
        self.max_line_gap = int(max_line_gap)
        self.max_lines = int(max_lines)
        # -1 lets OpenCV derive the vote threshold from min_line_length.
        self.threshold = int(threshold)
        super().__init__()

    @classmethod
    def from_config(cls, config: dict[str, Any] | None = None) -> HoughSegmentDetector:
        params = dispatcher_defaults("hough_segments", config)
        return cls(
            rho=params.get("rho", 1.0),
            theta=numpy.deg2rad(params.get("theta_degrees", 1.0)),
            min_line_length=params.get("min_line_length", 150),
            max_line_gap=params.get("max_line_gap", 50),
            max_lines=params.get("max_lines", DEFAULT_MAX_LINES),
            threshold=params.get("threshold", -1),
        )

    def _create_native(self) -> Any:
        return native_bridge.cuda_function("createHoughSegmentDetector")(
            self.rho, self.theta, self.min_line_length, self.max_line_gap, self.max_lines, self.threshold
        )

    @staticmethod
    def segments(host: numpy.ndarray | None) -> numpy.ndarray:
        """Return downloaded detector output as an (N, 4) array of (x1, y1, x2, y2)."""
        if host is None or host.size == 0:
            return numpy.empty((0, 4), dtype=numpy.int32)
        return numpy.asarray(host, dtype=numpy.int32).reshape(-1, 4)
