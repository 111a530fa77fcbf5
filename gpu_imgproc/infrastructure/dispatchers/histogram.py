"""Histogram operations: calcHist, equalizeHist, evenLevels, histEven and histRange.

Each operation has a synchronous form and an ``*_async`` form that enqueues
the work on an ``ExecutionStream`` and returns its ``PendingWork``.
"""
from __future__ import annotations

from typing import Any

from gpu_imgproc.core.element_type import CV_8UC1, CV_16SC1, CV_16UC1, CV_32FC1, CV_32SC1
from gpu_imgproc.core.errors import InvalidParameter
from gpu_imgproc.infrastructure import native_bridge
from gpu_imgproc.infrastructure.device_buffer import DeviceBuffer
from gpu_imgproc.infrastructure.dispatchers.base import (
    dispatch,
    require_input,
    require_positive,
    require_same_size,
    require_stream,
    require_type,
)
from gpu_imgproc.infrastructure.execution_stream import ExecutionStream, PendingWork

_HIST_EVEN_TYPES = (CV_8UC1, CV_16UC1, CV_16SC1)
_HIST_RANGE_TYPES = (CV_8UC1, CV_16UC1, CV_16SC1, CV_32FC1)


def _require_levels_range(operation: str, lower: int, upper: int) -> None:
    if not lower < upper:
        raise InvalidParameter(f"lower level {lower} must be below upper level {upper}", operation=operation)


def _calc_hist(src: DeviceBuffer, hist: DeviceBuffer, mask: DeviceBuffer | None, stream: ExecutionStream | None) -> Any:
    operation = "calc_hist"
    require_input(operation, src)
    require_type(operation, src, (CV_8UC1,))
    if mask is not None:
        require_input(operation, mask, "mask")
        require_type(operation, mask, (CV_8UC1,), "mask")
        require_same_size(operation, src, mask, ("src", "mask"))
    calc_hist_native = native_bridge.cuda_function("calcHist")

    def call(stream_kwargs: dict[str, Any]) -> Any:
        if mask is None:
            return calc_hist_native(src.native, hist=hist.native, **stream_kwargs)
        return calc_hist_native(src.native, mask.native, hist=hist.native, **stream_kwargs)

    inputs = (src,) if mask is None else (src, mask)
    return dispatch(operation, call, inputs=inputs, outputs=(hist,), stream=stream)


def calc_hist(src: DeviceBuffer, hist: DeviceBuffer, mask: DeviceBuffer | None = None) -> DeviceBuffer:
    """256-bin histogram of a CV_8UC1 image into a 1 x 256 CV_32SC1 buffer."""
    return _calc_hist(src, hist, mask, None)


def calc_hist_async(
    src: DeviceBuffer, hist: DeviceBuffer, stream: ExecutionStream, mask: DeviceBuffer | None = None
) -> PendingWork:
    require_stream("calc_hist", stream)
    return _calc_hist(src, hist, mask, stream)


def _equalize_hist(src: DeviceBuffer, dst: DeviceBuffer, stream: ExecutionStream | None) -> Any:
    operation = "equalize_hist"
    require_input(operation, src)
    require_type(operation, src, (CV_8UC1,))
    equalize = native_bridge.cuda_function("equalizeHist")

    def call(stream_kwargs: dict[str, Any]) -> Any:
        return equalize(src.native, dst=dst.native, **stream_kwargs)

    return dispatch(operation, call, inputs=(src,), outputs=(dst,), stream=stream)


def equalize_hist(src: DeviceBuffer, dst: DeviceBuffer) -> DeviceBuffer:
    return _equalize_hist(src, dst, None)


def equalize_hist_async(src: DeviceBuffer, dst: DeviceBuffer, stream: ExecutionStream) -> PendingWork:
    require_stream("equalize_hist", stream)
    return _equalize_hist(src, dst, stream)


def _even_levels(
    levels: DeviceBuffer, n_levels: int, lower: int, upper: int, stream: ExecutionStream | None
) -> Any:
    operation = "even_levels"
    if n_levels < 2:
        raise InvalidParameter(f"n_levels must be >= 2, got {n_levels}", operation=operation)
    _require_levels_range(operation, lower, upper)
    even = native_bridge.cuda_function("evenLevels")

    def call(stream_kwargs: dict[str, Any]) -> Any:
        return even(int(n_levels), int(lower), int(upper), levels=levels.native, **stream_kwargs)

    return dispatch(operation, call, inputs=(), outputs=(levels,), stream=stream)


def even_levels(levels: DeviceBuffer, n_levels: int, lower: int, upper: int) -> DeviceBuffer:
    """Fill ``levels`` with ``n_levels`` evenly spaced bin edges in [lower, upper]."""
    return _even_levels(levels, n_levels, lower, upper, None)


def even_levels_async(
    levels: DeviceBuffer, n_levels: int, lower: int, upper: int, stream: ExecutionStream
) -> PendingWork:
    require_stream("even_levels", stream)
    return _even_levels(levels, n_levels, lower, upper, stream)


def _hist_even(
    src: DeviceBuffer, hist: DeviceBuffer, hist_size: int, lower: int, upper: int, stream: ExecutionStream | None
) -> Any:
    operation = "hist_even"
    require_positive(operation, "hist_size", hist_size)
    _require_levels_range(operation, lower, upper)
    require_input(operation, src)
    require_type(operation, src, _HIST_EVEN_TYPES)
    hist_even_native = native_bridge.cuda_function("histEven")

    def call(stream_kwargs: dict[str, Any]) -> Any:
        return hist_even_native(src.native, int(hist_size), int(lower), int(upper), hist=hist.native, **stream_kwargs)

    return dispatch(operation, call, inputs=(src,), outputs=(hist,), stream=stream)


def hist_even(src: DeviceBuffer, hist: DeviceBuffer, hist_size: int, lower: int, upper: int) -> DeviceBuffer:
    """Histogram with ``hist_size`` evenly spaced bins between ``lower`` and ``upper``."""
    return _hist_even(src, hist, hist_size, lower, upper, None)


def hist_even_async(
    src: DeviceBuffer, hist: DeviceBuffer, hist_size: int, lower: int, upper: int, stream: ExecutionStream
) -> PendingWork:
    require_stream("hist_even", stream)
    return _hist_even(src, hist, hist_size, lower, upper, stream)


def _hist_range(src: DeviceBuffer, hist: DeviceBuffer, levels: DeviceBuffer, stream: ExecutionStream | None) -> Any:
    operation = "hist_range"
    require_input(operation, src)
    require_type(operation, src, _HIST_RANGE_TYPES)
    require_input(operation, levels, "levels")
    require_type(operation, levels, (CV_32FC1,) if src.element_type == CV_32FC1 else (CV_32SC1,), "levels")
    if levels.rows != 1:
        raise InvalidParameter(f"levels must be a single row, got {levels.rows} rows", operation=operation)
    hist_range_native = native_bridge.cuda_function("histRange")

    def call(stream_kwargs: dict[str, Any]) -> Any:
        return hist_range_native(src.native, levels.native, hist=hist.native, **stream_kwargs)

    return dispatch(operation, call, inputs=(src, levels), outputs=(hist,), stream=stream)


def hist_range(src: DeviceBuffer, hist: DeviceBuffer, levels: DeviceBuffer) -> DeviceBuffer:
    """Histogram with bin edges taken from a 1-row ``levels`` buffer."""
    return _hist_range(src, hist, levels, None)


def hist_range_async(
    src: DeviceBuffer, hist: DeviceBuffer, levels: DeviceBuffer, stream: ExecutionStream
) -> PendingWork:
    require_stream("hist_range", stream)
    return _hist_range(src, hist, levels, stream)
