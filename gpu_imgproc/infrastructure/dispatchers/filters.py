from __future__ import annotations

from typing import Any

from gpu_imgproc.core.element_type import (
    CV_8UC1,
    CV_8UC3,
    CV_8UC4,
    CV_32FC1,
    CV_32FC4,
    Depth,
    ElementType,
)
from gpu_imgproc.core.term_criteria import TermCriteria
from gpu_imgproc.enums import BorderMode
from gpu_imgproc.infrastructure import native_bridge
from gpu_imgproc.infrastructure.device_buffer import DeviceBuffer
from gpu_imgproc.infrastructure.dispatchers.base import (
    dispatch,
    require_input,
    require_positive,
    require_same_size,
    require_same_type,
    require_stream,
    require_type,
)
from gpu_imgproc.infrastructure.execution_stream import ExecutionStream, PendingWork

_BILATERAL_TYPES = (CV_8UC1, CV_8UC3, CV_8UC4, CV_32FC1, ElementType(Depth.F32, 3), CV_32FC4)
_BLEND_TYPES = _BILATERAL_TYPES
_DEFAULT_CRITERIA = TermCriteria(max_count=5, epsilon=1.0)


def _bilateral_filter(
    src: DeviceBuffer,
    dst: DeviceBuffer,
    kernel_size: int,
    sigma_color: float,
    sigma_spatial: float,
    border_mode: BorderMode,
    stream: ExecutionStream | None,
) -> Any:
    operation = "bilateral_filter"
    require_positive(operation, "kernel_size", kernel_size)
    require_positive(operation, "sigma_color", sigma_color)
    require_positive(operation, "sigma_spatial", sigma_spatial)
    require_input(operation, src)
    require_type(operation, src, _BILATERAL_TYPES)
    bilateral = native_bridge.cuda_function("bilateralFilter")

    def call(stream_kwargs: dict[str, Any]) -> Any:
        return bilateral(
            src.native,
            int(kernel_size),
            float(sigma_color),
            float(sigma_spatial),
            dst=dst.native,
            borderMode=border_mode.value,
            **stream_kwargs,
        )

    return dispatch(operation, call, inputs=(src,), outputs=(dst,), stream=stream)


def bilateral_filter(
    src: DeviceBuffer,
    dst: DeviceBuffer,
    kernel_size: int,
    sigma_color: float,
    sigma_spatial: float,
    border_mode: BorderMode = BorderMode.DEFAULT,
) -> DeviceBuffer:
    return _bilateral_filter(src, dst, kernel_size, sigma_color, sigma_spatial, border_mode, None)


def bilateral_filter_async(
    src: DeviceBuffer,
    dst: DeviceBuffer,
    kernel_size: int,
    sigma_color: float,
    sigma_spatial: float,
    stream: ExecutionStream,
    border_mode: BorderMode = BorderMode.DEFAULT,
) -> PendingWork:
    require_stream("bilateral_filter", stream)
    return _bilateral_filter(src, dst, kernel_size, sigma_color, sigma_spatial, border_mode, stream)


def _blend_linear(
    img1: DeviceBuffer,
    img2: DeviceBuffer,
    weights1: DeviceBuffer,
    weights2: DeviceBuffer,
    result: DeviceBuffer,
    stream: ExecutionStream | None,
) -> Any:
    operation = "blend_linear"
    for buffer, name in ((img1, "img1"), (img2, "img2"), (weights1, "weights1"), (weights2, "weights2")):
        require_input(operation, buffer, name)
    require_type(operation, img1, _BLEND_TYPES, "img1")
    require_same_type(operation, img1, img2, ("img1", "img2"))
    require_same_size(operation, img1, img2, ("img1", "img2"))
    for weights, name in ((weights1, "weights1"), (weights2, "weights2")):
        require_type(operation, weights, (CV_32FC1,), name)
        require_same_size(operation, img1, weights, ("img1", name))
    blend = native_bridge.cuda_function("blendLinear")

    def call(stream_kwargs: dict[str, Any]) -> Any:
        return blend(img1.native, img2.native, weights1.native, weights2.native, result=result.native, **stream_kwargs)

    return dispatch(operation, call, inputs=(img1, img2, weights1, weights2), outputs=(result,), stream=stream)


def blend_linear(
    img1: DeviceBuffer, img2: DeviceBuffer, weights1: DeviceBuffer, weights2: DeviceBuffer, result: DeviceBuffer
) -> DeviceBuffer:
    """Per-pixel weighted blend: (img1 * w1 + img2 * w2) / (w1 + w2)."""
    return _blend_linear(img1, img2, weights1, weights2, result, None)


def blend_linear_async(
    img1: DeviceBuffer,
    img2: DeviceBuffer,
    weights1: DeviceBuffer,
    weights2: DeviceBuffer,
    result: DeviceBuffer,
    stream: ExecutionStream,
) -> PendingWork:
    require_stream("blend_linear", stream)
    return _blend_linear(img1, img2, weights1, weights2, result, stream)


def _require_mean_shift_args(operation: str, src: DeviceBuffer, sp: int, sr: int) -> None:
    require_positive(operation, "sp", sp)
    require_positive(operation, "sr", sr)
    require_input(operation, src)
    require_type(operation, src, (CV_8UC4,))


def _mean_shift_filtering(
    src: DeviceBuffer, dst: DeviceBuffer, sp: int, sr: int, criteria: TermCriteria, stream: ExecutionStream | None
) -> Any:
    operation = "mean_shift_filtering"
    _require_mean_shift_args(operation, src, sp, sr)
    mean_shift = native_bridge.cuda_function("meanShiftFiltering")

    def call(stream_kwargs: dict[str, Any]) -> Any:
        return mean_shift(src.native, int(sp), int(sr), dst=dst.native, criteria=criteria.as_native(), **stream_kwargs)

    return dispatch(operation, call, inputs=(src,), outputs=(dst,), stream=stream)


def mean_shift_filtering(
    src: DeviceBuffer, dst: DeviceBuffer, sp: int, sr: int, criteria: TermCriteria = _DEFAULT_CRITERIA
) -> DeviceBuffer:
    """Mean-shift filtering of a CV_8UC4 image with spatial window ``sp`` and colour window ``sr``."""
    return _mean_shift_filtering(src, dst, sp, sr, criteria, None)


def mean_shift_filtering_async(
    src: DeviceBuffer,
    dst: DeviceBuffer,
    sp: int,
    sr: int,
    stream: ExecutionStream,
    criteria: TermCriteria = _DEFAULT_CRITERIA,
) -> PendingWork:
    require_stream("mean_shift_filtering", stream)
    return _mean_shift_filtering(src, dst, sp, sr, criteria, stream)


def _mean_shift_proc(
    src: DeviceBuffer,
    dstr: DeviceBuffer,
    dstsp: DeviceBuffer,
    sp: int,
    sr: int,
    criteria: TermCriteria,
    stream: ExecutionStream | None,
) -> Any:
    operation = "mean_shift_proc"
    _require_mean_shift_args(operation, src, sp, sr)
    mean_shift = native_bridge.cuda_function("meanShiftProc")

    def call(stream_kwargs: dict[str, Any]) -> Any:
        return mean_shift(
            src.native,
            int(sp),
            int(sr),
            dstr=dstr.native,
            dstsp=dstsp.native,
            criteria=criteria.as_native(),
            **stream_kwargs,
        )

    return dispatch(operation, call, inputs=(src,), outputs=(dstr, dstsp), stream=stream)


def mean_shift_proc(
    src: DeviceBuffer,
    dstr: DeviceBuffer,
    dstsp: DeviceBuffer,
    sp: int,
    sr: int,
    criteria: TermCriteria = _DEFAULT_CRITERIA,
) -> tuple[DeviceBuffer, DeviceBuffer]:
    """Mean-shift procedure writing filtered colours to ``dstr`` and convergence points (CV_16SC2) to ``dstsp``."""
    return _mean_shift_proc(src, dstr, dstsp, sp, sr, criteria, None)


def mean_shift_proc_async(
    src: DeviceBuffer,
    dstr: DeviceBuffer,
    dstsp: DeviceBuffer,
    sp: int,
    sr: int,
    stream: ExecutionStream,
    criteria: TermCriteria = _DEFAULT_CRITERIA,
) -> PendingWork:
    require_stream("mean_shift_proc", stream)
    return _mean_shift_proc(src, dstr, dstsp, sp, sr, criteria, stream)


def _mean_shift_segmentation(
    src: DeviceBuffer,
    dst: DeviceBuffer,
    sp: int,
    sr: int,
    min_size: int,
    criteria: TermCriteria,
    stream: ExecutionStream | None,
) -> Any:
    operation = "mean_shift_segmentation"
    require_positive(operation, "min_size", min_size)
    _require_mean_shift_args(operation, src, sp, sr)
    segmentation = native_bridge.cuda_function("meanShiftSegmentation")

    def call(stream_kwargs: dict[str, Any]) -> Any:
        return segmentation(
            src.native,
            int(sp),
            int(sr),
            int(min_size),
            dst=dst.native,
            criteria=criteria.as_native(),
            **stream_kwargs,
        )

    return dispatch(operation, call, inputs=(src,), outputs=(dst,), stream=stream)


def mean_shift_segmentation(
    src: DeviceBuffer,
    dst: DeviceBuffer,
    sp: int,
    sr: int,
    min_size: int,
    criteria: TermCriteria = _DEFAULT_CRITERIA,
) -> DeviceBuffer:
    return _mean_shift_segmentation(src, dst, sp, sr, min_size, criteria, None)


def mean_shift_segmentation_async(
    src: DeviceBuffer,
    dst: DeviceBuffer,
    sp: int,
    sr: int,
    min_size: int,
    stream: ExecutionStream,
    criteria: TermCriteria = _DEFAULT_CRITERIA,
) -> PendingWork:
    require_stream("mean_shift_segmentation", stream)
    return _mean_shift_segmentation(src, dst, sp, sr, min_size, criteria, stream)
