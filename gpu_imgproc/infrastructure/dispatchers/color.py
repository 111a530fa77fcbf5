from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from gpu_imgproc.core.element_type import CV_8UC3, CV_8UC4, CV_16UC4, CV_32FC4, CV_32SC4
from gpu_imgproc.core.errors import InvalidParameter
from gpu_imgproc.enums import AlphaCompOp
from gpu_imgproc.infrastructure import native_bridge
from gpu_imgproc.infrastructure.device_buffer import DeviceBuffer
from gpu_imgproc.infrastructure.dispatchers.base import (
    dispatch,
    require_input,
    require_same_size,
    require_same_type,
    require_stream,
    require_type,
)
from gpu_imgproc.infrastructure.execution_stream import ExecutionStream, PendingWork

_ALPHA_COMP_TYPES = (CV_8UC4, CV_16UC4, CV_32SC4, CV_32FC4)


def _alpha_comp(
    img1: DeviceBuffer, img2: DeviceBuffer, dst: DeviceBuffer, op: AlphaCompOp, stream: ExecutionStream | None
) -> Any:
    operation = "alpha_comp"
    if not isinstance(op, AlphaCompOp):
        raise InvalidParameter(f"op must be an AlphaCompOp, got {op!r}", operation=operation)
    require_input(operation, img1, "img1")
    require_input(operation, img2, "img2")
    require_type(operation, img1, _ALPHA_COMP_TYPES, "img1")
    require_same_type(operation, img1, img2, ("img1", "img2"))
    require_same_size(operation, img1, img2, ("img1", "img2"))
    alpha_comp_native = native_bridge.cuda_function("alphaComp")

    def call(stream_kwargs: dict[str, Any]) -> Any:
        return alpha_comp_native(img1.native, img2.native, op.value, dst=dst.native, **stream_kwargs)

    return dispatch(operation, call, inputs=(img1, img2), outputs=(dst,), stream=stream)


def alpha_comp(img1: DeviceBuffer, img2: DeviceBuffer, dst: DeviceBuffer, op: AlphaCompOp = AlphaCompOp.OVER) -> DeviceBuffer:
    """Porter-Duff composition of two 4-channel images."""
    return _alpha_comp(img1, img2, dst, op, None)


def alpha_comp_async(
    img1: DeviceBuffer, img2: DeviceBuffer, dst: DeviceBuffer, stream: ExecutionStream, op: AlphaCompOp = AlphaCompOp.OVER
) -> PendingWork:
    require_stream("alpha_comp", stream)
    return _alpha_comp(img1, img2, dst, op, stream)


def _gamma_correction(src: DeviceBuffer, dst: DeviceBuffer, forward: bool, stream: ExecutionStream | None) -> Any:
    operation = "gamma_correction"
    require_input(operation, src)
    require_type(operation, src, (CV_8UC3, CV_8UC4))
    gamma = native_bridge.cuda_function("gammaCorrection")

    def call(stream_kwargs: dict[str, Any]) -> Any:
        return gamma(src.native, dst=dst.native, forward=bool(forward), **stream_kwargs)

    return dispatch(operation, call, inputs=(src,), outputs=(dst,), stream=stream)


def gamma_correction(src: DeviceBuffer, dst: DeviceBuffer, forward: bool = True) -> DeviceBuffer:
    """sRGB gamma encode (``forward=True``) or decode an 8-bit colour image."""
    return _gamma_correction(src, dst, forward, None)


def gamma_correction_async(
    src: DeviceBuffer, dst: DeviceBuffer, stream: ExecutionStream, forward: bool = True
) -> PendingWork:
    require_stream("gamma_correction", stream)
    return _gamma_correction(src, dst, forward, stream)


def _swap_channels(image: DeviceBuffer, order: Sequence[int], stream: ExecutionStream | None) -> Any:
    operation = "swap_channels"
    order = tuple(int(index) for index in order)
    if len(order) != 4 or any(not 0 <= index <= 3 for index in order):
        raise InvalidParameter(f"order must hold 4 channel indices in [0, 3], got {order}", operation=operation)
    require_input(operation, image, "image")
    require_type(operation, image, (CV_8UC4,), "image")
    swap = native_bridge.cuda_function("swapChannels")

    def call(stream_kwargs: dict[str, Any]) -> Any:
        return swap(image.native, order, **stream_kwargs)

    return dispatch(operation, call, inputs=(), outputs=(image,), stream=stream)


def swap_channels(image: DeviceBuffer, order: Sequence[int]) -> DeviceBuffer:
    """Reorder the channels of a CV_8UC4 image in place."""
    return _swap_channels(image, order, None)


def swap_channels_async(image: DeviceBuffer, order: Sequence[int], stream: ExecutionStream) -> PendingWork:
    require_stream("swap_channels", stream)
    return _swap_channels(image, order, stream)
