from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Iterator

import cv2

from gpu_imgproc.config import load_imgproc_config
from gpu_imgproc.core.errors import (
    AllocationError,
    CudaUnavailable,
    ImgprocError,
    InvalidParameter,
    NativeError,
    ShapeMismatch,
    TypeMismatch,
)
from logger.filtered_logger import LogChannel, debug, info

# ---------------------------------------------------------------------------
# OpenCV status codes (cv::Error::Code) that map onto the error taxonomy.
# Anything not listed here surfaces as NativeError with the code attached.
# ---------------------------------------------------------------------------
STS_NO_MEM = -4
STS_BAD_ARG = -5
BAD_DEPTH = -17
STS_BAD_SIZE = -201
STS_UNMATCHED_FORMATS = -205
STS_UNMATCHED_SIZES = -209
STS_UNSUPPORTED_FORMAT = -210
STS_OUT_OF_RANGE = -211
GPU_NOT_SUPPORTED = -216
GPU_API_CALL_ERROR = -217

_CODE_TO_ERROR: dict[int, type[ImgprocError]] = {
    STS_NO_MEM: AllocationError,
    STS_BAD_ARG: InvalidParameter,
    STS_OUT_OF_RANGE: InvalidParameter,
    BAD_DEPTH: TypeMismatch,
    STS_UNMATCHED_FORMATS: TypeMismatch,
    STS_UNSUPPORTED_FORMAT: TypeMismatch,
    STS_BAD_SIZE: ShapeMismatch,
    STS_UNMATCHED_SIZES: ShapeMismatch,
    GPU_NOT_SUPPORTED: CudaUnavailable,
}


def cuda_module() -> Any:
    """Return the ``cv2.cuda`` namespace every native call goes through."""
    module = getattr(cv2, "cuda", None)
    if module is None:
        raise CudaUnavailable("this OpenCV build does not include CUDA bindings (cv2.cuda missing)")
    return module


def cuda_function(name: str) -> Callable[..., Any]:
    """Look up a ``cv2.cuda`` entry point, failing clearly when the build lacks it."""
    fn = getattr(cuda_module(), name, None)
    if fn is None:
        raise CudaUnavailable(
            f"cv2.cuda.{name} is not available; OpenCV must be built with the CUDA contrib modules",
            operation=name,
        )
    return fn


def translate_error(exc: BaseException, operation: str) -> ImgprocError:
    """Map a ``cv2.error`` onto the gpu_imgproc error taxonomy."""
    code = getattr(exc, "code", None)
    message = str(getattr(exc, "err", None) or exc).strip()
    lowered = message.lower()
    if code == GPU_API_CALL_ERROR and "out of memory" in lowered:
        return AllocationError(message, operation=operation)
    if "without cuda support" in lowered or "no cuda support" in lowered:
        return CudaUnavailable(message, operation=operation)
    error_cls = _CODE_TO_ERROR.get(code) if code is not None else None
    if error_cls is None:
        return NativeError(message, operation=operation, code=code)
    return error_cls(message, operation=operation)


@contextmanager
def native_errors(operation: str) -> Iterator[None]:
    """Re-raise ``cv2.error`` raised inside the block as a translated error."""
    try:
        yield
    except cv2.error as exc:
        translated = translate_error(exc, operation)
        debug(LogChannel.GLOBAL, f"{operation} failed natively: {type(translated).__name__}: {translated}")
        raise translated from exc


def new_gpu_mat(rows: int | None = None, cols: int | None = None, type_code: int | None = None) -> Any:
    cuda = cuda_module()
    with native_errors("GpuMat.allocate"):
        if rows is None:
            return cuda.GpuMat()
        return cuda.GpuMat(int(rows), int(cols), int(type_code))


def new_stream() -> Any:
    with native_errors("Stream.create"):
        return cuda_module().Stream()


def wrap_stream(handle: int) -> Any:
    with native_errors("Stream.wrap"):
        return cuda_function("wrapStream")(int(handle))


def cuda_device_count() -> int:
    """Return the number of CUDA devices OpenCV can use (0 when unavailable)."""
    module = getattr(cv2, "cuda", None)
    if module is None:
        return 0
    try:
        return int(module.getCudaEnabledDeviceCount())
    except cv2.error:
        return 0


def cuda_available() -> bool:
    return cuda_device_count() > 0


def select_device(index: int) -> None:
    count = cuda_device_count()
    if count <= 0:
        raise CudaUnavailable("OpenCV reports zero CUDA-enabled devices", operation="select_device")
    if not 0 <= index < count:
        raise InvalidParameter(f"device index {index} out of range [0, {count})", operation="select_device")
    with native_errors("select_device"):
        cuda_module().setDevice(int(index))
    info(LogChannel.GLOBAL, f"Using CUDA device {index} of {count}")


def select_configured_device(config: dict[str, Any] | None = None) -> int:
    """Select the ``device`` from the imgproc config (``IMGPROC_DEVICE`` included) and return it."""
    if config is None:
        config = load_imgproc_config()
    device = config.get("device", 0)
    if isinstance(device, bool) or not isinstance(device, int):
        raise InvalidParameter(f"device must be an integer index, got {device!r}", operation="select_device")
    select_device(device)
    return device
