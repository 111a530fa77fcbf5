from __future__ import annotations

from gpu_imgproc.core.bayer_pattern import BayerPattern
from gpu_imgproc.core.element_type import Depth, ElementType
from gpu_imgproc.core.errors import (
    AllocationError,
    CudaUnavailable,
    EmptyInput,
    ImgprocError,
    InvalidParameter,
    NativeError,
    ShapeMismatch,
    StreamClosed,
    TypeMismatch,
)
from gpu_imgproc.core.term_criteria import TermCriteria
from gpu_imgproc.enums import AlphaCompOp, BorderMode, TemplateMatchMethod
from gpu_imgproc.infrastructure.device_buffer import DeviceBuffer
from gpu_imgproc.infrastructure.execution_stream import ExecutionStream, PendingWork

__all__ = [
    "AllocationError",
    "AlphaCompOp",
    "BayerPattern",
    "BorderMode",
    "CudaUnavailable",
    "Depth",
    "DeviceBuffer",
    "ElementType",
    "EmptyInput",
    "ExecutionStream",
    "ImgprocError",
    "InvalidParameter",
    "NativeError",
    "PendingWork",
    "ShapeMismatch",
    "StreamClosed",
    "TemplateMatchMethod",
    "TermCriteria",
    "TypeMismatch",
]
