from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy

from gpu_imgproc.core.errors import TypeMismatch

_CHANNEL_SHIFT = 3
_DEPTH_MASK = (1 << _CHANNEL_SHIFT) - 1
_MAX_CHANNELS = 512


class Depth(Enum):
    """OpenCV pixel depths with their native codes."""

    U8 = 0
    S8 = 1
    U16 = 2
    S16 = 3
    S32 = 4
    F32 = 5
    F64 = 6
    F16 = 7

    @property
    def numpy_dtype(self) -> numpy.dtype:
        return numpy.dtype(_DEPTH_TO_DTYPE[self])


_DEPTH_TO_DTYPE = {
    Depth.U8: numpy.uint8,
    Depth.S8: numpy.int8,
    Depth.U16: numpy.uint16,
    Depth.S16: numpy.int16,
    Depth.S32: numpy.int32,
    Depth.F32: numpy.float32,
    Depth.F64: numpy.float64,
    Depth.F16: numpy.float16,
}
_DTYPE_TO_DEPTH = {numpy.dtype(dtype): depth for depth, dtype in _DEPTH_TO_DTYPE.items()}


@dataclass(frozen=True, slots=True)
class ElementType:
    """Element type of a device buffer: depth x channel count."""

    depth: Depth
    channels: int = 1

    def __post_init__(self) -> None:
        if not 1 <= self.channels <= _MAX_CHANNELS:
            raise TypeMismatch(f"channel count must be in [1, {_MAX_CHANNELS}], got {self.channels}")

    @property
    def type_code(self) -> int:
        return self.depth.value + ((self.channels - 1) << _CHANNEL_SHIFT)

    @property
    def numpy_dtype(self) -> numpy.dtype:
        return self.depth.numpy_dtype

    @classmethod
    def from_type_code(cls, code: int) -> ElementType:
        code = int(code)
        return cls(Depth(code & _DEPTH_MASK), (code >> _CHANNEL_SHIFT) + 1)

    @classmethod
    def from_array(cls, array: Any) -> ElementType:
        """Derive the element type a host array would have once uploaded."""
        if not isinstance(array, numpy.ndarray):
            raise TypeMismatch(f"expected numpy.ndarray, got {type(array).__name__}")
        depth = _DTYPE_TO_DEPTH.get(array.dtype)
        if depth is None:
            raise TypeMismatch(f"unsupported host dtype {array.dtype}")
        if array.ndim == 2:
            return cls(depth, 1)
        if array.ndim == 3:
            return cls(depth, int(array.shape[2]))
        raise TypeMismatch(f"host image must be 2-D or 3-D, got {array.ndim}-D")

    def host_shape(self, rows: int, cols: int) -> tuple[int, ...]:
        if self.channels == 1:
            return (rows, cols)
        return (rows, cols, self.channels)

    def __str__(self) -> str:
        return f"CV_{self.depth.name[1:]}{self.depth.name[0]}C{self.channels}"


CV_8UC1 = ElementType(Depth.U8, 1)
CV_8UC3 = ElementType(Depth.U8, 3)
CV_8UC4 = ElementType(Depth.U8, 4)
CV_16UC1 = ElementType(Depth.U16, 1)
CV_16UC4 = ElementType(Depth.U16, 4)
CV_16SC1 = ElementType(Depth.S16, 1)
CV_16SC2 = ElementType(Depth.S16, 2)
CV_32SC1 = ElementType(Depth.S32, 1)
CV_32SC4 = ElementType(Depth.S32, 4)
CV_32FC1 = ElementType(Depth.F32, 1)
CV_32FC2 = ElementType(Depth.F32, 2)
CV_32FC4 = ElementType(Depth.F32, 4)
