from __future__ import annotations

from enum import Enum

import numpy

from gpu_imgproc.core.errors import InvalidParameter, TypeMismatch

# OpenCV COLOR_Bayer*2BGR conversion codes.
_COLOR_BAYER_BG2BGR = 46
_COLOR_BAYER_GB2BGR = 47
_COLOR_BAYER_RG2BGR = 48
_COLOR_BAYER_GR2BGR = 49


class BayerPattern(Enum):
    """Colour-filter-array layouts of a single-channel Bayer sensor.

    ``channel_table[y % 2][x % 2]`` is the BGR channel index the sensor
    samples at that position of the 2x2 tile.
    """

    BG = ((2, 1), (1, 0))
    GB = ((1, 2), (0, 1))
    RG = ((0, 1), (1, 2))
    GR = ((1, 0), (2, 1))

    @property
    def channel_table(self) -> tuple[tuple[int, int], tuple[int, int]]:
        return self.value

    @property
    def to_bgr_code(self) -> int:
        return _TO_BGR_CODES[self]

    @classmethod
    def parse(cls, name: str) -> BayerPattern:
        try:
            return cls[str(name).strip().upper()]
        except KeyError:
            raise InvalidParameter(f"invalid Bayer pattern: {name!r}", operation="BayerPattern.parse") from None

    def mosaic(self, bgr: numpy.ndarray) -> numpy.ndarray:
        """Sample a BGR host image through this pattern into a CV_8UC1 Bayer image."""
        if bgr.ndim != 3 or bgr.shape[2] < 3:
            raise TypeMismatch(f"expected a 3-channel BGR image, got shape {bgr.shape}", operation="BayerPattern.mosaic")
        if bgr.dtype != numpy.uint8:
            raise TypeMismatch(f"expected uint8 pixels, got {bgr.dtype}", operation="BayerPattern.mosaic")
        rows, cols = bgr.shape[:2]
        table = numpy.asarray(self.channel_table, dtype=numpy.intp)
        channel = table[numpy.arange(rows)[:, None] % 2, numpy.arange(cols)[None, :] % 2]
        return numpy.take_along_axis(bgr[:, :, :3], channel[:, :, None], axis=2)[:, :, 0].copy()


_TO_BGR_CODES = {
    BayerPattern.BG: _COLOR_BAYER_BG2BGR,
    BayerPattern.GB: _COLOR_BAYER_GB2BGR,
    BayerPattern.RG: _COLOR_BAYER_RG2BGR,
    BayerPattern.GR: _COLOR_BAYER_GR2BGR,
}
