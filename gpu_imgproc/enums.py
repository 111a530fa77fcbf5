from enum import Enum


class BorderMode(Enum):
    """Pixel extrapolation used by filters at image borders (OpenCV BORDER_* codes)."""

    CONSTANT = 0
    REPLICATE = 1
    REFLECT = 2
    WRAP = 3
    REFLECT_101 = 4
    DEFAULT = 4


class AlphaCompOp(Enum):
    """Porter-Duff compositing operators accepted by ``alpha_comp``."""

    OVER = 0
    IN = 1
    OUT = 2
    ATOP = 3
    XOR = 4
    PLUS = 5
    OVER_PREMUL = 6
    IN_PREMUL = 7
    OUT_PREMUL = 8
    ATOP_PREMUL = 9
    XOR_PREMUL = 10
    PLUS_PREMUL = 11
    PREMUL = 12


class TemplateMatchMethod(Enum):
    """Comparison metrics for template matching (OpenCV TM_* codes)."""

    SQDIFF = 0
    SQDIFF_NORMED = 1
    CCORR = 2
    CCORR_NORMED = 3
    CCOEFF = 4
    CCOEFF_NORMED = 5

    @property
    def best_is_minimum(self) -> bool:
        return self in (TemplateMatchMethod.SQDIFF, TemplateMatchMethod.SQDIFF_NORMED)
