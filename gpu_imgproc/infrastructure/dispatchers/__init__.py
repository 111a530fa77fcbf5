from __future__ import annotations

from gpu_imgproc.infrastructure.dispatchers.base import Dispatcher
from gpu_imgproc.infrastructure.dispatchers.canny import CannyEdgeDetector
from gpu_imgproc.infrastructure.dispatchers.color import (
    alpha_comp,
    alpha_comp_async,
    gamma_correction,
    gamma_correction_async,
    swap_channels,
    swap_channels_async,
)
from gpu_imgproc.infrastructure.dispatchers.demosaicing import Demosaicer
from gpu_imgproc.infrastructure.dispatchers.filters import (
    bilateral_filter,
    bilateral_filter_async,
    blend_linear,
    blend_linear_async,
    mean_shift_filtering,
    mean_shift_filtering_async,
    mean_shift_proc,
    mean_shift_proc_async,
    mean_shift_segmentation,
    mean_shift_segmentation_async,
)
from gpu_imgproc.infrastructure.dispatchers.histogram import (
    calc_hist,
    calc_hist_async,
    equalize_hist,
    equalize_hist_async,
    even_levels,
    even_levels_async,
    hist_even,
    hist_even_async,
    hist_range,
    hist_range_async,
)
from gpu_imgproc.infrastructure.dispatchers.hough import HoughLinesDetector, HoughSegmentDetector
from gpu_imgproc.infrastructure.dispatchers.template_matching import TemplateMatcher

__all__ = [
    "Dispatcher",
    "CannyEdgeDetector",
    "HoughLinesDetector",
    "HoughSegmentDetector",
    "TemplateMatcher",
    "Demosaicer",
    "calc_hist",
    "calc_hist_async",
    "equalize_hist",
    "equalize_hist_async",
    "even_levels",
    "even_levels_async",
    "hist_even",
    "hist_even_async",
    "hist_range",
    "hist_range_async",
    "bilateral_filter",
    "bilateral_filter_async",
    "blend_linear",
    "blend_linear_async",
    "mean_shift_filtering",
    "mean_shift_filtering_async",
    "mean_shift_proc",
    "mean_shift_proc_async",
    "mean_shift_segmentation",
    "mean_shift_segmentation_async",
    "alpha_comp",
    "alpha_comp_async",
    "gamma_correction",
    "gamma_correction_async",
    "swap_channels",
    "swap_channels_async",
]
