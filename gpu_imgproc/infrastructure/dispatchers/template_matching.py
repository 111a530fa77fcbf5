from __future__ import annotations

from typing import Any

import numpy

from gpu_imgproc.core.element_type import CV_8UC1, CV_8UC3, CV_8UC4, CV_32FC1, ElementType
from gpu_imgproc.core.errors import InvalidParameter, ShapeMismatch, TypeMismatch
from gpu_imgproc.enums import TemplateMatchMethod
from gpu_imgproc.infrastructure import native_bridge
from gpu_imgproc.infrastructure.device_buffer import DeviceBuffer
from gpu_imgproc.infrastructure.dispatchers.base import (
    Dispatcher,
    dispatch,
    require_stream,
    require_input,
    require_non_negative,
    require_same_type,
)
from gpu_imgproc.infrastructure.execution_stream import ExecutionStream, PendingWork

_SUPPORTED_TYPES = (CV_8UC1, CV_8UC3, CV_8UC4, CV_32FC1)


class TemplateMatcher(Dispatcher):
    """Slides a template over a scene and writes a CV_32FC1 score map.

    The score map is (H - h + 1) x (W - w + 1) for a W x H scene and a
    w x h template. ``user_block_size`` is the (width, height) of the
    native processing block; (0, 0) lets OpenCV choose.
    """

    operation = "TemplateMatcher.match"

    def __init__(
        self,
        element_type: ElementType,
        method: TemplateMatchMethod = TemplateMatchMethod.CCOEFF_NORMED,
        user_block_size: tuple[int, int] = (0, 0),
    ) -> None:
        if element_type not in _SUPPORTED_TYPES:
            raise InvalidParameter(f"unsupported element type {element_type}", operation=self.operation)
        if not isinstance(method, TemplateMatchMethod):
            raise InvalidParameter(f"method must be a TemplateMatchMethod, got {method!r}", operation=self.operation)
        if not isinstance(user_block_size, (tuple, list)) or len(user_block_size) != 2:
            raise InvalidParameter(
                f"user_block_size must be a (width, height) pair, got {user_block_size!r}", operation=self.operation
            )
        width, height = (int(value) for value in user_block_size)
        require_non_negative(self.operation, "user_block_size width", width)
        require_non_negative(self.operation, "user_block_size height", height)
        self.element_type = element_type
        self.method = method
        self.user_block_size = (width, height)
        super().__init__()

    def _create_native(self) -> Any:
        factory = native_bridge.cuda_function("createTemplateMatching")
        if any(self.user_block_size):
            return factory(self.element_type.type_code, self.method.value, tuple(self.user_block_size))
        return factory(self.element_type.type_code, self.method.value)

    def match(self, image: DeviceBuffer, template: DeviceBuffer, result: DeviceBuffer) -> DeviceBuffer:
        return self._run(image, template, result, None)

    def match_async(
        self, image: DeviceBuffer, template: DeviceBuffer, result: DeviceBuffer, stream: ExecutionStream
    ) -> PendingWork:
        require_stream(self.operation, stream)
        return self._run(image, template, result, stream)

    def _run(
        self, image: DeviceBuffer, template: DeviceBuffer, result: DeviceBuffer, stream: ExecutionStream | None
    ) -> Any:
        require_input(self.operation, image, "image")
        require_input(self.operation, template, "template")
        if image.element_type != self.element_type:
            raise TypeMismatch(
                f"matcher built for {self.element_type}, image is {image.element_type}", operation=self.operation
            )
        require_same_type(self.operation, image, template, ("image", "template"))
        if template.rows > image.rows or template.cols > image.cols:
            raise ShapeMismatch(
                f"template {template.rows}x{template.cols} larger than image {image.rows}x{image.cols}",
                operation=self.operation,
            )
        native = self._native_object()

        def call(stream_kwargs: dict[str, Any]) -> Any:
            return native.match(image.native, template.native, result=result.native, **stream_kwargs)

        return dispatch(self.operation, call, inputs=(image, template), outputs=(result,), stream=stream)

    def best_match(self, scores: numpy.ndarray) -> tuple[float, tuple[int, int]]:
        """Return the best score and its (x, y) location in a downloaded score map."""
        scores = numpy.asarray(scores)
        flat_index = int(scores.argmin() if self.method.best_is_minimum else scores.argmax())
        y, x = numpy.unravel_index(flat_index, scores.shape)
        return float(scores[y, x]), (int(x), int(y))
