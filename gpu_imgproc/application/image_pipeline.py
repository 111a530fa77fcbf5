from __future__ import annotations

from collections.abc import Callable, Sequence
from contextlib import ExitStack
from dataclasses import dataclass
from typing import Any

import numpy

from gpu_imgproc.infrastructure.device_buffer import DeviceBuffer
from gpu_imgproc.infrastructure.execution_stream import ExecutionStream, PendingWork
from logger.filtered_logger import LogChannel, debug

StepFn = Callable[[DeviceBuffer, DeviceBuffer, "ExecutionStream | None"], Any]


@dataclass(frozen=True, slots=True)
class PipelineStep:
    """One device-side stage: reads ``src``, writes ``dst``, optionally on a stream."""

    name: str
    run: StepFn


def dispatcher_step(name: str, sync_fn: Callable[..., Any], async_fn: Callable[..., Any]) -> PipelineStep:
    """Build a step from a ``(src, dst)`` callable and its ``(src, dst, stream)`` counterpart."""

    def run(src: DeviceBuffer, dst: DeviceBuffer, stream: ExecutionStream | None) -> Any:
        if stream is None:
            return sync_fn(src, dst)
        return async_fn(src, dst, stream)

    return PipelineStep(name=name, run=run)


def detector_step(name: str, detector: Any) -> PipelineStep:
    """Step for dispatchers exposing ``detect`` / ``detect_async`` (Canny, Hough)."""
    return dispatcher_step(name, detector.detect, detector.detect_async)


class ImagePipeline:
    """Uploads a host image, runs device steps in order and downloads the last output.

    Every intermediate buffer is owned by the pipeline run and released on
    every exit path.
    """

    def __init__(self, steps: Sequence[PipelineStep]) -> None:
        self.steps = tuple(steps)

    def run(self, host: numpy.ndarray) -> numpy.ndarray:
        with ExitStack() as scope:
            current = scope.enter_context(DeviceBuffer.from_host(host))
            for step in self.steps:
                output = scope.enter_context(DeviceBuffer())
                step.run(current, output, None)
                debug(LogChannel.DISPATCH, f"pipeline step '{step.name}' done")
                current = output
            if current.empty():
                return numpy.empty((0, 0), dtype=numpy.uint8)
            return current.download()

    def submit(self, host: numpy.ndarray, stream: ExecutionStream) -> PendingWork:
        """Enqueue the whole pipeline on ``stream``; ``result()`` returns the downloaded output."""
        buffers: list[DeviceBuffer] = []
        try:
            current = DeviceBuffer()
            buffers.append(current)
            current.upload_async(host, stream)
            for step in self.steps:
                output = DeviceBuffer()
                buffers.append(output)
                step.run(current, output, stream)
                current = output
            work = current.download_async(None, stream)
        except Exception:
            # release() drains whatever was already enqueued before freeing.
            for buffer in reversed(buffers):
                buffer.release()
            raise

        def _release_buffers(_: PendingWork) -> None:
            for buffer in reversed(buffers):
                buffer.release()

        work.add_done_callback(_release_buffers)
        return work
