from __future__ import annotations

from typing import Any

import numpy
import pytest

from gpu_imgproc.core.element_type import CV_8UC1, ElementType
from gpu_imgproc.infrastructure import native_bridge
from logger import filtered_logger


# ---------------------------------------------------------------------------
# numpy-backed stand-ins for the cv2.cuda surface used by gpu_imgproc.
# ---------------------------------------------------------------------------
# Unit tests run on machines without a CUDA build of OpenCV, so the
# `cuda_module()` lookup in native_bridge is redirected to FakeCuda. The fakes
# only model what the wrapper relies on: GpuMat size/type/upload/download and
# the stream drain calls.


class FakeStream:
    def __init__(self, handle: int = 0) -> None:
        self.handle = handle
        self.waits = 0
        self.complete = True
        self.fail_with: BaseException | None = None

    def waitForCompletion(self) -> None:
        self.waits += 1
        if self.fail_with is not None:
            raise self.fail_with

    def queryIfComplete(self) -> bool:
        return self.complete


class FakeGpuMat:
    instances: list[FakeGpuMat] = []

    def __init__(self, rows: int | None = None, cols: int | None = None, type_code: int | None = None) -> None:
        self.data: numpy.ndarray | None = None
        self.type_code = 0
        self.release_calls = 0
        self.transfer_streams: list[Any] = []
        if rows is not None:
            element_type = ElementType.from_type_code(type_code)
            self.data = numpy.zeros(element_type.host_shape(rows, cols), dtype=element_type.numpy_dtype)
            self.type_code = int(type_code)
        FakeGpuMat.instances.append(self)

    def upload(self, array: numpy.ndarray, stream: Any = None) -> None:
        element_type = ElementType.from_array(array)
        self.data = numpy.array(array, copy=True).reshape(element_type.host_shape(array.shape[0], array.shape[1]))
        self.type_code = element_type.type_code
        self.transfer_streams.append(stream)

    def download(self, stream: Any = None, dst: numpy.ndarray | None = None) -> numpy.ndarray:
        self.transfer_streams.append(stream)
        if dst is None:
            element_type = ElementType.from_type_code(self.type_code)
            return self.data.reshape(element_type.host_shape(*self.data.shape[:2])).copy()
        numpy.copyto(dst, self.data)
        return dst

    def size(self) -> tuple[int, int]:
        if self.data is None:
            return (0, 0)
        return (int(self.data.shape[1]), int(self.data.shape[0]))

    def type(self) -> int:
        return self.type_code

    def empty(self) -> bool:
        return self.data is None or self.data.size == 0

    def release(self) -> None:
        self.release_calls += 1
        self.data = None

    def reshape(self, cn: int, rows: int = 0) -> FakeGpuMat:
        element_type = ElementType.from_type_code(self.type_code)
        channels = cn or element_type.channels
        rows = rows or int(self.data.shape[0])
        cols = self.data.size // (rows * channels)
        view = FakeGpuMat()
        view_type = ElementType(element_type.depth, channels)
        view.data = self.data.reshape(view_type.host_shape(rows, cols))
        view.type_code = view_type.type_code
        return view

    def write(self, array: numpy.ndarray) -> FakeGpuMat:
        """Helper for fake algorithms: store ``array`` as this mat's content."""
        self.data = array
        self.type_code = ElementType.from_array(array).type_code
        return self


class FakeCanny:
    """Thresholds the input instead of running Canny; enough to check data flow."""

    def __init__(self, low: float, high: float, aperture_size: int = 3, l2_gradient: bool = False) -> None:
        self.args = (low, high, aperture_size, l2_gradient)
        self.streams: list[Any] = []

    def detect(self, image: FakeGpuMat, edges: FakeGpuMat | None = None, stream: Any = None) -> FakeGpuMat:
        self.streams.append(stream)
        edges = edges if edges is not None else FakeGpuMat()
        return edges.write(numpy.where(image.data >= self.args[1], 255, 0).astype(numpy.uint8))


class FakeCuda:
    GpuMat = FakeGpuMat
    Stream = FakeStream

    def __init__(self) -> None:
        self.device = None
        self.canny_instances: list[FakeCanny] = []

    def wrapStream(self, handle: int) -> FakeStream:
        return FakeStream(handle)

    def getCudaEnabledDeviceCount(self) -> int:
        return 1

    def setDevice(self, index: int) -> None:
        self.device = index

    def createCannyEdgeDetector(self, *args: Any) -> FakeCanny:
        detector = FakeCanny(*args)
        self.canny_instances.append(detector)
        return detector


@pytest.fixture
def fake_cuda(monkeypatch: pytest.MonkeyPatch) -> FakeCuda:
    fake = FakeCuda()
    FakeGpuMat.instances = []
    monkeypatch.setattr(native_bridge, "cuda_module", lambda: fake)
    return fake


@pytest.fixture
def gray_image() -> numpy.ndarray:
    rng = numpy.random.default_rng(7)
    return rng.integers(0, 256, size=(48, 64), dtype=numpy.uint8)


@pytest.fixture
def gray_type() -> ElementType:
    return CV_8UC1


@pytest.fixture
def quiet_logger(monkeypatch: pytest.MonkeyPatch) -> filtered_logger.FilteredLogger:
    """Fresh shared logger with every debug channel off."""
    fresh = filtered_logger.FilteredLogger()
    fresh.configure(extreme_debug=False, transfer_debug=False, stream_debug=False, dispatch_debug=False)
    monkeypatch.setattr(filtered_logger, "_shared_logger", fresh)
    return fresh
