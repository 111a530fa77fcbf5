from __future__ import annotations

from unittest.mock import MagicMock

import numpy
import pytest

from gpu_imgproc.core.bayer_pattern import BayerPattern
from gpu_imgproc.core.element_type import CV_8UC1, CV_32FC1, Depth, ElementType
from gpu_imgproc.core.errors import EmptyInput, InvalidParameter, ShapeMismatch, TypeMismatch
from gpu_imgproc.enums import TemplateMatchMethod
from gpu_imgproc.infrastructure.device_buffer import DeviceBuffer
from gpu_imgproc.infrastructure.dispatchers import (
    CannyEdgeDetector,
    Demosaicer,
    HoughLinesDetector,
    HoughSegmentDetector,
    TemplateMatcher,
)
from gpu_imgproc.infrastructure.execution_stream import ExecutionStream, PendingWork


@pytest.mark.parametrize(
    "kwargs",
    [
        {"low_threshold": -1.0, "high_threshold": 10.0},
        {"low_threshold": 1.0, "high_threshold": -10.0},
        {"low_threshold": 1.0, "high_threshold": 10.0, "aperture_size": 4},
    ],
)
def test_canny_rejects_invalid_parameters(kwargs: dict) -> None:
    with pytest.raises(InvalidParameter):
        CannyEdgeDetector(**kwargs)


def test_dispatchers_are_immutable_and_lazy() -> None:
    detector = CannyEdgeDetector(50.0, 100.0)

    with pytest.raises(AttributeError):
        detector.low_threshold = 1.0
    assert detector._native is None
    assert repr(detector) == (
        "CannyEdgeDetector(low_threshold=50.0, high_threshold=100.0, aperture_size=3, l2_gradient=False)"
    )


def test_canny_sync_and_stream_paths_agree(fake_cuda, gray_image: numpy.ndarray) -> None:
    detector = CannyEdgeDetector(50.0, 128.0)
    stream = ExecutionStream(name="edges")

    with DeviceBuffer.from_host(gray_image) as src, DeviceBuffer() as sync_edges, DeviceBuffer() as async_edges:
        assert detector.detect(src, sync_edges) is sync_edges
        work = detector.detect_async(src, async_edges, stream)
        assert isinstance(work, PendingWork)
        assert work.result() is async_edges

        sync_host = sync_edges.download()
        async_host = async_edges.download()

    numpy.testing.assert_array_equal(sync_host, async_host)
    assert sync_host.shape == gray_image.shape
    assert len(fake_cuda.canny_instances) == 1
    assert fake_cuda.canny_instances[0].args == (50.0, 128.0, 3, False)
    assert fake_cuda.canny_instances[0].streams == [None, stream.native]


def test_release_drops_native_object(fake_cuda, gray_image: numpy.ndarray) -> None:
    with CannyEdgeDetector(50.0, 100.0) as detector:
        with DeviceBuffer.from_host(gray_image) as src, DeviceBuffer() as edges:
            detector.detect(src, edges)
        assert detector._native is fake_cuda.canny_instances[0]
    assert detector._native is None

    with DeviceBuffer.from_host(gray_image) as src, DeviceBuffer() as edges:
        detector.detect(src, edges)
    assert len(fake_cuda.canny_instances) == 2


def test_canny_validates_inputs(fake_cuda, gray_image: numpy.ndarray) -> None:
    detector = CannyEdgeDetector(50.0, 100.0)
    with DeviceBuffer() as empty, DeviceBuffer() as edges:
        with pytest.raises(EmptyInput):
            detector.detect(empty, edges)
    with DeviceBuffer.from_host(numpy.dstack([gray_image] * 3)) as colour, DeviceBuffer() as edges:
        with pytest.raises(TypeMismatch):
            detector.detect(colour, edges)
    with DeviceBuffer.from_host(gray_image) as src, DeviceBuffer() as edges:
        with pytest.raises(InvalidParameter):
            detector.detect_async(src, edges, None)
    # failed validation never builds the native detector
    assert fake_cuda.canny_instances == []


def test_canny_from_config_reads_defaults_section() -> None:
    config = {"defaults": {"canny": {"low_threshold": 10, "high_threshold": 30, "l2_gradient": True}}}

    detector = CannyEdgeDetector.from_config(config)

    assert (detector.low_threshold, detector.high_threshold, detector.aperture_size) == (10.0, 30.0, 3)
    assert detector.l2_gradient is True


def test_hough_parameters_and_config() -> None:
    with pytest.raises(InvalidParameter):
        HoughLinesDetector(rho=0, theta=0.01, threshold=10)
    with pytest.raises(InvalidParameter):
        HoughSegmentDetector(rho=1, theta=0.01, min_line_length=10, max_line_gap=-1)

    lines = HoughLinesDetector.from_config({"defaults": {"hough_lines": {"theta_degrees": 180, "threshold": 120}}})
    assert lines.theta == pytest.approx(numpy.pi)
    assert lines.threshold == 120

    segments = HoughSegmentDetector.from_config({"defaults": {}})
    assert (segments.min_line_length, segments.max_line_gap, segments.threshold) == (150, 50, -1)


def test_hough_lines_detect_and_unpack(fake_cuda, gray_image: numpy.ndarray) -> None:
    native = MagicMock()
    native.detect.side_effect = lambda src, lines=None, **kw: lines.write(
        numpy.array([[[50.0, 1.5708], [120.0, 0.0]]], dtype=numpy.float32)
    )
    fake_cuda.createHoughLinesDetector = MagicMock(return_value=native)
    detector = HoughLinesDetector(rho=1.0, theta=numpy.pi / 180, threshold=150)

    with DeviceBuffer.from_host(gray_image) as src, DeviceBuffer() as lines:
        detector.detect(src, lines)
        found = HoughLinesDetector.lines(lines.download())

    fake_cuda.createHoughLinesDetector.assert_called_once_with(1.0, numpy.pi / 180, 150, False, 4096)
    assert found.shape == (2, 2)
    assert found[0, 0] == pytest.approx(50.0)
    assert HoughLinesDetector.lines(None).shape == (0, 2)


def test_hough_segments_unpack() -> None:
    raw = numpy.array([[[0, 50, 199, 50], [120, 0, 120, 199]]], dtype=numpy.int32)

    segments = HoughSegmentDetector.segments(raw)

    assert segments.tolist() == [[0, 50, 199, 50], [120, 0, 120, 199]]
    assert HoughSegmentDetector.segments(numpy.empty((0,), dtype=numpy.int32)).shape == (0, 4)


def test_template_matcher_validation(fake_cuda, gray_image: numpy.ndarray) -> None:
    with pytest.raises(InvalidParameter):
        TemplateMatcher(CV_8UC1, method=5)  # type: ignore[arg-type]
    with pytest.raises(InvalidParameter):
        TemplateMatcher(ElementType(Depth.U8, 2))

    matcher = TemplateMatcher(CV_8UC1)
    with DeviceBuffer.from_host(gray_image) as image, DeviceBuffer() as result:
        with DeviceBuffer.from_host(numpy.zeros((100, 10), dtype=numpy.uint8)) as tall:
            with pytest.raises(ShapeMismatch):
                matcher.match(image, tall, result)
        with DeviceBuffer.from_host(gray_image[:8, :8].astype(numpy.float32)) as float_template:
            with pytest.raises(TypeMismatch):
                matcher.match(image, float_template, result)

    float_matcher = TemplateMatcher(CV_32FC1)
    with DeviceBuffer.from_host(gray_image) as image, DeviceBuffer() as result:
        with DeviceBuffer.from_host(gray_image[:8, :8]) as template:
            with pytest.raises(TypeMismatch):
                float_matcher.match(image, template, result)


def test_template_matcher_dispatches_and_picks_best(fake_cuda, gray_image: numpy.ndarray) -> None:
    scores = numpy.full((41, 57), 0.5, dtype=numpy.float32)
    scores[3, 9] = 0.0
    native = MagicMock()
    native.match.side_effect = lambda image, template, result=None, **kw: result.write(scores.copy())
    fake_cuda.createTemplateMatching = MagicMock(return_value=native)
    matcher = TemplateMatcher(CV_8UC1, method=TemplateMatchMethod.SQDIFF)
    stream = ExecutionStream(name="matching")

    with DeviceBuffer.from_host(gray_image) as image, DeviceBuffer.from_host(gray_image[:8, :8]) as template:
        with DeviceBuffer() as result:
            matcher.match_async(image, template, result, stream).wait()
            best = matcher.best_match(result.download())

    fake_cuda.createTemplateMatching.assert_called_once_with(CV_8UC1.type_code, TemplateMatchMethod.SQDIFF.value)
    assert native.match.call_args.kwargs["stream"] is stream.native
    assert best == (0.0, (9, 3))


def test_template_matcher_passes_block_size_as_pair(fake_cuda) -> None:
    fake_cuda.createTemplateMatching = MagicMock()
    with pytest.raises(InvalidParameter):
        TemplateMatcher(CV_8UC1, user_block_size=16)  # type: ignore[arg-type]
    with pytest.raises(InvalidParameter):
        TemplateMatcher(CV_8UC1, user_block_size=(16, -1))

    TemplateMatcher(CV_8UC1, user_block_size=[32, 16])._native_object()

    fake_cuda.createTemplateMatching.assert_called_once_with(
        CV_8UC1.type_code, TemplateMatchMethod.CCOEFF_NORMED.value, (32, 16)
    )


def test_demosaicer_passes_pattern_code(fake_cuda, gray_image: numpy.ndarray) -> None:
    def fake_demosaicing(src, code, dst=None, dcn=0, **kw):
        return dst.write(numpy.dstack([src.data] * dcn))

    fake_cuda.demosaicing = MagicMock(side_effect=fake_demosaicing)
    demosaicer = Demosaicer(BayerPattern.GR, destination_channels=4)

    with DeviceBuffer.from_host(gray_image) as src, DeviceBuffer() as dst:
        demosaicer.convert(src, dst)
        assert dst.shape == gray_image.shape + (4,)
        with DeviceBuffer.from_host(numpy.dstack([gray_image] * 3)) as colour:
            with pytest.raises(TypeMismatch):
                demosaicer.convert(colour, dst)

    assert fake_cuda.demosaicing.call_args.args[1] == 49
    assert fake_cuda.demosaicing.call_args.kwargs["dcn"] == 4


def test_demosaicer_rejects_invalid_configuration() -> None:
    with pytest.raises(InvalidParameter):
        Demosaicer("BG")  # type: ignore[arg-type]
    with pytest.raises(InvalidParameter):
        Demosaicer(BayerPattern.BG, destination_channels=1)
    assert Demosaicer(BayerPattern.BG).destination_channels == 3
