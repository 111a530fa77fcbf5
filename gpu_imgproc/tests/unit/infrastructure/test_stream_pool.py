from __future__ import annotations

import numpy
import pytest

from gpu_imgproc.core.errors import StreamClosed
from gpu_imgproc.infrastructure.device_buffer import DeviceBuffer
from gpu_imgproc.infrastructure.stream_pool import StreamPool


def test_names_sharing_an_id_share_the_stream(fake_cuda) -> None:
    with StreamPool({"transfer": 1, "edges": 1, "matching": 2, "histogram": 0}) as pool:
        transfer = pool.acquire("transfer")
        edges = pool.acquire("edges")
        matching = pool.acquire("matching")

        assert transfer is edges
        assert matching is not transfer
        assert transfer.name == "transfer#1"
        assert pool.acquire("histogram") is None


def test_unknown_stream_name_raises_key_error(fake_cuda) -> None:
    pool = StreamPool({"transfer": 1})
    with pytest.raises(KeyError):
        pool.acquire("decode")


def test_synchronize_drains_only_requested_streams(fake_cuda, gray_image: numpy.ndarray) -> None:
    pool = StreamPool({"a": 1, "b": 2, "sync": 0})
    first = pool.acquire("a")
    second = pool.acquire("b")
    with DeviceBuffer() as buffer:
        work = buffer.upload_async(gray_image, first)
        pool.synchronize(["a", "sync"])
        assert work.completed
        assert second.native.waits == 0

        pool.synchronize()
        assert second.native.waits == 1
    pool.close()


def test_close_closes_every_stream(fake_cuda) -> None:
    pool = StreamPool({"a": 1, "b": 2})
    streams = [pool.acquire("a"), pool.acquire("b")]

    pool.close()

    assert all(stream.closed for stream in streams)
    with pytest.raises(StreamClosed):
        streams[0].wait_for_completion()
    # a later acquire builds a fresh stream
    assert pool.acquire("a") is not streams[0]
    pool.close()


def test_from_config_uses_streams_section(fake_cuda) -> None:
    pool = StreamPool.from_config({"streams": {"transfer": 3}})
    assert pool.stream_id("transfer") == 3

    bundled = StreamPool.from_config()
    assert bundled.stream_id("histogram") == 0
    assert StreamPool.from_config({"streams": None}).stream_map == {}
