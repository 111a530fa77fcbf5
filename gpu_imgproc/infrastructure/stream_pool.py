from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from gpu_imgproc.config import load_imgproc_config
from gpu_imgproc.infrastructure.execution_stream import ExecutionStream
from logger.filtered_logger import LogChannel, debug


class StreamPool:
    """Hands out one execution stream per configured stream id.

    Names map to ids; names sharing an id share the stream, so their work is
    ordered. Id 0 selects the synchronous path and yields ``None``.
    """

    def __init__(self, stream_map: dict[str, int]) -> None:
        self.stream_map = {str(name): int(stream_id) for name, stream_id in stream_map.items()}
        self._streams: dict[int, ExecutionStream] = {}

    @classmethod
    def from_config(cls, config: dict[str, Any] | None = None) -> StreamPool:
        if config is None:
            config = load_imgproc_config()
        streams = config.get("streams", {})
        if not isinstance(streams, dict):
            return cls({})
        return cls(streams)

    def stream_id(self, name: str) -> int:
        if name not in self.stream_map:
            raise KeyError(f"Unknown execution stream key: {name}")
        return self.stream_map[name]

    def acquire(self, name: str) -> ExecutionStream | None:
        """Return the stream for ``name``, creating it on first use."""
        stream_id = self.stream_id(name)
        if stream_id == 0:
            return None
        existing = self._streams.get(stream_id)
        if existing is not None:
            return existing
        created = ExecutionStream(name=f"{name}#{stream_id}")
        self._streams[stream_id] = created
        debug(LogChannel.STREAM, f"Stream pool created stream {stream_id} for '{name}'")
        return created

    def synchronize(self, names: Iterable[str] | None = None) -> None:
        """Drain the streams behind ``names`` (all created streams when omitted)."""
        if names is None:
            stream_ids = set(self._streams)
        else:
            stream_ids = {self.stream_id(name) for name in names}
        for stream_id in sorted(stream_ids):
            stream = self._streams.get(stream_id)
            if stream is not None:
                stream.wait_for_completion()

    def close(self) -> None:
        streams, self._streams = self._streams, {}
        first_error: Exception | None = None
        for stream_id in sorted(streams):
            try:
                streams[stream_id].close()
            except Exception as exc:
                # Keep closing the remaining streams; report the first failure.
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error

    def __enter__(self) -> StreamPool:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
