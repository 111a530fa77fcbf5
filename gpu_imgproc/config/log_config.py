from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

from gpu_imgproc.config import load_imgproc_config
from logger.filtered_logger import configure_logger


def apply_log_config(config: dict[str, Any] | None = None, path: str | Path | None = None) -> None:
    """Apply the debug channel flags from the ``log`` section via the shared filtered logger."""
    if config is None:
        config = load_imgproc_config(path)
    channels: Dict[str, bool] = (config.get("log") or {}).get("channels", {}) or {}
    configure_logger(
        extreme_debug=channels.get("global"),
        transfer_debug=channels.get("transfer"),
        stream_debug=channels.get("stream"),
        dispatch_debug=channels.get("dispatch"),
    )
