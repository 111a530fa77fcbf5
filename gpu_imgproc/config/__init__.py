from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from env_utils import parse_int_env


_CONFIG_FILE = Path(__file__).parent / "imgproc.yaml"


def load_imgproc_config(path: str | Path | None = None) -> dict[str, Any]:
    """Load the device, stream, dispatcher-default and log settings.

    ``IMGPROC_DEVICE`` overrides the configured CUDA device index.
    """
    config_file = Path(path) if path is not None else _CONFIG_FILE
    if not config_file.exists():
        raise FileNotFoundError(f"Missing imgproc config: {config_file}")
    with config_file.open("r", encoding="utf-8") as stream:
        config = yaml.safe_load(stream) or {}
    device = parse_int_env("IMGPROC_DEVICE")
    if device is not None:
        config["device"] = device
    return config


def dispatcher_defaults(name: str, config: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return the ``defaults.<name>`` section, loading the bundled config when none is given."""
    if config is None:
        config = load_imgproc_config()
    defaults = config.get("defaults") or {}
    section = defaults.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"defaults.{name} must be a mapping, got {type(section).__name__}")
    return section
