"""Configuration: persisted defaults and per-process runtime settings."""

import json
from pathlib import Path
from typing import Optional

from .core.logging import get_logger

CONFIG_DIR = Path.home() / ".config" / "vpc-compiler"
CONFIG_FILE = CONFIG_DIR / "config.json"

OUTPUT_FORMATS = ("table", "json", "yaml")
NAT_REDUNDANCY_MODES = ("per-zone", "single-shared")
DEFAULT_OUTPUT_FORMAT = "table"
DEFAULT_NAT_REDUNDANCY = "per-zone"

logger = get_logger("config")


def _read_config() -> dict:
    if CONFIG_FILE.exists():
        try:
            return json.loads(CONFIG_FILE.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable config %s: %s", CONFIG_FILE, e)
    return {}


def _write_config(key: str, value) -> None:
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    config = _read_config()
    config[key] = value
    CONFIG_FILE.write_text(json.dumps(config))


def get_default_nat_redundancy() -> str:
    """Get default NAT placement from config or use default"""
    value = _read_config().get("nat_redundancy", DEFAULT_NAT_REDUNDANCY)
    return value if value in NAT_REDUNDANCY_MODES else DEFAULT_NAT_REDUNDANCY


def set_default_nat_redundancy(mode: str) -> None:
    """Set default NAT placement in config"""
    if mode not in NAT_REDUNDANCY_MODES:
        raise ValueError(
            f"Invalid NAT redundancy: {mode}. Use one of {', '.join(NAT_REDUNDANCY_MODES)}"
        )
    _write_config("nat_redundancy", mode)


def get_default_output_format() -> str:
    """Get default output format from config or use default"""
    value = _read_config().get("output_format", DEFAULT_OUTPUT_FORMAT)
    return value if value in OUTPUT_FORMATS else DEFAULT_OUTPUT_FORMAT


def set_default_output_format(fmt: str) -> None:
    """Set default output format in config"""
    if fmt not in OUTPUT_FORMATS:
        raise ValueError(f"Invalid format: {fmt}. Use one of {', '.join(OUTPUT_FORMATS)}")
    _write_config("output_format", fmt)


class RuntimeConfig:
    """Process-wide settings for the current CLI invocation.

    All instances share class-level state; call reset() between tests.
    """

    _instance: Optional["RuntimeConfig"] = None
    _output_format: Optional[str] = None
    _nat_redundancy: Optional[str] = None
    _state_file: Optional[str] = None
    _debug: bool = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._output_format = None
        cls._nat_redundancy = None
        cls._state_file = None
        cls._debug = False

    @classmethod
    def set_output_format(cls, fmt: str) -> None:
        if fmt not in OUTPUT_FORMATS:
            raise ValueError(
                f"Invalid format: {fmt}. Use one of {', '.join(OUTPUT_FORMATS)}"
            )
        cls._output_format = fmt

    @classmethod
    def get_output_format(cls) -> str:
        return cls._output_format or get_default_output_format()

    @classmethod
    def set_nat_redundancy(cls, mode: Optional[str]) -> None:
        if mode is not None and mode not in NAT_REDUNDANCY_MODES:
            raise ValueError(f"Invalid NAT redundancy: {mode}")
        cls._nat_redundancy = mode

    @classmethod
    def get_nat_redundancy(cls) -> str:
        return cls._nat_redundancy or get_default_nat_redundancy()

    @classmethod
    def set_state_file(cls, path: Optional[str]) -> None:
        cls._state_file = path

    @classmethod
    def get_state_file(cls) -> Optional[str]:
        return cls._state_file

    @classmethod
    def set_debug(cls, debug: bool) -> None:
        cls._debug = debug

    @classmethod
    def is_debug(cls) -> bool:
        return cls._debug
