# acmbridge/app/config.py
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from acmbridge.core.errors import ConfigError

DEFAULT_FRONT_END_PORT = "/dev/ttyACM0"
DEFAULT_BACK_END_PORT = "/dev/ttyS3"


@dataclass(frozen=True)
class LinkConfig:
    port: str
    baudrate: int = 115200
    bytesize: int = 8
    parity: str = "N"
    # 8N2 is fixed by both peers; the loader rejects any other value
    stopbits: float = 2
    timeout: float = 0.1
    # empty = the endpoint's standard delimiter
    delimiters: Tuple[bytes, ...] = ()


@dataclass(frozen=True)
class FramingConfig:
    capacity: int = 10 * 1024
    slack: int = 100
    read_size: int = 1024


@dataclass(frozen=True)
class GatewayConfig:
    front_end: LinkConfig = field(default_factory=lambda: LinkConfig(DEFAULT_FRONT_END_PORT))
    back_end: LinkConfig = field(default_factory=lambda: LinkConfig(DEFAULT_BACK_END_PORT))
    framing: FramingConfig = field(default_factory=FramingConfig)
    correlation_timeout_s: float = 5.0
    stats_interval_s: float = 10.0
    reconnect_interval_s: float = 1.0
    frame_tap_size: int = 200
    forward: bool = True

    def with_ports(self, *, front_end: Optional[str] = None, back_end: Optional[str] = None) -> "GatewayConfig":
        cfg = self
        if front_end:
            cfg = replace(cfg, front_end=replace(cfg.front_end, port=front_end))
        if back_end:
            cfg = replace(cfg, back_end=replace(cfg.back_end, port=back_end))
        return cfg


# ---------------- YAML loading ----------------

_SCALAR_TYPES = {
    "port": str,
    "baudrate": int,
    "bytesize": int,
    "parity": str,
    "stopbits": float,
    "timeout": float,
    "capacity": int,
    "slack": int,
    "read_size": int,
    "correlation_timeout_s": float,
    "stats_interval_s": float,
    "reconnect_interval_s": float,
    "frame_tap_size": int,
    "forward": bool,
}


def parse_delimiter(text: str) -> bytes:
    """
    YAML delimiter to bytes. Accepts real control characters ("\\r\\n" in a
    double-quoted scalar) as well as escaped ones ('\\r\\n' single-quoted).
    """
    return text.encode("utf-8").decode("unicode_escape").encode("latin-1")


def _cast(section: str, key: str, value: Any) -> Any:
    expected = _SCALAR_TYPES[key]
    where = f"{section}.{key}" if section else key

    if expected is bool:
        if isinstance(value, bool):
            return value
        raise ConfigError(f"Invalid value for '{where}'.", hint=f"Expected true/false, got {value!r}")

    if expected is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"Invalid value for '{where}'.", hint=f"Expected int, got {type(value).__name__}")
        return value

    if expected is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"Invalid value for '{where}'.", hint=f"Expected number, got {type(value).__name__}")
        return float(value)

    if not isinstance(value, str):
        raise ConfigError(f"Invalid value for '{where}'.", hint=f"Expected str, got {type(value).__name__}")
    return value


def _check_keys(section: str, doc: Mapping[str, Any], allowed) -> None:
    unknown = sorted(set(doc) - set(allowed))
    if unknown:
        raise ConfigError(
            f"Unknown config key(s) in '{section or '<root>'}': {unknown}",
            hint=f"Valid keys: {sorted(allowed)}",
            details={"section": section, "keys": unknown},
        )


def _link_from_dict(section: str, doc: Any, base: LinkConfig) -> LinkConfig:
    if not isinstance(doc, Mapping):
        raise ConfigError(f"'{section}' must be a mapping.")
    allowed = {f.name for f in fields(LinkConfig)}
    _check_keys(section, doc, allowed)

    kwargs: Dict[str, Any] = {}
    for key, value in doc.items():
        if key == "delimiters":
            if isinstance(value, str):
                value = [value]
            if not isinstance(value, list) or not value or not all(isinstance(v, str) and v for v in value):
                raise ConfigError(
                    f"Invalid value for '{section}.delimiters'.",
                    hint="Expected a non-empty list of non-empty strings, e.g. [\"\\r\\n\"]",
                )
            kwargs[key] = tuple(parse_delimiter(v) for v in value)
        else:
            kwargs[key] = _cast(section, key, value)

    if "stopbits" in kwargs and kwargs["stopbits"] != 2:
        raise ConfigError(
            f"Invalid value for '{section}.stopbits'.",
            hint="Both peers are fixed at 8N2; stopbits must be 2",
            details={"section": section, "stopbits": kwargs["stopbits"]},
        )
    return replace(base, **kwargs)


def config_from_dict(doc: Optional[Mapping[str, Any]]) -> GatewayConfig:
    doc = doc or {}
    if not isinstance(doc, Mapping):
        raise ConfigError("Config root must be a mapping.")

    base = GatewayConfig()
    _check_keys("", doc, {f.name for f in fields(GatewayConfig)})

    kwargs: Dict[str, Any] = {}
    for key, value in doc.items():
        if key in ("front_end", "back_end"):
            kwargs[key] = _link_from_dict(key, value, getattr(base, key))
        elif key == "framing":
            if not isinstance(value, Mapping):
                raise ConfigError("'framing' must be a mapping.")
            _check_keys("framing", value, {f.name for f in fields(FramingConfig)})
            kwargs[key] = replace(base.framing, **{k: _cast("framing", k, v) for k, v in value.items()})
        else:
            kwargs[key] = _cast("", key, value)

    cfg = replace(base, **kwargs)
    validate(cfg)
    return cfg


def validate(cfg: GatewayConfig) -> None:
    fr = cfg.framing
    if fr.slack < 0 or fr.capacity <= fr.slack:
        raise ConfigError(
            "Framing slack must be smaller than capacity.",
            hint=f"capacity={fr.capacity} slack={fr.slack}",
        )
    if fr.read_size <= 0:
        raise ConfigError("framing.read_size must be positive.")
    if cfg.frame_tap_size <= 0:
        raise ConfigError("frame_tap_size must be positive.")
    if cfg.correlation_timeout_s <= 0:
        raise ConfigError("correlation_timeout_s must be positive.")


def load_config(path: Optional[str | Path] = None) -> GatewayConfig:
    """Load a YAML gateway config; no path means built-in defaults."""
    if path is None:
        return GatewayConfig()

    full_path = Path(path)
    if not full_path.exists():
        raise ConfigError(f"Config file not found: {full_path}", hint="Check --config.")

    try:
        with open(full_path, "r", encoding="utf-8") as f:
            doc = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(
            "Failed to parse config file.",
            hint=str(e),
            details={"path": str(full_path)},
        ) from None

    return config_from_dict(doc)
