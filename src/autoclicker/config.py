from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import jsonschema


class ConfigError(ValueError):
    pass


CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "fillText": {"type": "string"},
        "buttonSelector": {"type": "string", "minLength": 1},
        "textareaSelector": {"type": "string", "minLength": 1},
        "labelSelector": {"type": "string", "minLength": 1},
        "busyLabel": {"type": "string"},
        "minIntervalMs": {"type": "integer", "minimum": 0},
        "maxIntervalMs": {"type": "integer", "minimum": 0},
        "firstCheckDelayMs": {"type": "integer", "minimum": 0},
    },
}

# camelCase option name -> dataclass field
_FIELDS = {
    "fillText": "fill_text",
    "buttonSelector": "button_selector",
    "textareaSelector": "textarea_selector",
    "labelSelector": "label_selector",
    "busyLabel": "busy_label",
    "minIntervalMs": "min_interval_ms",
    "maxIntervalMs": "max_interval_ms",
    "firstCheckDelayMs": "first_check_delay_ms",
}

_ENV_STR = {
    "AUTOCLICKER_FILL_TEXT": "fill_text",
    "AUTOCLICKER_BUTTON_SELECTOR": "button_selector",
    "AUTOCLICKER_TEXTAREA_SELECTOR": "textarea_selector",
    "AUTOCLICKER_LABEL_SELECTOR": "label_selector",
    "AUTOCLICKER_BUSY_LABEL": "busy_label",
}

_ENV_INT = {
    "AUTOCLICKER_MIN_INTERVAL_MS": "min_interval_ms",
    "AUTOCLICKER_MAX_INTERVAL_MS": "max_interval_ms",
}


@dataclass(frozen=True)
class ClickerConfig:
    fill_text: str = "continue"
    button_selector: str = '[mattooltipclass="run-button-tooltip"]'
    textarea_selector: str = "textarea.gmat-body-medium"
    label_selector: str = "div.inner span"
    busy_label: str = "stop"
    min_interval_ms: int = 2000
    max_interval_ms: int = 10000
    first_check_delay_ms: int = 50

    def validate(self) -> "ClickerConfig":
        """Check the merged options against CONFIG_SCHEMA and return a copy with integer intervals."""
        try:
            jsonschema.validate(self.as_dict(), CONFIG_SCHEMA)
        except jsonschema.ValidationError as exc:
            raise ConfigError(f"invalid config: {exc.message}") from exc
        # JSON Schema "integer" also accepts 2000.0.
        config = replace(
            self,
            min_interval_ms=int(self.min_interval_ms),
            max_interval_ms=int(self.max_interval_ms),
            first_check_delay_ms=int(self.first_check_delay_ms),
        )
        if config.min_interval_ms > config.max_interval_ms:
            raise ConfigError(
                f"minIntervalMs ({config.min_interval_ms}) must not exceed maxIntervalMs ({config.max_interval_ms})"
            )
        return config

    def as_dict(self) -> Dict[str, Any]:
        return {option: getattr(self, name) for option, name in _FIELDS.items()}


def _load_file(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"config file is not valid JSON: {path}: {exc}") from exc
    try:
        jsonschema.validate(data, CONFIG_SCHEMA)
    except jsonschema.ValidationError as exc:
        raise ConfigError(f"invalid config {path}: {exc.message}") from exc
    return {_FIELDS[k]: v for k, v in data.items()}


def _from_env(env: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for key, name in _ENV_STR.items():
        if key in env:
            overrides[name] = env[key]
    for key, name in _ENV_INT.items():
        raw = env.get(key, "").strip()
        if not raw:
            continue
        try:
            overrides[name] = int(raw)
        except ValueError as exc:
            raise ConfigError(f"{key} must be an integer, got {raw!r}") from exc
    return overrides


def load_config(path: Optional[Path] = None, env: Optional[Mapping[str, str]] = None) -> ClickerConfig:
    """Resolve configuration: defaults, then the JSON file, then AUTOCLICKER_* env vars."""
    if env is None:
        env = os.environ
    config = ClickerConfig()
    if path is not None:
        if not path.exists():
            raise ConfigError(f"config file not found: {path}")
        config = replace(config, **_load_file(path))
    config = replace(config, **_from_env(env))
    return config.validate()
