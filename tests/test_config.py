from __future__ import annotations

import json
from pathlib import Path

import pytest

from autoclicker.config import ClickerConfig, ConfigError, load_config


def test_defaults() -> None:
    config = load_config(env={})
    assert config == ClickerConfig()
    assert config.fill_text == "continue"
    assert config.button_selector == '[mattooltipclass="run-button-tooltip"]'
    assert config.textarea_selector == "textarea.gmat-body-medium"
    assert (config.min_interval_ms, config.max_interval_ms) == (2000, 10000)


def test_file_options_override_defaults(tmp_path: Path) -> None:
    path = tmp_path / "clicker.json"
    path.write_text(json.dumps({"fillText": "go on", "minIntervalMs": 500, "maxIntervalMs": 900}))
    config = load_config(path, env={})
    assert config.fill_text == "go on"
    assert config.min_interval_ms == 500
    assert config.max_interval_ms == 900
    assert config.busy_label == "stop"


def test_env_overrides_file(tmp_path: Path) -> None:
    path = tmp_path / "clicker.json"
    path.write_text(json.dumps({"fillText": "from file"}))
    env = {"AUTOCLICKER_FILL_TEXT": "from env", "AUTOCLICKER_MAX_INTERVAL_MS": "4000"}
    config = load_config(path, env=env)
    assert config.fill_text == "from env"
    assert config.max_interval_ms == 4000


def test_unknown_option_rejected(tmp_path: Path) -> None:
    path = tmp_path / "clicker.json"
    path.write_text(json.dumps({"intervalMs": 10}))
    with pytest.raises(ConfigError, match="invalid config"):
        load_config(path, env={})


def test_wrong_type_rejected(tmp_path: Path) -> None:
    path = tmp_path / "clicker.json"
    path.write_text(json.dumps({"minIntervalMs": "fast"}))
    with pytest.raises(ConfigError):
        load_config(path, env={})


def test_malformed_json_rejected(tmp_path: Path) -> None:
    path = tmp_path / "clicker.json"
    path.write_text("{not json")
    with pytest.raises(ConfigError, match="not valid JSON"):
        load_config(path, env={})


def test_missing_file_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "nope.json", env={})


def test_inverted_interval_rejected() -> None:
    with pytest.raises(ConfigError, match="must not exceed"):
        load_config(env={"AUTOCLICKER_MIN_INTERVAL_MS": "5000", "AUTOCLICKER_MAX_INTERVAL_MS": "1000"})


def test_non_integer_env_interval_rejected() -> None:
    with pytest.raises(ConfigError, match="must be an integer"):
        load_config(env={"AUTOCLICKER_MIN_INTERVAL_MS": "2s"})


def test_as_dict_uses_option_names() -> None:
    data = ClickerConfig().as_dict()
    assert data["fillText"] == "continue"
    assert data["minIntervalMs"] == 2000
    assert set(data) == {
        "fillText",
        "buttonSelector",
        "textareaSelector",
        "labelSelector",
        "busyLabel",
        "minIntervalMs",
        "maxIntervalMs",
        "firstCheckDelayMs",
    }


def test_integral_float_intervals_become_ints(tmp_path: Path) -> None:
    path = tmp_path / "clicker.json"
    path.write_text(json.dumps({"minIntervalMs": 2000.0, "maxIntervalMs": 10000, "firstCheckDelayMs": 50.0}))
    config = load_config(path, env={})
    assert config.min_interval_ms == 2000
    assert type(config.min_interval_ms) is int
    assert type(config.first_check_delay_ms) is int


def test_fractional_interval_rejected(tmp_path: Path) -> None:
    path = tmp_path / "clicker.json"
    path.write_text(json.dumps({"minIntervalMs": 2000.5}))
    with pytest.raises(ConfigError):
        load_config(path, env={})


@pytest.mark.parametrize(
    "key",
    ["AUTOCLICKER_BUTTON_SELECTOR", "AUTOCLICKER_TEXTAREA_SELECTOR", "AUTOCLICKER_LABEL_SELECTOR"],
)
def test_empty_selector_from_env_rejected(key) -> None:
    with pytest.raises(ConfigError, match="invalid config"):
        load_config(env={key: ""})


def test_negative_interval_from_env_rejected() -> None:
    with pytest.raises(ConfigError, match="invalid config"):
        load_config(env={"AUTOCLICKER_MIN_INTERVAL_MS": "-5"})
