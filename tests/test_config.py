from __future__ import annotations

import dataclasses
import json
from pathlib import Path

import pytest

from govdrop.config import default_config, load_config, read_config_file, validate_config
from govdrop.dec import dec
from govdrop.distribution import default_distribution_params

_ENV = (
    "GOVDROP_CONFIG_PATH",
    "GOVDROP_EXPORT_DIR",
    "GOVDROP_ACCOUNTS_PATH",
    "GOVDROP_OUTPUT_DIR",
    "GOVDROP_DENOM",
    "GOVDROP_TARGET_PREFIX",
    "GOVDROP_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for k in _ENV:
        monkeypatch.delenv(k, raising=False)


def test_defaults() -> None:
    cfg = load_config()
    assert cfg == default_config()
    assert cfg.denom == "uatom"
    assert cfg.target_prefix == ""
    assert cfg.distributions == (default_distribution_params(),)
    validate_config(cfg)


def test_yaml_config_with_several_distributions(tmp_path: Path) -> None:
    p = tmp_path / "govdrop.yaml"
    p.write_text(
        "\n".join(
            [
                "export_dir: /data/export",
                "target_prefix: atone",
                "log_level: debug",
                "distributions:",
                "  - {}",
                "  - no_multiplier: 2",
                "    malus: 0.9",
                "    supply_mint_denominator: 10",
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    cfg = read_config_file(str(p))
    assert cfg.export_dir == "/data/export"
    assert cfg.accounts_path == "./data/accounts.json"
    assert cfg.target_prefix == "atone"
    assert len(cfg.distributions) == 2
    assert cfg.distributions[0] == default_distribution_params()
    second = cfg.distributions[1]
    assert second.no_multiplier == dec(2)
    assert second.malus == dec("0.9")
    assert second.supply_mint_factor == dec("0.1")


def test_json_config_and_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    p = tmp_path / "govdrop.json"
    p.write_text(json.dumps({"denom": "ustake", "output_dir": "/out"}), encoding="utf-8")
    monkeypatch.setenv("GOVDROP_CONFIG_PATH", str(p))
    monkeypatch.setenv("GOVDROP_OUTPUT_DIR", "/elsewhere")

    cfg = load_config()
    assert cfg.denom == "ustake"
    assert cfg.output_dir == "/elsewhere"


def test_invalid_configs(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        validate_config(dataclasses.replace(default_config(), target_prefix="ATONE"))
    with pytest.raises(ValueError):
        validate_config(dataclasses.replace(default_config(), distributions=()))
    with pytest.raises(ValueError):
        validate_config(dataclasses.replace(default_config(), log_level="LOUD"))

    p = tmp_path / "bad.yaml"
    p.write_text("- not\n- a mapping\n", encoding="utf-8")
    with pytest.raises(ValueError):
        read_config_file(str(p))

    p.write_text("distributions:\n  - malus: -1\n", encoding="utf-8")
    with pytest.raises(ValueError):
        read_config_file(str(p))
