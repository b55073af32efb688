# src/govdrop/config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from govdrop.distribution import DistributionParams, default_distribution_params

Json = Dict[str, Any]


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


@dataclass(frozen=True)
class DropConfig:
    # Directory holding the chain export JSON files.
    export_dir: str
    accounts_path: str
    output_dir: str

    denom: str
    source_prefix: str
    # Re-encode airdrop addresses to this prefix ("" keeps source addresses).
    target_prefix: str

    genesis_prefix: str
    ticker: str

    distributions: Tuple[DistributionParams, ...] = field(
        default_factory=lambda: (default_distribution_params(),)
    )

    log_level: str = "INFO"


_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

# Environment variables overriding file values.
_ENV_OVERRIDES = {
    "export_dir": "GOVDROP_EXPORT_DIR",
    "accounts_path": "GOVDROP_ACCOUNTS_PATH",
    "output_dir": "GOVDROP_OUTPUT_DIR",
    "denom": "GOVDROP_DENOM",
    "target_prefix": "GOVDROP_TARGET_PREFIX",
    "log_level": "GOVDROP_LOG_LEVEL",
}


def validate_config(cfg: DropConfig) -> None:
    """Fail-fast validation of operator config."""
    for name in ("export_dir", "accounts_path", "output_dir", "denom", "source_prefix", "genesis_prefix", "ticker"):
        v = getattr(cfg, name)
        if not isinstance(v, str) or not v.strip():
            raise ValueError(f"{name} must be a non-empty string")

    if cfg.target_prefix and cfg.target_prefix != cfg.target_prefix.strip().lower():
        raise ValueError(f"target_prefix must be lowercase without spaces; got: {cfg.target_prefix!r}")

    if not cfg.distributions:
        raise ValueError("at least one distribution parameter set is required")

    if str(cfg.log_level).strip().upper() not in _LOG_LEVELS:
        raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}; got: {cfg.log_level!r}")


def default_config() -> DropConfig:
    return DropConfig(
        export_dir="./data",
        accounts_path="./data/accounts.json",
        output_dir="./output",
        denom="uatom",
        source_prefix="cosmos",
        target_prefix="",
        genesis_prefix="govgen",
        ticker="govgen",
    )


def _load_raw(p: Path) -> Any:
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in {".yaml", ".yml"}:
        return yaml.safe_load(text)
    return json.loads(text)


def read_config_file(path: str) -> DropConfig:
    p = Path(path)
    raw = _load_raw(p)
    if not isinstance(raw, dict):
        raise ValueError("config must be a mapping (JSON object / YAML mapping)")

    d = default_config()

    dists_raw = raw.get("distributions")
    if dists_raw is None:
        distributions = d.distributions
    elif isinstance(dists_raw, list):
        distributions = tuple(DistributionParams.from_dict(x if isinstance(x, dict) else {}) for x in dists_raw)
    else:
        raise ValueError("distributions must be a list of parameter mappings")

    cfg = DropConfig(
        export_dir=_as_str(raw.get("export_dir"), d.export_dir),
        accounts_path=_as_str(raw.get("accounts_path"), d.accounts_path),
        output_dir=_as_str(raw.get("output_dir"), d.output_dir),
        denom=_as_str(raw.get("denom"), d.denom),
        source_prefix=_as_str(raw.get("source_prefix"), d.source_prefix),
        target_prefix=str(raw.get("target_prefix") or ""),
        genesis_prefix=_as_str(raw.get("genesis_prefix"), d.genesis_prefix),
        ticker=_as_str(raw.get("ticker"), d.ticker),
        distributions=distributions,
        log_level=_as_str(raw.get("log_level"), d.log_level),
    )

    validate_config(cfg)
    return cfg


def apply_env_overrides(cfg: DropConfig) -> DropConfig:
    changes: Json = {}
    for name, env in _ENV_OVERRIDES.items():
        v = os.environ.get(env)
        if v is not None and (v.strip() or name == "target_prefix"):
            changes[name] = v.strip()
    return replace(cfg, **changes) if changes else cfg


def load_config(*, config_path: Optional[str] = None) -> DropConfig:
    p = config_path or os.environ.get("GOVDROP_CONFIG_PATH")
    cfg = read_config_file(p) if p else default_config()
    cfg = apply_env_overrides(cfg)
    validate_config(cfg)
    return cfg
