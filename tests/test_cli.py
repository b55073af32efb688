from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Iterator

import pytest

from govdrop import env
from govdrop.cli import main


@pytest.fixture(autouse=True)
def _isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for k in ("GOVDROP_CONFIG_PATH", "GOVDROP_TARGET_PREFIX", "GOVDROP_ACCOUNTS_PATH", "GOVDROP_DENOM"):
        monkeypatch.delenv(k, raising=False)
    monkeypatch.setattr(env, "_LOADED", True)
    monkeypatch.chdir(tmp_path)

    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    if hasattr(root, "_govdrop_configured"):
        delattr(root, "_govdrop_configured")


def _accounts(export_dir: Path, tmp_path: Path) -> Path:
    out = tmp_path / "accounts.json"
    assert main(["--log-level", "ERROR", "accounts", str(export_dir), "-o", str(out)]) == 0
    return out


def test_accounts_then_distribution(
    export_dir: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str], export_addresses: Dict[str, str]
) -> None:
    accounts = _accounts(export_dir, tmp_path)
    assert "2 accounts written" in capsys.readouterr().out

    out = tmp_path / "airdrop.json"
    assert main(["--log-level", "ERROR", "distribution", "--accounts", str(accounts), "--out", str(out)]) == 0
    text = capsys.readouterr().out
    assert "$ATOM distribution" in text
    assert "ATONE TOTAL SUPPLY" in text

    raw = json.loads(out.read_text(encoding="utf-8"))
    assert set(raw["addresses"]) == {export_addresses["d1"], export_addresses["d2"]}


def test_distribution_with_prefix_and_charts(export_dir: Path, tmp_path: Path) -> None:
    accounts = _accounts(export_dir, tmp_path)
    out = tmp_path / "airdrop.json"
    page = tmp_path / "page.html"
    rc = main(
        [
            "--log-level",
            "ERROR",
            "distribution",
            "--accounts",
            str(accounts),
            "--prefix",
            "atone",
            "--chart",
            "--chart-path",
            str(page),
            "--no-browser",
            "--out",
            str(out),
        ]
    )
    assert rc == 0
    assert page.is_file()
    raw = json.loads(out.read_text(encoding="utf-8"))
    assert all(a.startswith("atone1") for a in raw["addresses"])


def test_genesis_command(export_dir: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    accounts = _accounts(export_dir, tmp_path)
    dest = tmp_path / "genesis" / "bank.json"
    assert main(["--log-level", "ERROR", "genesis", "--accounts", str(accounts), "--dest", str(dest)]) == 0
    g = json.loads(dest.read_text(encoding="utf-8"))
    assert len(g["balances"]) == 2
    assert "2 balances written" in capsys.readouterr().out


def test_proposal_and_vesting_commands(export_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--log-level", "ERROR", "proposal", str(export_dir)]) == 0
    out = capsys.readouterr().out
    assert "Proposal 848: Reduce minting" in out
    assert "55.56 %" in out

    assert main(["--log-level", "ERROR", "vesting", str(export_dir)]) == 0
    assert "0/0 valid vesting accounts" in capsys.readouterr().out


def test_errors_exit_with_code_1(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    rc = main(["--log-level", "ERROR", "distribution", "--accounts", str(tmp_path / "missing.json")])
    assert rc == 1
    assert "error:" in capsys.readouterr().err

    bad = tmp_path / "accounts.json"
    bad.write_text(json.dumps([{"address": "cosmos1x", "staked_amount": "10", "vote": [{"option": 1, "weight": 1}]}]))
    rc = main(["--log-level", "ERROR", "distribution", "--accounts", str(bad)])
    assert rc == 1
    assert "non_voter_pool_empty" in capsys.readouterr().err
