from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict

import pytest

# Ensure local "src/" takes precedence over any globally-installed "govdrop" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)

from bech32 import bech32_encode, convertbits  # noqa: E402


def make_address(hrp: str, seed: int, length: int = 20) -> str:
    return bech32_encode(hrp, convertbits(bytes([seed]) * length, 8, 5))


@pytest.fixture
def addr() -> Callable[..., str]:
    return make_address


def _write(p: Path, obj: Any) -> None:
    p.write_text(json.dumps(obj), encoding="utf-8")


@pytest.fixture
def export_dir(tmp_path: Path) -> Path:
    """Small chain export.

    - one active validator (tokens/shares = 2) voting YES, one inactive one
    - d1 votes NO, delegates 100 shares, holds 10 uatom
    - d2 does not vote, delegates 50 shares to the active validator and 30
      to the inactive one, holds 5 uatom
    - a module account holding 1000 uatom
    """
    d = tmp_path / "export"
    d.mkdir()
    a = _addresses()

    _write(
        d / "votes.json",
        [
            {"voter": a["val1"], "options": [{"option": "VOTE_OPTION_YES", "weight": "1.000000000000000000"}]},
            {"voter": a["d1"], "options": [{"option": "VOTE_OPTION_NO", "weight": "1.000000000000000000"}]},
        ],
    )
    _write(
        d / "active_validators.json",
        [{"operator_address": a["op1"], "tokens": "2000", "delegator_shares": "1000.000000000000000000"}],
    )
    _write(
        d / "delegations.json",
        [
            {"delegator_address": a["d1"], "validator_address": a["op1"], "shares": "100.000000000000000000"},
            {"delegator_address": a["d2"], "validator_address": a["op1"], "shares": "50.000000000000000000"},
            {"delegator_address": a["d2"], "validator_address": a["op2"], "shares": "30.000000000000000000"},
        ],
    )
    _write(
        d / "balances.json",
        [
            {"address": a["d1"], "coins": [{"denom": "ibc/ABC", "amount": "7"}, {"denom": "uatom", "amount": "10"}]},
            {"address": a["d2"], "coins": [{"denom": "uatom", "amount": "5"}]},
            {"address": a["module"], "coins": [{"denom": "uatom", "amount": "1000"}]},
        ],
    )
    _write(
        d / "auth_genesis.json",
        {
            "accounts": [
                {"@type": "/cosmos.auth.v1beta1.BaseAccount", "address": a["d1"]},
                {
                    "@type": "/cosmos.auth.v1beta1.ModuleAccount",
                    "base_account": {"address": a["module"]},
                    "name": "distribution",
                },
            ]
        },
    )
    _write(
        d / "prop.json",
        {
            "id": 848,
            "content": {"title": "Reduce minting"},
            "status": "PROPOSAL_STATUS_REJECTED",
            "final_tally_result": {
                "yes_count": "10",
                "abstain_count": "5",
                "no_count": "20",
                "no_with_veto_count": "1",
            },
            "voting_end_time": "2023-11-25T21:00:28Z",
        },
    )
    return d


def _addresses() -> Dict[str, str]:
    return {
        "op1": make_address("cosmosvaloper", 1),
        "val1": make_address("cosmos", 1),
        "op2": make_address("cosmosvaloper", 2),
        "d1": make_address("cosmos", 10),
        "d2": make_address("cosmos", 11),
        "module": make_address("cosmos", 12),
    }


@pytest.fixture
def export_addresses() -> Dict[str, str]:
    return _addresses()
