from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict

import pytest

from govdrop.dec import ZERO, dec
from govdrop.errors import ExportError
from govdrop.parsing import (
    _continuous_vesting,
    analyze_vesting_accounts,
    build_accounts,
    parse_account_types_by_addr,
    parse_balances_by_addr,
    parse_proposal,
    parse_validators_by_addr,
    parse_votes_by_addr,
)
from govdrop.votes import VoteOption


def test_build_accounts_from_export(export_dir: Path, export_addresses: Dict[str, str]) -> None:
    a = export_addresses
    accounts = {acc.address: acc for acc in build_accounts(export_dir)}

    # Module account skipped, validator account holds nothing.
    assert set(accounts) == {a["d1"], a["d2"]}
    assert [acc.address for acc in build_accounts(export_dir)] == sorted(accounts)

    d1 = accounts[a["d1"]]
    assert d1.staked_amount == dec(200)
    assert d1.liquid_amount == dec(10)
    assert d1.type == "/cosmos.auth.v1beta1.BaseAccount"
    assert [o.option for o in d1.vote] == [VoteOption.NO]
    [deleg] = d1.delegations
    assert deleg.validator_address == a["op1"]
    assert deleg.amount == dec(200)
    # Delegations carry the validator's own vote.
    assert [o.option for o in deleg.vote] == [VoteOption.YES]

    d2 = accounts[a["d2"]]
    assert d2.staked_amount == dec(100)
    # 5 uatom balance + 30 shares delegated to an inactive validator.
    assert d2.liquid_amount == dec(35)
    assert d2.vote == []
    assert d2.type == ""


def test_validators_get_their_account_vote(export_dir: Path, export_addresses: Dict[str, str]) -> None:
    votes = parse_votes_by_addr(export_dir)
    vals = parse_validators_by_addr(export_dir, votes)
    v = vals[export_addresses["op1"]]
    assert v.account_address == export_addresses["val1"]
    assert v.shares_to_tokens(dec(10)) == dec(20)
    assert [o.option for o in v.vote] == [VoteOption.YES]


def test_balances_filter_on_denom(export_dir: Path, export_addresses: Dict[str, str]) -> None:
    assert parse_balances_by_addr(export_dir, "ibc/ABC") == {export_addresses["d1"]: dec(7)}
    assert parse_balances_by_addr(export_dir, "ustake") == {}


def test_account_types_follow_nested_addresses(export_dir: Path, export_addresses: Dict[str, str]) -> None:
    types = parse_account_types_by_addr(export_dir)
    assert types[export_addresses["module"]] == "/cosmos.auth.v1beta1.ModuleAccount"


def test_parse_proposal(export_dir: Path) -> None:
    p = parse_proposal(export_dir)
    assert p.proposal_id == "848"
    assert p.title == "Reduce minting"
    assert p.status == "PROPOSAL_STATUS_REJECTED"
    assert p.final_tally_result.no == dec(20)
    assert p.final_tally_result.total() == dec(36)


def test_malformed_export_files(tmp_path: Path, addr: Callable[..., str]) -> None:
    with pytest.raises(FileNotFoundError):
        parse_votes_by_addr(tmp_path)

    (tmp_path / "votes.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(ExportError) as ei:
        parse_votes_by_addr(tmp_path)
    assert ei.value.reason == "json_decode_failed"

    (tmp_path / "votes.json").write_text(json.dumps({"voter": "x"}), encoding="utf-8")
    with pytest.raises(ExportError) as ei:
        parse_votes_by_addr(tmp_path)
    assert ei.value.reason == "expected_json_array"

    (tmp_path / "active_validators.json").write_text(
        json.dumps([{"operator_address": addr("cosmos", 1), "tokens": "1", "delegator_shares": "1"}]),
        encoding="utf-8",
    )
    with pytest.raises(ExportError) as ei:
        parse_validators_by_addr(tmp_path, {})
    assert ei.value.reason == "bad_operator_address"


def test_vesting_analysis(tmp_path: Path, addr: Callable[..., str]) -> None:
    v1, v2, v3, base = addr("cosmos", 21), addr("cosmos", 22), addr("cosmos", 23), addr("cosmos", 24)
    accounts = [
        {
            "@type": "/cosmos.vesting.v1beta1.ContinuousVestingAccount",
            "base_vesting_account": {
                "base_account": {"address": v1},
                "original_vesting": [{"denom": "uatom", "amount": "1000"}],
                "end_time": "3000",
            },
            "start_time": "1000",
        },
        {
            "@type": "/cosmos.vesting.v1beta1.DelayedVestingAccount",
            "base_vesting_account": {
                "base_account": {"address": v2},
                "original_vesting": [{"denom": "uatom", "amount": "20000000000"}],
                "end_time": "3000",
            },
        },
        {
            "@type": "/cosmos.vesting.v1beta1.ContinuousVestingAccount",
            "base_vesting_account": {
                "base_account": {"address": v3},
                "original_vesting": [{"denom": "uatom", "amount": "500"}],
                "end_time": "1200",
            },
            "start_time": "1000",
        },
        {"@type": "/cosmos.auth.v1beta1.BaseAccount", "address": base},
    ]
    (tmp_path / "auth_genesis.json").write_text(json.dumps({"accounts": accounts}), encoding="utf-8")

    s = analyze_vesting_accounts(
        tmp_path,
        now=datetime.fromtimestamp(1500, tz=timezone.utc),
        block_time=datetime.fromtimestamp(2000, tz=timezone.utc),
    )
    assert s.num_vesting == 3
    assert s.num_still_vesting == 2
    # Half of v1 vested at block time.
    assert s.total_vesting == dec(20_000_000_500)
    assert s.num_high_cap == 1
    assert s.high_cap_accounts == [v2]

    later = analyze_vesting_accounts(tmp_path, now=datetime.fromtimestamp(5000, tz=timezone.utc))
    assert later.num_still_vesting == 0
    assert later.total_vesting == ZERO


def test_continuous_vesting_rounds_the_vested_part() -> None:
    # 1000 x 2/3 = 666.67 vested, rounded to 667.
    assert _continuous_vesting(dec(1000), 0, 3000, 2000) == dec(333)
    assert _continuous_vesting(dec(1000), 0, 3000, 0) == dec(1000)
    assert _continuous_vesting(dec(1000), 0, 3000, 3000) == ZERO
