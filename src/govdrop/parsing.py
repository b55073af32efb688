# src/govdrop/parsing.py
from __future__ import annotations

"""Chain export readers.

An export directory holds the JSON files extracted from the source chain's
state export at the proposal height:

  votes.json              [ {voter, options: [{option, weight}]} ]
  delegations.json        [ {delegator_address, validator_address, shares} ]
  active_validators.json  [ {operator_address, tokens, delegator_shares} ]
  balances.json           [ {address, coins: [{denom, amount}]} ]
  auth_genesis.json       { accounts: [ {"@type": ..., ...} ] }   (optional)
  prop.json               the reference proposal

build_accounts() joins them into the Account records consumed by the
distribution engine.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from govdrop.accounts import Account, Delegation
from govdrop.bech32_addr import convert_bech32
from govdrop.dec import ZERO, add, dec, mul, quo, round_int, sub
from govdrop.errors import AddressConversionError, ExportError
from govdrop.logs import log_event
from govdrop.votes import WeightedVoteOption, parse_vote_options

Json = Dict[str, Any]

log = logging.getLogger("govdrop.parsing")

VOTES_FILE = "votes.json"
DELEGATIONS_FILE = "delegations.json"
VALIDATORS_FILE = "active_validators.json"
BALANCES_FILE = "balances.json"
AUTH_GENESIS_FILE = "auth_genesis.json"
PROPOSAL_FILE = "prop.json"

# Time of prop 848: 2023-11-25 22:00:28 +0100 CET
PROPOSAL_BLOCK_TIME = datetime.fromtimestamp(1700946028, tz=timezone.utc)


def _read_json(path: Path) -> Any:
    if not path.is_file():
        raise FileNotFoundError(str(path))
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ExportError("invalid_export", "json_decode_failed", {"path": str(path), "error": str(e)}) from e


def _read_json_list(path: Path) -> List[Any]:
    raw = _read_json(path)
    if not isinstance(raw, list):
        raise ExportError("invalid_export", "expected_json_array", {"path": str(path)})
    return raw


def _as_str(v: Any) -> str:
    return v.strip() if isinstance(v, str) else ""


def _as_dec(v: Any, *, path: Path, what: str) -> Decimal:
    try:
        return dec(v)
    except ValueError as e:
        raise ExportError("invalid_export", f"bad_{what}", {"path": str(path), "value": repr(v)}) from e


@dataclass(frozen=True)
class RawDelegation:
    delegator_address: str
    validator_address: str
    shares: Decimal


@dataclass(frozen=True)
class Validator:
    operator_address: str
    account_address: str
    tokens: Decimal
    delegator_shares: Decimal
    vote: List[WeightedVoteOption] = field(default_factory=list)

    def shares_to_tokens(self, shares: Decimal) -> Decimal:
        if self.delegator_shares == ZERO:
            return ZERO
        return quo(mul(shares, self.tokens), self.delegator_shares)


class TallyResult(BaseModel):
    yes: Decimal = Field(default=ZERO, validation_alias=AliasChoices("yes", "yes_count"))
    abstain: Decimal = Field(default=ZERO, validation_alias=AliasChoices("abstain", "abstain_count"))
    no: Decimal = Field(default=ZERO, validation_alias=AliasChoices("no", "no_count"))
    no_with_veto: Decimal = Field(default=ZERO, validation_alias=AliasChoices("no_with_veto", "no_with_veto_count"))

    model_config = {"extra": "allow"}

    @field_validator("yes", "abstain", "no", "no_with_veto", mode="before")
    @classmethod
    def _parse_amount(cls, v: Any) -> Decimal:
        return dec(v if v is not None else 0)

    def total(self) -> Decimal:
        return add(self.yes, self.abstain, self.no, self.no_with_veto)


class Proposal(BaseModel):
    proposal_id: str = Field(default="", validation_alias=AliasChoices("proposal_id", "id"))
    content: Json = Field(default_factory=dict)
    status: str = Field(default="")
    final_tally_result: TallyResult = Field(default_factory=TallyResult)
    voting_end_time: str = Field(default="")

    # Forward compatible with newer export shapes.
    model_config = {"extra": "allow"}

    @field_validator("proposal_id", mode="before")
    @classmethod
    def _parse_id(cls, v: Any) -> str:
        return str(v if v is not None else "").strip()

    @property
    def title(self) -> str:
        return _as_str(self.content.get("title")) or _as_str((self.model_extra or {}).get("title"))


def parse_votes_by_addr(export_dir: str | Path) -> Dict[str, List[WeightedVoteOption]]:
    path = Path(export_dir) / VOTES_FILE
    out: Dict[str, List[WeightedVoteOption]] = {}
    for rec in _read_json_list(path):
        if not isinstance(rec, dict):
            raise ExportError("invalid_export", "vote_not_object", {"path": str(path)})
        voter = _as_str(rec.get("voter"))
        if not voter:
            raise ExportError("invalid_export", "vote_missing_voter", {"path": str(path)})
        try:
            out[voter] = parse_vote_options(rec)
        except (ValueError, ValidationError) as e:
            raise ExportError("invalid_export", "bad_vote", {"path": str(path), "voter": voter, "error": str(e)}) from e
    log_event(log, "parsed_votes", votes=len(out))
    return out


def parse_delegations_by_addr(export_dir: str | Path) -> Dict[str, List[RawDelegation]]:
    path = Path(export_dir) / DELEGATIONS_FILE
    out: Dict[str, List[RawDelegation]] = {}
    n = 0
    for rec in _read_json_list(path):
        if not isinstance(rec, dict):
            raise ExportError("invalid_export", "delegation_not_object", {"path": str(path)})
        d = RawDelegation(
            delegator_address=_as_str(rec.get("delegator_address")),
            validator_address=_as_str(rec.get("validator_address")),
            shares=_as_dec(rec.get("shares"), path=path, what="shares"),
        )
        if not d.delegator_address or not d.validator_address:
            raise ExportError("invalid_export", "delegation_missing_address", {"path": str(path)})
        out.setdefault(d.delegator_address, []).append(d)
        n += 1
    log_event(log, "parsed_delegations", delegations=n, delegators=len(out))
    return out


def parse_validators_by_addr(
    export_dir: str | Path,
    votes_by_addr: Dict[str, List[WeightedVoteOption]],
    *,
    account_prefix: str = "cosmos",
) -> Dict[str, Validator]:
    """Active validators by operator address, each carrying its own vote."""
    path = Path(export_dir) / VALIDATORS_FILE
    valoper_prefix = f"{account_prefix}valoper"
    out: Dict[str, Validator] = {}
    for rec in _read_json_list(path):
        if not isinstance(rec, dict):
            raise ExportError("invalid_export", "validator_not_object", {"path": str(path)})
        op = _as_str(rec.get("operator_address"))
        try:
            acc_addr = convert_bech32(op, valoper_prefix, account_prefix)
        except AddressConversionError as e:
            raise ExportError("invalid_export", "bad_operator_address", {"path": str(path), "operator_address": op}) from e
        out[op] = Validator(
            operator_address=op,
            account_address=acc_addr,
            tokens=_as_dec(rec.get("tokens"), path=path, what="tokens"),
            delegator_shares=_as_dec(rec.get("delegator_shares"), path=path, what="delegator_shares"),
            vote=list(votes_by_addr.get(acc_addr, [])),
        )
    log_event(log, "parsed_validators", validators=len(out))
    return out


def parse_balances_by_addr(export_dir: str | Path, denom: str) -> Dict[str, Decimal]:
    path = Path(export_dir) / BALANCES_FILE
    out: Dict[str, Decimal] = {}
    for rec in _read_json_list(path):
        if not isinstance(rec, dict):
            raise ExportError("invalid_export", "balance_not_object", {"path": str(path)})
        addr = _as_str(rec.get("address"))
        coins = rec.get("coins") if isinstance(rec.get("coins"), list) else []
        for c in coins:
            if isinstance(c, dict) and c.get("denom") == denom:
                out[addr] = _as_dec(c.get("amount"), path=path, what="amount")
                break
    log_event(log, "parsed_balances", denom=denom, balances=len(out))
    return out


def _account_address(acc: Json) -> str:
    """Address of an auth genesis account, whatever its concrete type."""
    if _as_str(acc.get("address")):
        return _as_str(acc["address"])
    for key in ("base_account", "base_vesting_account"):
        sub_acc = acc.get(key)
        if isinstance(sub_acc, dict):
            addr = _account_address(sub_acc)
            if addr:
                return addr
    return ""


def _auth_accounts(export_dir: str | Path) -> List[Json]:
    path = Path(export_dir) / AUTH_GENESIS_FILE
    raw = _read_json(path)
    accounts = raw.get("accounts") if isinstance(raw, dict) else None
    if not isinstance(accounts, list):
        raise ExportError("invalid_export", "auth_accounts_missing", {"path": str(path)})
    return [a for a in accounts if isinstance(a, dict)]


def parse_account_types_by_addr(export_dir: str | Path) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for acc in _auth_accounts(export_dir):
        addr = _account_address(acc)
        if addr:
            out[addr] = _as_str(acc.get("@type"))
    log_event(log, "parsed_account_types", accounts=len(out))
    return out


def parse_proposal(export_dir: str | Path) -> Proposal:
    path = Path(export_dir) / PROPOSAL_FILE
    raw = _read_json(path)
    if not isinstance(raw, dict):
        raise ExportError("invalid_export", "proposal_not_object", {"path": str(path)})
    try:
        return Proposal.model_validate(raw)
    except ValidationError as e:
        raise ExportError("invalid_export", "bad_proposal", {"path": str(path), "error": str(e)}) from e


def build_accounts(export_dir: str | Path, denom: str = "uatom", *, account_prefix: str = "cosmos") -> List[Account]:
    """Join the export files into one Account per address holding tokens.

    Staked amounts are converted from delegation shares with each validator's
    tokens/shares ratio. Delegations to validators outside the active set
    carry no voting power and are counted as liquid. Module accounts are
    skipped.
    """
    d = Path(export_dir)
    votes = parse_votes_by_addr(d)
    validators = parse_validators_by_addr(d, votes, account_prefix=account_prefix)
    delegations = parse_delegations_by_addr(d)
    balances = parse_balances_by_addr(d, denom)
    types = parse_account_types_by_addr(d) if (d / AUTH_GENESIS_FILE).is_file() else {}

    accounts: List[Account] = []
    skipped_modules = 0
    inactive_delegations = 0
    for addr in sorted(set(balances) | set(delegations)):
        acc_type = types.get(addr, "")
        if "ModuleAccount" in acc_type:
            skipped_modules += 1
            continue

        liquid = balances.get(addr, ZERO)
        staked = ZERO
        delegs: List[Delegation] = []
        for raw in delegations.get(addr, []):
            val = validators.get(raw.validator_address)
            if val is None:
                inactive_delegations += 1
                liquid = add(liquid, raw.shares)
                continue
            amount = val.shares_to_tokens(raw.shares)
            staked = add(staked, amount)
            delegs.append(Delegation(amount=amount, validator_address=val.operator_address, vote=val.vote))

        accounts.append(
            Account(
                address=addr,
                type=acc_type,
                liquid_amount=liquid,
                staked_amount=staked,
                vote=votes.get(addr, []),
                delegations=delegs,
            )
        )

    log_event(
        log,
        "built_accounts",
        accounts=len(accounts),
        skipped_module_accounts=skipped_modules,
        inactive_delegations=inactive_delegations,
    )
    return accounts


@dataclass
class VestingSummary:
    num_vesting: int = 0
    num_still_vesting: int = 0
    total_vesting: Decimal = ZERO
    num_high_cap: int = 0
    high_cap_accounts: List[str] = field(default_factory=list)


def _coin_amount(coins: Any, denom: str) -> Decimal:
    for c in coins if isinstance(coins, list) else []:
        if isinstance(c, dict) and c.get("denom") == denom:
            return dec(c.get("amount") or 0)
    return ZERO


def _as_ts(v: Any) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return 0


def _continuous_vesting(original: Decimal, start: int, end: int, at: int) -> Decimal:
    if at <= start:
        return original
    if at >= end or end <= start:
        return ZERO
    vested = round_int(quo(mul(original, dec(at - start)), dec(end - start)))
    return sub(original, dec(vested))


def analyze_vesting_accounts(
    export_dir: str | Path,
    *,
    denom: str = "uatom",
    now: Optional[datetime] = None,
    block_time: datetime = PROPOSAL_BLOCK_TIME,
    high_cap: Decimal = dec(10_000_000_000),
) -> VestingSummary:
    """Vesting accounts still vesting now, and what they held vesting at block_time."""
    now_ts = int((now or datetime.now(tz=timezone.utc)).timestamp())
    block_ts = int(block_time.timestamp())
    out = VestingSummary()

    for acc in _auth_accounts(export_dir):
        t = _as_str(acc.get("@type"))
        if "Vesting" not in t:
            continue
        out.num_vesting += 1
        base = acc.get("base_vesting_account") if isinstance(acc.get("base_vesting_account"), dict) else {}
        end = _as_ts(base.get("end_time"))
        if end <= now_ts:
            continue

        original = _coin_amount(base.get("original_vesting"), denom)
        if "ContinuousVestingAccount" in t:
            amount = _continuous_vesting(original, _as_ts(acc.get("start_time")), end, block_ts)
        elif "DelayedVestingAccount" in t:
            amount = original
        else:
            continue

        out.num_still_vesting += 1
        out.total_vesting = add(out.total_vesting, amount)
        if amount > high_cap:
            out.num_high_cap += 1
            out.high_cap_accounts.append(_account_address(acc))

    log_event(
        log,
        "analyzed_vesting",
        vesting=out.num_vesting,
        still_vesting=out.num_still_vesting,
        total_vesting=out.total_vesting,
        high_cap=out.num_high_cap,
    )
    return out
