# src/govdrop/accounts.py
from __future__ import annotations

"""Validated input records for the distribution engine.

Account JSON is produced by `govdrop accounts` (see parsing.build_accounts).
Both snake_case keys and the CamelCase keys of older account dumps are
accepted; dumps are always snake_case.
"""

import json
from decimal import Decimal
from pathlib import Path
from typing import Any, List, Sequence

from pydantic import AliasChoices, BaseModel, Field, field_serializer, field_validator, model_validator

from govdrop.dec import ONE, ZERO, add, dec, to_str
from govdrop.votes import VoteMap, WeightedVoteOption, vote_weights


def _non_negative(v: Any) -> Decimal:
    d = dec(v if v is not None else 0)
    if d < ZERO:
        raise ValueError(f"amount must be >= 0; got: {v!r}")
    return d


def _check_vote_total(vote: Sequence[WeightedVoteOption]) -> None:
    total = add(*(o.weight for o in vote))
    if total > ONE:
        raise ValueError(f"vote weights sum to more than 1: {total}")


class Delegation(BaseModel):
    amount: Decimal = Field(validation_alias=AliasChoices("amount", "Amount"))
    validator_address: str = Field(
        default="",
        validation_alias=AliasChoices("validator_address", "ValidatorAddress"),
    )
    # The validator's own vote, inherited by delegators who did not vote.
    vote: List[WeightedVoteOption] = Field(
        default_factory=list,
        validation_alias=AliasChoices("vote", "Vote"),
    )

    model_config = {"frozen": True}

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, v: Any) -> Decimal:
        return _non_negative(v)

    @field_validator("vote", mode="before")
    @classmethod
    def _parse_vote(cls, v: Any) -> Any:
        return v or []

    @model_validator(mode="after")
    def _check_vote(self) -> "Delegation":
        _check_vote_total(self.vote)
        return self

    @field_serializer("amount")
    def _dump_amount(self, v: Decimal) -> str:
        return to_str(v)


class Account(BaseModel):
    address: str = Field(validation_alias=AliasChoices("address", "Address"))
    type: str = Field(default="", validation_alias=AliasChoices("type", "Type"))
    liquid_amount: Decimal = Field(
        default=ZERO,
        validation_alias=AliasChoices("liquid_amount", "LiquidAmount"),
    )
    staked_amount: Decimal = Field(
        default=ZERO,
        validation_alias=AliasChoices("staked_amount", "StakedAmount"),
    )
    vote: List[WeightedVoteOption] = Field(
        default_factory=list,
        validation_alias=AliasChoices("vote", "Vote"),
    )
    delegations: List[Delegation] = Field(
        default_factory=list,
        validation_alias=AliasChoices("delegations", "Delegations"),
    )

    model_config = {"frozen": True}

    @field_validator("address")
    @classmethod
    def _check_address(cls, v: str) -> str:
        s = v.strip()
        if not s:
            raise ValueError("address must be a non-empty string")
        return s

    @field_validator("liquid_amount", "staked_amount", mode="before")
    @classmethod
    def _parse_amount(cls, v: Any) -> Decimal:
        return _non_negative(v)

    @field_validator("type", mode="before")
    @classmethod
    def _parse_type(cls, v: Any) -> str:
        return str(v or "")

    @field_validator("vote", "delegations", mode="before")
    @classmethod
    def _parse_list(cls, v: Any) -> Any:
        return v or []

    @model_validator(mode="after")
    def _check_vote(self) -> "Account":
        _check_vote_total(self.vote)
        return self

    @field_serializer("liquid_amount", "staked_amount")
    def _dump_amount(self, v: Decimal) -> str:
        return to_str(v)

    def vote_weights(self) -> VoteMap:
        """Weights of the account's own vote; no vote means fully EMPTY."""
        return vote_weights(self.vote)

    @property
    def total_amount(self) -> Decimal:
        return add(self.staked_amount, self.liquid_amount)


def load_accounts(path: str | Path) -> List[Account]:
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(
            f"cannot read {p} file, run `govdrop accounts` to generate it"
        )
    raw = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise ValueError(f"accounts file {p} must contain a JSON array")
    return [Account.model_validate(r) for r in raw]


def dump_accounts(accounts: Sequence[Account], path: str | Path) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    payload = [a.model_dump(mode="json") for a in accounts]
    p.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
