# src/govdrop/votes.py
from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from enum import IntEnum
from typing import Any, Dict, Iterator, List, Optional, Sequence

from pydantic import BaseModel, field_serializer, field_validator

from govdrop.dec import ONE, ZERO, add, dec, sub, to_str


class VoteOption(IntEnum):
    """Governance vote options, valued as the source chain's integer codes."""

    EMPTY = 0  # did not vote
    YES = 1
    ABSTAIN = 2
    NO = 3
    NO_WITH_VETO = 4

    @classmethod
    def parse(cls, v: Any) -> "VoteOption":
        if isinstance(v, VoteOption):
            return v
        if isinstance(v, bool):
            raise ValueError("bool is not a valid vote option")
        if isinstance(v, int):
            return cls(v)
        s = str(v or "").strip()
        if s.isdigit():
            return cls(int(s))
        key = s.upper()
        if key.startswith("VOTE_OPTION_"):
            key = key[len("VOTE_OPTION_"):]
        key = _ALIASES.get(key, key)
        try:
            return cls[key]
        except KeyError:
            raise ValueError(f"unknown vote option: {v!r}") from None


_ALIASES = {
    "UNSPECIFIED": "EMPTY",
    "NOVOTE": "EMPTY",
    "NO_VOTE": "EMPTY",
    "DNV": "EMPTY",
    "NOWITHVETO": "NO_WITH_VETO",
    "NWV": "NO_WITH_VETO",
    "VETO": "NO_WITH_VETO",
}

ALL_VOTE_OPTIONS = (
    VoteOption.EMPTY,
    VoteOption.YES,
    VoteOption.ABSTAIN,
    VoteOption.NO,
    VoteOption.NO_WITH_VETO,
)

ACTIVE_VOTE_OPTIONS = (
    VoteOption.YES,
    VoteOption.NO,
    VoteOption.NO_WITH_VETO,
)


class WeightedVoteOption(BaseModel):
    option: VoteOption
    weight: Decimal

    model_config = {"frozen": True}

    @field_validator("option", mode="before")
    @classmethod
    def _parse_option(cls, v: Any) -> VoteOption:
        return VoteOption.parse(v)

    @field_validator("weight", mode="before")
    @classmethod
    def _parse_weight(cls, v: Any) -> Decimal:
        w = dec(v)
        if w < ZERO or w > ONE:
            raise ValueError(f"vote weight must be within [0, 1]; got: {v!r}")
        return w

    @field_serializer("option")
    def _dump_option(self, option: VoteOption) -> str:
        return f"VOTE_OPTION_{option.name}" if option != VoteOption.EMPTY else "VOTE_OPTION_UNSPECIFIED"

    @field_serializer("weight")
    def _dump_weight(self, weight: Decimal) -> str:
        return to_str(weight)


class VoteMap(Mapping):
    """Per-option amounts, always populated with all five vote options.

    Keys cannot be added or removed; `add` and item assignment only accept
    the five known options.
    """

    __slots__ = ("_m",)

    def __init__(self, initial: Optional[Mapping[Any, Decimal]] = None) -> None:
        self._m: Dict[VoteOption, Decimal] = {o: ZERO for o in ALL_VOTE_OPTIONS}
        for k, v in (initial or {}).items():
            self[k] = v

    def __getitem__(self, option: Any) -> Decimal:
        return self._m[_key(option)]

    def __setitem__(self, option: Any, amount: Decimal) -> None:
        self._m[_key(option)] = dec(amount)

    def __iter__(self) -> Iterator[VoteOption]:
        return iter(ALL_VOTE_OPTIONS)

    def __len__(self) -> int:
        return len(ALL_VOTE_OPTIONS)

    def __repr__(self) -> str:
        inner = ", ".join(f"{o.name}={self._m[o]}" for o in ALL_VOTE_OPTIONS)
        return f"VoteMap({inner})"

    def add(self, option: Any, amount: Decimal) -> None:
        k = _key(option)
        self._m[k] = add(self._m[k], amount)

    def total(self) -> Decimal:
        return add(*self._m.values())

    def copy(self) -> "VoteMap":
        return VoteMap(self._m)


def _key(option: Any) -> VoteOption:
    if isinstance(option, VoteOption):
        return option
    try:
        return VoteOption.parse(option)
    except ValueError:
        raise KeyError(option) from None


def vote_weights(vote: Sequence[WeightedVoteOption]) -> VoteMap:
    """Normalize a weighted vote into weights over all five options.

    An empty vote counts fully as EMPTY. Weights summing below 1 leave the
    remainder on EMPTY, so the five weights always sum to exactly 1.
    """
    weights = VoteMap()
    if not vote:
        weights[VoteOption.EMPTY] = ONE
        return weights

    for opt in vote:
        weights.add(opt.option, opt.weight)

    total = weights.total()
    if total > ONE:
        raise ValueError(f"vote weights sum to more than 1: {total}")
    if total < ONE:
        weights.add(VoteOption.EMPTY, sub(ONE, total))
    return weights


def parse_vote_options(raw: Any) -> List[WeightedVoteOption]:
    """Parse a vote entry from an export: `options` list, or a legacy single `option`."""
    if isinstance(raw, dict):
        opts = raw.get("options")
        if not opts and raw.get("option") not in (None, "", 0, "VOTE_OPTION_UNSPECIFIED"):
            opts = [{"option": raw.get("option"), "weight": "1"}]
        raw = opts or []
    if not isinstance(raw, list):
        raise ValueError("vote options must be a list")
    return [WeightedVoteOption.model_validate(o) for o in raw]

