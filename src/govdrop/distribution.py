# src/govdrop/distribution.py
from __future__ import annotations

"""Airdrop distribution engine.

Two ordered passes over the same account list:

  1. aggregate_source: sum staked amounts per vote option, liquid amounts and
     total supply of the source token.
  2. allocate: apply the multipliers per vote bucket to every account, using
     the non-voters multiplier solved from pass 1.

Multipliers per bucket:

  Yes:          x yes_multiplier
  No:           x no_multiplier
  NoWithVeto:   x no_multiplier x bonus
  Abstain:      x non_voters_multiplier
  Did not vote: x non_voters_multiplier x malus
  Liquid:       x non_voters_multiplier x malus

every bucket then being shrunk by supply_factor. A share of the resulting
supply (supply_mint_factor) is minted on top, half for the community pool
and half for a reserved address.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

from govdrop.accounts import Account
from govdrop.bech32_addr import convert_bech32
from govdrop.dec import ONE, ZERO, add, dec, mul, quo, round_int, sub, to_str
from govdrop.errors import InvariantViolation, PreconditionError
from govdrop.logs import log_event
from govdrop.votes import ALL_VOTE_OPTIONS, VoteMap, VoteOption

Json = Dict[str, Any]

log = logging.getLogger("govdrop.distribution")

# Non-voters must not hold more than 33% of the distributed supply.
TARGET_NON_VOTERS_SHARE: Decimal = dec("0.33")

# ICF wallets, slashed from the airdrop.
ICF_WALLETS = (
    # https://github.com/gnolang/bounties/issues/18#issuecomment-1034700230
    "cosmos1z8mzakma7vnaajysmtkwt4wgjqr2m84tzvyfkz",
    "cosmos1unc788q8md2jymsns24eyhua58palg5kc7cstv",
    # The 2 addresses above have been emptied in favour of the following 2
    "cosmos1sufkm72dw7ua9crpfhhp0dqpyuggtlhdse98e7",
    "cosmos1z6czaavlk6kjd48rpf58kqqw9ssad2uaxnazgl",
    "cosmos17u903qxqc6dzn3chvmc9zzp9fl4xja0pwggfj7",
)


@dataclass(frozen=True)
class DistributionParams:
    yes_multiplier: Decimal
    no_multiplier: Decimal
    bonus: Decimal
    malus: Decimal
    supply_factor: Decimal
    supply_mint_factor: Decimal

    def __post_init__(self) -> None:
        for name in (
            "yes_multiplier",
            "no_multiplier",
            "bonus",
            "malus",
            "supply_factor",
            "supply_mint_factor",
        ):
            v = dec(getattr(self, name))
            if v < ZERO:
                raise ValueError(f"{name} must be >= 0; got: {v}")
            object.__setattr__(self, name, v)

    def __str__(self) -> str:
        return f"Yes x{float(self.yes_multiplier):.1f} / No x{float(self.no_multiplier):.1f}"

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]]) -> "DistributionParams":
        d = default_distribution_params()
        r = dict(raw or {})

        def _pick(name: str) -> Decimal:
            v = r.get(name)
            return getattr(d, name) if v is None or v == "" else dec(v)

        if "supply_mint_factor" not in r and r.get("supply_mint_denominator") not in (None, ""):
            r["supply_mint_factor"] = quo(ONE, dec(r["supply_mint_denominator"]))

        return cls(
            yes_multiplier=_pick("yes_multiplier"),
            no_multiplier=_pick("no_multiplier"),
            bonus=_pick("bonus"),
            malus=_pick("malus"),
            supply_factor=_pick("supply_factor"),
            supply_mint_factor=_pick("supply_mint_factor"),
        )

    def to_dict(self) -> Json:
        return {
            "yes_multiplier": to_str(self.yes_multiplier),
            "no_multiplier": to_str(self.no_multiplier),
            "bonus": to_str(self.bonus),
            "malus": to_str(self.malus),
            "supply_factor": to_str(self.supply_factor),
            "supply_mint_factor": to_str(self.supply_mint_factor),
        }


def default_distribution_params() -> DistributionParams:
    return DistributionParams(
        yes_multiplier=ONE,  # Y get x1
        no_multiplier=dec(4),  # N & NWV get 1+x3
        bonus=dec("1.03"),  # 3% bonus
        malus=dec("0.97"),  # -3% malus
        supply_factor=dec("0.1"),  # decrease final supply by a factor of 10
        supply_mint_factor=quo(ONE, dec(9)),  # 1/9 minted for the CP and a reserved address
    )


@dataclass
class Distrib:
    """Supply of a token, split per vote option plus the unstaked part."""

    supply: Decimal = ZERO
    votes: VoteMap = field(default_factory=VoteMap)
    unstaked: Decimal = ZERO

    def vote_percentages(self) -> VoteMap:
        """Share of the supply held per vote option."""
        if self.supply == ZERO:
            raise PreconditionError("zero_supply", "vote_percentages_undefined", {})
        return VoteMap({o: quo(self.votes[o], self.supply) for o in ALL_VOTE_OPTIONS})

    def unstaked_percentage(self) -> Decimal:
        if self.supply == ZERO:
            raise PreconditionError("zero_supply", "unstaked_percentage_undefined", {})
        return quo(self.unstaked, self.supply)

    def non_voters_amount(self) -> Decimal:
        return add(self.votes[VoteOption.ABSTAIN], self.votes[VoteOption.EMPTY], self.unstaked)

    def to_json(self) -> Json:
        return {
            "supply": to_str(self.supply),
            "votes": {o.name: to_str(self.votes[o]) for o in ALL_VOTE_OPTIONS},
            "unstaked": to_str(self.unstaked),
        }


@dataclass(frozen=True)
class AmountDetail:
    source_amount: Decimal
    multiplier: Decimal
    bonus_malus: Decimal
    supply_factor: Decimal
    result_amount: Decimal

    def expected_result(self) -> Decimal:
        return mul(self.source_amount, self.multiplier, self.bonus_malus, self.supply_factor)

    def to_json(self) -> Json:
        return {
            "sourceAmount": to_str(self.source_amount),
            "multiplier": to_str(self.multiplier),
            "bonusMalus": to_str(self.bonus_malus),
            "supplyFactor": to_str(self.supply_factor),
            "resultAmount": to_str(self.result_amount),
        }


@dataclass(frozen=True)
class AirdropDetail:
    yes: AmountDetail
    no: AmountDetail
    no_with_veto: AmountDetail
    abstain: AmountDetail
    did_not_vote: AmountDetail
    liquid: AmountDetail
    total: Decimal

    def parts(self) -> Sequence[AmountDetail]:
        return (self.yes, self.no, self.no_with_veto, self.abstain, self.did_not_vote, self.liquid)

    def parts_sum(self) -> Decimal:
        return add(*(p.result_amount for p in self.parts()))

    def to_json(self) -> Json:
        return {
            "yesDetail": self.yes.to_json(),
            "noDetail": self.no.to_json(),
            "nwvDetail": self.no_with_veto.to_json(),
            "absDetail": self.abstain.to_json(),
            "dnvDetail": self.did_not_vote.to_json(),
            "liquidDetail": self.liquid.to_json(),
            "total": to_str(self.total),
        }


@dataclass
class Airdrop:
    params: DistributionParams
    # Award per address, zero awards excluded.
    addresses: Dict[str, int] = field(default_factory=dict)
    addresses_detail: Dict[str, AirdropDetail] = field(default_factory=dict)
    # Ensures that non-voters don't hold more than 1/3 of the supply.
    non_voters_multiplier: Decimal = ZERO
    source: Distrib = field(default_factory=Distrib)
    result: Distrib = field(default_factory=Distrib)
    icf_slashed: Decimal = ZERO
    community_pool: Decimal = ZERO
    reserved_address: Decimal = ZERO

    def total_supply(self) -> Decimal:
        return add(self.result.supply, self.community_pool, self.reserved_address)

    def ratio(self) -> Decimal:
        if self.source.supply == ZERO:
            raise PreconditionError("zero_supply", "ratio_undefined", {})
        return quo(self.result.supply, self.source.supply)

    def to_json(self) -> Json:
        return {
            "params": self.params.to_dict(),
            "nonVotersMultiplier": to_str(self.non_voters_multiplier),
            "icfSlashed": to_str(self.icf_slashed),
            "communityPool": to_str(self.community_pool),
            "reservedAddress": to_str(self.reserved_address),
            "totalSupply": to_str(self.total_supply()),
            "source": self.source.to_json(),
            "result": self.result.to_json(),
            "addresses": {a: str(v) for a, v in sorted(self.addresses.items())},
            "addressesDetail": {a: d.to_json() for a, d in sorted(self.addresses_detail.items())},
        }


def _source_amounts(acc: Account) -> VoteMap:
    weights = acc.vote_weights()
    return VoteMap({o: mul(weights[o], acc.staked_amount) for o in ALL_VOTE_OPTIONS})


def aggregate_source(accounts: Iterable[Account]) -> Distrib:
    """First pass: source-token supply split per vote option."""
    d = Distrib()
    for acc in accounts:
        for option, amt in _source_amounts(acc).items():
            d.votes.add(option, amt)
        d.supply = add(d.supply, acc.staked_amount, acc.liquid_amount)
        d.unstaked = add(d.unstaked, acc.liquid_amount)
    return d


def solve_non_voters_multiplier(
    source: Distrib,
    params: DistributionParams,
    target: Decimal = TARGET_NON_VOTERS_SHARE,
) -> Decimal:
    """Multiplier making non-voters hold exactly `target` of the voters-weighted supply.

    nonVotersMultiplier = (t x (yesWeighted + noWeighted)) / ((1 - t) x nonVoterPool)
    """
    t = dec(target)
    if t <= ZERO or t >= ONE:
        raise ValueError(f"target must be within (0, 1); got: {t}")

    yes_weighted = mul(source.votes[VoteOption.YES], params.yes_multiplier)
    no_weighted = mul(
        add(source.votes[VoteOption.NO], source.votes[VoteOption.NO_WITH_VETO]),
        params.no_multiplier,
    )
    pool = source.non_voters_amount()
    if pool == ZERO:
        raise PreconditionError(
            "non_voter_pool_empty",
            "non_voters_multiplier_undefined",
            {
                "yes_weighted": to_str(yes_weighted),
                "no_weighted": to_str(no_weighted),
            },
        )

    m = quo(mul(t, add(yes_weighted, no_weighted)), mul(sub(ONE, t), pool))
    log_event(
        log,
        "distribution_solved",
        target=t,
        yes_weighted=yes_weighted,
        no_weighted=no_weighted,
        non_voter_pool=pool,
        non_voters_multiplier=m,
    )
    return m


def allocate_account(acc: Account, params: DistributionParams, non_voters_multiplier: Decimal) -> AirdropDetail:
    """Award of a single account, with the audit breakdown per bucket."""
    src = _source_amounts(acc)
    f = params.supply_factor
    m = non_voters_multiplier

    def _detail(source_amount: Decimal, multiplier: Decimal, bonus_malus: Decimal) -> AmountDetail:
        return AmountDetail(
            source_amount=source_amount,
            multiplier=multiplier,
            bonus_malus=bonus_malus,
            supply_factor=f,
            result_amount=mul(source_amount, multiplier, bonus_malus, f),
        )

    yes = _detail(src[VoteOption.YES], params.yes_multiplier, ONE)
    no = _detail(src[VoteOption.NO], params.no_multiplier, ONE)
    nwv = _detail(src[VoteOption.NO_WITH_VETO], params.no_multiplier, params.bonus)
    abstain = _detail(src[VoteOption.ABSTAIN], m, ONE)
    dnv = _detail(src[VoteOption.EMPTY], m, params.malus)
    # Liquid amount gets the same multiplier as those who didn't vote.
    liquid = _detail(acc.liquid_amount, m, params.malus)

    total = add(
        yes.result_amount,
        no.result_amount,
        nwv.result_amount,
        abstain.result_amount,
        dnv.result_amount,
        liquid.result_amount,
    )
    return AirdropDetail(
        yes=yes,
        no=no,
        no_with_veto=nwv,
        abstain=abstain,
        did_not_vote=dnv,
        liquid=liquid,
        total=total,
    )


def check_detail(address: str, detail: AirdropDetail, expected_total: Decimal) -> None:
    """Raise InvariantViolation if the breakdown no longer matches the award."""
    got = detail.parts_sum()
    bad_parts = [i for i, p in enumerate(detail.parts()) if p.expected_result() != p.result_amount]
    if got != expected_total or bad_parts:
        raise InvariantViolation(
            "detail_sum_mismatch",
            "airdrop_detail_desynchronized",
            {
                "address": address,
                "detail": detail.to_json(),
                "detail_sum": to_str(got),
                "expected_total": to_str(expected_total),
                "bad_parts": bad_parts,
            },
        )


def distribution(
    accounts: Sequence[Account],
    params: DistributionParams,
    prefix: str = "",
    *,
    slashed_addresses: Iterable[str] = ICF_WALLETS,
    source_prefix: str = "cosmos",
) -> Airdrop:
    """Compute the airdrop of `accounts` under `params`.

    When `prefix` is set, result addresses are re-encoded from `source_prefix`
    to `prefix`. Any error aborts the whole computation.
    """
    slashed = frozenset(slashed_addresses)
    airdrop = Airdrop(params=params)

    airdrop.source = aggregate_source(accounts)
    airdrop.non_voters_multiplier = solve_non_voters_multiplier(airdrop.source, params)

    for acc in accounts:
        if acc.address in slashed:
            airdrop.icf_slashed = add(airdrop.icf_slashed, acc.liquid_amount, acc.staked_amount)
            continue

        detail = allocate_account(acc, params, airdrop.non_voters_multiplier)
        check_detail(acc.address, detail, detail.total)

        res = airdrop.result
        res.votes.add(VoteOption.YES, detail.yes.result_amount)
        res.votes.add(VoteOption.NO, detail.no.result_amount)
        res.votes.add(VoteOption.NO_WITH_VETO, detail.no_with_veto.result_amount)
        res.votes.add(VoteOption.ABSTAIN, detail.abstain.result_amount)
        res.votes.add(VoteOption.EMPTY, detail.did_not_vote.result_amount)
        res.supply = add(res.supply, detail.total)
        res.unstaked = add(res.unstaked, detail.liquid.result_amount)

        amount = round_int(detail.total)
        if amount == 0:
            continue
        addr = acc.address
        if prefix:
            addr = convert_bech32(acc.address, source_prefix, prefix)
        airdrop.addresses[addr] = amount
        airdrop.addresses_detail[addr] = detail

    minted = mul(airdrop.result.supply, params.supply_mint_factor)
    airdrop.community_pool = quo(minted, dec(2))
    airdrop.reserved_address = quo(minted, dec(2))

    log_event(
        log,
        "distribution_done",
        params=str(params),
        accounts=len(accounts),
        addresses=len(airdrop.addresses),
        source_supply=airdrop.source.supply,
        result_supply=airdrop.result.supply,
        icf_slashed=airdrop.icf_slashed,
        community_pool=airdrop.community_pool,
        reserved_address=airdrop.reserved_address,
    )
    return airdrop
