# src/govdrop/genesis.py
from __future__ import annotations

import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Sequence

from govdrop.accounts import Account
from govdrop.bech32_addr import convert_bech32
from govdrop.dec import ZERO, add, mul, truncate_int
from govdrop.logs import log_event
from govdrop.votes import WeightedVoteOption

Json = Dict[str, Any]

log = logging.getLogger("govdrop.genesis")

DEFAULT_TICKER = "govgen"


def apply_vote_options(vote: Sequence[WeightedVoteOption], amount: Decimal) -> Decimal:
    """Voting power of `amount` under a weighted vote.

    Every option currently counts at face value; per-option bonus or malus
    is not defined for the genesis balances.
    """
    balance = ZERO
    for opt in vote:
        balance = add(balance, mul(amount, opt.weight))
    return balance


def account_balance(acc: Account) -> Decimal:
    if acc.vote:
        # Direct vote
        return apply_vote_options(acc.vote, acc.staked_amount)
    # Inherited votes
    balance = ZERO
    for deleg in acc.delegations:
        balance = add(balance, apply_vote_options(deleg.vote, deleg.amount))
    return balance


def denom_metadata(ticker: str = DEFAULT_TICKER) -> Json:
    base = f"u{ticker}"
    return {
        "description": "The governance token of Atom One Hub",
        "denom_units": [
            {"denom": base, "exponent": 0, "aliases": [f"micro{ticker}"]},
            {"denom": f"m{ticker}", "exponent": 3, "aliases": [f"milli{ticker}"]},
            {"denom": ticker, "exponent": 6, "aliases": [ticker]},
        ],
        "base": base,
        "display": ticker,
        "name": "Atom One Govgen",
        "symbol": ticker.upper(),
    }


def bank_genesis(
    accounts: Sequence[Account],
    *,
    prefix: str = "govgen",
    ticker: str = DEFAULT_TICKER,
    source_prefix: str = "cosmos",
) -> Json:
    """Bank module genesis state for the new chain."""
    denom = f"u{ticker}"
    balances: List[Json] = []
    for a in accounts:
        addr = convert_bech32(a.address, source_prefix, prefix)
        amount = truncate_int(account_balance(a))
        # Zero-amount coins are invalid in a bank genesis.
        coins = [{"denom": denom, "amount": str(amount)}] if amount > 0 else []
        balances.append({"address": addr, "coins": coins})
    return {
        "params": {"send_enabled": [], "default_send_enabled": True},
        "balances": balances,
        "supply": [],
        "denom_metadata": [denom_metadata(ticker)],
        "send_enabled": [],
    }


def write_bank_genesis(
    accounts: Sequence[Account],
    dest: str | Path,
    *,
    prefix: str = "govgen",
    ticker: str = DEFAULT_TICKER,
    source_prefix: str = "cosmos",
) -> Json:
    g = bank_genesis(accounts, prefix=prefix, ticker=ticker, source_prefix=source_prefix)
    p = Path(dest)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(g, indent=2) + "\n", encoding="utf-8")
    log_event(log, "wrote_bank_genesis", path=str(p), balances=len(g["balances"]))
    return g
