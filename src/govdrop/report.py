# src/govdrop/report.py
from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import List, Sequence

from govdrop.dec import ZERO, dec, mul, quo, round_int
from govdrop.distribution import Airdrop, Distrib
from govdrop.votes import VoteOption

M = 1_000_000  # 1 million base units per displayed token

_HUNDRED = dec(100)

DISTRIB_HEADERS = ("", "TOTAL", "DID NOT VOTE", "YES", "NO", "NOWITHVETO", "ABSTAIN", "NOT STAKED")


def human(d: Decimal) -> str:
    """Amount in whole tokens (base units / 1e6), comma grouped."""
    return f"{round_int(quo(d, dec(M))):,}"


def human_percent(d: Decimal) -> str:
    return f"{round_int(mul(d, _HUNDRED))}%"


def human_percent2(d: Decimal) -> str:
    return f"{float(mul(d, _HUNDRED)):.2f} %"


def markdown_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    widths = [len(h) for h in headers]
    for r in rows:
        for i, cell in enumerate(r):
            widths[i] = max(widths[i], len(cell))

    def _line(cells: Sequence[str]) -> str:
        return "| " + " | ".join(c.ljust(widths[i]) for i, c in enumerate(cells)) + " |"

    lines = [_line(headers), "|" + "|".join("-" * (w + 2) for w in widths) + "|"]
    lines.extend(_line(r) for r in rows)
    return "\n".join(lines)


def distrib_table(d: Distrib) -> str:
    rows: List[List[str]] = [
        [
            "Distributed",
            human(d.supply),
            human(d.votes[VoteOption.EMPTY]),
            human(d.votes[VoteOption.YES]),
            human(d.votes[VoteOption.NO]),
            human(d.votes[VoteOption.NO_WITH_VETO]),
            human(d.votes[VoteOption.ABSTAIN]),
            human(d.unstaked),
        ]
    ]
    if d.supply != ZERO:
        percs = d.vote_percentages()
        rows.append(
            [
                "Percentage over total",
                "",
                human_percent(percs[VoteOption.EMPTY]),
                human_percent(percs[VoteOption.YES]),
                human_percent(percs[VoteOption.NO]),
                human_percent(percs[VoteOption.NO_WITH_VETO]),
                human_percent(percs[VoteOption.ABSTAIN]),
                human_percent(d.unstaked_percentage()),
            ]
        )
    return markdown_table(DISTRIB_HEADERS, rows)


def airdrop_header(a: Airdrop) -> str:
    return (
        f"$ATONE distribution (params: {a.params}) "
        f"(ratio: x{float(a.ratio()):.3f}, nonVotersMultiplier: {float(a.non_voters_multiplier):.3f}, "
        f"icfSlash: {human(a.icf_slashed)} $ATOM)"
    )


def supply_line(a: Airdrop) -> str:
    return (
        f"ATONE TOTAL SUPPLY = DISTRIBUTED({human(a.result.supply)}) "
        f"+ COMMUNITY_POOL({human(a.community_pool)}) "
        f"+ RESERVED_ADDRESS({human(a.reserved_address)}) "
        f"= {human(a.total_supply())}"
    )


def airdrops_stats(airdrops: Sequence[Airdrop]) -> str:
    """Text report: the source distribution once, then every airdrop."""
    if not airdrops:
        return ""
    parts = ["$ATOM distribution", distrib_table(airdrops[0].source), ""]
    for a in airdrops:
        parts.extend([airdrop_header(a), distrib_table(a.result), "", supply_line(a)])
    return "\n".join(parts) + "\n"


def write_airdrop_json(airdrop: Airdrop, path: str | Path) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(airdrop.to_json(), indent=2) + "\n", encoding="utf-8")
    return p
