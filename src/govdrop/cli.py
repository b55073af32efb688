# src/govdrop/cli.py
from __future__ import annotations

"""govdrop command line.

Usage:
  govdrop accounts [EXPORT_DIR] [-o accounts.json]
  govdrop distribution [--accounts PATH] [--chart] [--prefix P] [--out PATH]
  govdrop genesis [--accounts PATH] [--dest PATH]
  govdrop vesting [EXPORT_DIR]
  govdrop proposal [EXPORT_DIR]

Global options: --config (JSON/YAML, else GOVDROP_CONFIG_PATH), --log-level.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from govdrop.accounts import dump_accounts, load_accounts
from govdrop.charts import open_in_browser, render_page
from govdrop.config import DropConfig, load_config
from govdrop.dec import ZERO, quo
from govdrop.distribution import Airdrop, distribution
from govdrop.env import load_dotenv_if_present
from govdrop.errors import DistributionError
from govdrop.genesis import write_bank_genesis
from govdrop.logs import configure_logging
from govdrop.parsing import analyze_vesting_accounts, build_accounts, parse_proposal
from govdrop.report import airdrops_stats, human, human_percent2, write_airdrop_json


def _cmd_accounts(cfg: DropConfig, args: argparse.Namespace) -> int:
    export_dir = args.export_dir or cfg.export_dir
    out = args.output or cfg.accounts_path
    accounts = build_accounts(export_dir, cfg.denom, account_prefix=cfg.source_prefix)
    dump_accounts(accounts, out)
    print(f"{len(accounts):,} accounts written to {out}")
    return 0


def _compute(cfg: DropConfig, accounts_path: str, prefix: str) -> List[Airdrop]:
    accounts = load_accounts(accounts_path)
    return [distribution(accounts, p, prefix, source_prefix=cfg.source_prefix) for p in cfg.distributions]


def _cmd_distribution(cfg: DropConfig, args: argparse.Namespace) -> int:
    prefix = cfg.target_prefix if args.prefix is None else args.prefix
    airdrops = _compute(cfg, args.accounts or cfg.accounts_path, prefix)

    if args.chart:
        path = render_page(airdrops, args.chart_path)
        print(f"Charts rendered in {path}")
        if not args.no_browser:
            open_in_browser(path)
    else:
        sys.stdout.write(airdrops_stats(airdrops))

    if args.out:
        p = write_airdrop_json(airdrops[0], args.out)
        print(f"{len(airdrops[0].addresses):,} airdrop addresses written to {p}")
    return 0


def _cmd_genesis(cfg: DropConfig, args: argparse.Namespace) -> int:
    accounts = load_accounts(args.accounts or cfg.accounts_path)
    dest = args.dest or str(Path(cfg.output_dir) / "bank_genesis.json")
    g = write_bank_genesis(
        accounts,
        dest,
        prefix=cfg.genesis_prefix,
        ticker=cfg.ticker,
        source_prefix=cfg.source_prefix,
    )
    print(f"{len(g['balances']):,} balances written to {dest}")
    return 0


def _cmd_vesting(cfg: DropConfig, args: argparse.Namespace) -> int:
    s = analyze_vesting_accounts(args.export_dir or cfg.export_dir, denom=cfg.denom)
    print(f"{s.num_still_vesting}/{s.num_vesting} valid vesting accounts, total of {human(s.total_vesting)} freed")
    print(f"{s.num_high_cap} vesting account(s) with more than the high cap vesting")
    for addr in s.high_cap_accounts:
        print(f"  {addr}")
    return 0


def _cmd_proposal(cfg: DropConfig, args: argparse.Namespace) -> int:
    prop = parse_proposal(args.export_dir or cfg.export_dir)
    tally = prop.final_tally_result
    total = tally.total()
    print(f"Proposal {prop.proposal_id}: {prop.title}")
    print(f"Status: {prop.status}")
    for name, v in (
        ("Yes", tally.yes),
        ("No", tally.no),
        ("NoWithVeto", tally.no_with_veto),
        ("Abstain", tally.abstain),
    ):
        share = human_percent2(quo(v, total)) if total != ZERO else "-"
        print(f"  {name:<11} {human(v):>15}  {share}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="govdrop", description="Governance-weighted airdrop distribution.")
    ap.add_argument("--config", default=None, help="JSON/YAML config file (default: $GOVDROP_CONFIG_PATH)")
    ap.add_argument("--log-level", default=None, help="Override the configured log level")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("accounts", help="Build accounts JSON from a chain export directory")
    p.add_argument("export_dir", nargs="?", default=None)
    p.add_argument("-o", "--output", default=None)
    p.set_defaults(func=_cmd_accounts)

    p = sub.add_parser("distribution", help="Compute and print airdrop distributions")
    p.add_argument("--accounts", default=None)
    p.add_argument("--prefix", default=None, help="Re-encode addresses to this bech32 prefix")
    p.add_argument("--chart", action="store_true", help="Render HTML charts instead of tables")
    p.add_argument("--chart-path", default=None)
    p.add_argument("--no-browser", action="store_true")
    p.add_argument("--out", default=None, help="Write the first airdrop as JSON")
    p.set_defaults(func=_cmd_distribution)

    p = sub.add_parser("genesis", help="Write the bank genesis of the new chain")
    p.add_argument("--accounts", default=None)
    p.add_argument("--dest", default=None)
    p.set_defaults(func=_cmd_genesis)

    p = sub.add_parser("vesting", help="Analyze vesting accounts of the export")
    p.add_argument("export_dir", nargs="?", default=None)
    p.set_defaults(func=_cmd_vesting)

    p = sub.add_parser("proposal", help="Print the reference proposal and its tally")
    p.add_argument("export_dir", nargs="?", default=None)
    p.set_defaults(func=_cmd_proposal)

    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv_if_present()
    args = build_parser().parse_args(argv)
    try:
        cfg = load_config(config_path=args.config)
        configure_logging(args.log_level or cfg.log_level)
        return int(args.func(cfg, args))
    except (DistributionError, FileNotFoundError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
