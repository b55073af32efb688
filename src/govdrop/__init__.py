# src/govdrop/__init__.py
"""
govdrop: governance-weighted airdrop distribution

This package computes a one-time token distribution for a chain fork from a
snapshot of the previous chain's state export:
  - dec: fixed-scale decimal arithmetic (18 fractional digits)
  - votes: vote options, fully-populated vote maps, weight normalization
  - accounts: validated input records (accounts, delegations)
  - distribution: the distribution engine (aggregate, solve, allocate)
  - parsing: chain export readers + account building
  - genesis: bank genesis writer for the new chain
  - report / charts: text tables and HTML charts
  - cli: `govdrop` command line

Outer layers should depend on distribution.distribution() and the Airdrop
result, and keep their own I/O separate.
"""

from __future__ import annotations

__all__ = [
    "dec",
    "votes",
    "accounts",
    "distribution",
    "errors",
    "env",
    "bech32_addr",
    "parsing",
    "genesis",
    "report",
    "charts",
    "config",
    "logs",
    "cli",
]
