"""Overlap-safe resource booking and loyalty points ledger.

Core services live in ``stayledger.services``; the HTTP surface is the
separate ``stayledger_api`` package.
"""

__version__ = "0.1.0"
