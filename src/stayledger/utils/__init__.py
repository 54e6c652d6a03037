"""Shared utilities: logging, clocks, identifiers and stay intervals."""
