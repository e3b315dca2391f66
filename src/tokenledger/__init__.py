"""
TokenLedger - Multi-Token Ownership Ledger

Tracks, per token id, how many units each identity owns, who may move tokens
on an owner's behalf, and how units enter or leave circulation.

Main Components:
- Ledger core: balances, approvals, supply tracking, admin state
- Host: caller resolution and all-or-nothing invocation commits
- Events: notification records and sinks
- Storage: key-value provider with default-on-missing reads
"""

__version__ = "0.1.0"
__author__ = "TokenLedger Development Team"

__all__ = []
