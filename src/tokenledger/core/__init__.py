"""
TokenLedger Core Module

Core functionality for the multi-token ledger including:
- Ledger state machine (transfer, mint, burn, approvals, admin)
- Invocation host with atomic commit/discard
- Event emission and sinks
- Storage and persistence
- Configuration and structured logging
"""

__all__ = []
