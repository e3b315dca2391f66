"""
TokenLedger Contracts.

This module provides the ledger contract implementation:
- MultiTokenLedger: multi-token balances, delegation, mint and burn
- Ledger state components (balances, approvals, supply, admin config, metadata)
- Checked unsigned 64-bit arithmetic helpers
"""

from .ledger_state import (
    ApprovalRegistry,
    BalanceStore,
    LedgerConfig,
    MetadataStore,
    SupplyTracker,
    TokenMetadata,
)
from .multi_token import MultiTokenLedger
from .safe_uint import U64_MAX, require_u64, u64_add, u64_sub

__all__ = [
    # Ledger
    "MultiTokenLedger",
    # State components
    "BalanceStore",
    "ApprovalRegistry",
    "SupplyTracker",
    "LedgerConfig",
    "MetadataStore",
    "TokenMetadata",
    # Arithmetic
    "U64_MAX",
    "require_u64",
    "u64_add",
    "u64_sub",
]
