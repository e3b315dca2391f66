"""
Ledger state components.

Each component is a thin typed view over the shared key-value store. They
perform no authorization and no sufficiency checks of their own; the
MultiTokenLedger validates before it writes through them.

Storage layout (key tuples):
    ("balance", owner, token_id)      -> int
    ("approval", owner, token_id)     -> str
    ("operator", owner, operator)     -> bool
    ("supply", token_id)              -> int
    ("config", "initialized")         -> bool
    ("config", "access_control")      -> bool
    ("config", "admin")               -> str
    ("metadata", token_id)            -> dict
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..ledger_exceptions import MetadataAlreadySetError, TokenNotFoundError
from ..storage import KeyValueStore, StateMap
from .safe_uint import require_u64


class BalanceStore:
    """(identity, token id) -> quantity owned. Absent entries read as zero."""

    def __init__(self, store: KeyValueStore) -> None:
        self._balances = StateMap(store, "balance", default=0)

    def get(self, owner: str, token_id: int) -> int:
        return self._balances[owner, token_id]

    def set(self, owner: str, token_id: int, amount: int) -> None:
        self._balances[owner, token_id] = amount

    def holders(self, token_id: int) -> Dict[str, int]:
        """All identities with a stored entry for token_id (zero entries included)."""
        return {
            owner: amount
            for (owner, tid), amount in self._balances.items()
            if tid == token_id
        }


class ApprovalRegistry:
    """
    Per-(owner, token id) single delegate and per-(owner, operator) blanket flag.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._approvals = StateMap(store, "approval", default=None)
        self._operators = StateMap(store, "operator", default=False)

    def get_approval(self, owner: str, token_id: int) -> Optional[str]:
        return self._approvals[owner, token_id]

    def set_approval(self, owner: str, token_id: int, approved: str) -> None:
        self._approvals[owner, token_id] = approved

    def is_operator(self, owner: str, operator: str) -> bool:
        return bool(self._operators[owner, operator])

    def set_operator(self, owner: str, operator: str, approved: bool) -> None:
        self._operators[owner, operator] = bool(approved)


class SupplyTracker:
    """Cumulative minted count per token id. Never decreases."""

    def __init__(self, store: KeyValueStore) -> None:
        self._minted = StateMap(store, "supply", default=0)

    def minted(self, token_id: int) -> int:
        return self._minted[token_id]

    def set_minted(self, token_id: int, amount: int) -> None:
        self._minted[token_id] = amount


class LedgerConfig:
    """
    Singleton admin/access-control record.

    Before initialization every field reads as its default: not initialized,
    access control off, no admin.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._config = StateMap(store, "config")

    @property
    def initialized(self) -> bool:
        return bool(self._config.get("initialized", False))

    @property
    def access_control(self) -> bool:
        return bool(self._config.get("access_control", False))

    @property
    def admin(self) -> Optional[str]:
        return self._config.get("admin")

    def initialize(self, access_control: bool, admin: Optional[str]) -> None:
        self._config["access_control"] = bool(access_control)
        if admin is not None:
            self._config["admin"] = admin
        self._config["initialized"] = True

    def set_admin(self, admin: str) -> None:
        self._config["admin"] = admin

    def as_dict(self) -> Dict[str, Any]:
        return {
            "initialized": self.initialized,
            "access_control": self.access_control,
            "admin": self.admin,
        }


@dataclass(frozen=True)
class TokenMetadata:
    """Immutable descriptive record for a token id."""

    name: str = ""
    symbol: str = ""
    uri: str = ""
    attributes: Dict[str, Any] = field(default_factory=dict, hash=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "uri": self.uri,
            "attributes": dict(self.attributes),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenMetadata":
        return cls(
            name=data.get("name", ""),
            symbol=data.get("symbol", ""),
            uri=data.get("uri", ""),
            attributes=dict(data.get("attributes", {})),
        )


class MetadataStore:
    """Write-once metadata keyed by token id."""

    def __init__(self, store: KeyValueStore) -> None:
        self._metadata = StateMap(store, "metadata")

    def register(self, token_id: int, metadata: TokenMetadata) -> None:
        """
        Store metadata for a token id.

        Raises:
            MetadataAlreadySetError: If metadata already exists for token_id
        """
        require_u64(token_id, "token_id")
        if token_id in self._metadata:
            raise MetadataAlreadySetError(
                f"metadata for token {token_id} is already set",
                details={"token_id": token_id},
            )
        self._metadata[token_id] = metadata.to_dict()

    def get(self, token_id: int) -> TokenMetadata:
        """
        Read metadata for a token id.

        Raises:
            TokenNotFoundError: If nothing was registered for token_id
        """
        data = self._metadata[token_id]
        if data is None:
            raise TokenNotFoundError(
                f"no metadata for token {token_id}",
                details={"token_id": token_id},
            )
        return TokenMetadata.from_dict(data)
