"""
Multi-Token Ledger Implementation.

Tracks, per token id, how many units each identity owns, supporting:
- Single-token delegation (one approved delegate per owner/token id)
- Blanket operator delegation over all of an owner's token ids
- Minting, optionally gated on a single admin identity
- Burning from the caller's own balance
- Single and batched transfers with identical per-item authorization

Every operation validates all of its failure conditions before the first
write, so a rejected call leaves no partial mutation behind. Batched transfers
are two-phase: all items are checked against a working copy of the touched
balances, and the store is only written once the whole batch has passed.

Callers are identified explicitly; resolving "who is calling" is the host's
job (see tokenledger.core.host).
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..events import (
    AdminEvent,
    ApprovalEvent,
    BatchTransferEvent,
    BurnEvent,
    LedgerEvent,
    MintEvent,
    OperatorEvent,
    TransferEvent,
)
from ..ledger_exceptions import (
    AdminNotFoundError,
    AlreadyInitializedError,
    ApprovalNotFoundError,
    InsufficientBalanceError,
    InvalidAdminError,
    InvalidSupplyError,
    InvalidValueError,
    LengthMismatchError,
    NotAdminError,
    NotAuthorizedToChangeAdminError,
    NotOwnerNorApprovedError,
    TokenNotFoundError,
)
from ..storage import KeyValueStore
from .ledger_state import (
    ApprovalRegistry,
    BalanceStore,
    LedgerConfig,
    MetadataStore,
    SupplyTracker,
    TokenMetadata,
)
from .safe_uint import require_u64, u64_add, u64_sub

logger = logging.getLogger(__name__)

EventEmitter = Callable[[LedgerEvent], None]

# Public operation name -> whether it takes the invoking identity as `caller`
OPERATIONS: Dict[str, bool] = {
    "initialize": False,
    "admin": False,
    "approve": True,
    "approved": False,
    "balance_of": False,
    "balance_of_batch": False,
    "mint": True,
    "burn": True,
    "set_admin": True,
    "is_approved_for_all": False,
    "set_approval_for_all": True,
    "transfer_from": True,
    "batch_transfer_from": True,
    "meta_data": False,
    "minted_supply": False,
}

READ_ONLY_OPERATIONS = frozenset(
    {
        "admin",
        "approved",
        "balance_of",
        "balance_of_batch",
        "is_approved_for_all",
        "meta_data",
        "minted_supply",
    }
)


def _require_identity(value: object, name: str) -> str:
    if not isinstance(value, str) or not value:
        raise InvalidValueError(
            f"{name} must be a non-empty identity string",
            details={"argument": name},
        )
    return value


class MultiTokenLedger:
    """
    Multi-token ownership ledger over a key-value store.

    Args:
        store: Storage provider holding all ledger state
        emit: Callback receiving each event of a successful operation
    """

    def __init__(self, store: KeyValueStore, emit: Optional[EventEmitter] = None) -> None:
        self.store = store
        self.balances = BalanceStore(store)
        self.approvals = ApprovalRegistry(store)
        self.supply = SupplyTracker(store)
        self.config = LedgerConfig(store)
        self.metadata = MetadataStore(store)
        self._emit_callback = emit

    # ==================== Initialization & Admin ====================

    def initialize(self, access_control: bool, admin: Optional[str] = None) -> None:
        """
        One-time setup of access control and the admin identity.

        Args:
            access_control: Whether minting is restricted to the admin
            admin: Admin identity; required iff access_control is True

        Raises:
            AlreadyInitializedError: If already initialized
            InvalidAdminError: If admin presence disagrees with access_control
        """
        if self.config.initialized:
            raise AlreadyInitializedError("ledger is already initialized")

        if not isinstance(access_control, bool):
            raise InvalidValueError(
                "access_control must be a bool",
                details={"argument": "access_control"},
            )

        if admin is not None:
            _require_identity(admin, "admin")

        if access_control != (admin is not None):
            raise InvalidAdminError(
                "access control requires an admin, and an admin requires access control",
                details={"access_control": access_control, "admin": admin},
            )

        self.config.initialize(access_control, admin)

        logger.info(
            "Ledger initialized",
            extra={
                "event": "ledger.initialized",
                "access_control": access_control,
                "has_admin": admin is not None,
            },
        )

    def admin(self) -> str:
        """
        Get the current admin.

        Raises:
            AdminNotFoundError: If no admin is set
        """
        current = self.config.admin
        if current is None:
            raise AdminNotFoundError("no admin is set")
        return current

    def set_admin(self, caller: str, admin: str) -> None:
        """
        Rotate the admin role. Only the current admin may do this.

        Raises:
            NotAuthorizedToChangeAdminError: If caller is not the current admin
            InvalidValueError: If the new admin is not a valid identity
        """
        current = self.config.admin
        if current is None or caller != current:
            raise NotAuthorizedToChangeAdminError(
                "caller is not authorized to change admin",
                details={"caller": caller},
            )

        _require_identity(admin, "admin")

        self.config.set_admin(admin)
        self._emit(AdminEvent(admin=admin))

        logger.info(
            "Ledger admin changed",
            extra={"event": "ledger.admin_changed", "admin": admin},
        )

    # ==================== Approvals ====================

    def approve(self, caller: str, approved: str, token_id: int) -> None:
        """
        Set caller's single delegate for token_id, replacing any previous one.

        The caller is only used as the key; ownership of token_id is not checked.
        """
        _require_identity(approved, "approved")
        require_u64(token_id, "token_id")

        self.approvals.set_approval(caller, token_id, approved)
        self._emit(ApprovalEvent(owner=caller, approved=approved, token_id=token_id))

    def approved(self, owner: str, token_id: int) -> str:
        """
        Get the delegate approved by owner for token_id.

        Raises:
            ApprovalNotFoundError: If owner never approved anyone for token_id
        """
        delegate = self.approvals.get_approval(owner, token_id)
        if delegate is None:
            raise ApprovalNotFoundError(
                f"no approval for token {token_id}",
                details={"owner": owner, "token_id": token_id},
            )
        return delegate

    def set_approval_for_all(self, caller: str, operator: str, approve: bool) -> None:
        """Grant or revoke blanket transfer rights over all of caller's tokens."""
        _require_identity(operator, "operator")
        if not isinstance(approve, bool):
            raise InvalidValueError("approve must be a bool", details={"argument": "approve"})

        self.approvals.set_operator(caller, operator, approve)
        self._emit(OperatorEvent(approve=approve, owner=caller, operator=operator))

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return self.approvals.is_operator(owner, operator)

    # ==================== View Functions ====================

    def balance_of(self, owner: str, token_id: int) -> int:
        return self.balances.get(owner, token_id)

    def balance_of_batch(self, owners: Sequence[str], token_ids: Sequence[int]) -> List[int]:
        """
        Get balances for positionally paired owners and token ids.

        Raises:
            LengthMismatchError: If the sequences differ in length
        """
        if len(owners) != len(token_ids):
            raise LengthMismatchError(
                "owners and token ids length mismatch",
                details={"owners": len(owners), "token_ids": len(token_ids)},
            )
        return [self.balances.get(owner, token_id) for owner, token_id in zip(owners, token_ids)]

    def minted_supply(self, token_id: int) -> int:
        """Cumulative amount ever minted for token_id."""
        return self.supply.minted(token_id)

    def meta_data(self, token_id: int) -> TokenMetadata:
        """
        Get metadata for token_id.

        Raises:
            TokenNotFoundError: If no metadata was registered
        """
        return self.metadata.get(token_id)

    # ==================== Minting & Burning ====================

    def mint(self, caller: str, to: str, token_id: int, amount: int) -> None:
        """
        Mint amount units of token_id to `to`.

        With access control enabled only the admin may mint; otherwise anyone
        may. No maximum supply is enforced.

        Raises:
            NotAdminError: If minting is admin-gated and caller is not the admin
            ArithmeticOverflowError: If the recipient balance would exceed u64
            InvalidSupplyError: If the minted supply would exceed u64
        """
        _require_identity(to, "to")
        require_u64(token_id, "token_id")
        require_u64(amount, "amount")

        if self.config.access_control:
            admin = self.config.admin
            if admin is None or caller != admin:
                raise NotAdminError(
                    "caller is not the admin",
                    details={"caller": caller},
                )

        prior_supply = self.supply.minted(token_id)
        new_supply = u64_add(prior_supply, amount, error=InvalidSupplyError)
        new_balance = u64_add(self.balances.get(to, token_id), amount)

        self.balances.set(to, token_id, new_balance)
        self.supply.set_minted(token_id, new_supply)

        self._emit(MintEvent(owner=to, token_id_start=prior_supply, total_tokens=amount))

        logger.info(
            "Tokens minted",
            extra={
                "event": "ledger.mint",
                "token_id": token_id,
                "amount": amount,
                "to": to,
            },
        )

    def burn(self, caller: str, token_id: int, amount: int) -> None:
        """
        Burn amount units of token_id from caller's own balance.

        The balance must be strictly greater than amount, so an exact full
        balance cannot be burned. Minted supply is not decremented.

        Raises:
            TokenNotFoundError: If token_id was never minted
            InsufficientBalanceError: If balance <= amount
        """
        require_u64(token_id, "token_id")
        require_u64(amount, "amount")

        if self.supply.minted(token_id) == 0:
            raise TokenNotFoundError(
                f"token {token_id} has never been minted",
                details={"token_id": token_id},
            )

        balance = self.balances.get(caller, token_id)
        if not balance > amount:
            raise InsufficientBalanceError(
                f"burn amount exceeds burnable balance ({amount} >= {balance})",
                details={"token_id": token_id, "amount": amount, "balance": balance},
            )

        self.balances.set(caller, token_id, u64_sub(balance, amount))
        self._emit(BurnEvent(owner=caller, token_id=token_id, amount=amount))

        logger.info(
            "Tokens burned",
            extra={
                "event": "ledger.burn",
                "token_id": token_id,
                "amount": amount,
                "owner": caller,
            },
        )

    # ==================== Transfers ====================

    def transfer_from(
        self,
        caller: str,
        from_addr: str,
        to_addr: str,
        token_id: int,
        amount: int,
    ) -> None:
        """
        Move amount units of token_id from from_addr to to_addr.

        Allowed when caller is from_addr, the approved delegate of
        (from_addr, token_id), or an operator of from_addr.

        Raises:
            InsufficientBalanceError: If from_addr holds less than amount
            NotOwnerNorApprovedError: If caller may not move from_addr's tokens
        """
        _require_identity(from_addr, "from_addr")
        _require_identity(to_addr, "to_addr")
        require_u64(token_id, "token_id")
        require_u64(amount, "amount")

        working: Dict[Tuple[str, int], int] = {}
        self._stage_transfer(working, caller, from_addr, to_addr, token_id, amount)
        self._apply(working)

        self._emit(
            TransferEvent(
                from_address=from_addr,
                sender=caller,
                to_address=to_addr,
                token_id=token_id,
                amount=amount,
            )
        )

        logger.debug(
            "Ledger transfer",
            extra={
                "event": "ledger.transfer",
                "token_id": token_id,
                "amount": amount,
                "from": from_addr,
                "to": to_addr,
            },
        )

    def batch_transfer_from(
        self,
        caller: str,
        from_addr: str,
        to_addr: str,
        token_ids: Sequence[int],
        amounts: Sequence[int],
    ) -> None:
        """
        Transfer several token ids from from_addr to to_addr in one call.

        Each item is checked exactly like transfer_from, in order, against the
        balances left by the items before it. Nothing is written unless every
        item passes. One aggregated BatchTransfer event is emitted.

        Raises:
            LengthMismatchError: If token_ids and amounts differ in length
            InsufficientBalanceError: If any item exceeds the remaining balance
            NotOwnerNorApprovedError: If caller may not move any item
        """
        if len(token_ids) != len(amounts):
            raise LengthMismatchError(
                "token ids and amounts length mismatch",
                details={"token_ids": len(token_ids), "amounts": len(amounts)},
            )

        _require_identity(from_addr, "from_addr")
        _require_identity(to_addr, "to_addr")

        working: Dict[Tuple[str, int], int] = {}
        for index, (token_id, amount) in enumerate(zip(token_ids, amounts)):
            require_u64(token_id, f"token_ids[{index}]")
            require_u64(amount, f"amounts[{index}]")
            self._stage_transfer(working, caller, from_addr, to_addr, token_id, amount)

        self._apply(working)

        self._emit(
            BatchTransferEvent(
                from_address=from_addr,
                sender=caller,
                to_address=to_addr,
                token_ids=tuple(token_ids),
                amounts=tuple(amounts),
            )
        )

        logger.debug(
            "Ledger batch transfer",
            extra={
                "event": "ledger.batch_transfer",
                "items": len(token_ids),
                "from": from_addr,
                "to": to_addr,
            },
        )

    # ==================== Helpers ====================

    def _can_move(self, caller: str, owner: str, token_id: int) -> bool:
        return (
            self.approvals.get_approval(owner, token_id) == caller
            or owner == caller
            or self.approvals.is_operator(owner, caller)
        )

    def _working_balance(
        self, working: Dict[Tuple[str, int], int], owner: str, token_id: int
    ) -> int:
        key = (owner, token_id)
        if key not in working:
            working[key] = self.balances.get(owner, token_id)
        return working[key]

    def _stage_transfer(
        self,
        working: Dict[Tuple[str, int], int],
        caller: str,
        from_addr: str,
        to_addr: str,
        token_id: int,
        amount: int,
    ) -> None:
        """Validate one transfer item and record its effect in `working` only."""
        from_balance = self._working_balance(working, from_addr, token_id)
        if from_balance < amount:
            raise InsufficientBalanceError(
                f"insufficient balance for token {token_id} ({amount} > {from_balance})",
                details={"token_id": token_id, "amount": amount, "balance": from_balance},
            )

        if not self._can_move(caller, from_addr, token_id):
            raise NotOwnerNorApprovedError(
                "caller is not owner nor approved",
                details={"caller": caller, "from": from_addr, "token_id": token_id},
            )

        working[(from_addr, token_id)] = u64_sub(from_balance, amount)
        to_balance = self._working_balance(working, to_addr, token_id)
        working[(to_addr, token_id)] = u64_add(to_balance, amount)

    def _apply(self, working: Dict[Tuple[str, int], int]) -> None:
        for (owner, token_id), amount in working.items():
            self.balances.set(owner, token_id, amount)

    def _emit(self, event: LedgerEvent) -> None:
        if self._emit_callback is not None:
            self._emit_callback(event)
