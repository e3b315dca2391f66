"""
Ledger Invariant Tests using Property-Based Testing

Random operation sequences are replayed against a host and the following
must hold after every step, whether the step succeeded or was rejected:

- Conservation: transfers never change the sum of balances of a token
- Mint monotonicity: minted supply never decreases
- Rejection atomicity: a rejected invocation leaves committed state untouched
"""

import pytest
from hypothesis import given, settings, strategies as st

from tokenledger.core.config import LedgerSettings
from tokenledger.core.host import LedgerHost
from tokenledger.core.ledger_exceptions import LedgerError

IDENTITIES = ["alice", "bob", "carol", "dave"]
TOKEN_IDS = [0, 1, 2]

identity = st.sampled_from(IDENTITIES)
token_id = st.sampled_from(TOKEN_IDS)
amount = st.integers(min_value=0, max_value=50)

mint_op = st.tuples(st.just("mint"), identity, identity, token_id, amount)
burn_op = st.tuples(st.just("burn"), identity, token_id, amount)
transfer_op = st.tuples(st.just("transfer_from"), identity, identity, identity, token_id, amount)
approve_op = st.tuples(st.just("approve"), identity, identity, token_id)
operator_op = st.tuples(st.just("set_approval_for_all"), identity, identity, st.booleans())
batch_op = st.integers(min_value=0, max_value=4).flatmap(
    lambda n: st.tuples(
        st.just("batch_transfer_from"),
        identity,
        identity,
        identity,
        st.lists(token_id, min_size=n, max_size=n),
        st.lists(amount, min_size=n, max_size=n),
    )
)

operation = st.one_of(mint_op, burn_op, transfer_op, approve_op, operator_op, batch_op)


def _new_host() -> LedgerHost:
    host = LedgerHost(settings=LedgerSettings(log_events=False))
    host.invoke("alice", "initialize", access_control=False)
    return host


def _totals(host: LedgerHost) -> dict:
    return {
        tid: sum(host.ledger.balances.holders(tid).values()) for tid in TOKEN_IDS
    }


def _supplies(host: LedgerHost) -> dict:
    return {tid: host.query("minted_supply", token_id=tid) for tid in TOKEN_IDS}


def _apply(host: LedgerHost, op: tuple) -> None:
    kind = op[0]
    if kind == "mint":
        _, caller, to, tid, amt = op
        host.invoke(caller, "mint", to=to, token_id=tid, amount=amt)
    elif kind == "burn":
        _, caller, tid, amt = op
        host.invoke(caller, "burn", token_id=tid, amount=amt)
    elif kind == "transfer_from":
        _, caller, src, dst, tid, amt = op
        host.invoke(caller, "transfer_from", from_addr=src, to_addr=dst, token_id=tid, amount=amt)
    elif kind == "approve":
        _, caller, delegate, tid = op
        host.invoke(caller, "approve", approved=delegate, token_id=tid)
    elif kind == "set_approval_for_all":
        _, caller, operator, flag = op
        host.invoke(caller, "set_approval_for_all", operator=operator, approve=flag)
    else:
        _, caller, src, dst, tids, amts = op
        host.invoke(caller, "batch_transfer_from", from_addr=src, to_addr=dst, token_ids=tids, amounts=amts)


class TestLedgerInvariants:
    @given(st.lists(operation, min_size=1, max_size=40))
    @settings(max_examples=150, deadline=None)
    def test_invariants_hold_over_random_sequences(self, ops):
        host = _new_host()

        for op in ops:
            totals_before = _totals(host)
            supplies_before = _supplies(host)
            state_before = host.store.snapshot()

            try:
                _apply(host, op)
            except LedgerError:
                assert host.store.snapshot() == state_before, f"rejected {op} mutated state"
                continue

            totals_after = _totals(host)
            supplies_after = _supplies(host)

            for tid in TOKEN_IDS:
                assert supplies_after[tid] >= supplies_before[tid]
                assert all(v >= 0 for v in host.ledger.balances.holders(tid).values())

            if op[0] in ("transfer_from", "batch_transfer_from", "approve", "set_approval_for_all"):
                assert totals_after == totals_before
            elif op[0] == "mint":
                tid, amt = op[3], op[4]
                assert supplies_after[tid] == supplies_before[tid] + amt
                assert totals_after[tid] == totals_before[tid] + amt
            elif op[0] == "burn":
                tid, amt = op[2], op[3]
                assert supplies_after[tid] == supplies_before[tid]
                assert totals_after[tid] == totals_before[tid] - amt


class TestTransferConservation:
    @given(
        minted=st.integers(min_value=0, max_value=10**6),
        moved=st.integers(min_value=0, max_value=10**6),
        src=identity,
        dst=identity,
    )
    @settings(max_examples=200, deadline=None)
    def test_single_transfer_conserves(self, minted, moved, src, dst):
        host = _new_host()
        host.invoke(src, "mint", to=src, token_id=1, amount=minted)

        src_before = host.query("balance_of", owner=src, token_id=1)
        dst_before = host.query("balance_of", owner=dst, token_id=1)

        if moved > minted:
            with pytest.raises(LedgerError):
                host.invoke(src, "transfer_from", from_addr=src, to_addr=dst, token_id=1, amount=moved)
            assert host.query("balance_of", owner=src, token_id=1) == src_before
            return

        host.invoke(src, "transfer_from", from_addr=src, to_addr=dst, token_id=1, amount=moved)

        if src == dst:
            assert host.query("balance_of", owner=src, token_id=1) == src_before
        else:
            assert host.query("balance_of", owner=src, token_id=1) + moved == src_before
            assert host.query("balance_of", owner=dst, token_id=1) == dst_before + moved
        assert sum(host.ledger.balances.holders(1).values()) == minted
