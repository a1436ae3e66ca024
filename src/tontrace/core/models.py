from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional

from tontrace.core.dto import (
    AccountID,
    Bits256,
    DedustPool,
    EmulatedTeleitemNFT,
    NftSaleContract,
    STONfiPool,
    Transaction,
)
from tontrace.core.enums import ContractInterface
from tontrace.core.rwlock import ReadWriteLock


@dataclass(frozen=True)
class TraceID:
    """
    Identifies a trace by the hash and logical time of the transaction which created it.
    """

    hash: Bits256
    lt: int
    utime: int
    length: int
    unique_accounts_count: int

    @classmethod
    def from_trace(cls, trace: "Trace") -> "TraceID":
        accounts = set()
        length = 0

        def _count(t: "Trace") -> None:
            nonlocal length
            length += 1
            accounts.add(t.account)

        visit(trace, _count)
        tx = trace.transaction
        return cls(
            hash=tx.hash,
            lt=tx.lt,
            utime=tx.utime,
            length=length,
            unique_accounts_count=len(accounts),
        )


@dataclass
class TraceAdditionalInfo:
    """
    Information about a trace node that is not extracted from its transaction.

    Built once per node; treat it as read-only after it is attached to a Trace.
    """

    # jetton wallet -> jetton master
    jetton_masters: Dict[AccountID, AccountID] = field(default_factory=dict)
    # set if the account implements "get_sale_data"
    nft_sale_contract: Optional[NftSaleContract] = None
    # set if the account is a STON.fi pool and "get_pool_data" succeeded
    stonfi_pool: Optional[STONfiPool] = None
    # only set for emulated traces: an NFT minted during emulation can't be fetched from the chain
    emulated_teleitem_nft: Optional[EmulatedTeleitemNFT] = None
    # set if the account is a DeDust pool and "get_assets" succeeded
    dedust_pool: Optional[DedustPool] = None

    def jetton_master(self, jetton_wallet: AccountID) -> Optional[AccountID]:
        return self.jetton_masters.get(jetton_wallet)

    def set_jetton_master(self, jetton_wallet: AccountID, jetton_master: AccountID) -> None:
        self.jetton_masters[jetton_wallet] = jetton_master


class Trace:
    """
    One transaction of a trace plus the transactions its messages triggered.

    `children`, `account_interfaces` and `transaction` are not synchronized;
    don't mutate them while the tree is shared. The additional info slot is
    guarded because cached traces get enriched by independent callers.
    """

    def __init__(
        self,
        transaction: Transaction,
        account_interfaces: Iterable[ContractInterface] = (),
        children: Optional[List["Trace"]] = None,
        additional_info: Optional[TraceAdditionalInfo] = None,
    ) -> None:
        self.transaction = transaction
        self.account_interfaces: FrozenSet[ContractInterface] = frozenset(account_interfaces)
        self.children: List[Trace] = list(children or [])
        self._lock = ReadWriteLock()
        self._additional_info = additional_info

    def __repr__(self) -> str:
        return (
            f"Trace(hash={self.transaction.hash}, account={self.account}, "
            f"children={len(self.children)})"
        )

    @property
    def hash(self) -> Bits256:
        return self.transaction.hash

    @property
    def account(self) -> AccountID:
        return self.transaction.account

    @property
    def emulated(self) -> bool:
        return self.transaction.emulated

    # --- additional info slot ---

    def additional_info(self) -> Optional[TraceAdditionalInfo]:
        with self._lock.read():
            return self._additional_info

    def set_additional_info(self, info: Optional[TraceAdditionalInfo]) -> None:
        # Concurrent writers derive the same value from the same facts, last one wins.
        with self._lock.write():
            self._additional_info = info

    # --- completion ---

    def count_uncompleted(self) -> int:
        """Outbound messages across the tree that were not expanded into a child yet."""
        count = 0

        def _count(t: Trace) -> None:
            nonlocal count
            count += sum(1 for m in t.transaction.out_msgs if m.destination is not None)

        visit(self, _count)
        return count

    def in_progress(self) -> bool:
        return self.count_uncompleted() != 0

    def calculate_progress(self) -> float:
        """
        Share of confirmed (non-emulated) transactions, counting every pending
        message of a leaf as one more expected transaction.
        """
        finished = 0
        total = 0

        def _progress(t: Trace) -> None:
            nonlocal finished, total
            total += 1
            if not t.emulated:
                finished += 1
            if not t.children:
                total += sum(1 for m in t.transaction.out_msgs if m.destination is not None)

        visit(self, _progress)
        if total == 0:
            return 0.0
        return finished / total


def visit(trace: Optional[Trace], fn: Callable[[Trace], None]) -> None:
    """
    Pre-order walk: `fn(trace)`, then every child in order.

    Uses an explicit stack, so chains of any depth are fine.
    """
    if trace is None:
        return
    stack: List[Trace] = [trace]
    while stack:
        node = stack.pop()
        fn(node)
        stack.extend(reversed(node.children))


def calculate_progress(trace: Optional[Trace]) -> float:
    """`Trace.calculate_progress` that also accepts an empty tree."""
    if trace is None:
        return 0.0
    return trace.calculate_progress()
