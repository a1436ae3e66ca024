from __future__ import annotations

import logging
from typing import Dict, FrozenSet, List, Optional

from tontrace.core.dto import AccountID, Bits256, Transaction
from tontrace.core.enums import ContractInterface
from tontrace.core.models import Trace, TraceAdditionalInfo, visit

LOGGER = logging.getLogger(__name__)


def distinct_accounts(trace: Trace) -> List[AccountID]:
    """
    Accounts involved in the trace, each once, in no particular order.
    """
    accounts = set()
    visit(trace, lambda t: accounts.add(t.account))
    return list(accounts)


def copy_trace_data(from_trace: Trace, to_trace: Trace) -> Trace:
    """
    Moves additional info, account interfaces and transactions from one trace to another.

    Nodes are matched by transaction hash. The shape of `to_trace` is kept as is,
    only node content is transplanted. Placeholder nodes (zero hash) are ignored
    on both sides.
    """
    info_by_hash: Dict[Bits256, TraceAdditionalInfo] = {}
    interfaces_by_hash: Dict[Bits256, FrozenSet[ContractInterface]] = {}
    tx_by_hash: Dict[Bits256, Transaction] = {}

    def _index(t: Trace) -> None:
        if t.hash.is_zero():
            return
        info = t.additional_info()
        if info is not None:
            info_by_hash[t.hash] = info
        if t.account_interfaces:
            interfaces_by_hash[t.hash] = t.account_interfaces
        tx_by_hash[t.hash] = t.transaction

    visit(from_trace, _index)

    copied = 0

    def _apply(t: Trace) -> None:
        nonlocal copied
        if t.hash.is_zero():
            return
        info: Optional[TraceAdditionalInfo] = info_by_hash.get(t.hash)
        if info is not None:
            t.set_additional_info(info)
        interfaces = interfaces_by_hash.get(t.hash)
        if interfaces is not None:
            t.account_interfaces = interfaces
        tx = tx_by_hash.get(t.hash)
        if tx is not None:
            t.transaction = tx
            copied += 1

    visit(to_trace, _apply)
    LOGGER.debug("copied trace data for %d of %d known transaction(s)", copied, len(tx_by_hash))
    return to_trace
