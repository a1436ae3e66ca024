from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from tontrace.core.context import LookupContext, background
from tontrace.core.dto import AccountID, DedustPool, NftSaleContract, STONfiPool, STONfiPoolID
from tontrace.core.enums import ContractInterface, STONfiVersion, has_interface
from tontrace.core.models import Trace, TraceAdditionalInfo, visit
from tontrace.ports.information_source_port import InformationSource

LOGGER = logging.getLogger(__name__)

_SALE_INTERFACES = (
    ContractInterface.NFT_SALE_V1,
    ContractInterface.NFT_SALE_V2,
    ContractInterface.NFT_AUCTION_V1,
)


@dataclass
class _Batch:
    """Keys collected over one trace, grouped by lookup."""

    pending: List[Trace] = field(default_factory=list)
    jetton_wallets: List[AccountID] = field(default_factory=list)
    sale_contracts: List[AccountID] = field(default_factory=list)
    stonfi_pool_ids: List[STONfiPoolID] = field(default_factory=list)
    dedust_pools: List[AccountID] = field(default_factory=list)


@dataclass
class _Results:
    masters: Dict[AccountID, AccountID] = field(default_factory=dict)
    sales: Dict[AccountID, NftSaleContract] = field(default_factory=dict)
    stonfi_pools: Dict[AccountID, STONfiPool] = field(default_factory=dict)
    dedust_pools: Dict[AccountID, DedustPool] = field(default_factory=dict)


class EnrichmentService:
    """
    Populates TraceAdditionalInfo for every node of a trace.

    - One visit classifies nodes by their interfaces
    - At most four batched lookups, whatever the size of the trace
    - Nodes that already carry additional info (built during emulation) are never queried
    - All-or-nothing: a failed lookup leaves the trace untouched
    """

    def __init__(self, info_source: Optional[InformationSource]) -> None:
        self.info_source = info_source

    def collect_additional_info(self, trace: Trace, ctx: Optional[LookupContext] = None) -> None:
        if self.info_source is None:
            return
        ctx = ctx or background()

        batch = self._classify(trace)
        if not batch.pending:
            return

        results = self._lookup(ctx, batch)

        # Build everything first so nothing is written unless the whole trace succeeds.
        assembled: List[Tuple[Trace, TraceAdditionalInfo]] = [
            (node, self._build_info(node, results)) for node in batch.pending
        ]
        written = 0
        for node, info in assembled:
            # another holder of a cached trace may have filled the node meanwhile
            if node.additional_info() is not None:
                continue
            node.set_additional_info(info)
            written += 1

        LOGGER.debug("attached additional info to %d trace node(s)", written)

    # -------------------------
    # Classification
    # -------------------------

    def _classify(self, trace: Trace) -> _Batch:
        batch = _Batch()

        def _collect(node: Trace) -> None:
            # Emulated traces get additional info while the tree is built, and
            # some of those accounts don't exist on chain, so never query them.
            if node.additional_info() is not None:
                return
            batch.pending.append(node)

            ifaces = node.account_interfaces
            if has_interface(ifaces, ContractInterface.JETTON_WALLET):
                batch.jetton_wallets.append(node.account)
            if has_interface(ifaces, *_SALE_INTERFACES):
                batch.sale_contracts.append(node.account)
            if has_interface(ifaces, ContractInterface.STONFI_POOL):
                batch.stonfi_pool_ids.append(STONfiPoolID(id=node.account, version=STONfiVersion.V1))
            if has_interface(ifaces, ContractInterface.STONFI_POOL_V2):
                batch.stonfi_pool_ids.append(STONfiPoolID(id=node.account, version=STONfiVersion.V2))
            if has_interface(ifaces, ContractInterface.DEDUST_POOL):
                batch.dedust_pools.append(node.account)

        visit(trace, _collect)
        return batch

    # -------------------------
    # Lookups
    # -------------------------

    def _lookup(self, ctx: LookupContext, batch: _Batch) -> _Results:
        source = self.info_source
        results = _Results()
        wallets = list(batch.jetton_wallets)

        # STON.fi first: pool token wallets need their masters resolved in the same jetton batch.
        if batch.stonfi_pool_ids:
            ctx.raise_if_cancelled()
            results.stonfi_pools = source.stonfi_pools(ctx, _unique(batch.stonfi_pool_ids))
            for pool in results.stonfi_pools.values():
                wallets.append(pool.token0)
                wallets.append(pool.token1)

        if batch.dedust_pools:
            ctx.raise_if_cancelled()
            results.dedust_pools = source.dedust_pools(ctx, _unique(batch.dedust_pools))

        if wallets:
            ctx.raise_if_cancelled()
            results.masters = source.jetton_masters_for_wallets(ctx, _unique(wallets))

        if batch.sale_contracts:
            ctx.raise_if_cancelled()
            results.sales = source.nft_sale_contracts(ctx, _unique(batch.sale_contracts))

        LOGGER.debug(
            "trace lookups: %d stonfi pool(s), %d dedust pool(s), %d jetton wallet(s), %d sale contract(s)",
            len(batch.stonfi_pool_ids),
            len(batch.dedust_pools),
            len(wallets),
            len(batch.sale_contracts),
        )
        return results

    # -------------------------
    # Assembly
    # -------------------------

    @staticmethod
    def _build_info(node: Trace, results: _Results) -> TraceAdditionalInfo:
        info = TraceAdditionalInfo()
        ifaces = node.account_interfaces
        account = node.account

        if has_interface(ifaces, ContractInterface.JETTON_WALLET):
            _set_master(info, account, results.masters)

        if has_interface(ifaces, *_SALE_INTERFACES):
            sale = results.sales.get(account)
            if sale is not None:
                info.nft_sale_contract = sale

        if has_interface(ifaces, ContractInterface.STONFI_POOL, ContractInterface.STONFI_POOL_V2):
            pool = results.stonfi_pools.get(account)
            if pool is not None:
                info.stonfi_pool = pool
                _set_master(info, pool.token0, results.masters)
                _set_master(info, pool.token1, results.masters)

        if has_interface(ifaces, ContractInterface.DEDUST_POOL):
            dedust = results.dedust_pools.get(account)
            if dedust is not None:
                info.dedust_pool = dedust

        return info


def _set_master(info: TraceAdditionalInfo, wallet: AccountID, masters: Dict[AccountID, AccountID]) -> None:
    master = masters.get(wallet)
    if master is not None:
        info.set_jetton_master(wallet, master)


def _unique(keys: list) -> list:
    return list(dict.fromkeys(keys))
