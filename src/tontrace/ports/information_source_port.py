from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, List

from tontrace.core.context import LookupContext
from tontrace.core.dto import AccountID, DedustPool, NftSaleContract, STONfiPool, STONfiPoolID


class InformationSource(ABC):
    """
    Batched lookups used to build TraceAdditionalInfo.

    Every method gets all keys at once and returns only the keys it could
    resolve. Failures raise DataSourceError; a cancelled context raises
    LookupCancelledError.
    """

    # --- jettons ---

    @abstractmethod
    def jetton_masters_for_wallets(
        self, ctx: LookupContext, wallets: List[AccountID]
    ) -> Dict[AccountID, AccountID]:
        raise NotImplementedError

    # --- NFT sales ---

    @abstractmethod
    def nft_sale_contracts(
        self, ctx: LookupContext, contracts: List[AccountID]
    ) -> Dict[AccountID, NftSaleContract]:
        raise NotImplementedError

    # --- DEX pools ---

    @abstractmethod
    def stonfi_pools(
        self, ctx: LookupContext, pool_ids: List[STONfiPoolID]
    ) -> Dict[AccountID, STONfiPool]:
        raise NotImplementedError

    @abstractmethod
    def dedust_pools(
        self, ctx: LookupContext, contracts: List[AccountID]
    ) -> Dict[AccountID, DedustPool]:
        raise NotImplementedError
