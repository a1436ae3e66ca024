from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Iterable


class ContractInterface(str, Enum):
    WALLET = "wallet"
    JETTON_MASTER = "jetton_master"
    JETTON_WALLET = "jetton_wallet"
    JETTON_WALLET_V2 = "jetton_wallet_v2"
    JETTON_WALLET_GOVERNED = "jetton_wallet_governed"
    NFT_ITEM = "nft_item"
    NFT_COLLECTION = "nft_collection"
    NFT_SALE_V1 = "nft_sale_v1"
    NFT_SALE_V2 = "nft_sale_v2"
    NFT_AUCTION_V1 = "nft_auction_v1"
    TELEITEM = "teleitem"
    STONFI_ROUTER = "stonfi_router"
    STONFI_POOL = "stonfi_pool"
    STONFI_POOL_V2 = "stonfi_pool_v2"
    STONFI_POOL_V2_CONST_PRODUCT = "stonfi_pool_v2_const_product"
    STONFI_POOL_V2_STABLESWAP = "stonfi_pool_v2_stableswap"
    STONFI_POOL_V2_WEIGHTED_STABLESWAP = "stonfi_pool_v2_weighted_stableswap"
    DEDUST_POOL = "dedust_pool"
    DEDUST_VAULT = "dedust_vault"

    def implements(self, other: "ContractInterface") -> bool:
        if self is other:
            return True
        return other in _IMPLEMENTS.get(self, frozenset())


# Interfaces that are specialisations of a more general one.
_IMPLEMENTS: Dict[ContractInterface, FrozenSet[ContractInterface]] = {
    ContractInterface.JETTON_WALLET_V2: frozenset({ContractInterface.JETTON_WALLET}),
    ContractInterface.JETTON_WALLET_GOVERNED: frozenset({ContractInterface.JETTON_WALLET}),
    ContractInterface.STONFI_POOL_V2_CONST_PRODUCT: frozenset({ContractInterface.STONFI_POOL_V2}),
    ContractInterface.STONFI_POOL_V2_STABLESWAP: frozenset({ContractInterface.STONFI_POOL_V2}),
    ContractInterface.STONFI_POOL_V2_WEIGHTED_STABLESWAP: frozenset({ContractInterface.STONFI_POOL_V2}),
    ContractInterface.TELEITEM: frozenset({ContractInterface.NFT_ITEM}),
}


def has_interface(interfaces: Iterable[ContractInterface], *names: ContractInterface) -> bool:
    """
    True if any of `interfaces` implements any of `names`.
    """
    for iface in interfaces:
        for name in names:
            if iface.implements(name):
                return True
    return False


class STONfiVersion(str, Enum):
    V1 = "v1"
    V2 = "v2"


class CurrencyType(str, Enum):
    NATIVE = "native"
    JETTON = "jetton"
    EXTRA_CURRENCY = "extra_currency"
    UNKNOWN = "unknown"
