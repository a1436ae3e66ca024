from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from tontrace.core.context import LookupContext
from tontrace.core.dto import AccountID, DedustPool, NftSaleContract, STONfiPool, STONfiPoolID
from tontrace.io.schemas import additional_info_from_dict
from tontrace.ports.information_source_port import InformationSource


class StaticInformationAdapter(InformationSource):
    """
    In-memory InformationSource for tests and offline runs.
    Every call is recorded in `calls` as (method name, keys).
    """

    def __init__(
        self,
        jetton_masters: Optional[Dict[AccountID, AccountID]] = None,
        nft_sales: Optional[Dict[AccountID, NftSaleContract]] = None,
        stonfi_pools: Optional[Dict[AccountID, STONfiPool]] = None,
        dedust_pools: Optional[Dict[AccountID, DedustPool]] = None,
        errors: Optional[Dict[str, Exception]] = None,
    ) -> None:
        self._masters = dict(jetton_masters or {})
        self._sales = dict(nft_sales or {})
        self._stonfi = dict(stonfi_pools or {})
        self._dedust = dict(dedust_pools or {})
        self._errors = dict(errors or {})
        self.calls: List[Tuple[str, list]] = []

    @classmethod
    def from_json_file(cls, path: str) -> "StaticInformationAdapter":
        """
        Loads lookups from a JSON file with optional `jetton_masters`, `nft_sales`,
        `stonfi_pools` and `dedust_pools` objects keyed by raw account id. Values
        use the additional info field layout, e.g. {"Token0": ..., "Token1": ...}.
        """
        data: Dict[str, Any] = json.loads(Path(path).read_text(encoding="utf-8"))

        def _section(name: str, field_name: str) -> dict:
            out = {}
            for account, value in (data.get(name) or {}).items():
                info = additional_info_from_dict({field_name: value})
                out[AccountID.parse(account)] = getattr(info, _ATTRS[field_name])
            return out

        return cls(
            jetton_masters={
                AccountID.parse(k): AccountID.parse(v) for k, v in (data.get("jetton_masters") or {}).items()
            },
            nft_sales=_section("nft_sales", "NftSaleContract"),
            stonfi_pools=_section("stonfi_pools", "STONfiPool"),
            dedust_pools=_section("dedust_pools", "DedustPool"),
        )

    def _record(self, ctx: LookupContext, method: str, keys: list) -> None:
        ctx.raise_if_cancelled()
        self.calls.append((method, list(keys)))
        if method in self._errors:
            raise self._errors[method]

    def jetton_masters_for_wallets(self, ctx, wallets):
        self._record(ctx, "jetton_masters_for_wallets", wallets)
        return {w: self._masters[w] for w in wallets if w in self._masters}

    def nft_sale_contracts(self, ctx, contracts):
        self._record(ctx, "nft_sale_contracts", contracts)
        return {c: self._sales[c] for c in contracts if c in self._sales}

    def stonfi_pools(self, ctx, pool_ids: List[STONfiPoolID]):
        self._record(ctx, "stonfi_pools", pool_ids)
        return {p.id: self._stonfi[p.id] for p in pool_ids if p.id in self._stonfi}

    def dedust_pools(self, ctx, contracts):
        self._record(ctx, "dedust_pools", contracts)
        return {c: self._dedust[c] for c in contracts if c in self._dedust}


_ATTRS = {
    "NftSaleContract": "nft_sale_contract",
    "STONfiPool": "stonfi_pool",
    "DedustPool": "dedust_pool",
}
