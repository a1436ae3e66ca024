from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

import requests

from tontrace.adapters.tonapi.rate_limiter import SimpleRateLimiter, backoff_sleep
from tontrace.config import settings
from tontrace.core.context import LookupContext
from tontrace.core.dto import (
    AccountID,
    Currency,
    DedustPool,
    NftSaleContract,
    STONfiPool,
    STONfiPoolID,
)
from tontrace.core.enums import CurrencyType, STONfiVersion
from tontrace.core.errors import AccountIDParseError, DataSourceError, RateLimitError
from tontrace.ports.information_source_port import InformationSource

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

# decoded get_pool_data fields holding the pool's jetton wallets, per STON.fi version
_STONFI_TOKEN_FIELDS = {
    STONfiVersion.V1: ("token0_address", "token1_address"),
    STONfiVersion.V2: ("token0_wallet_address", "token1_wallet_address"),
}


class TonapiInformationAdapter(InformationSource):
    """
    InformationSource backed by TonAPI get-method execution.

    Accounts whose get-method fails (non-zero exit code, missing account) are
    left out of the result; transport errors raise DataSourceError after retries.
    """

    def __init__(
        self,
        base_url: str = settings.TONAPI_BASE_URL,
        api_key: Optional[str] = settings.TONAPI_API_KEY,
        requests_per_sec: float = settings.TONAPI_REQUESTS_PER_SEC,
        timeout_sec: int = settings.TONAPI_TIMEOUT_SEC,
        max_retries: int = settings.TONAPI_MAX_RETRIES,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_sec
        self._max_retries = max_retries
        self._rl = SimpleRateLimiter(requests_per_sec)
        self._session = session or requests.Session()
        if api_key:
            self._session.headers["Authorization"] = f"Bearer {api_key}"

    # ---------- internal ----------

    def _run_method(self, ctx: LookupContext, account: AccountID, method: str) -> Optional[Dict[str, Any]]:
        """
        Returns the decoded get-method result, or None if the method can't be executed on `account`.
        """
        url = f"{self._base_url}/v2/blockchain/accounts/{account}/methods/{method}"
        last_err: Optional[Exception] = None

        for attempt in range(self._max_retries):
            ctx.raise_if_cancelled()
            try:
                self._rl.wait()
                timeout = self._timeout
                remaining = ctx.remaining()
                if remaining is not None:
                    timeout = max(0.1, min(timeout, remaining))
                resp = self._session.get(url, timeout=timeout)

                if resp.status_code == 429:
                    last_err = RateLimitError(f"TonAPI rate limited {method} on {account}")
                    backoff_sleep(attempt, ctx=ctx)
                    continue
                if resp.status_code == 404:
                    return None
                resp.raise_for_status()
                data = resp.json()

                if not isinstance(data, dict):
                    raise DataSourceError(f"Invalid TonAPI response: {data}")
                if not data.get("success", False):
                    LOGGER.debug("%s on %s exited with code %s", method, account, data.get("exit_code"))
                    return None
                decoded = data.get("decoded")
                return decoded if isinstance(decoded, dict) else None

            except (requests.RequestException, ValueError, DataSourceError) as e:
                last_err = e
                backoff_sleep(attempt, ctx=ctx)

        if isinstance(last_err, RateLimitError):
            raise RateLimitError(f"TonAPI failed after retries: {last_err}") from last_err
        raise DataSourceError(f"TonAPI failed after retries: {last_err}")

    def _collect(
        self,
        ctx: LookupContext,
        accounts: List[AccountID],
        method: str,
        parse: Callable[[Dict[str, Any]], T],
    ) -> Dict[AccountID, T]:
        out: Dict[AccountID, T] = {}
        for account in accounts:
            decoded = self._run_method(ctx, account, method)
            if decoded is None:
                continue
            try:
                out[account] = parse(decoded)
            except (AccountIDParseError, KeyError, TypeError, ValueError) as e:
                raise DataSourceError(f"Invalid {method} result for {account}: {e}") from e
        return out

    @staticmethod
    def _currency(raw: Dict[str, Any]) -> Currency:
        try:
            ctype = CurrencyType(raw.get("type", "unknown"))
        except ValueError:
            ctype = CurrencyType.UNKNOWN
        jetton = raw.get("jetton")
        currency_id = raw.get("currency_id")
        return Currency(
            type=ctype,
            jetton=AccountID.parse(jetton) if jetton else None,
            currency_id=int(currency_id) if currency_id is not None else None,
        )

    # ---------- port methods ----------

    def jetton_masters_for_wallets(
        self, ctx: LookupContext, wallets: List[AccountID]
    ) -> Dict[AccountID, AccountID]:
        return self._collect(ctx, wallets, "get_wallet_data", lambda d: AccountID.parse(d["jetton"]))

    def nft_sale_contracts(
        self, ctx: LookupContext, contracts: List[AccountID]
    ) -> Dict[AccountID, NftSaleContract]:
        def parse(d: Dict[str, Any]) -> NftSaleContract:
            owner = d.get("owner") or d.get("nft_owner")
            return NftSaleContract(
                nft_price=int(d.get("full_price", d.get("price", 0))),
                owner=AccountID.parse(owner) if owner else None,
                item=AccountID.parse(d.get("nft") or d["nft_address"]),
            )

        return self._collect(ctx, contracts, "get_sale_data", parse)

    def stonfi_pools(
        self, ctx: LookupContext, pool_ids: List[STONfiPoolID]
    ) -> Dict[AccountID, STONfiPool]:
        out: Dict[AccountID, STONfiPool] = {}
        for version, (field0, field1) in _STONFI_TOKEN_FIELDS.items():
            accounts = [p.id for p in pool_ids if p.version == version]
            if not accounts:
                continue
            out.update(
                self._collect(
                    ctx,
                    accounts,
                    "get_pool_data",
                    lambda d, f0=field0, f1=field1: STONfiPool(
                        token0=AccountID.parse(d[f0]),
                        token1=AccountID.parse(d[f1]),
                    ),
                )
            )
        return out

    def dedust_pools(
        self, ctx: LookupContext, contracts: List[AccountID]
    ) -> Dict[AccountID, DedustPool]:
        return self._collect(
            ctx,
            contracts,
            "get_assets",
            lambda d: DedustPool(asset0=self._currency(d["asset0"]), asset1=self._currency(d["asset1"])),
        )
