import unittest
from unittest import mock

import requests

from tontrace.adapters.tonapi.tonapi_information_adapter import TonapiInformationAdapter
from tontrace.core.context import LookupContext
from tontrace.core.dto import AccountID, Currency, STONfiPool, STONfiPoolID
from tontrace.core.enums import CurrencyType, STONfiVersion
from tontrace.core.errors import DataSourceError, LookupCancelledError, RateLimitError

POOL_V1 = "0:" + "01" * 32
POOL_V2 = "0:" + "02" * 32
W0 = "0:" + "a0" * 32
W1 = "0:" + "a1" * 32
MASTER = "0:" + "ff" * 32


def _response(status: int = 200, payload=None) -> mock.Mock:
    resp = mock.Mock()
    resp.status_code = status
    resp.json.return_value = payload
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"HTTP {status}")
    else:
        resp.raise_for_status.return_value = None
    return resp


def _ok(decoded) -> mock.Mock:
    return _response(payload={"success": True, "exit_code": 0, "stack": [], "decoded": decoded})


class TonapiInformationAdapterTests(unittest.TestCase):
    def setUp(self) -> None:
        patcher = mock.patch("tontrace.adapters.tonapi.tonapi_information_adapter.backoff_sleep")
        self.backoff = patcher.start()
        self.addCleanup(patcher.stop)
        self.session = mock.Mock()
        self.session.headers = {}
        self.adapter = TonapiInformationAdapter(
            base_url="https://tonapi.test/",
            api_key="secret",
            requests_per_sec=1000,
            timeout_sec=5,
            max_retries=3,
            session=self.session,
        )
        self.ctx = LookupContext()

    def test_api_key_header(self) -> None:
        self.assertEqual(self.session.headers["Authorization"], "Bearer secret")

    def test_jetton_masters(self) -> None:
        self.session.get.return_value = _ok({"balance": "1", "owner": W1, "jetton": MASTER})
        got = self.adapter.jetton_masters_for_wallets(self.ctx, [AccountID.parse(W0)])

        self.assertEqual(got, {AccountID.parse(W0): AccountID.parse(MASTER)})
        url = self.session.get.call_args[0][0]
        self.assertEqual(url, f"https://tonapi.test/v2/blockchain/accounts/{W0}/methods/get_wallet_data")

    def test_failed_method_is_left_out(self) -> None:
        self.session.get.side_effect = [
            _response(payload={"success": False, "exit_code": 11}),
            _response(status=404),
        ]
        got = self.adapter.jetton_masters_for_wallets(self.ctx, [AccountID.parse(W0), AccountID.parse(W1)])
        self.assertEqual(got, {})

    def test_stonfi_versions_use_their_own_layout(self) -> None:
        def get(url, timeout):
            if POOL_V1 in url:
                return _ok({"token0_address": W0, "token1_address": W1})
            return _ok({"token0_wallet_address": W1, "token1_wallet_address": W0})

        self.session.get.side_effect = get
        got = self.adapter.stonfi_pools(self.ctx, [
            STONfiPoolID(id=AccountID.parse(POOL_V1), version=STONfiVersion.V1),
            STONfiPoolID(id=AccountID.parse(POOL_V2), version=STONfiVersion.V2),
        ])

        self.assertEqual(got[AccountID.parse(POOL_V1)], STONfiPool(AccountID.parse(W0), AccountID.parse(W1)))
        self.assertEqual(got[AccountID.parse(POOL_V2)], STONfiPool(AccountID.parse(W1), AccountID.parse(W0)))

    def test_dedust_assets(self) -> None:
        self.session.get.return_value = _ok({
            "asset0": {"type": "native"},
            "asset1": {"type": "jetton", "jetton": MASTER},
        })
        got = self.adapter.dedust_pools(self.ctx, [AccountID.parse(POOL_V1)])
        pool = got[AccountID.parse(POOL_V1)]
        self.assertEqual(pool.asset0, Currency(type=CurrencyType.NATIVE))
        self.assertEqual(pool.asset1, Currency(type=CurrencyType.JETTON, jetton=AccountID.parse(MASTER)))

    def test_sale_data(self) -> None:
        self.session.get.return_value = _ok({"full_price": "2500000000", "owner": W0, "nft": W1})
        got = self.adapter.nft_sale_contracts(self.ctx, [AccountID.parse(POOL_V1)])
        sale = got[AccountID.parse(POOL_V1)]
        self.assertEqual(sale.nft_price, 2_500_000_000)
        self.assertEqual(sale.owner, AccountID.parse(W0))
        self.assertEqual(sale.item, AccountID.parse(W1))

    def test_retries_then_succeeds(self) -> None:
        self.session.get.side_effect = [
            _response(status=429),
            requests.ConnectionError("reset"),
            _ok({"jetton": MASTER}),
        ]
        got = self.adapter.jetton_masters_for_wallets(self.ctx, [AccountID.parse(W0)])
        self.assertEqual(got, {AccountID.parse(W0): AccountID.parse(MASTER)})
        self.assertEqual(self.backoff.call_count, 2)

    def test_rate_limited_then_succeeds(self) -> None:
        self.session.get.side_effect = [_response(status=429), _ok({"jetton": MASTER})]
        got = self.adapter.jetton_masters_for_wallets(self.ctx, [AccountID.parse(W0)])
        self.assertEqual(got, {AccountID.parse(W0): AccountID.parse(MASTER)})
        self.assertEqual(self.session.get.call_count, 2)
        self.assertEqual(self.backoff.call_count, 1)

    def test_keeps_being_rate_limited(self) -> None:
        self.session.get.return_value = _response(status=429)
        with self.assertRaises(RateLimitError) as cm:
            self.adapter.jetton_masters_for_wallets(self.ctx, [AccountID.parse(W0)])
        self.assertIsInstance(cm.exception, DataSourceError)
        self.assertIn("rate limited", str(cm.exception))
        self.assertEqual(self.session.get.call_count, 3)

    def test_gives_up_after_retries(self) -> None:
        self.session.get.return_value = _response(status=500)
        with self.assertRaises(DataSourceError):
            self.adapter.jetton_masters_for_wallets(self.ctx, [AccountID.parse(W0)])
        self.assertEqual(self.session.get.call_count, 3)

    def test_malformed_result_is_data_source_error(self) -> None:
        self.session.get.return_value = _ok({"jetton": "garbage"})
        with self.assertRaises(DataSourceError):
            self.adapter.jetton_masters_for_wallets(self.ctx, [AccountID.parse(W0)])

    def test_cancelled_context_stops_before_request(self) -> None:
        self.ctx.cancel()
        with self.assertRaises(LookupCancelledError):
            self.adapter.jetton_masters_for_wallets(self.ctx, [AccountID.parse(W0)])
        self.session.get.assert_not_called()


if __name__ == "__main__":
    unittest.main()
