from __future__ import annotations

import unittest

import config
from monitor.dexscreener import DexScreenerClient
from monitor.errors import UpstreamUnavailable
from utils.http_client import HttpResult


class ConfigPatchMixin:
    def setUp(self) -> None:
        super().setUp()
        self._cfg_old: dict[str, object] = {}

    def patch_cfg(self, **kwargs: object) -> None:
        for key, value in kwargs.items():
            if key not in self._cfg_old:
                self._cfg_old[key] = getattr(config, key, None)
            setattr(config, key, value)

    def tearDown(self) -> None:
        for key, value in self._cfg_old.items():
            setattr(config, key, value)
        super().tearDown()


BASE = "https://dex.test"


class _RoutedHttp:
    """Answers get_json by URL path; unknown paths fail like an exhausted retry loop."""

    def __init__(self, routes: dict[str, HttpResult]) -> None:
        self.routes = routes
        self.calls: list[tuple[str, str, dict | None]] = []

    async def get_json(self, url, *, source, params=None, headers=None, max_attempts=None):
        path = url[len(BASE):]
        self.calls.append((path, source, params))
        return self.routes.get(path, HttpResult(ok=False, status=503, data=None, error="unavailable"))

    async def close(self) -> None:
        return None


def _ok(data) -> HttpResult:
    return HttpResult(ok=True, status=200, data=data)


def _pair(address: str, chain: str = "solana", liquidity: float = 5000, volume: float = 1000) -> dict:
    return {
        "chainId": chain,
        "pairAddress": f"{address}-{liquidity}",
        "baseToken": {"address": address},
        "liquidity": {"usd": liquidity},
        "volume": {"h24": volume},
    }


class DexScreenerClientTests(ConfigPatchMixin, unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.patch_cfg(
            DEXSCREENER_API_BASE=BASE,
            DISCOVERY_CALL_DELAY_SECONDS=0.0,
            DISCOVERY_MIN_LIQUIDITY_USD=1000.0,
            DISCOVERY_MAX_PROFILES=30,
        )

    async def test_pairs_for_token_handles_null_pairs(self) -> None:
        http = _RoutedHttp({"/latest/dex/tokens/Mint111": _ok({"pairs": None})})
        client = DexScreenerClient(http=http)
        self.assertEqual(await client.get_pairs_for_token("Mint111"), [])
        self.assertEqual(http.calls[0][1], "dex_pairs")

    async def test_failed_fetch_raises_upstream_unavailable(self) -> None:
        http = _RoutedHttp({"/latest/dex/tokens/Mint111": HttpResult(ok=False, status=429, data=None, error="429")})
        client = DexScreenerClient(http=http)
        with self.assertLogs("monitor.dexscreener", level="WARNING") as logs:
            with self.assertRaises(UpstreamUnavailable) as ctx:
                await client.get_pairs_for_token("Mint111")
        self.assertEqual(ctx.exception.status, 429)
        self.assertTrue(any("RATE_LIMIT" in line for line in logs.output))

    async def test_search_passes_query(self) -> None:
        http = _RoutedHttp({"/latest/dex/search": _ok({"pairs": [_pair("Mint111"), "junk"]})})
        pairs = await DexScreenerClient(http=http).search_pairs("WIF")
        self.assertEqual(len(pairs), 1)
        self.assertEqual(http.calls[0], ("/latest/dex/search", "dex_search", {"q": "WIF"}))

    async def test_candidate_pairs_best_liquidity_on_chain_sorted_by_volume(self) -> None:
        http = _RoutedHttp(
            {
                "/token-profiles/latest/v1": _ok(
                    [
                        {"chainId": "solana", "tokenAddress": "MintA"},
                        {"chainId": "ethereum", "tokenAddress": "0xEVM"},
                        {"chainId": "solana", "tokenAddress": "MintB"},
                    ]
                ),
                "/token-boosts/latest/v1": _ok([{"chainId": "solana", "tokenAddress": "MintA"}]),
                "/token-boosts/top/v1": _ok([{"chainId": "solana", "tokenAddress": "MintThin"}]),
                "/latest/dex/tokens/MintA": _ok(
                    {
                        "pairs": [
                            _pair("MintA", liquidity=3000, volume=9000),
                            _pair("MintA", liquidity=8000, volume=2000),
                            _pair("MintA", chain="base", liquidity=90000, volume=90000),
                        ]
                    }
                ),
                "/latest/dex/tokens/MintB": _ok({"pairs": [_pair("MintB", liquidity=20000, volume=50000)]}),
                "/latest/dex/tokens/MintThin": _ok({"pairs": [_pair("MintThin", liquidity=500, volume=99999)]}),
            }
        )
        candidates = await DexScreenerClient(http=http).list_candidate_pairs("solana")

        self.assertEqual([c["baseToken"]["address"] for c in candidates], ["MintB", "MintA"])
        self.assertEqual(candidates[1]["liquidity"]["usd"], 8000)
        fetched = [path for path, source, _ in http.calls if source == "dex_pairs"]
        self.assertEqual(fetched, ["/latest/dex/tokens/MintA", "/latest/dex/tokens/MintB", "/latest/dex/tokens/MintThin"])

    async def test_discovery_survives_partial_source_failure(self) -> None:
        http = _RoutedHttp(
            {
                "/token-boosts/top/v1": _ok([{"chainId": "solana", "tokenAddress": "MintB"}]),
                "/latest/dex/tokens/MintB": _ok({"pairs": [_pair("MintB", liquidity=20000)]}),
            }
        )
        candidates = await DexScreenerClient(http=http).list_candidate_pairs("solana")
        self.assertEqual(len(candidates), 1)

    async def test_discovery_fails_when_every_source_fails(self) -> None:
        client = DexScreenerClient(http=_RoutedHttp({}))
        with self.assertRaises(UpstreamUnavailable):
            await client.list_candidate_pairs("solana")

    async def test_profile_cap_is_respected(self) -> None:
        self.patch_cfg(DISCOVERY_MAX_PROFILES=1)
        http = _RoutedHttp(
            {
                "/token-profiles/latest/v1": _ok(
                    [{"chainId": "solana", "tokenAddress": "MintA"}, {"chainId": "solana", "tokenAddress": "MintB"}]
                ),
                "/latest/dex/tokens/MintA": _ok({"pairs": [_pair("MintA", liquidity=20000)]}),
            }
        )
        await DexScreenerClient(http=http).list_candidate_pairs("solana")
        fetched = [path for path, source, _ in http.calls if source == "dex_pairs"]
        self.assertEqual(fetched, ["/latest/dex/tokens/MintA"])


if __name__ == "__main__":
    unittest.main()
