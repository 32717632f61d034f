"""DexScreener discovery feed: token profiles, boosts and per-token pairs."""

import asyncio
import logging
from typing import Any

import config
from monitor.errors import UpstreamUnavailable
from utils.addressing import normalize_address, same_chain
from utils.http_client import ResilientHttpClient

logger = logging.getLogger(__name__)

PROFILE_ENDPOINTS = {
    "latest_profiles": "/token-profiles/latest/v1",
    "latest_boosts": "/token-boosts/latest/v1",
    "top_boosts": "/token-boosts/top/v1",
}


def _liquidity_of(pair: dict[str, Any]) -> float:
    try:
        return float((pair.get("liquidity") or {}).get("usd") or 0)
    except (TypeError, ValueError, AttributeError):
        return 0.0


def _volume_of(pair: dict[str, Any]) -> float:
    try:
        return float((pair.get("volume") or {}).get("h24") or 0)
    except (TypeError, ValueError, AttributeError):
        return 0.0


class DexScreenerClient:
    def __init__(self, http: ResilientHttpClient | None = None) -> None:
        self._headers = {
            "User-Agent": (
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
                "AppleWebKit/537.36 (KHTML, like Gecko) "
                "Chrome/122.0.0.0 Safari/537.36"
            ),
            "Accept": "application/json, text/plain, */*",
            "Accept-Language": "en-US,en;q=0.9",
        }
        self._http = http or ResilientHttpClient(
            timeout_seconds=float(config.DEX_TIMEOUT),
            headers=self._headers,
            source_limits={
                "dex_profiles": 3,
                "dex_pairs": 8,
                "dex_search": 4,
            },
        )

    async def close(self) -> None:
        await self._http.close()

    def runtime_stats(self, reset: bool = False) -> dict[str, dict[str, int | float]]:
        return self._http.snapshot_stats(reset=reset)

    async def _fetch_json(self, path: str, source: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{config.DEXSCREENER_API_BASE}{path}"
        result = await self._http.get_json(url, source=source, params=params, max_attempts=int(config.DEX_RETRIES))
        if result.ok:
            return result.data
        if result.status == 429:
            logger.warning("RATE_LIMIT source=%s status=429 url=%s", source, url)
        raise UpstreamUnavailable(source, result.error, result.status)

    async def _fetch_profiles(self, name: str) -> list[dict[str, Any]]:
        data = await self._fetch_json(PROFILE_ENDPOINTS[name], source="dex_profiles")
        if not isinstance(data, list):
            return []
        return [row for row in data if isinstance(row, dict)]

    async def get_latest_token_profiles(self) -> list[dict[str, Any]]:
        return await self._fetch_profiles("latest_profiles")

    async def get_latest_boosted_tokens(self) -> list[dict[str, Any]]:
        return await self._fetch_profiles("latest_boosts")

    async def get_top_boosted_tokens(self) -> list[dict[str, Any]]:
        return await self._fetch_profiles("top_boosts")

    async def get_pairs_for_token(self, token_address: str) -> list[dict[str, Any]]:
        address = normalize_address(token_address)
        if not address:
            return []
        data = await self._fetch_json(f"/latest/dex/tokens/{address}", source="dex_pairs")
        if not isinstance(data, dict):
            return []
        return [pair for pair in (data.get("pairs") or []) if isinstance(pair, dict)]

    async def search_pairs(self, query: str) -> list[dict[str, Any]]:
        data = await self._fetch_json("/latest/dex/search", source="dex_search", params={"q": query})
        if not isinstance(data, dict):
            return []
        return [pair for pair in (data.get("pairs") or []) if isinstance(pair, dict)]

    async def _discovery_addresses(self, chain: str) -> list[str]:
        names = list(PROFILE_ENDPOINTS)
        results = await asyncio.gather(*(self._fetch_profiles(name) for name in names), return_exceptions=True)

        failures = 0
        addresses: list[str] = []
        seen: set[str] = set()
        for name, rows in zip(names, results):
            if isinstance(rows, UpstreamUnavailable):
                failures += 1
                logger.warning("Discovery source %s failed: %s", name, rows)
                continue
            if isinstance(rows, BaseException):
                raise rows
            for row in rows:
                if not same_chain(row.get("chainId"), chain):
                    continue
                address = normalize_address(row.get("tokenAddress"))
                if address and address not in seen:
                    seen.add(address)
                    addresses.append(address)
        if failures == len(names):
            raise UpstreamUnavailable("dex_profiles", "all discovery endpoints failed")
        return addresses

    async def list_candidate_pairs(self, chain: str) -> list[dict[str, Any]]:
        """Best pair per boosted/profiled token on `chain`, sorted by 24h volume descending."""
        addresses = await self._discovery_addresses(chain)
        min_liquidity = float(config.DISCOVERY_MIN_LIQUIDITY_USD)

        candidates: list[dict[str, Any]] = []
        for address in addresses[: int(config.DISCOVERY_MAX_PROFILES)]:
            try:
                pairs = await self.get_pairs_for_token(address)
            except UpstreamUnavailable as exc:
                logger.warning("Discovery pair fetch failed address=%s err=%s", address, exc)
                pairs = []
            on_chain = [pair for pair in pairs if same_chain(pair.get("chainId"), chain)]
            if on_chain:
                best = max(on_chain, key=_liquidity_of)
                if _liquidity_of(best) > min_liquidity:
                    candidates.append(best)
            await asyncio.sleep(float(config.DISCOVERY_CALL_DELAY_SECONDS))

        candidates.sort(key=_volume_of, reverse=True)
        logger.info("DISCOVERY chain=%s profiles=%s candidates=%s", chain, len(addresses), len(candidates))
        return candidates
