"""Normalization of DexScreener pair records into scoring snapshots."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from monitor.errors import InvalidInput
from utils.addressing import normalize_address

MS_PER_HOUR = 60 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class PairRecord:
    chain_id: str
    dex_id: str
    pair_address: str
    url: str
    base_address: str
    base_symbol: str
    base_name: str
    price_usd: str
    price_native: str
    liquidity_usd: float
    market_cap: float
    volume_24h_usd: float
    buys_24h: int
    sells_24h: int
    price_change_1h_pct: float
    price_change_24h_pct: float
    pair_created_at_ms: int | None
    websites: tuple[str, ...] = ()
    socials: tuple[dict[str, str], ...] = ()

    def social_handle(self, platform: str) -> str | None:
        for social in self.socials:
            if social.get("platform") == platform:
                return social.get("handle") or social.get("url") or None
        return None


@dataclass(frozen=True)
class MarketSnapshot:
    liquidity_usd: float = 0.0
    volume_24h_usd: float = 0.0
    buys_24h: int = 0
    sells_24h: int = 0
    price_change_1h_pct: float = 0.0
    price_change_24h_pct: float = 0.0
    pair_created_at_ms: int | None = None
    has_social_links: bool = False
    has_website: bool = False

    @property
    def total_txns(self) -> int:
        return self.buys_24h + self.sells_24h

    def age_hours(self, at_ms: int | None = None) -> float:
        # Unknown creation time counts as brand new.
        if not self.pair_created_at_ms:
            return 0.0
        current = now_ms() if at_ms is None else at_ms
        return max(0.0, (current - self.pair_created_at_ms) / MS_PER_HOUR)


def _as_float(raw: Any, name: str, *, signed: bool = False) -> float:
    if raw is None or raw == "":
        return 0.0
    if isinstance(raw, bool):
        raise InvalidInput(f"{name} is not numeric: {raw!r}")
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise InvalidInput(f"{name} is not numeric: {raw!r}") from None
    if math.isnan(value) or math.isinf(value):
        raise InvalidInput(f"{name} is not finite: {raw!r}")
    if not signed and value < 0:
        raise InvalidInput(f"{name} must be >= 0, got {value}")
    return value


def _as_count(raw: Any, name: str) -> int:
    value = _as_float(raw, name)
    if value != int(value):
        raise InvalidInput(f"{name} must be an integer, got {raw!r}")
    return int(value)


def _section(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise InvalidInput(f"{key} must be an object, got {type(value).__name__}")
    return value


def _list_section(raw: dict[str, Any], key: str) -> list[Any]:
    value = raw.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise InvalidInput(f"{key} must be a list, got {type(value).__name__}")
    return value


def _parse_socials(info: dict[str, Any]) -> tuple[dict[str, str], ...]:
    out: list[dict[str, str]] = []
    for row in _list_section(info, "socials"):
        if not isinstance(row, dict):
            continue
        # Unclassified rows still count toward social presence.
        platform = str(row.get("platform") or row.get("type") or "").strip().lower() or "other"
        entry = {"platform": platform}
        for key in ("handle", "url"):
            if row.get(key):
                entry[key] = str(row[key])
        out.append(entry)
    return tuple(out)


def _parse_websites(info: dict[str, Any]) -> tuple[str, ...]:
    out: list[str] = []
    for row in _list_section(info, "websites"):
        url = row.get("url") if isinstance(row, dict) else row
        if url:
            out.append(str(url))
    return tuple(out)


def parse_pair(raw: Any) -> PairRecord:
    """Validate one raw DexScreener pair into a PairRecord.

    Missing numeric fields default to 0. Malformed values and a missing base-token
    address raise InvalidInput so the caller can skip the record.
    """
    if not isinstance(raw, dict):
        raise InvalidInput(f"pair record must be an object, got {type(raw).__name__}")

    base = _section(raw, "baseToken")
    address = normalize_address(base.get("address"))
    if not address:
        raise InvalidInput("pair record has no baseToken.address")

    liquidity = _section(raw, "liquidity")
    volume = _section(raw, "volume")
    price_change = _section(raw, "priceChange")
    txns_h24 = _section(_section(raw, "txns"), "h24")
    info = _section(raw, "info")

    created_raw = raw.get("pairCreatedAt")
    created_ms = _as_count(created_raw, "pairCreatedAt") if created_raw not in (None, "", 0) else None

    market_cap = _as_float(raw.get("marketCap"), "marketCap") or _as_float(raw.get("fdv"), "fdv")

    return PairRecord(
        chain_id=str(raw.get("chainId") or "").strip().lower(),
        dex_id=str(raw.get("dexId") or "").strip().lower(),
        pair_address=str(raw.get("pairAddress") or ""),
        url=str(raw.get("url") or ""),
        base_address=address,
        base_symbol=str(base.get("symbol") or "N/A"),
        base_name=str(base.get("name") or "Unknown"),
        price_usd=str(raw.get("priceUsd") or "0"),
        price_native=str(raw.get("priceNative") or "0"),
        liquidity_usd=_as_float(liquidity.get("usd"), "liquidity.usd"),
        market_cap=market_cap,
        volume_24h_usd=_as_float(volume.get("h24"), "volume.h24"),
        buys_24h=_as_count(txns_h24.get("buys"), "txns.h24.buys"),
        sells_24h=_as_count(txns_h24.get("sells"), "txns.h24.sells"),
        price_change_1h_pct=_as_float(price_change.get("h1"), "priceChange.h1", signed=True),
        price_change_24h_pct=_as_float(price_change.get("h24"), "priceChange.h24", signed=True),
        pair_created_at_ms=created_ms,
        websites=_parse_websites(info),
        socials=_parse_socials(info),
    )


def build_snapshot(pair: PairRecord) -> MarketSnapshot:
    return MarketSnapshot(
        liquidity_usd=pair.liquidity_usd,
        volume_24h_usd=pair.volume_24h_usd,
        buys_24h=pair.buys_24h,
        sells_24h=pair.sells_24h,
        price_change_1h_pct=pair.price_change_1h_pct,
        price_change_24h_pct=pair.price_change_24h_pct,
        pair_created_at_ms=pair.pair_created_at_ms,
        has_social_links=bool(pair.socials),
        has_website=bool(pair.websites),
    )


def ingest_pair(raw: Any) -> tuple[PairRecord, MarketSnapshot]:
    pair = parse_pair(raw)
    return pair, build_snapshot(pair)


def pair_to_token_fields(pair: PairRecord) -> dict[str, Any]:
    """Market fields persisted on the scanned token row."""
    created_at = None
    if pair.pair_created_at_ms:
        created_at = datetime.fromtimestamp(pair.pair_created_at_ms / 1000, tz=timezone.utc).replace(tzinfo=None)
    return {
        "symbol": pair.base_symbol,
        "name": pair.base_name,
        "chain": pair.chain_id,
        "dex_id": pair.dex_id,
        "pair_address": pair.pair_address,
        "price_usd": pair.price_usd,
        "price_native": pair.price_native,
        "liquidity": pair.liquidity_usd,
        "market_cap": pair.market_cap,
        "volume_24h": pair.volume_24h_usd,
        "price_change_1h": pair.price_change_1h_pct,
        "price_change_24h": pair.price_change_24h_pct,
        "buys_24h": pair.buys_24h,
        "sells_24h": pair.sells_24h,
        "social_links": {
            "twitter": pair.social_handle("twitter"),
            "telegram": pair.social_handle("telegram"),
            "website": pair.websites[0] if pair.websites else None,
        },
        "pair_created_at": created_at,
    }
