from __future__ import annotations

import unittest
from datetime import datetime

from monitor.errors import InvalidInput
from monitor.snapshot import MS_PER_HOUR, MarketSnapshot, ingest_pair, pair_to_token_fields, parse_pair
from utils.addressing import normalize_address, same_chain

NOW_MS = 1_700_000_000_000


def _raw_pair(**overrides) -> dict:
    raw = {
        "chainId": "Solana",
        "dexId": "Raydium",
        "url": "https://dexscreener.com/solana/pair111",
        "pairAddress": "Pair111",
        "priceUsd": "0.00123",
        "priceNative": "0.0000081",
        "baseToken": {"address": " Mint111AbC ", "symbol": "BONK", "name": "Bonk"},
        "liquidity": {"usd": 25000.5},
        "volume": {"h24": "12000"},
        "txns": {"h24": {"buys": 120, "sells": 80}},
        "priceChange": {"h1": -3.5, "h24": 12},
        "fdv": 900000,
        "pairCreatedAt": NOW_MS - 30 * MS_PER_HOUR,
        "info": {
            "websites": [{"label": "Website", "url": "https://bonk.example"}],
            "socials": [
                {"type": "twitter", "url": "https://x.com/bonk"},
                {"platform": "Telegram", "handle": "bonkchat"},
            ],
        },
    }
    raw.update(overrides)
    return raw


class ParsePairTests(unittest.TestCase):
    def test_normalizes_record(self) -> None:
        pair = parse_pair(_raw_pair())
        self.assertEqual(pair.chain_id, "solana")
        self.assertEqual(pair.dex_id, "raydium")
        # Solana mints are case-sensitive; only whitespace is trimmed.
        self.assertEqual(pair.base_address, "Mint111AbC")
        self.assertEqual(pair.liquidity_usd, 25000.5)
        self.assertEqual(pair.volume_24h_usd, 12000.0)
        self.assertEqual(pair.buys_24h, 120)
        self.assertEqual(pair.sells_24h, 80)
        self.assertEqual(pair.price_change_1h_pct, -3.5)
        self.assertEqual(pair.market_cap, 900000.0)
        self.assertEqual(pair.websites, ("https://bonk.example",))
        self.assertEqual(pair.social_handle("twitter"), "https://x.com/bonk")
        self.assertEqual(pair.social_handle("telegram"), "bonkchat")
        self.assertIsNone(pair.social_handle("discord"))

    def test_missing_sections_default_to_zero(self) -> None:
        pair, snap = ingest_pair({"baseToken": {"address": "Mint222"}})
        self.assertEqual(pair.base_symbol, "N/A")
        self.assertEqual(pair.base_name, "Unknown")
        self.assertEqual(snap, MarketSnapshot())
        self.assertIsNone(pair.pair_created_at_ms)

    def test_market_cap_prefers_market_cap_over_fdv(self) -> None:
        pair = parse_pair(_raw_pair(marketCap=500000))
        self.assertEqual(pair.market_cap, 500000.0)

    def test_rejects_malformed_records(self) -> None:
        cases = {
            "not a dict": "pair",
            "no base address": _raw_pair(baseToken={"symbol": "X"}),
            "text liquidity": _raw_pair(liquidity={"usd": "lots"}),
            "negative volume": _raw_pair(volume={"h24": -5}),
            "nan change": _raw_pair(priceChange={"h1": float("nan")}),
            "bool count": _raw_pair(txns={"h24": {"buys": True, "sells": 1}}),
            "fractional count": _raw_pair(txns={"h24": {"buys": 1.5, "sells": 1}}),
            "liquidity not object": _raw_pair(liquidity=[1, 2]),
        }
        for label, raw in cases.items():
            with self.subTest(label):
                with self.assertRaises(InvalidInput):
                    parse_pair(raw)

    def test_negative_price_change_is_allowed(self) -> None:
        pair = parse_pair(_raw_pair(priceChange={"h1": -40, "h24": -90}))
        self.assertEqual(pair.price_change_24h_pct, -90.0)

    def test_rejects_socials_and_websites_that_are_not_lists(self) -> None:
        for info in ({"websites": 5}, {"socials": 7}, {"websites": "https://a.io"}, {"socials": {"type": "x"}}):
            with self.subTest(info=info):
                with self.assertRaises(InvalidInput):
                    parse_pair(_raw_pair(info=info))

    def test_unclassified_social_rows_still_count_as_presence(self) -> None:
        pair, snap = ingest_pair(_raw_pair(info={"socials": [{"url": "https://community.example"}]}))
        self.assertTrue(snap.has_social_links)
        self.assertFalse(snap.has_website)
        self.assertIsNone(pair.social_handle("twitter"))
        self.assertEqual(pair.social_handle("other"), "https://community.example")


class SnapshotTests(unittest.TestCase):
    def test_snapshot_flags_and_age(self) -> None:
        _, snap = ingest_pair(_raw_pair())
        self.assertTrue(snap.has_social_links)
        self.assertTrue(snap.has_website)
        self.assertEqual(snap.total_txns, 200)
        self.assertAlmostEqual(snap.age_hours(NOW_MS), 30.0)

    def test_age_never_negative(self) -> None:
        snap = MarketSnapshot(pair_created_at_ms=NOW_MS + MS_PER_HOUR)
        self.assertEqual(snap.age_hours(NOW_MS), 0.0)

    def test_token_fields(self) -> None:
        fields = pair_to_token_fields(parse_pair(_raw_pair()))
        self.assertEqual(fields["symbol"], "BONK")
        self.assertEqual(fields["chain"], "solana")
        self.assertEqual(fields["liquidity"], 25000.5)
        self.assertEqual(
            fields["social_links"],
            {"twitter": "https://x.com/bonk", "telegram": "bonkchat", "website": "https://bonk.example"},
        )
        self.assertIsInstance(fields["pair_created_at"], datetime)
        self.assertIsNone(fields["pair_created_at"].tzinfo)


class AddressingTests(unittest.TestCase):
    def test_evm_addresses_are_lowercased(self) -> None:
        self.assertEqual(normalize_address(" 0xAbCd "), "0xabcd")

    def test_solana_addresses_keep_case(self) -> None:
        self.assertEqual(normalize_address("So11111111111111111111111111111111111111112"), "So11111111111111111111111111111111111111112")
        self.assertEqual(normalize_address(None), "")

    def test_same_chain_ignores_case(self) -> None:
        self.assertTrue(same_chain("Solana", "solana "))
        self.assertFalse(same_chain("base", "solana"))


if __name__ == "__main__":
    unittest.main()
