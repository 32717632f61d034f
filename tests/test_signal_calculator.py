from __future__ import annotations

import unittest

from monitor.safety_analyzer import RISK_HIGH, RISK_LOW, RISK_MEDIUM, evaluate_safety
from monitor.signal_calculator import (
    SIGNAL_AVOID,
    SIGNAL_BUY,
    SIGNAL_HOLD,
    SIGNAL_SELL,
    SIGNAL_STRONG_BUY,
    decide_signal,
    is_actionable,
    quick_insight,
)
from monitor.snapshot import MS_PER_HOUR, MarketSnapshot, parse_pair

NOW_MS = 1_700_000_000_000


def _snapshot(age_hours: float = 48, **kwargs) -> MarketSnapshot:
    return MarketSnapshot(pair_created_at_ms=int(NOW_MS - age_hours * MS_PER_HOUR), **kwargs)


def _decide(snapshot: MarketSnapshot):
    report = evaluate_safety(snapshot, now_ms=NOW_MS)
    return report, decide_signal(report, snapshot, now_ms=NOW_MS)


class DecideSignalTests(unittest.TestCase):
    def test_strong_buy_wins_over_later_buy_branches(self) -> None:
        snap = _snapshot(
            age_hours=2,
            liquidity_usd=150_000,
            volume_24h_usd=80_000,
            buys_24h=300,
            sells_24h=100,
            price_change_1h_pct=15,
            has_social_links=True,
        )
        report, decision = _decide(snap)
        self.assertEqual(report.score, 70)
        self.assertEqual(decision.signal_type, SIGNAL_STRONG_BUY)
        self.assertEqual(decision.confidence, 80)
        self.assertTrue(decision.is_safe_investment)
        self.assertTrue(decision.reasoning.startswith("TOP PICK!"))
        self.assertIn("Safety: 70/100", decision.reasoning)

    def test_strong_buy_rejects_parabolic_hour(self) -> None:
        snap = _snapshot(
            liquidity_usd=150_000,
            volume_24h_usd=80_000,
            buys_24h=300,
            sells_24h=100,
            price_change_1h_pct=250,
            has_social_links=True,
        )
        _, decision = _decide(snap)
        self.assertNotEqual(decision.signal_type, SIGNAL_STRONG_BUY)

    def test_new_token_with_strong_metrics_is_safe_entry(self) -> None:
        snap = _snapshot(
            age_hours=2,
            liquidity_usd=30_000,
            volume_24h_usd=150_000,
            buys_24h=400,
            sells_24h=200,
            has_social_links=True,
        )
        report, decision = _decide(snap)
        self.assertEqual(report.score, 75)
        self.assertEqual(decision.signal_type, SIGNAL_BUY)
        self.assertEqual(decision.confidence, 75)
        self.assertTrue(decision.is_safe_investment)
        self.assertIn("SAFE ENTRY: New token (2.0h old)", decision.reasoning)

    def test_momentum_with_socials_is_good_opportunity(self) -> None:
        snap = _snapshot(
            liquidity_usd=30_000,
            volume_24h_usd=150_000,
            buys_24h=400,
            sells_24h=200,
            price_change_1h_pct=12,
            has_social_links=True,
        )
        report, decision = _decide(snap)
        self.assertEqual(report.score, 75)
        self.assertEqual(decision.signal_type, SIGNAL_BUY)
        self.assertEqual(decision.confidence, 75)
        self.assertTrue(decision.is_safe_investment)
        self.assertIn("GOOD OPPORTUNITY: Positive momentum +12.0% in 1h", decision.reasoning)

    def test_momentum_without_socials_is_plain_buy(self) -> None:
        snap = _snapshot(
            liquidity_usd=30_000,
            volume_24h_usd=150_000,
            buys_24h=400,
            sells_24h=200,
            price_change_1h_pct=12,
        )
        report, decision = _decide(snap)
        self.assertEqual(report.score, 60)
        self.assertEqual(report.risk_level, RISK_MEDIUM)
        self.assertEqual(decision.signal_type, SIGNAL_BUY)
        self.assertEqual(decision.confidence, 60)
        self.assertFalse(decision.is_safe_investment)
        self.assertTrue(decision.reasoning.startswith("Positive momentum detected"))

    def test_falling_price_is_sell(self) -> None:
        snap = _snapshot(
            liquidity_usd=30_000,
            volume_24h_usd=5_000,
            buys_24h=100,
            sells_24h=300,
            price_change_1h_pct=-25,
            has_social_links=True,
        )
        report, decision = _decide(snap)
        self.assertEqual(report.score, 55)
        self.assertEqual(decision.signal_type, SIGNAL_SELL)
        self.assertEqual(decision.confidence, 65)
        self.assertFalse(decision.is_safe_investment)
        self.assertIn("Price down -25.0% in 1h", decision.reasoning)
        self.assertIn("300 sells vs 100 buys", decision.reasoning)

    def test_flat_market_is_hold(self) -> None:
        snap = _snapshot(
            liquidity_usd=30_000,
            volume_24h_usd=5_000,
            buys_24h=100,
            sells_24h=100,
            price_change_1h_pct=2,
            has_social_links=True,
        )
        report, decision = _decide(snap)
        self.assertEqual(report.score, 55)
        self.assertEqual(decision.signal_type, SIGNAL_HOLD)
        self.assertEqual(decision.confidence, 50)
        self.assertFalse(decision.is_safe_investment)
        self.assertTrue(decision.reasoning.startswith("Neutral market conditions (safety 55/100"))

    def test_hold_on_a_high_score_token_is_safe(self) -> None:
        snap = _snapshot(
            liquidity_usd=150_000,
            volume_24h_usd=150_000,
            buys_24h=250,
            sells_24h=250,
            has_social_links=True,
        )
        report, decision = _decide(snap)
        self.assertEqual(report.score, 80)
        self.assertEqual(report.risk_level, RISK_LOW)
        self.assertEqual(decision.signal_type, SIGNAL_HOLD)
        self.assertTrue(decision.is_safe_investment)

    def test_high_risk_is_avoid(self) -> None:
        snap = _snapshot(
            liquidity_usd=5_000,
            volume_24h_usd=5_000,
            buys_24h=60,
            sells_24h=40,
            has_social_links=True,
        )
        report, decision = _decide(snap)
        self.assertEqual(report.score, 40)
        self.assertEqual(report.risk_level, RISK_HIGH)
        self.assertEqual(decision.signal_type, SIGNAL_AVOID)
        self.assertEqual(decision.confidence, 75)
        self.assertIn("Low liquidity (<$10K) - Moderate rug risk", decision.reasoning)

    def test_honeypot_overrides_strong_metrics(self) -> None:
        snap = _snapshot(
            liquidity_usd=200_000,
            volume_24h_usd=200_000,
            buys_24h=600,
            sells_24h=0,
            price_change_1h_pct=15,
            has_social_links=True,
        )
        report, decision = _decide(snap)
        self.assertTrue(report.is_honeypot)
        self.assertEqual(report.score, 60)
        self.assertEqual(decision.signal_type, SIGNAL_AVOID)
        self.assertEqual(decision.confidence, 90)
        self.assertFalse(decision.is_safe_investment)

    def test_critical_names_top_two_risks(self) -> None:
        snap = _snapshot(age_hours=0.5)
        report, decision = _decide(snap)
        self.assertEqual(decision.signal_type, SIGNAL_AVOID)
        self.assertEqual(decision.confidence, 90)
        self.assertEqual(
            decision.reasoning,
            "Critical risk level (safety 0/100). "
            "Very low liquidity (<$1K) - High rug risk. Very few transactions - Possible dead token",
        )
        self.assertEqual(report.score, 0)


class ActionableTests(unittest.TestCase):
    def test_only_buy_signals_over_threshold(self) -> None:
        self.assertTrue(is_actionable(SIGNAL_STRONG_BUY, 80, 60))
        self.assertTrue(is_actionable(SIGNAL_BUY, 60, 60))
        self.assertFalse(is_actionable(SIGNAL_BUY, 59, 60))
        self.assertFalse(is_actionable(SIGNAL_HOLD, 95, 60))
        self.assertFalse(is_actionable(SIGNAL_SELL, 65, 60))
        self.assertFalse(is_actionable(SIGNAL_AVOID, 90, 60))


class QuickInsightTests(unittest.TestCase):
    def _pair(self, symbol: str, age_hours: float):
        return parse_pair(
            {
                "chainId": "solana",
                "baseToken": {"address": "Mint111", "symbol": symbol, "name": symbol.title()},
                "pairCreatedAt": int(NOW_MS - age_hours * MS_PER_HOUR),
            }
        )

    def test_bullish_new_token(self) -> None:
        pair = self._pair("PEPE", 2)
        snap = _snapshot(
            age_hours=2,
            liquidity_usd=60_000,
            volume_24h_usd=150_000,
            buys_24h=300,
            sells_24h=100,
            price_change_24h_pct=120,
        )
        self.assertEqual(
            quick_insight(pair, snap, now_ms=NOW_MS),
            "PEPE (New: 2h old) | Pumping +120% | High vol $150K | Good liq $60K | Strong buys",
        )

    def test_bearish_older_token(self) -> None:
        pair = self._pair("OLD", 48)
        snap = _snapshot(
            liquidity_usd=3_000,
            volume_24h_usd=1_000,
            buys_24h=10,
            sells_24h=50,
            price_change_24h_pct=-60,
        )
        self.assertEqual(
            quick_insight(pair, snap, now_ms=NOW_MS),
            "OLD | Dumping -60% | Low liq $3.0K | Heavy sells",
        )


if __name__ == "__main__":
    unittest.main()
