"""Heuristic token safety scoring from DEX market data."""

from __future__ import annotations

from dataclasses import dataclass, field

from monitor.snapshot import MarketSnapshot

BASELINE_SCORE = 50

RISK_LOW = "low"
RISK_MEDIUM = "medium"
RISK_HIGH = "high"
RISK_CRITICAL = "critical"

UNCHECKED_FACTORS = (
    "Liquidity lock status (requires on-chain analysis)",
    "Mint authority status (requires on-chain analysis)",
    "Top holder concentration (requires holder snapshot)",
)


@dataclass(frozen=True)
class SafetyReport:
    score: int
    risk_level: str
    is_honeypot: bool
    risks: tuple[str, ...]
    positives: tuple[str, ...]
    unchecked_factors: tuple[str, ...] = UNCHECKED_FACTORS
    # Placeholders for on-chain checks this engine cannot perform. Never read them as "safe".
    is_liquidity_locked: bool = False
    mint_authority_disabled: bool = False
    top_holders_percentage: float = 0.0


@dataclass
class _Tally:
    score: int = BASELINE_SCORE
    risks: list[str] = field(default_factory=list)
    positives: list[str] = field(default_factory=list)

    def risk(self, message: str, delta: int = 0) -> None:
        self.risks.append(message)
        self.score += delta

    def positive(self, message: str, delta: int = 0) -> None:
        self.positives.append(message)
        self.score += delta


def risk_level_for(score: int) -> str:
    if score >= 70:
        return RISK_LOW
    if score >= 50:
        return RISK_MEDIUM
    if score >= 30:
        return RISK_HIGH
    return RISK_CRITICAL


def is_honeypot(snapshot: MarketSnapshot) -> bool:
    return snapshot.sells_24h == 0 and snapshot.buys_24h > 10


class SafetyAnalyzer:
    def evaluate(self, snapshot: MarketSnapshot, now_ms: int | None = None) -> SafetyReport:
        tally = _Tally()
        self._score_liquidity(tally, snapshot.liquidity_usd)
        self._score_activity(tally, snapshot.total_txns)
        self._score_pressure(tally, snapshot.buys_24h, snapshot.sells_24h)
        self._score_price_change(tally, snapshot.price_change_24h_pct)
        self._score_volume(tally, snapshot.volume_24h_usd)
        self._score_socials(tally, snapshot.has_social_links, snapshot.has_website)
        self._score_age(tally, snapshot.age_hours(now_ms))

        score = max(0, min(100, tally.score))
        return SafetyReport(
            score=score,
            risk_level=risk_level_for(score),
            is_honeypot=is_honeypot(snapshot),
            risks=tuple(tally.risks),
            positives=tuple(tally.positives),
        )

    @staticmethod
    def _score_liquidity(tally: _Tally, liquidity: float) -> None:
        if liquidity < 1000:
            tally.risk("Very low liquidity (<$1K) - High rug risk", -25)
        elif liquidity < 10000:
            tally.risk("Low liquidity (<$10K) - Moderate rug risk", -15)
        elif liquidity > 100000:
            tally.positive("Strong liquidity (>$100K)", 15)
        elif liquidity > 50000:
            tally.positive("Good liquidity (>$50K)", 10)

    @staticmethod
    def _score_activity(tally: _Tally, total_txns: int) -> None:
        if total_txns < 10:
            tally.risk("Very few transactions - Possible dead token", -10)
        elif total_txns > 500:
            tally.positive("High trading activity (>500 txns/24h)", 10)

    @staticmethod
    def _score_pressure(tally: _Tally, buys: int, sells: int) -> None:
        if sells == 0 and buys > 10:
            tally.risk("No sell transactions - Possible honeypot", -30)
        elif buys > 0 and sells > 0:
            buy_ratio = buys / (buys + sells)
            if buy_ratio > 0.8:
                tally.positive("Strong buying pressure", 5)
            elif buy_ratio < 0.2:
                tally.risk("Heavy selling pressure", -10)

    @staticmethod
    def _score_price_change(tally: _Tally, change_24h: float) -> None:
        if change_24h < -80:
            tally.risk("Massive price drop (>80%) - Possible dump", -20)
        elif change_24h < -50:
            tally.risk("Large price drop (>50%)", -10)
        elif change_24h > 500:
            tally.risk("Extreme price increase (>500%) - High volatility", -5)
        elif change_24h > 100:
            tally.positive("Strong price momentum (+100%)", 5)

    @staticmethod
    def _score_volume(tally: _Tally, volume: float) -> None:
        if volume < 100:
            tally.risk("Almost no trading volume", -15)
        elif volume > 100000:
            tally.positive("High trading volume (>$100K)", 10)

    @staticmethod
    def _score_socials(tally: _Tally, has_socials: bool, has_website: bool) -> None:
        if not has_socials and not has_website:
            tally.risk("No social links or website", -10)
            return
        # One shared bucket: +5 whether one or both are present.
        if has_socials:
            tally.positive("Has social media presence")
        if has_website:
            tally.positive("Has official website")
        tally.score += 5

    @staticmethod
    def _score_age(tally: _Tally, age_hours: float) -> None:
        if age_hours < 1:
            tally.risk("Brand new token (<1 hour)")
        elif age_hours < 24:
            tally.risk("Very new token (<24 hours)")
        elif age_hours > 168:
            tally.positive("Token has history (>1 week)", 5)


_analyzer = SafetyAnalyzer()


def evaluate_safety(snapshot: MarketSnapshot, now_ms: int | None = None) -> SafetyReport:
    return _analyzer.evaluate(snapshot, now_ms=now_ms)
