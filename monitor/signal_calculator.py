"""Trading recommendation derived from a safety report and market snapshot."""

from __future__ import annotations

from dataclasses import dataclass

from monitor.safety_analyzer import RISK_CRITICAL, RISK_HIGH, SafetyReport
from monitor.snapshot import MarketSnapshot, PairRecord

SIGNAL_STRONG_BUY = "strong_buy"
SIGNAL_BUY = "buy"
SIGNAL_HOLD = "hold"
SIGNAL_SELL = "sell"
SIGNAL_AVOID = "avoid"

SIGNAL_TYPES = (SIGNAL_STRONG_BUY, SIGNAL_BUY, SIGNAL_HOLD, SIGNAL_SELL, SIGNAL_AVOID)
ACTIONABLE_SIGNALS = (SIGNAL_STRONG_BUY, SIGNAL_BUY)


@dataclass(frozen=True)
class TradingSignal:
    signal_type: str
    confidence: int
    reasoning: str
    is_safe_investment: bool


def is_actionable(signal_type: str, confidence: int, min_confidence: int) -> bool:
    return signal_type in ACTIONABLE_SIGNALS and int(confidence) >= int(min_confidence)


def _top_risks(report: SafetyReport, limit: int = 2) -> str:
    return ". ".join(report.risks[:limit])


def _buy_ratio(buys: int, sells: int) -> float:
    return buys / max(sells, 1)


def decide_signal(report: SafetyReport, snapshot: MarketSnapshot, now_ms: int | None = None) -> TradingSignal:
    """Ordered decision list; the first matching branch wins."""
    score = report.score
    liquidity = snapshot.liquidity_usd
    volume = snapshot.volume_24h_usd
    buys = snapshot.buys_24h
    sells = snapshot.sells_24h
    change_1h = snapshot.price_change_1h_pct
    change_24h = snapshot.price_change_24h_pct

    if report.risk_level == RISK_CRITICAL or report.is_honeypot:
        return TradingSignal(
            signal_type=SIGNAL_AVOID,
            confidence=90,
            reasoning=f"Critical risk level (safety {score}/100). {_top_risks(report)}",
            is_safe_investment=False,
        )

    if report.risk_level == RISK_HIGH:
        return TradingSignal(
            signal_type=SIGNAL_AVOID,
            confidence=75,
            reasoning=f"High risk (safety {score}/100). {_top_risks(report)}",
            is_safe_investment=False,
        )

    age_hours = snapshot.age_hours(now_ms)
    ratio = _buy_ratio(buys, sells)
    has_good_liquidity = liquidity > 20000
    has_buy_pressure = buys > sells * 1.5
    is_rising = change_1h > 10 or change_24h > 50
    has_social_presence = snapshot.has_social_links or snapshot.has_website

    if (
        score >= 70
        and liquidity > 50000
        and volume > 50000
        and buys > sells * 2
        and not report.is_honeypot
        and 0 < change_1h < 200
    ):
        return TradingSignal(
            signal_type=SIGNAL_STRONG_BUY,
            confidence=min(95, score + 10),
            reasoning=(
                f"TOP PICK! Strong fundamentals: ${liquidity / 1000:,.0f}K liquidity, "
                f"${volume / 1000:,.0f}K volume, {ratio:.1f}x buy ratio, {change_1h:+.1f}% in 1h. "
                f"Safety: {score}/100"
            ),
            is_safe_investment=True,
        )

    if age_hours < 6 and has_good_liquidity and volume > 10000 and has_buy_pressure and score >= 65:
        return TradingSignal(
            signal_type=SIGNAL_BUY,
            confidence=min(85, score),
            reasoning=(
                f"SAFE ENTRY: New token ({age_hours:.1f}h old) with strong metrics. "
                f"Liquidity: ${liquidity:,.0f}, Volume: ${volume:,.0f}, Buy/Sell ratio: {ratio:.1f}x. "
                f"Safety: {score}/100"
            ),
            is_safe_investment=True,
        )

    if has_good_liquidity and is_rising and has_buy_pressure and score >= 60 and has_social_presence:
        lead = ". ".join(report.positives[:1])
        return TradingSignal(
            signal_type=SIGNAL_BUY,
            confidence=min(75, score),
            reasoning=(
                f"GOOD OPPORTUNITY: Positive momentum {change_1h:+.1f}% in 1h, {change_24h:+.1f}% in 24h, "
                f"{ratio:.1f}x buy ratio. Verified socials. {lead}"
            ).strip(),
            is_safe_investment=True,
        )

    if has_good_liquidity and is_rising and has_buy_pressure and score >= 55:
        leads = ". ".join(report.positives[:2])
        return TradingSignal(
            signal_type=SIGNAL_BUY,
            confidence=min(70, score),
            reasoning=(
                f"Positive momentum detected: {change_1h:+.1f}% in 1h, {change_24h:+.1f}% in 24h, "
                f"liquidity ${liquidity:,.0f}, {ratio:.1f}x buy ratio. {leads}"
            ).strip(),
            is_safe_investment=score >= 65,
        )

    if change_1h < -20 or sells > buys * 2:
        detail = f"Price down {change_1h:.1f}% in 1h. " if change_1h < -20 else ""
        return TradingSignal(
            signal_type=SIGNAL_SELL,
            confidence=65,
            reasoning=f"Bearish signals. {detail}Sell pressure: {sells} sells vs {buys} buys in 24h.",
            is_safe_investment=False,
        )

    return TradingSignal(
        signal_type=SIGNAL_HOLD,
        confidence=50,
        reasoning=(
            f"Neutral market conditions (safety {score}/100, {change_1h:+.1f}% in 1h, "
            f"{buys} buys / {sells} sells). Monitor for better entry/exit opportunities."
        ),
        is_safe_investment=score >= 70,
    )


def quick_insight(pair: PairRecord, snapshot: MarketSnapshot, now_ms: int | None = None) -> str:
    """One-line market summary for list views."""
    volume = snapshot.volume_24h_usd
    liquidity = snapshot.liquidity_usd
    change = snapshot.price_change_24h_pct
    age_hours = round(snapshot.age_hours(now_ms))

    parts = [pair.base_symbol]
    if age_hours < 24:
        parts[0] += f" (New: {age_hours}h old)"

    if change > 100:
        parts.append(f"Pumping +{change:.0f}%")
    elif change > 50:
        parts.append(f"Rising +{change:.0f}%")
    elif change < -50:
        parts.append(f"Dumping {change:.0f}%")

    if volume > 100000:
        parts.append(f"High vol ${volume / 1000:.0f}K")
    if liquidity > 50000:
        parts.append(f"Good liq ${liquidity / 1000:.0f}K")
    elif liquidity < 5000:
        parts.append(f"Low liq ${liquidity / 1000:.1f}K")

    if snapshot.buys_24h > snapshot.sells_24h * 2:
        parts.append("Strong buys")
    elif snapshot.sells_24h > snapshot.buys_24h * 2:
        parts.append("Heavy sells")
    return " | ".join(parts)
