"""LLM enrichment for deep token analysis with a deterministic fallback."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Protocol

import config
from monitor.errors import EnrichmentFailure
from monitor.safety_analyzer import RISK_CRITICAL, RISK_HIGH, SafetyReport
from monitor.signal_calculator import SIGNAL_AVOID, SIGNAL_HOLD, SIGNAL_TYPES
from monitor.snapshot import MarketSnapshot, PairRecord
from utils.http_client import ResilientHttpClient

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a crypto trading analyst. Always respond with valid JSON only, no markdown."

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


@dataclass
class AIAnalysis:
    summary: str
    signal: str
    confidence: int
    reasoning: str
    entry_price: str | None = None
    target_price: str | None = None
    stop_loss: str | None = None
    risks: list[str] = field(default_factory=list)
    catalysts: list[str] = field(default_factory=list)
    source: str = "llm"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class Summarizer(Protocol):
    async def summarize(self, context: dict[str, Any]) -> AIAnalysis:
        ...


def build_token_context(
    pair: PairRecord,
    snapshot: MarketSnapshot,
    report: SafetyReport,
    now_ms: int | None = None,
) -> dict[str, Any]:
    return {
        "name": pair.base_name,
        "symbol": pair.base_symbol,
        "chain": pair.chain_id,
        "priceUsd": pair.price_usd,
        "liquidity": snapshot.liquidity_usd,
        "volume24h": snapshot.volume_24h_usd,
        "marketCap": pair.market_cap,
        "priceChange1h": snapshot.price_change_1h_pct,
        "priceChange24h": snapshot.price_change_24h_pct,
        "buys24h": snapshot.buys_24h,
        "sells24h": snapshot.sells_24h,
        "ageHours": round(snapshot.age_hours(now_ms)),
        "safetyScore": report.score,
        "riskLevel": report.risk_level,
        "isHoneypot": report.is_honeypot,
        "risks": list(report.risks),
        "positives": list(report.positives),
        "uncheckedFactors": list(report.unchecked_factors),
        "hasSocials": snapshot.has_social_links,
        "hasWebsite": snapshot.has_website,
    }


def build_prompt(context: dict[str, Any]) -> str:
    return (
        "You are an expert crypto token analyst. Analyze this token and provide trading recommendations.\n\n"
        "TOKEN DATA:\n"
        f"{json.dumps(context, indent=2, default=str)}\n\n"
        "Based on this data, provide:\n"
        "1. A brief 1-2 sentence summary\n"
        "2. A trading signal: strong_buy, buy, hold, sell, or avoid\n"
        "3. Confidence level (0-100)\n"
        "4. Entry price recommendation (or \"wait\" if not good time)\n"
        "5. Target price (realistic short-term target based on momentum)\n"
        "6. Stop loss level\n"
        "7. Key reasoning (2-3 sentences)\n"
        "8. Top 2 risks\n"
        "9. Top 2 potential catalysts/positives\n\n"
        "Respond ONLY with valid JSON in this exact format:\n"
        "{\n"
        '  "summary": "string",\n'
        '  "signal": "strong_buy|buy|hold|sell|avoid",\n'
        '  "confidence": number,\n'
        '  "entryPrice": "string or null",\n'
        '  "targetPrice": "string or null",\n'
        '  "stopLoss": "string or null",\n'
        '  "reasoning": "string",\n'
        '  "risks": ["string", "string"],\n'
        '  "catalysts": ["string", "string"]\n'
        "}"
    )


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _text_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if str(item).strip()]


def parse_analysis(content: str) -> AIAnalysis:
    """Extract and validate the JSON object from a model reply."""
    match = _JSON_OBJECT.search(content or "")
    if not match:
        raise EnrichmentFailure("no JSON object in model response")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise EnrichmentFailure(f"invalid JSON in model response: {exc}") from exc
    if not isinstance(data, dict):
        raise EnrichmentFailure("model response is not an object")

    signal = str(data.get("signal") or "").strip().lower()
    if signal not in SIGNAL_TYPES:
        raise EnrichmentFailure(f"unknown signal {signal!r}")
    try:
        confidence = int(round(float(data.get("confidence"))))
    except (TypeError, ValueError):
        raise EnrichmentFailure(f"invalid confidence {data.get('confidence')!r}") from None

    return AIAnalysis(
        summary=str(data.get("summary") or "").strip(),
        signal=signal,
        confidence=max(0, min(100, confidence)),
        reasoning=str(data.get("reasoning") or "").strip(),
        entry_price=_optional_text(data.get("entryPrice")),
        target_price=_optional_text(data.get("targetPrice")),
        stop_loss=_optional_text(data.get("stopLoss")),
        risks=_text_list(data.get("risks")),
        catalysts=_text_list(data.get("catalysts")),
        source="llm",
    )


def fallback_analysis(pair: PairRecord, report: SafetyReport) -> AIAnalysis:
    """Deterministic summary built only from the safety report."""
    risky = report.risk_level in (RISK_CRITICAL, RISK_HIGH) or report.is_honeypot
    lead_risk = report.risks[0] if report.risks else "Monitor for changes."
    return AIAnalysis(
        summary=f"{pair.base_symbol} token on {pair.chain_id}. Safety score: {report.score}/100.",
        signal=SIGNAL_AVOID if risky else SIGNAL_HOLD,
        confidence=report.score,
        reasoning=f"Based on safety analysis ({report.risk_level} risk). {lead_risk}",
        risks=list(report.risks[:2]),
        catalysts=list(report.positives[:2]),
        source="fallback",
    )


class OpenAISummarizer:
    """Summarizer backed by an OpenAI-compatible chat completions endpoint."""

    def __init__(self, http: ResilientHttpClient | None = None) -> None:
        self._http = http or ResilientHttpClient(
            timeout_seconds=float(config.AI_TIMEOUT),
            source_limits={"openai": 2},
        )

    async def close(self) -> None:
        await self._http.close()

    async def summarize(self, context: dict[str, Any]) -> AIAnalysis:
        if not config.AI_ENABLED:
            raise EnrichmentFailure("AI enrichment disabled")
        if not config.OPENAI_API_KEY:
            raise EnrichmentFailure("OPENAI_API_KEY is not set")

        payload = {
            "model": config.OPENAI_MODEL,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(context)},
            ],
            "max_completion_tokens": int(config.AI_MAX_TOKENS),
            "temperature": float(config.AI_TEMPERATURE),
        }
        result = await self._http.post_json(
            f"{config.OPENAI_BASE_URL}/chat/completions",
            payload,
            source="openai",
            headers={"Authorization": f"Bearer {config.OPENAI_API_KEY}"},
            max_attempts=2,
        )
        if not result.ok:
            if result.status == 429:
                logger.warning("RATE_LIMIT source=openai status=429")
            raise EnrichmentFailure(f"chat completion failed: {result.error or result.status}")

        try:
            content = result.data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise EnrichmentFailure(f"unexpected completion shape: {exc}") from exc
        return parse_analysis(str(content or ""))
