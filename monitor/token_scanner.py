"""Scan orchestration: score tokens, persist them, emit signals and run the discovery loop."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable

import config
from monitor.ai_analyzer import AIAnalysis, Summarizer, build_token_context, fallback_analysis
from monitor.errors import InvalidInput, NotFound, PersistenceFailure, UpstreamUnavailable
from monitor.safety_analyzer import SafetyReport, evaluate_safety
from monitor.signal_calculator import TradingSignal, decide_signal, is_actionable
from monitor.snapshot import PairRecord, build_snapshot, now_ms, pair_to_token_fields, parse_pair
from utils.addressing import normalize_address, same_chain

logger = logging.getLogger(__name__)

STATE_UNSEEN = "unseen"
STATE_SCANNING = "scanning"
STATE_SCORED = "scored"
STATE_FAILED = "failed"

STATUS_SCORED = "scored"
STATUS_NOT_FOUND = "not_found"
STATUS_FAILED = "failed"


@dataclass
class ScanResult:
    address: str
    status: str
    token: Any = None
    is_new: bool = False
    signal: Any = None
    report: SafetyReport | None = None
    decision: TradingSignal | None = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.status == STATUS_SCORED


@dataclass
class DeepAnalysis:
    token: Any
    report: SafetyReport
    analysis: AIAnalysis
    signal: Any = None


def _default_store() -> Any:
    from database import db

    return db


def _default_dex() -> Any:
    from monitor.dexscreener import DexScreenerClient

    return DexScreenerClient()


class TokenScanner:
    def __init__(
        self,
        dex: Any = None,
        store: Any = None,
        summarizer: Summarizer | None = None,
        *,
        chain: str | None = None,
        hot_limit: int | None = None,
        call_delay_seconds: float | None = None,
        min_confidence: int | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._dex = dex if dex is not None else _default_dex()
        self._store = store if store is not None else _default_store()
        self._summarizer = summarizer
        self.chain = (chain or config.SCANNER_CHAIN).strip().lower()
        self.hot_limit = int(hot_limit if hot_limit is not None else config.SCAN_HOT_LIMIT)
        self.call_delay_seconds = float(
            call_delay_seconds if call_delay_seconds is not None else config.SCAN_CALL_DELAY_SECONDS
        )
        self.min_confidence = int(min_confidence if min_confidence is not None else config.SIGNAL_MIN_CONFIDENCE)
        self._clock = clock
        self._states: dict[str, str] = {}
        self._loop_task: asyncio.Task | None = None
        self._stop_event: asyncio.Event | None = None
        self._cycle_task: asyncio.Task | None = None
        self.cycles_started = 0
        self.cycles_skipped = 0

    def scan_state(self, address: str) -> str:
        return self._states.get(normalize_address(address), STATE_UNSEEN)

    @staticmethod
    def _select_pair(pairs: list[dict[str, Any]], chain: str | None) -> dict[str, Any]:
        if chain:
            for pair in pairs:
                if same_chain(pair.get("chainId"), chain):
                    return pair
        return pairs[0]

    def _token_fields(self, pair: PairRecord, report: SafetyReport, ai_signal: str, ai_analysis: str) -> dict[str, Any]:
        fields = pair_to_token_fields(pair)
        fields.update(
            {
                "safety_score": report.score,
                "risk_level": report.risk_level,
                "is_honeypot": report.is_honeypot,
                "is_liquidity_locked": report.is_liquidity_locked,
                "mint_authority_disabled": report.mint_authority_disabled,
                "top_holders_percentage": report.top_holders_percentage,
                "ai_signal": ai_signal,
                "ai_analysis": ai_analysis,
            }
        )
        return fields

    async def scan_one(self, address: str, chain: str | None = None) -> ScanResult:
        """Fetch, score and persist one token. Upstream and input errors become a failed result."""
        address = normalize_address(address)
        chain = (chain or self.chain).strip().lower()
        if not address:
            return ScanResult(address=address, status=STATUS_FAILED, error="empty address")

        self._states[address] = STATE_SCANNING
        try:
            raw_pairs = await self._dex.get_pairs_for_token(address)
            if not raw_pairs:
                self._states[address] = STATE_FAILED
                logger.info("SCAN_NOT_FOUND address=%s chain=%s", address, chain)
                return ScanResult(address=address, status=STATUS_NOT_FOUND, error="token not found")

            pair = parse_pair(self._select_pair(raw_pairs, chain))
        except (UpstreamUnavailable, InvalidInput) as exc:
            self._states[address] = STATE_FAILED
            logger.warning("SCAN_FAIL address=%s chain=%s err=%s", address, chain, exc)
            return ScanResult(address=address, status=STATUS_FAILED, error=str(exc))

        at_ms = self._clock()
        snapshot = build_snapshot(pair)
        report = evaluate_safety(snapshot, now_ms=at_ms)
        decision = decide_signal(report, snapshot, now_ms=at_ms)

        try:
            token, is_new = self._store.upsert_token(
                address,
                self._token_fields(pair, report, decision.signal_type, decision.reasoning),
            )
            signal = None
            if is_actionable(decision.signal_type, decision.confidence, self.min_confidence):
                signal = self._store.insert_signal(
                    {
                        "token_address": address,
                        "signal_type": decision.signal_type,
                        "confidence": decision.confidence,
                        "entry_price": pair.price_usd,
                        "reasoning": decision.reasoning,
                        "is_active": True,
                    }
                )
        except PersistenceFailure:
            self._states[address] = STATE_FAILED
            raise

        self._states[address] = STATE_SCORED
        logger.info(
            "SCAN_OK address=%s symbol=%s score=%s risk=%s signal=%s confidence=%s new=%s",
            address,
            pair.base_symbol,
            report.score,
            report.risk_level,
            decision.signal_type,
            decision.confidence,
            is_new,
        )
        return ScanResult(
            address=address,
            status=STATUS_SCORED,
            token=token,
            is_new=is_new,
            signal=signal,
            report=report,
            decision=decision,
        )

    async def scan_hot(self, chain: str | None = None) -> list[ScanResult]:
        """Scan the top discovery candidates by 24h volume. Failed tokens are logged and omitted."""
        chain = (chain or self.chain).strip().lower()
        logger.info("SCAN_HOT_START chain=%s", chain)
        try:
            raw_pairs = await self._dex.list_candidate_pairs(chain)
        except UpstreamUnavailable as exc:
            logger.warning("SCAN_HOT_DISCOVERY_FAIL chain=%s err=%s", chain, exc)
            return []

        ranked: list[PairRecord] = []
        seen: set[str] = set()
        for raw in raw_pairs:
            try:
                pair = parse_pair(raw)
            except InvalidInput as exc:
                logger.warning("SCAN_HOT_SKIP reason=invalid_pair err=%s", exc)
                continue
            if pair.base_address in seen:
                continue
            seen.add(pair.base_address)
            ranked.append(pair)
        ranked.sort(key=lambda p: p.volume_24h_usd, reverse=True)

        results: list[ScanResult] = []
        for index, pair in enumerate(ranked[: self.hot_limit]):
            if index and self.call_delay_seconds > 0:
                await asyncio.sleep(self.call_delay_seconds)
            try:
                result = await self.scan_one(pair.base_address, chain)
            except PersistenceFailure as exc:
                logger.error("SCAN_HOT_SKIP address=%s reason=persistence err=%s", pair.base_address, exc)
                continue
            if not result.ok:
                continue
            if result.is_new:
                logger.info("SCAN_HOT_NEW symbol=%s score=%s", pair.base_symbol, result.report.score)
            results.append(result)

        logger.info("SCAN_HOT_DONE chain=%s candidates=%s scored=%s", chain, len(ranked), len(results))
        return results

    async def deep_analyze(self, address: str, chain: str | None = None) -> DeepAnalysis:
        """Re-score one token and enrich it with the summarizer, falling back to the safety report."""
        address = normalize_address(address)
        chain = (chain or self.chain).strip().lower()
        raw_pairs = await self._dex.get_pairs_for_token(address)
        if not raw_pairs:
            raise NotFound(f"token not found: {address}")

        pair = parse_pair(self._select_pair(raw_pairs, chain))
        at_ms = self._clock()
        snapshot = build_snapshot(pair)
        report = evaluate_safety(snapshot, now_ms=at_ms)

        analysis = await self._summarize(pair, build_token_context(pair, snapshot, report, now_ms=at_ms), report)
        ai_text = f"{analysis.summary} {analysis.reasoning}".strip()
        token, _ = self._store.upsert_token(address, self._token_fields(pair, report, analysis.signal, ai_text))

        signal = None
        if is_actionable(analysis.signal, analysis.confidence, self.min_confidence):
            signal = self._store.insert_signal(
                {
                    "token_address": address,
                    "signal_type": analysis.signal,
                    "confidence": analysis.confidence,
                    "entry_price": analysis.entry_price or pair.price_usd,
                    "target_price": analysis.target_price,
                    "stop_loss": analysis.stop_loss,
                    "reasoning": analysis.reasoning,
                    "is_active": True,
                }
            )
        self._states[address] = STATE_SCORED
        logger.info(
            "DEEP_ANALYSIS address=%s score=%s signal=%s confidence=%s source=%s",
            address,
            report.score,
            analysis.signal,
            analysis.confidence,
            analysis.source,
        )
        return DeepAnalysis(token=token, report=report, analysis=analysis, signal=signal)

    async def _summarize(self, pair: PairRecord, context: dict[str, Any], report: SafetyReport) -> AIAnalysis:
        if self._summarizer is None:
            return fallback_analysis(pair, report)
        try:
            analysis = await self._summarizer.summarize(context)
        except Exception as exc:
            # Enrichment is best effort: any failure degrades to the deterministic summary.
            logger.warning("AI_FALLBACK address=%s err=%s", pair.base_address, exc)
            return fallback_analysis(pair, report)
        if not isinstance(analysis, AIAnalysis):
            logger.warning("AI_FALLBACK address=%s err=unexpected result %r", pair.base_address, type(analysis))
            return fallback_analysis(pair, report)
        return analysis

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def is_cycle_in_flight(self) -> bool:
        return self._cycle_task is not None and not self._cycle_task.done()

    def start_loop(self, interval_seconds: float | None = None) -> bool:
        """Start the background scan loop. Returns False if it is already running."""
        if self.is_running:
            logger.info("SCAN_LOOP_START skipped reason=already_running")
            return False
        interval = max(0.01, float(interval_seconds if interval_seconds is not None else config.SCAN_INTERVAL_SECONDS))
        self._stop_event = asyncio.Event()
        self._loop_task = asyncio.create_task(self._ticker(interval, self._stop_event), name="token_scanner_loop")
        logger.info("SCAN_LOOP_START interval=%.1fs chain=%s", interval, self.chain)
        return True

    def stop_loop(self) -> bool:
        """Stop scheduling cycles. A cycle already in flight runs to completion."""
        if not self.is_running:
            return False
        if self._stop_event is not None:
            self._stop_event.set()
        self._loop_task = None
        self._stop_event = None
        logger.info("SCAN_LOOP_STOP in_flight=%s", self.is_cycle_in_flight)
        return True

    async def _ticker(self, interval: float, stop: asyncio.Event) -> None:
        while not stop.is_set():
            if self.is_cycle_in_flight:
                self.cycles_skipped += 1
                logger.info("SCAN_LOOP_SKIP reason=cycle_in_flight")
            else:
                self.cycles_started += 1
                self._cycle_task = asyncio.create_task(self._run_cycle(), name="token_scanner_cycle")
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue

    async def _run_cycle(self) -> None:
        try:
            await self.scan_hot(self.chain)
        except Exception:
            logger.exception("Background scan error")
        self._log_source_stats()

    def _log_source_stats(self) -> None:
        runtime_stats = getattr(self._dex, "runtime_stats", None)
        if runtime_stats is None:
            return
        for source, row in sorted(runtime_stats(reset=True).items()):
            logger.info(
                "SOURCE_STATS source=%s ok=%s fail=%s rate_limited=%s retries=%s error_percent=%.2f latency_avg_ms=%.2f",
                source,
                row.get("ok", 0),
                row.get("fail", 0),
                row.get("rate_limited", 0),
                row.get("retries", 0),
                float(row.get("error_percent", 0.0)),
                float(row.get("latency_avg_ms", 0.0)),
            )

    async def aclose(self) -> None:
        ticker = self._loop_task
        self.stop_loop()
        if ticker is not None:
            await ticker
        cycle = self._cycle_task
        if cycle is not None and not cycle.done():
            await cycle
        for collaborator in (self._dex, self._summarizer):
            close = getattr(collaborator, "close", None)
            if close is not None:
                await close()

    def get_top_tokens(self, limit: int = 20) -> list[Any]:
        return self._store.get_top_tokens(limit)

    def get_new_tokens(self, hours: float = 24, limit: int = 50) -> list[Any]:
        return self._store.get_new_tokens(hours, limit)

    def get_hot_tokens(self, min_score: int = 50, min_volume: float = 5000, limit: int = 20) -> list[Any]:
        return self._store.get_hot_tokens(min_score, min_volume, limit)

    def get_hot_signals(self, limit: int = 10) -> list[Any]:
        return self._store.get_hot_signals(limit)

    def get_token(self, address: str) -> Any:
        return self._store.get_token(address)

    def get_signals_for_token(self, address: str, limit: int = 5) -> list[Any]:
        return self._store.get_signals_for_token(address, limit)
