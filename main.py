"""Entry point for the memecoin token scanner."""

import argparse
import asyncio
import json
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any

import config
from database.db import init_db
from monitor.ai_analyzer import OpenAISummarizer
from monitor.dexscreener import DexScreenerClient
from monitor.errors import NotFound, ScannerError
from monitor.token_scanner import TokenScanner


def configure_logging() -> None:
    os.makedirs(config.LOG_DIR, exist_ok=True)
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    file_handler = RotatingFileHandler(config.APP_LOG_FILE, maxBytes=1_000_000, backupCount=5, encoding="utf-8")
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(getattr(logging, config.LOG_LEVEL.upper(), logging.INFO))
    root.handlers.clear()
    root.addHandler(file_handler)
    root.addHandler(console_handler)

    # aiohttp access noise and request URLs stay out of INFO logs.
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


def build_scanner(chain: str | None = None) -> TokenScanner:
    summarizer = OpenAISummarizer() if config.AI_ENABLED and config.OPENAI_API_KEY else None
    if summarizer is None:
        logger.info("AI_ENRICHMENT disabled; deep analysis uses the safety-report summary")
    return TokenScanner(dex=DexScreenerClient(), summarizer=summarizer, chain=chain)


def _row(obj: Any) -> Any:
    if obj is None:
        return None
    to_dict = getattr(obj, "to_dict", None)
    return to_dict() if callable(to_dict) else obj


def _dump(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str, ensure_ascii=False))


async def run_loop(scanner: TokenScanner, interval_seconds: float) -> None:
    scanner.start_loop(interval_seconds)
    try:
        # Runs until the task is cancelled (Ctrl+C).
        await asyncio.Event().wait()
    finally:
        await scanner.aclose()


async def run_command(args: argparse.Namespace) -> int:
    scanner = build_scanner(args.chain)
    if args.command == "loop":
        await run_loop(scanner, args.interval)
        return 0

    try:
        if args.command == "scan":
            result = await scanner.scan_one(args.address, args.chain)
            _dump(
                {
                    "status": result.status,
                    "error": result.error,
                    "is_new": result.is_new,
                    "token": _row(result.token),
                    "signal": _row(result.signal),
                }
            )
            return 0 if result.ok else 1
        if args.command == "hot":
            results = await scanner.scan_hot(args.chain)
            _dump([{"token": _row(r.token), "signal": _row(r.signal)} for r in results])
            return 0
        if args.command == "deep":
            try:
                deep = await scanner.deep_analyze(args.address, args.chain)
            except NotFound as exc:
                _dump({"status": "not_found", "error": str(exc)})
                return 1
            _dump({"token": _row(deep.token), "analysis": deep.analysis.to_dict(), "signal": _row(deep.signal)})
            return 0
        if args.command == "top":
            _dump([_row(t) for t in scanner.get_top_tokens(args.limit)])
            return 0
        if args.command == "signals":
            _dump([_row(s) for s in scanner.get_hot_signals(args.limit)])
            return 0
    except ScannerError as exc:
        logger.error("COMMAND_FAIL command=%s err=%s", args.command, exc)
        return 2
    finally:
        await scanner.aclose()
    return 1


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="DEX token safety scanner and signal engine.")
    parser.add_argument("--chain", default=config.SCANNER_CHAIN, help="Chain id to scan (default: %(default)s)")
    sub = parser.add_subparsers(dest="command")

    loop_cmd = sub.add_parser("loop", help="Run the background discovery loop until interrupted")
    loop_cmd.add_argument("--interval", type=float, default=config.SCAN_INTERVAL_SECONDS, help="Seconds between cycles")

    scan_cmd = sub.add_parser("scan", help="Scan and persist a single token")
    scan_cmd.add_argument("address")

    sub.add_parser("hot", help="Run one discovery cycle")

    deep_cmd = sub.add_parser("deep", help="Deep analysis with LLM enrichment")
    deep_cmd.add_argument("address")

    top_cmd = sub.add_parser("top", help="List stored tokens by safety score")
    top_cmd.add_argument("--limit", type=int, default=20)

    signals_cmd = sub.add_parser("signals", help="List recent active signals")
    signals_cmd.add_argument("--limit", type=int, default=10)

    args = parser.parse_args(argv)
    if args.command is None:
        args.command = "loop"
        args.interval = config.SCAN_INTERVAL_SECONDS
    return args


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging()
    init_db()
    try:
        return asyncio.run(run_command(args))
    except KeyboardInterrupt:
        logger.info("SCANNER_STOP reason=keyboard_interrupt")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
