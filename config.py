"""Application configuration."""

import os
from pathlib import Path
from typing import Dict, Tuple

from dotenv import load_dotenv


def _load_dotenv_safe(dotenv_path: str | None = None, *, override: bool = False) -> None:
    """Load dotenv using UTF-8-SIG so BOM-prefixed files don't break first key parsing."""
    try:
        load_dotenv(dotenv_path=dotenv_path, override=override, encoding="utf-8-sig")
    except TypeError:
        # Older python-dotenv versions may not expose the `encoding` argument.
        load_dotenv(dotenv_path=dotenv_path, override=override)


# Load base environment first, then optional per-instance override env file.
_load_dotenv_safe()
_SCANNER_ENV_FILE = os.getenv("SCANNER_ENV_FILE", "").strip()
if _SCANNER_ENV_FILE:
    _scanner_env_path = Path(_SCANNER_ENV_FILE).expanduser()
    if not _scanner_env_path.is_absolute():
        _scanner_env_path = (Path.cwd() / _scanner_env_path).resolve()
    if not _scanner_env_path.exists():
        raise FileNotFoundError(f"SCANNER_ENV_FILE does not exist: {_scanner_env_path}")
    if not _scanner_env_path.is_file():
        raise IsADirectoryError(f"SCANNER_ENV_FILE is not a file: {_scanner_env_path}")
    try:
        _load_dotenv_safe(str(_scanner_env_path), override=True)
    except (OSError, UnicodeError, ValueError) as exc:
        raise RuntimeError(f"Failed to load SCANNER_ENV_FILE '{_scanner_env_path}': {exc}") from exc


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "y", "on")


def _parse_source_rate_limits(raw: str) -> Dict[str, Tuple[int, float]]:
    out: Dict[str, Tuple[int, float]] = {}
    for chunk in str(raw or "").split(","):
        item = chunk.strip()
        if not item or ":" not in item:
            continue
        source_part, rate_part = item.split(":", 1)
        source = source_part.strip().lower()
        if not source or "/" not in rate_part:
            continue
        count_part, window_part = rate_part.split("/", 1)
        try:
            count = max(1, int(float(count_part.strip())))
            window_seconds = max(1.0, float(window_part.strip()))
        except ValueError:
            continue
        out[source] = (count, window_seconds)
    return out


def _parse_source_float_map(raw: str) -> Dict[str, float]:
    out: Dict[str, float] = {}
    for chunk in str(raw or "").split(","):
        item = chunk.strip()
        if not item or ":" not in item:
            continue
        source_part, value_part = item.split(":", 1)
        source = source_part.strip().lower()
        if not source:
            continue
        try:
            out[source] = max(0.0, float(value_part.strip()))
        except ValueError:
            continue
    return out


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///scanner.db")

SCANNER_CHAIN = os.getenv("SCANNER_CHAIN", "solana").strip().lower()
SCAN_INTERVAL_SECONDS = max(1.0, float(os.getenv("SCAN_INTERVAL_SECONDS", "60")))
SCAN_HOT_LIMIT = max(1, int(os.getenv("SCAN_HOT_LIMIT", "20")))
SCAN_CALL_DELAY_SECONDS = max(0.0, float(os.getenv("SCAN_CALL_DELAY_SECONDS", "0.2")))
SIGNAL_MIN_CONFIDENCE = max(0, min(100, int(os.getenv("SIGNAL_MIN_CONFIDENCE", "60"))))

DISCOVERY_MAX_PROFILES = max(1, int(os.getenv("DISCOVERY_MAX_PROFILES", "30")))
DISCOVERY_MIN_LIQUIDITY_USD = max(0.0, float(os.getenv("DISCOVERY_MIN_LIQUIDITY_USD", "1000")))
DISCOVERY_CALL_DELAY_SECONDS = max(0.0, float(os.getenv("DISCOVERY_CALL_DELAY_SECONDS", "0.1")))

DEXSCREENER_API_BASE = os.getenv("DEXSCREENER_API_BASE", "https://api.dexscreener.com").rstrip("/")
DEX_TIMEOUT = int(os.getenv("DEX_TIMEOUT", "15"))
DEX_RETRIES = int(os.getenv("DEX_RETRIES", "3"))

HTTP_CONNECTOR_LIMIT = max(1, int(os.getenv("HTTP_CONNECTOR_LIMIT", "30")))
HTTP_DEFAULT_CONCURRENCY = max(1, int(os.getenv("HTTP_DEFAULT_CONCURRENCY", "8")))
HTTP_RETRY_ATTEMPTS = max(1, int(os.getenv("HTTP_RETRY_ATTEMPTS", "3")))
HTTP_BACKOFF_BASE_SECONDS = max(0.05, float(os.getenv("HTTP_BACKOFF_BASE_SECONDS", "1.00")))
HTTP_BACKOFF_MAX_SECONDS = max(0.10, float(os.getenv("HTTP_BACKOFF_MAX_SECONDS", "8.00")))
HTTP_JITTER_SECONDS = max(0.0, float(os.getenv("HTTP_JITTER_SECONDS", "0.25")))
HTTP_RATE_LIMIT_DELAY_SECONDS = max(0.0, float(os.getenv("HTTP_RATE_LIMIT_DELAY_SECONDS", "2.00")))
HTTP_429_COOLDOWN_SECONDS = max(1.0, float(os.getenv("HTTP_429_COOLDOWN_SECONDS", "30")))
HTTP_SOURCE_RATE_LIMITS = _parse_source_rate_limits(
    os.getenv(
        "HTTP_SOURCE_RATE_LIMITS",
        "dex_profiles:60/60,dex_pairs:300/60,dex_search:300/60,openai:60/60",
    )
)
HTTP_SOURCE_429_COOLDOWNS = _parse_source_float_map(
    os.getenv(
        "HTTP_SOURCE_429_COOLDOWNS",
        "dex_profiles:20,dex_pairs:20,dex_search:20,openai:60",
    )
)

AI_ENABLED = _env_bool("AI_ENABLED", "true")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip("/")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4.1-mini")
AI_TIMEOUT = max(1, int(os.getenv("AI_TIMEOUT", "30")))
AI_MAX_TOKENS = max(16, int(os.getenv("AI_MAX_TOKENS", "500")))
AI_TEMPERATURE = max(0.0, float(os.getenv("AI_TEMPERATURE", "0.3")))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR", "logs")
APP_LOG_FILE = os.path.join(LOG_DIR, "scanner.log")
