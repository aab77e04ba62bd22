from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv
from web3 import Web3

from epochbot.domain import SignalPair
from epochbot.errors import ConfigurationError

PROFILE_DEFAULTS: dict[str, dict] = {
    "pancake_v2": {
        "contract_address": "0x18B2A687610328590Bc8F2e5fEdDe3b582A49cdA",
        "bet_amount": "0.02",
        "waiting_time_ms": 275500,
        "signal_pairs": "BNBUSDT:5m,BNBUSDT:1m,BNBUSDT_PREMIUM:5m,BNBUSDT_PREMIUM:1m",
    },
    "candle_genie_v3": {
        "contract_address": "0x995294CdBfBf7784060BD3Bec05CE38a5F94A0C5",
        "bet_amount": "0.1",
        "waiting_time_ms": 281500,
        "signal_pairs": "BNBUSDT:5m,BNBUSDT:1m",
    },
}

VALID_INTERVALS = ("1m", "5m", "15m", "30m", "1h", "2h", "4h", "1d", "1W", "1M")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int, min_value: int | None = None) -> int:
    raw = os.environ.get(name)
    if raw is None or not str(raw).strip():
        value = default
    else:
        try:
            value = int(raw)
        except ValueError as exc:
            raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if min_value is not None:
        value = max(min_value, value)
    return value


def _env_float(name: str, default: float, min_value: float | None = None) -> float:
    raw = os.environ.get(name)
    if raw is None or not str(raw).strip():
        value = default
    else:
        try:
            value = float(raw)
        except ValueError as exc:
            raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc
    if min_value is not None:
        value = max(min_value, value)
    return value


def parse_signal_pairs(raw: str) -> tuple[SignalPair, ...]:
    pairs = []
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        symbol, sep, interval = chunk.partition(":")
        if not sep or not symbol.strip() or interval.strip() not in VALID_INTERVALS:
            raise ConfigurationError(
                f"invalid signal pair {chunk!r}; expected SYMBOL:INTERVAL with interval in {VALID_INTERVALS}"
            )
        pairs.append(SignalPair(symbol=symbol.strip().upper(), interval=interval.strip()))
    if not pairs:
        raise ConfigurationError("SIGNAL_PAIRS must name at least one SYMBOL:INTERVAL pair")
    return tuple(pairs)


def _checksum(name: str, raw: str) -> str:
    try:
        return Web3.to_checksum_address(raw.strip())
    except (ValueError, TypeError) as exc:
        raise ConfigurationError(f"{name} is not a valid account address: {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    private_key: str = field(repr=False)
    contract_profile: str
    contract_address: str
    rpc_url: str
    chain_id: int
    bet_amount: str
    waiting_time_ms: int
    block_interval_ms: int
    wait_reduction_blocks: int
    min_waiting_time_ms: int
    signal_pairs: tuple[SignalPair, ...]
    signal_exchange: str
    signal_screener: str
    threshold_per_sample: int
    bull_threshold: int | None
    claim_lookback: int
    redistribute_to: str | None
    redistribute_bps: int
    call_timeout_sec: float
    tx_timeout_sec: float
    poll_interval_sec: float
    dry_run: bool
    data_dir: str
    log_level: str


def load_env_file() -> None:
    path = os.environ.get("EPOCHBOT_ENV_FILE", os.path.expanduser("~/.epochbot.env"))
    if Path(path).exists():
        load_dotenv(path)
    load_dotenv()


def load_settings() -> Settings:
    load_env_file()

    private_key = os.environ.get("PRIVATE_KEY", "").strip()
    if not private_key:
        raise ConfigurationError(
            "The private key was not found in .env. "
            "Enter the private key to .env and start the program again."
        )

    profile = os.environ.get("CONTRACT_PROFILE", "pancake_v2").strip().lower()
    if profile not in PROFILE_DEFAULTS:
        raise ConfigurationError(
            f"Unsupported CONTRACT_PROFILE={profile}. Use one of: {', '.join(PROFILE_DEFAULTS)}"
        )
    defaults = PROFILE_DEFAULTS[profile]

    bps = _env_int("REDISTRIBUTE_BPS", 0, min_value=0)
    if bps > 10_000:
        raise ConfigurationError("REDISTRIBUTE_BPS cannot exceed 10000")
    redistribute_raw = os.environ.get("REDISTRIBUTE_TO", "").strip()

    bull_threshold_raw = os.environ.get("BULL_THRESHOLD", "").strip()
    bull_threshold = _env_int("BULL_THRESHOLD", 0, min_value=1) if bull_threshold_raw else None

    return Settings(
        private_key=private_key,
        contract_profile=profile,
        contract_address=_checksum(
            "CONTRACT_ADDRESS", os.environ.get("CONTRACT_ADDRESS", defaults["contract_address"])
        ),
        rpc_url=os.environ.get("RPC_URL", "https://bsc-dataseed.binance.org/").strip(),
        chain_id=_env_int("CHAIN_ID", 56, min_value=1),
        bet_amount=os.environ.get("BET_AMOUNT", defaults["bet_amount"]).strip(),
        waiting_time_ms=_env_int("WAITING_TIME_MS", defaults["waiting_time_ms"], min_value=0),
        block_interval_ms=_env_int("BLOCK_INTERVAL_MS", 3000, min_value=0),
        wait_reduction_blocks=_env_int("WAIT_REDUCTION_BLOCKS", 2, min_value=0),
        min_waiting_time_ms=_env_int("MIN_WAITING_TIME_MS", 6000, min_value=0),
        signal_pairs=parse_signal_pairs(os.environ.get("SIGNAL_PAIRS", defaults["signal_pairs"])),
        signal_exchange=os.environ.get("SIGNAL_EXCHANGE", "BINANCE").strip().upper(),
        signal_screener=os.environ.get("SIGNAL_SCREENER", "crypto").strip().lower(),
        threshold_per_sample=_env_int("THRESHOLD_PER_SAMPLE", 8, min_value=1),
        bull_threshold=bull_threshold,
        claim_lookback=_env_int("CLAIM_LOOKBACK", 5, min_value=1),
        redistribute_to=_checksum("REDISTRIBUTE_TO", redistribute_raw) if redistribute_raw else None,
        redistribute_bps=bps,
        call_timeout_sec=_env_float("CALL_TIMEOUT_SEC", 30.0, min_value=1.0),
        tx_timeout_sec=_env_float("TX_TIMEOUT_SEC", 120.0, min_value=5.0),
        poll_interval_sec=_env_float("POLL_INTERVAL_SEC", 3.0, min_value=0.5),
        dry_run=_env_bool("DRY_RUN", True),
        data_dir=os.environ.get("DATA_DIR", os.path.expanduser("~/.epochbot")),
        log_level=os.environ.get("LOG_LEVEL", "INFO").strip().upper(),
    )
