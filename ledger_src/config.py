import os

from dotenv import load_dotenv

# Dev-only: a local .env can override the defaults below
load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


# ===== CURRENCY =====
DEFAULT_BASE_CURRENCY = os.getenv("LEDGER_DEFAULT_BASE_CURRENCY", "USD").upper()
DEFAULT_EXCHANGE_RATE = 1.0

# ===== UPLOAD BOUNDARY =====
MAX_UPLOAD_BYTES = _env_int("LEDGER_MAX_UPLOAD_BYTES", 5 * 1024 * 1024)
ALLOWED_EXTENSIONS = (".csv",)

# ===== VALIDATION =====
MAX_DISPLAYED_ERRORS = _env_int("LEDGER_MAX_DISPLAYED_ERRORS", 10)

# ===== POSITIONS =====
# Share balances at or below this are treated as closed
SHARE_EPSILON = _env_float("LEDGER_SHARE_EPSILON", 1e-4)

# ===== PARTIAL DATA HEURISTICS =====
EARLY_SELL_WINDOW_DAYS = _env_int("LEDGER_EARLY_SELL_WINDOW_DAYS", 7)
PARTIAL_MIN_SPAN_DAYS = _env_int("LEDGER_PARTIAL_MIN_SPAN_DAYS", 30)

# ===== LOGGING =====
LOG_LEVEL = os.getenv("LEDGER_LOG_LEVEL", "INFO").upper()
