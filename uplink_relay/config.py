# ============================================
#     Uplink — Global Configuration
#     Ephemeral rooms + abuse limits (2026)
# ============================================

import os

# =========================================
#   ENVIRONMENT
# =========================================
# Expected values: "dev", "prod"
ENV = os.getenv("ENV", "dev").lower()

IS_PROD = ENV == "prod"

# Project root = one level above /uplink_relay
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# =========================================
#   SERVER
# =========================================
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))

CORS_ALLOWED_ORIGINS = os.getenv("CORS_ALLOWED_ORIGINS", "*")
PING_TIMEOUT_SECONDS = int(os.getenv("PING_TIMEOUT_SECONDS", "60"))

# =========================================
#   LOGS
# =========================================
# Rooms are memory-only; the log folder is the only thing written to disk.
LOG_DIR = os.getenv("UPLINK_LOG_DIR", os.path.join(PROJECT_ROOT, "var", "logs"))
LOG_FILE = os.getenv("UPLINK_LOG_FILE", os.path.join(LOG_DIR, "uplink.log"))
LOG_LEVEL = os.getenv("UPLINK_LOG_LEVEL", "INFO").upper()

# =========================================
#   ROOMS
# =========================================
ROOM_LIFETIME_SECONDS = int(os.getenv("ROOM_LIFETIME_SECONDS", str(120 * 60)))
MAX_NAME_LENGTH = int(os.getenv("MAX_NAME_LENGTH", "64"))

# =========================================
#   RATE LIMIT (TOKEN BUCKET + PENALTY BOX)
# =========================================
# One bucket per (client identity, action class).
# A client that empties any bucket is boxed for BAN_DURATION_SECONDS;
# every event it sends while boxed drops its connection.


def _bucket(name, tokens, window):
    prefix = f"RATE_LIMIT_{name.upper()}"
    return {
        "max_tokens": int(os.getenv(f"{prefix}_TOKENS", str(tokens))),
        "window": float(os.getenv(f"{prefix}_WINDOW", str(window))),
    }


RATE_LIMITS = {
    "create": _bucket("create", 3, 60),
    "message": _bucket("message", 10, 1),
    "ai": _bucket("ai", 5, 60),
}

BAN_DURATION_SECONDS = int(os.getenv("BAN_DURATION_SECONDS", "30"))

# Housekeeping of idle rate records
RATE_LIMIT_SWEEP_INTERVAL_SECONDS = int(os.getenv("RATE_LIMIT_SWEEP_INTERVAL_SECONDS", "300"))
RATE_LIMIT_IDLE_SECONDS = int(os.getenv("RATE_LIMIT_IDLE_SECONDS", "60"))

# =========================================
#   GENERATIVE TEXT (aliases, room names, link scan)
# =========================================
# OPENAI_API_KEY is read by the SDK itself.
# Missing key → every AI event answers with a local fallback.
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
COLLABORATOR_TIMEOUT_SECONDS = float(os.getenv("COLLABORATOR_TIMEOUT_SECONDS", "10"))
