import os

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


# External assistant (generative-text fallback)
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")

ASSISTANT_PROVIDER = os.getenv("ASSISTANT_PROVIDER", "auto")
ASSISTANT_MODEL = os.getenv("ASSISTANT_MODEL", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_API_BASE = os.getenv(
    "GEMINI_API_BASE",
    "https://generativelanguage.googleapis.com/v1beta/models",
)

ASSISTANT_TIMEOUT_SECONDS = float(os.getenv("ASSISTANT_TIMEOUT_SECONDS", "20"))
ASSISTANT_MAX_OUTPUT_TOKENS = int(os.getenv("ASSISTANT_MAX_OUTPUT_TOKENS", "1024"))
ASSISTANT_TEMPERATURE = float(os.getenv("ASSISTANT_TEMPERATURE", "0.7"))
ASSISTANT_TOP_K = int(os.getenv("ASSISTANT_TOP_K", "40"))
ASSISTANT_TOP_P = float(os.getenv("ASSISTANT_TOP_P", "0.95"))

# Storage
DATABASE_PATH = os.getenv("DATABASE_PATH", "carechat.db")
DATABASE_URL = os.getenv("DATABASE_URL", "")
DATABASE_MAX_CONNECTIONS = int(os.getenv("DATABASE_MAX_CONNECTIONS", "5"))
SEED_DEMO_DATA = _flag("SEED_DEMO_DATA", "true")

# Auth
SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", "12"))
