from pathlib import Path
import os

from dotenv import load_dotenv

# Load environment variables from repo root and package/.env (if present).
REPO_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(REPO_ROOT / ".env")
load_dotenv(Path(__file__).resolve().parent / ".env")

API_PREFIX = "/api/v1"
API_VERSION = "1.0.0"

SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7)))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

_cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000")
CORS_ORIGINS = [origin.strip() for origin in _cors_origins.split(",") if origin.strip()]

# "remote" talks to the hosted memory service, "sql" keeps everything in DATABASE_URL.
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "sql").lower()
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./habit_tracker.db")
SUPERMEMORY_API_URL = os.getenv("SUPERMEMORY_API_URL", "https://api.supermemory.com")
SUPERMEMORY_API_KEY = os.getenv("SUPERMEMORY_API_KEY", "")
STORAGE_TIMEOUT_SECONDS = float(os.getenv("STORAGE_TIMEOUT_SECONDS", "10"))

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL") or None
GENERATION_TIMEOUT_SECONDS = float(os.getenv("GENERATION_TIMEOUT_SECONDS", "30"))

MAX_SCHEDULE_DAYS = int(os.getenv("MAX_SCHEDULE_DAYS", "366"))

_password_rules = os.getenv("PASSWORD_RULES", "min_length")
PASSWORD_RULES = [rule.strip() for rule in _password_rules.split(",") if rule.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("LOG_FORMAT", "text").lower()
