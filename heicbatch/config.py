"""Application configuration. Loads from environment and .env file."""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
# Load .env from cwd, then project root .env
load_dotenv()
load_dotenv(BASE_DIR / ".env")

# Formats
TARGET_FORMAT_NAMES = ("heic", "jpeg", "jpg")
HEIC_INPUT_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".gif"}
JPEG_INPUT_EXTENSIONS = {".heic", ".heif"}
TARGET_EXTENSIONS = {"heic": ".heic", "jpeg": ".jpg"}

# Staging artifacts live next to the final output until published
STAGING_SUFFIX = ".tmp"

# Concurrency: one worker per logical CPU unless overridden
MAX_WORKERS = int(os.getenv("MAX_WORKERS", "0") or "0") or max(1, os.cpu_count() or 1)

# Run history – SQLite by default, any SQLAlchemy URL via HISTORY_DATABASE_URL
HISTORY_DATABASE_URL = os.getenv("HISTORY_DATABASE_URL", "").strip()
if not HISTORY_DATABASE_URL:
    HISTORY_DATABASE_URL = f"sqlite:///{Path.home() / '.heicbatch' / 'history.db'}"

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("heicbatch")


def resolve_target_format_name(value: str) -> str:
    """Validate a configured default target format; unknown names fall back to heic."""
    name = (value or "").strip().lower()
    if name not in TARGET_FORMAT_NAMES:
        logger.warning("Unknown DEFAULT_TARGET_FORMAT %r, using heic", value)
        return "heic"
    return name


DEFAULT_TARGET_FORMAT = resolve_target_format_name(os.getenv("DEFAULT_TARGET_FORMAT", "heic"))
