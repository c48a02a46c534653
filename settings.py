import logging
import os

from dotenv import load_dotenv

load_dotenv()  # read .env if present

logger = logging.getLogger(__name__)


def _env_number(name, default, cast):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r, using default %r", name, raw, default)
        return default


def env_float(name, default):
    return _env_number(name, default, float)


def env_int(name, default):
    return _env_number(name, default, int)


GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
GEMINI_TEMPERATURE = env_float("GEMINI_TEMPERATURE", 0.2)

DEFAULT_DOWNSAMPLE_THRESHOLD = env_int("DEFAULT_DOWNSAMPLE_THRESHOLD", 1000)
LOG_LEVEL = os.getenv("XRD_LOG_LEVEL", "INFO").upper()


def configure_logging(level=None):
    level = level or LOG_LEVEL
    if not isinstance(logging.getLevelName(level), int):
        level = "INFO"
    logging.basicConfig(
        level=level,
        format="%(asctime)s [xrd] %(message)s",
    )
