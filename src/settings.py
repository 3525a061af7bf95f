"""Static configuration for the challenge handler.

All user-editable settings (server, engine, logging) live in a single JSON
file for quick edits without touching Python.
"""

import json
import os

from dotenv import load_dotenv

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, section-per-concern schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _port_from_env(default: int) -> int:
    raw = os.getenv("CHALLENGE_PORT")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"CHALLENGE_PORT must be an integer, got {raw!r}") from exc


# Environment overrides (CHALLENGE_HOST/CHALLENGE_PORT) may come from a .env file.
load_dotenv()

_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Listener address and request decoding for the contest server.
_server = _CONFIG.get("server", {})
SERVER_HOST = os.getenv("CHALLENGE_HOST") or _server.get("host", "0.0.0.0")
SERVER_PORT = _port_from_env(int(_server.get("port", 8080)))
# The contest server double-encodes the JSON body of form posts.
DECODE_FORM_BODY = bool(_server.get("decode_form_body", True))
INFO_HTML = _server.get("info_html")

# Recency engine sizing.
_engine = _CONFIG.get("engine", {})
ENGINE_HISTORY_SIZE = int(_engine.get("history_size", 100))
ENGINE_DEFAULT_LIMIT = int(_engine.get("default_limit", 6))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
