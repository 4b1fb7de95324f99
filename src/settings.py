"""Static configuration for greet-and-react.

All user-editable settings (server, storage, command names, install flow,
logging) live in a single JSON file for quick edits without touching Python.
Secrets never go here; they are read from the environment in client.py.
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.environ.get("GREET_AND_REACT_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _project_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# HTTP listener. PORT from the environment wins so hosting platforms can
# assign one.
_server = _CONFIG.get("server", {})
HOST = _server.get("host", "0.0.0.0")
PORT = int(os.environ.get("PORT") or _server.get("port", 3000))

# Where to store the SQLite database (rules and installations).
_storage = _CONFIG.get("storage", {})
DB_PATH = _project_path(_storage.get("db_path", "data/greet_and_react.db"))

# Slash command names as registered in the Slack app manifest.
_commands = _CONFIG.get("commands", {})
WATCH_COMMAND = _commands.get("watch", "/stalk")
UNWATCH_COMMAND = _commands.get("unwatch", "/unfollow")

# OAuth install flow. Client id/secret come from the environment.
_oauth = _CONFIG.get("oauth", {})
OAUTH_SCOPES = tuple(
    _oauth.get(
        "scopes",
        ["channels:history", "commands", "groups:history", "im:history", "reactions:write"],
    )
)
OAUTH_REDIRECT_URI = _oauth.get("redirect_uri")
OAUTH_STATE_DIR = _project_path(_oauth.get("state_dir", "data/oauth_state"))
OAUTH_STATE_TTL_SECONDS = int(_oauth.get("state_ttl_seconds", 600))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
