"""Configuration constants for tabnote."""

from pathlib import Path

# Directory with the session database. First directory which is found is used.
DATA_DIRECTORIES: list[Path] = [
    Path("~/.local/share/tabnote").expanduser(),
    Path("~/.tabnote").expanduser(),
    Path("~/.config/tabnote").expanduser(),
]

DATABASE_FILENAME = "tabnote.db"

# Writes issued within this window are coalesced into one flush.
STORE_DEBOUNCE_SECONDS: float = 0.1

# Undo history
HISTORY_MAX_SIZE = 50
HISTORY_MIN_DELTA = 5

# Enrichment job polling. 10 polls at 3s keeps the wait around 30s.
POLL_INTERVAL_SECONDS: float = 3.0
POLL_MAX_RETRIES = 10

API_BASE_URL = "https://api.textenrich.io/v1/"
API_TIMEOUT_SECONDS: float = 30.0

# Fixed store keys
TABS_KEY = "tabs"
CURRENT_TAB_INDEX_KEY = "currentTabIndex"
API_KEY_KEY = "apiKey"
TRANSLATION_LANGUAGE_KEY = "translationLanguage"

# Single-note key written by earlier versions of the editor.
LEGACY_NOTE_KEY = "savedNote"

UNTITLED_TITLE = "Untitled"

DEFAULT_TRANSLATION_LANGUAGE = "es"

# Languages accepted as translation targets.
SUPPORTED_LANGUAGES: list[str] = [
    "ar", "de", "en", "es", "fr", "hi", "it", "ja", "ko", "nl", "pl", "pt", "ru", "tr", "zh",
]


def resolve_data_directory() -> Path:
    """Return the first existing data directory, or the first candidate if none exist."""
    for candidate in DATA_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return DATA_DIRECTORIES[0]
