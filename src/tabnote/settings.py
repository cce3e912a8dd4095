"""User preferences kept under the fixed store keys."""

from tabnote.config import (
    API_KEY_KEY,
    DEFAULT_TRANSLATION_LANGUAGE,
    SUPPORTED_LANGUAGES,
    TRANSLATION_LANGUAGE_KEY,
)
from tabnote.store import PersistentStore


class Preferences:
    """Typed access to the credential and the translation language."""

    def __init__(self, store: PersistentStore) -> None:
        self._store = store

    @property
    def api_key(self) -> str:
        return (self._store.read(API_KEY_KEY, "") or "").strip()

    @api_key.setter
    def api_key(self, value: str) -> None:
        value = value.strip()
        if value:
            self._store.write(API_KEY_KEY, value)
        else:
            self._store.remove(API_KEY_KEY)

    @property
    def translation_language(self) -> str:
        return self._store.read(TRANSLATION_LANGUAGE_KEY) or DEFAULT_TRANSLATION_LANGUAGE

    @translation_language.setter
    def translation_language(self, code: str) -> None:
        code = code.strip().lower()
        if code not in SUPPORTED_LANGUAGES:
            msg = f"Unsupported language {code!r}, expected one of: {', '.join(SUPPORTED_LANGUAGES)}"
            raise ValueError(msg)
        self._store.write(TRANSLATION_LANGUAGE_KEY, code)
