"""Consumer of the public Free Dictionary API.

Turns the provider's entry list into a ``LookupResult``:

- Audio accent priority: US > UK > AU > any entry with audio.  The accent
  is read from the audio file name (``...-us.mp3``).
- Phonetic: the US entry's text, then any text, then the entry-level
  phonetic.
- Up to 3 definitions, prefixed ``(pos) `` when the entry has more than
  one meaning; up to 4 examples, topped up from secondary entries when
  the first entry has fewer than 2.
"""

import logging
from typing import Any
from urllib.parse import quote

import requests

from .exceptions import DictionaryError, WordNotFoundError
from .models import LookupResult, normalize_word

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.dictionaryapi.dev/api/v2/entries/en"

MAX_DEFINITIONS = 3
MAX_EXAMPLES = 4
MIN_EXAMPLES = 2

_ACCENTS = (("US", "-us"), ("UK", "-uk"), ("AU", "-au"))


class DictionaryClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def lookup(self, term: str) -> LookupResult:
        """
        Look up *term* and return its dictionary data.

        Raises:
            WordNotFoundError: The provider has no entry for *term*.
            DictionaryError: Network failure, server error or malformed
                response.
        """
        word = normalize_word(term)
        if not word:
            raise ValueError("word cannot be empty")

        try:
            response = self.session.get(
                f"{self.base_url}/{quote(word)}", timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise DictionaryError(f"Dictionary lookup failed: {exc}") from exc

        if response.status_code == 404:
            logger.debug("Dictionary has no entry for '%s'", word)
            raise WordNotFoundError(word)
        if not response.ok:
            logger.warning(
                "Dictionary lookup for '%s' returned %d",
                word,
                response.status_code,
            )
            raise DictionaryError(
                f"Dictionary service error: {response.status_code}"
            )

        try:
            entries = response.json()
        except ValueError as exc:
            raise DictionaryError(
                f"Invalid JSON from dictionary for '{word}'"
            ) from exc
        if not isinstance(entries, list) or not entries:
            raise WordNotFoundError(word)

        return parse_entries(entries)


def _pick_audio(phonetics: list[dict[str, Any]]):
    """Return ``(accent, phonetic_entry)`` of the preferred audio source."""
    for accent, marker in _ACCENTS:
        for p in phonetics:
            if marker in (p.get("audio") or ""):
                return accent, p
    for p in phonetics:
        if p.get("audio"):
            return "", p
    return "", None


def parse_entries(entries: list[dict[str, Any]]) -> LookupResult:
    """Build a ``LookupResult`` from the provider's JSON entry list."""
    entry = entries[0]
    phonetics = entry.get("phonetics") or []

    accent, audio_entry = _pick_audio(phonetics)
    us_entry = next(
        (p for p in phonetics if "-us" in (p.get("audio") or "")), None
    )
    any_text = next((p for p in phonetics if p.get("text")), None)
    phonetic = (
        (us_entry or {}).get("text")
        or (any_text or {}).get("text")
        or entry.get("phonetic")
        or ""
    )

    meanings = entry.get("meanings") or []
    definitions: list[str] = []
    examples: list[str] = []
    part_of_speech = ""
    for meaning in meanings:
        pos = meaning.get("partOfSpeech") or ""
        if not part_of_speech:
            part_of_speech = pos
        prefix = f"({pos}) " if len(meanings) > 1 else ""
        for definition in meaning.get("definitions") or []:
            if len(definitions) < MAX_DEFINITIONS:
                definitions.append(prefix + definition.get("definition", ""))
            example = definition.get("example")
            if example and len(examples) < MAX_EXAMPLES:
                examples.append(example)

    if len(examples) < MIN_EXAMPLES:
        for extra in entries[1:]:
            for meaning in extra.get("meanings") or []:
                for definition in meaning.get("definitions") or []:
                    example = definition.get("example")
                    if (
                        example
                        and len(examples) < MAX_EXAMPLES
                        and example not in examples
                    ):
                        examples.append(example)

    return LookupResult(
        word=entry.get("word", ""),
        phonetic=phonetic,
        audio_url=(audio_entry or {}).get("audio", ""),
        audio_accent=accent,
        part_of_speech=part_of_speech,
        definitions=definitions,
        examples=examples,
    )
