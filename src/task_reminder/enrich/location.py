# src/task_reminder/enrich/location.py

"""
Location guessing for task text.

This is a heuristic, not a geocoder: capitalized words are matched against a
curated list of place names. Swap it for something smarter by implementing the
LocationExtractor port.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

# Letters only for the first char (any script), then letters/digits/'/-.
_WORD_RE = re.compile(r"[^\W\d_][\w'’-]*")

# lower-case surface form -> canonical (English) name understood by the weather API.
# Russian entries include the common case forms ("в Москве", "из Казани").
KNOWN_PLACES: dict[str, str] = {
    "moscow": "Moscow",
    "москва": "Moscow",
    "москве": "Moscow",
    "москву": "Moscow",
    "москвы": "Moscow",
    "saint petersburg": "Saint Petersburg",
    "st petersburg": "Saint Petersburg",
    "petersburg": "Saint Petersburg",
    "санкт-петербург": "Saint Petersburg",
    "санкт-петербурге": "Saint Petersburg",
    "петербург": "Saint Petersburg",
    "петербурге": "Saint Petersburg",
    "питер": "Saint Petersburg",
    "питере": "Saint Petersburg",
    "kazan": "Kazan",
    "казань": "Kazan",
    "казани": "Kazan",
    "novosibirsk": "Novosibirsk",
    "новосибирск": "Novosibirsk",
    "новосибирске": "Novosibirsk",
    "yekaterinburg": "Yekaterinburg",
    "екатеринбург": "Yekaterinburg",
    "екатеринбурге": "Yekaterinburg",
    "sochi": "Sochi",
    "сочи": "Sochi",
    "minsk": "Minsk",
    "минск": "Minsk",
    "минске": "Minsk",
    "kyiv": "Kyiv",
    "kiev": "Kyiv",
    "киев": "Kyiv",
    "киеве": "Kyiv",
    "almaty": "Almaty",
    "алматы": "Almaty",
    "tbilisi": "Tbilisi",
    "тбилиси": "Tbilisi",
    "yerevan": "Yerevan",
    "ереван": "Yerevan",
    "ереване": "Yerevan",
    "london": "London",
    "лондон": "London",
    "лондоне": "London",
    "paris": "Paris",
    "париж": "Paris",
    "париже": "Paris",
    "berlin": "Berlin",
    "берлин": "Berlin",
    "берлине": "Berlin",
    "madrid": "Madrid",
    "мадрид": "Madrid",
    "мадриде": "Madrid",
    "rome": "Rome",
    "рим": "Rome",
    "риме": "Rome",
    "vienna": "Vienna",
    "вена": "Vienna",
    "вене": "Vienna",
    "prague": "Prague",
    "прага": "Prague",
    "праге": "Prague",
    "warsaw": "Warsaw",
    "варшава": "Warsaw",
    "варшаве": "Warsaw",
    "amsterdam": "Amsterdam",
    "амстердам": "Amsterdam",
    "амстердаме": "Amsterdam",
    "istanbul": "Istanbul",
    "стамбул": "Istanbul",
    "стамбуле": "Istanbul",
    "dubai": "Dubai",
    "дубай": "Dubai",
    "дубае": "Dubai",
    "new york": "New York",
    "нью-йорк": "New York",
    "нью-йорке": "New York",
    "los angeles": "Los Angeles",
    "san francisco": "San Francisco",
    "chicago": "Chicago",
    "toronto": "Toronto",
    "tokyo": "Tokyo",
    "токио": "Tokyo",
    "beijing": "Beijing",
    "пекин": "Beijing",
    "пекине": "Beijing",
    "shanghai": "Shanghai",
    "seoul": "Seoul",
    "сеул": "Seoul",
    "singapore": "Singapore",
    "сингапур": "Singapore",
    "bangkok": "Bangkok",
    "бангкок": "Bangkok",
    "sydney": "Sydney",
    "сидней": "Sydney",
}

# Capitalized words that are never places (calendar words, pronouns).
_NOT_PLACES = frozenset(
    {
        "i",
        "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
        "january", "february", "march", "april", "may", "june", "july", "august",
        "september", "october", "november", "december",
        "понедельник", "вторник", "среда", "четверг", "пятница", "суббота", "воскресенье",
        "я",
    }
)


def _is_capitalized(word: str) -> bool:
    return word[:1].isupper()


class CapitalizedWordExtractor:
    """
    Scan capitalized words left to right.

    - the first word (or pair of adjacent words) found in the curated list wins
    - otherwise the first capitalized word is returned as a best-effort guess
    - otherwise None
    """

    def __init__(self, known_places: Mapping[str, str] | None = None) -> None:
        self._known = {k.lower(): v for k, v in (known_places or KNOWN_PLACES).items()}

    def capitalized_words(self, text: str) -> list[str]:
        return [w for w in _WORD_RE.findall(text or "") if _is_capitalized(w)]

    def _curated(self, text: str) -> str | None:
        # Pairs are taken from neighbouring words of the text, not of the capitalized subset.
        tokens = [w.strip("'’-") for w in _WORD_RE.findall(text or "")]
        for i, word in enumerate(tokens):
            if not _is_capitalized(word):
                continue
            if i + 1 < len(tokens) and _is_capitalized(tokens[i + 1]):
                pair = f"{word} {tokens[i + 1]}".lower()
                if pair in self._known:
                    return self._known[pair]
            hit = self._known.get(word.lower())
            if hit:
                return hit
        return None

    def extract(self, text: str) -> str | None:
        words = self.capitalized_words(text)
        if not words:
            return None

        hit = self._curated(text)
        if hit:
            return hit

        for word in words:
            if word.lower() not in _NOT_PLACES:
                return word
        return None
