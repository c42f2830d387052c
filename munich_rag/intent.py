# munich_rag/intent.py
from __future__ import annotations
from enum import Enum
import re


class Intent(str, Enum):
    DORM = "dorm"
    STUDY_PLACE = "study_place"
    GENERAL = "general"


# Reihenfolge = Priorität: Wohnen schlägt Lernort.
_PATTERNS = (
    (Intent.DORM, re.compile(r"(dorm|rent|room|apartment|housing|wohnheim)")),
    (Intent.STUDY_PLACE, re.compile(r"(study|library|quiet|wifi|open|cafe|outlet|socket)")),
)


def classify_intent(text: str | None) -> Intent:
    s = (text or "").lower()
    for intent, pattern in _PATTERNS:
        if pattern.search(s):
            return intent
    return Intent.GENERAL
