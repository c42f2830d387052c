# munich_rag/text.py
from __future__ import annotations
import re

# In einem Python-str ist jeder Surrogat-Codepoint ungepaart
# (echte Paare werden beim Dekodieren zu einem Codepoint > U+FFFF).
_SURROGATE_RE = re.compile("[\ud800-\udfff]")


def strip_lone_surrogates(text: str | None) -> str:
    """Entfernt ungepaarte Surrogates (sonst scheitert JSON/UTF-8 beim Upstream)."""
    return _SURROGATE_RE.sub("", str(text or ""))


def collapse_whitespace(text: str | None) -> str:
    return " ".join(str(text or "").split())


def make_preview(text: str | None, max_len: int = 220) -> str:
    """
    Whitespace zusammenziehen, trimmen, auf max_len Codepoints kürzen, säubern.
    Python-Slicing arbeitet auf Codepoints, Mehrbyte-Zeichen bleiben ganz.
    """
    if max_len <= 0:
        return ""
    return strip_lone_surrogates(collapse_whitespace(text)[:max_len])
