# munich_rag/projection.py
from __future__ import annotations
from typing import Dict, List, Tuple

from .schemas import Match, RankedCandidate
from .text import make_preview


# type -> (Label, Icon-Kategorie); alles andere -> Source/article
_TYPE_DISPLAY: Dict[str, Tuple[str, str]] = {
    "study_place": ("Study place", "place"),
    "dorm": ("Dorm", "home"),
    "text_chunk": ("Guide", "article"),
    "text": ("Guide", "article"),
}
_DEFAULT_DISPLAY = ("Source", "article")


def type_display(type_: str) -> Tuple[str, str]:
    return _TYPE_DISPLAY.get((type_ or "").lower(), _DEFAULT_DISPLAY)


def project_matches(selected: List[RankedCandidate], preview_chars: int = 220) -> List[Match]:
    """Verlustbehaftete Projektion der Treffer für die UI-Karten."""
    out: List[Match] = []
    for r in selected:
        md = r.metadata
        label, icon = type_display(md.type)
        snippet = make_preview(md.text_preview if md.text_preview else md.text, preview_chars)
        out.append(Match(
            score=r.score,
            boosted_score=r.boosted_score,
            type=md.type,
            title=md.title,
            snippet=snippet,
            label=label,
            icon=icon,
        ))
    return out
