# core/clause_splitter.py
import logging
import re
from typing import Iterable, List, Set
from core.entities import Clause
from util.functions import normalize_ws

logger = logging.getLogger(__name__)

_BLANK_LINE = re.compile(r"\n\s*\n")
# "1.", "2.1", "12)", "(a)", "(iv)", "Section 4", "Article II", "Clause 7"
_HEADING = re.compile(
    r"^\s*(?:\d+(?:\.\d+)*[.)]|\([a-zA-Z0-9]{1,4}\)|(?:section|article|clause)\s+[\dIVXLC]+\b)",
    re.IGNORECASE,
)


def _by_headings(text: str) -> List[str]:
    parts: List[str] = []
    buf: List[str] = []
    for line in text.splitlines():
        if _HEADING.match(line) and buf:
            parts.append("\n".join(buf))
            buf = []
        buf.append(line)
    if buf:
        parts.append("\n".join(buf))
    return parts


def unique_clauses(texts: Iterable[str]) -> List[Clause]:
    """
    Whitespace-normalized clauses with only the first copy of a repeated one
    kept. Blank fragments are dropped.
    """
    seen: Set[str] = set()
    out: List[Clause] = []
    dropped = 0
    for raw in texts:
        text = normalize_ws(raw)
        if not text:
            continue
        key = text.casefold()
        if key in seen:
            dropped += 1
            continue
        seen.add(key)
        out.append(Clause(index=len(out), text=text))
    if dropped:
        logger.info("clauses.duplicates dropped=%d kept=%d", dropped, len(out))
    return out


def split_clauses(text: str) -> List[Clause]:
    """
    Paragraph-level clauses, in document order. Text without blank lines is
    split on numbered or lettered heading lines instead.
    """
    text = (text or "").replace("\r\n", "\n").replace("\r", "\n").strip()
    if not text:
        return []
    raw = _BLANK_LINE.split(text)
    if len(raw) == 1:
        raw = _by_headings(text)
    return unique_clauses(raw)
