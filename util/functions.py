# util/functions.py
import re

_WS = re.compile(r"\s+")


def normalize_ws(text: str) -> str:
    return _WS.sub(" ", text).strip()


def fingerprint(text: str, max_chars: int = 60) -> str:
    """
    Short quotable prefix of a clause, cut on a word boundary.
    Used as the clause identity in verifier feedback instead of positions.
    """
    flat = normalize_ws(text)
    if len(flat) <= max_chars:
        return flat
    cut = flat[:max_chars]
    space = cut.rfind(" ")
    return cut[:space] if space > max_chars // 2 else cut


def matches_fingerprint(clause_text: str, quote: str) -> bool:
    """Whitespace- and case-insensitive substring match of a feedback quote."""
    q = normalize_ws(quote).strip("\"'“”").casefold()
    if not q:
        return False
    return q in normalize_ws(clause_text).casefold()
