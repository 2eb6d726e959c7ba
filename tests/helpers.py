"""
Test doubles and builders shared across test modules.
"""

import asyncio

from core.ocr_chain import OcrBackend, OcrFallbackChain
from model.document import ExtractionMethod
from model.explanation import ClauseExplanation, JargonTerm


class FakeOcrBackend(OcrBackend):
    """Scripted OCR engine that records every call."""

    def __init__(
        self,
        name: str,
        method: ExtractionMethod,
        confidence: float,
        *,
        text: str = "",
        exc: Exception | None = None,
        delay: float = 0.0,
        available: bool = True,
    ) -> None:
        self.name = name
        self.method = method
        self.confidence = confidence
        self._text = text
        self._exc = exc
        self._delay = delay
        self._available = available
        self.calls: list[str] = []

    def is_available(self) -> bool:
        return self._available

    async def recognize(self, data: bytes, mime_type: str) -> str:
        self.calls.append(mime_type)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._exc is not None:
            raise self._exc
        return self._text


def primary(**kw) -> FakeOcrBackend:
    return FakeOcrBackend("vision", ExtractionMethod.ocr_primary, 0.95, **kw)


def secondary(**kw) -> FakeOcrBackend:
    return FakeOcrBackend("tesseract", ExtractionMethod.ocr_secondary, 0.90, **kw)


def chain_of(*backends: OcrBackend, timeout: float = 5.0) -> OcrFallbackChain:
    return OcrFallbackChain(list(backends), timeout_seconds=timeout)


def explanation(
    original: str, text: str, terms: dict[str, str] | None = None
) -> ClauseExplanation:
    return ClauseExplanation(
        original_text=original,
        plain_english_explanation=text,
        jargon_terms=[JargonTerm(term=k, definition=v) for k, v in (terms or {}).items()],
    )
