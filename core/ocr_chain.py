# core/ocr_chain.py
import asyncio
import io
from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache
from typing import Any, Dict, List, Sequence
import pytesseract
from PIL import Image, ImageOps, ImageSequence
from config.settings import settings
from core.anthropic_client import complete, image_block, pdf_block, strip_fences
from core.entities import ExtractionResult
from core.pdf_text import render_page_images
from model.document import ExtractionMethod
from util.errors import AppError, OCRFailed
from util.timing import bounded, timed
import logging

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"

# Tesseract runs on its own bounded pool. A worker abandoned by a timed-out
# caller keeps its slot until the subprocess exits.
_ocr_pool = ThreadPoolExecutor(
    max_workers=max(1, settings.OCR_CONCURRENCY), thread_name_prefix="tesseract-ocr"
)


def image_frames(data: bytes) -> List[Image.Image]:
    """
    Decode an image upload. Multi-page TIFFs yield one image per page,
    everything else yields its first frame.
    """
    with Image.open(io.BytesIO(data)) as img:
        if img.format == "TIFF":
            frames = [f.copy() for f in ImageSequence.Iterator(img)]
        else:
            img.load()
            frames = [img.copy()]
    return [f.convert("RGB") if f.mode not in ("RGB", "L") else f for f in frames]


def _png_bytes(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class OcrBackend:
    """
    One text-recognition engine in the fallback chain.
    `method` and `confidence` are fixed per engine; confidence is a UI hint only.
    """

    name: str = "ocr"
    method: ExtractionMethod
    confidence: float

    def is_available(self) -> bool:
        return True

    async def recognize(self, data: bytes, mime_type: str) -> str:
        raise NotImplementedError


class VisionOcrBackend(OcrBackend):
    name = "vision"
    method = ExtractionMethod.ocr_primary
    confidence = 0.95

    # Media types the Messages API accepts as image blocks as-is.
    _NATIVE = {"image/jpeg", "image/png", "image/gif", "image/webp"}

    def __init__(self, api_key: str | None = None, model: str | None = None) -> None:
        self._api_key = api_key if api_key is not None else settings.ANTHROPIC_API_KEY
        self._model = model or settings.OCR_VISION_MODEL

    def is_available(self) -> bool:
        return bool(self._api_key)

    def _blocks(self, data: bytes, mime_type: str) -> List[Dict[str, Any]]:
        if mime_type == PDF_MIME:
            return [pdf_block(data)]
        if mime_type in self._NATIVE:
            return [image_block(data, mime_type)]
        # BMP / TIFF: re-encode as PNG, one block per page
        return [image_block(_png_bytes(f), "image/png") for f in image_frames(data)]

    async def recognize(self, data: bytes, mime_type: str) -> str:
        blocks = await asyncio.to_thread(self._blocks, data, mime_type)
        blocks.append(
            {
                "type": "text",
                "text": "Extract all text from this document, preserving its structure.",
            }
        )
        raw = await complete(
            api_key=self._api_key,
            system=settings.OCR_SYSTEM_PROMPT,
            content=blocks,
            label="ocr",
            model=self._model,
            max_tokens=settings.OCR_MAX_TOKENS,
            temperature=0.0,
            timeout=settings.OCR_TIMEOUT_SECONDS,
        )
        return strip_fences(raw)


@lru_cache(maxsize=4)
def _tesseract_ready(cmd: str) -> bool:
    """
    Probe the tesseract binary once per command path.
    """
    pytesseract.pytesseract.tesseract_cmd = cmd
    try:
        version = pytesseract.get_tesseract_version()
    except (pytesseract.TesseractNotFoundError, OSError):
        logger.warning("ocr.tesseract.missing cmd=%s", cmd)
        return False
    logger.info("ocr.tesseract.ready version=%s", version)
    return True


class TesseractOcrBackend(OcrBackend):
    name = "tesseract"
    method = ExtractionMethod.ocr_secondary
    confidence = 0.90

    def __init__(
        self,
        cmd: str | None = None,
        lang: str | None = None,
        enabled: bool | None = None,
        dpi: int | None = None,
    ) -> None:
        self._cmd = cmd or settings.TESSERACT_CMD
        self._lang = lang or settings.TESSERACT_LANG
        self._enabled = settings.OCR_FALLBACK_ENABLED if enabled is None else enabled
        self._dpi = dpi or settings.OCR_RENDER_DPI

    def is_available(self) -> bool:
        return self._enabled and _tesseract_ready(self._cmd)

    def _recognize_sync(self, data: bytes, mime_type: str) -> str:
        pytesseract.pytesseract.tesseract_cmd = self._cmd
        if mime_type == PDF_MIME:
            images = [Image.open(io.BytesIO(png)) for png in render_page_images(data, self._dpi)]
        else:
            images = image_frames(data)
        texts: List[str] = []
        for img in images:
            # pytesseract kills the subprocess on timeout; the worker thread cannot be cancelled
            txt = pytesseract.image_to_string(
                ImageOps.grayscale(img),
                lang=self._lang,
                timeout=settings.OCR_TIMEOUT_SECONDS,
            )
            if txt.strip():
                texts.append(txt.strip())
        return "\n\n".join(texts)

    async def recognize(self, data: bytes, mime_type: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(_ocr_pool, self._recognize_sync, data, mime_type)


def _describe(e: Exception) -> str:
    if isinstance(e, AppError):
        return e.reason
    return str(e) or type(e).__name__


class OcrFallbackChain:
    """
    Ordered OCR backends. Each attempt is bounded by its own timeout; a
    timeout, an exception or an empty transcript all move on to the next
    backend. Only exhaustion raises OCRFailed.
    """

    def __init__(
        self, backends: Sequence[OcrBackend], timeout_seconds: float | None = None
    ) -> None:
        self._backends = list(backends)
        self._timeout = timeout_seconds or settings.OCR_TIMEOUT_SECONDS

    @property
    def backends(self) -> List[OcrBackend]:
        return list(self._backends)

    async def recognize(
        self, data: bytes, mime_type: str, *, allow_fallback: bool = True
    ) -> ExtractionResult:
        chain = self._backends if allow_fallback else self._backends[:1]
        failures: List[str] = []

        for backend in chain:
            if not backend.is_available():
                if failures:
                    # Nothing left to wait for: report the earlier failure now.
                    logger.warning("ocr.chain.abort next=%s unavailable", backend.name)
                    raise OCRFailed(
                        f"OCR failed: {failures[0]} ({backend.name} backend is not configured)"
                    )
                logger.info("ocr.backend.unavailable backend=%s", backend.name)
                continue

            try:
                with timed(logger, "ocr.attempt", backend=backend.name, mime=mime_type):
                    text = await bounded(
                        backend.recognize(data, mime_type),
                        self._timeout,
                        f"{backend.name} OCR",
                    )
            except Exception as e:
                reason = f"{backend.name}: {_describe(e)}"
                logger.warning("ocr.backend.failed backend=%s err=%s", backend.name, type(e).__name__)
                failures.append(reason)
                continue

            text = (text or "").strip()
            if not text:
                logger.warning("ocr.backend.empty backend=%s", backend.name)
                failures.append(f"{backend.name}: no readable text detected")
                continue

            logger.info("ocr.ok backend=%s chars=%d", backend.name, len(text))
            return ExtractionResult(
                text=text,
                method=backend.method,
                confidence=backend.confidence,
                mime_type=mime_type,
                file_size=len(data),
            )

        if not failures:
            raise OCRFailed("OCR is not available - no OCR backend is configured")
        raise OCRFailed("OCR failed: " + "; ".join(failures))


def default_ocr_chain() -> OcrFallbackChain:
    return OcrFallbackChain([VisionOcrBackend(), TesseractOcrBackend()])
