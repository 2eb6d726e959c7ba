# core/extraction.py
import asyncio
from typing import List, Optional, Tuple
from config.settings import settings
from core.entities import DetectedFormat, ExtractionOptions, ExtractionResult, UploadedDocument
from core.format_detector import detect
from core.ocr_chain import OcrFallbackChain, default_ocr_chain
from core.pdf_text import extract_pages_texts, join_pages
from core.plain_text import decode_text
from core.word_text import extract_docx_text
from model.document import DocumentKind, ExtractionMethod
from util.constants import MIB
from util.errors import EmptyExtraction, ExtractionFailed, FileTooLarge, OCRFailed
from util.timing import timed
import logging

logger = logging.getLogger(__name__)


class ExtractionOrchestrator:
    """
    Format detection -> format extractor -> OCR fallback, producing one
    normalized ExtractionResult.

    Raises FileTooLarge, UnsupportedFormat, EmptyExtraction, ExtractionFailed
    or OCRFailed. A returned result always has non-empty text.
    """

    def __init__(
        self,
        ocr_chain: Optional[OcrFallbackChain] = None,
        max_bytes: Optional[int] = None,
    ) -> None:
        self._ocr = ocr_chain or default_ocr_chain()
        self._max_bytes = max_bytes or settings.MAX_FILE_MB * MIB

    def default_options(self) -> ExtractionOptions:
        return ExtractionOptions(
            max_bytes=self._max_bytes,
            enable_ocr=settings.OCR_ENABLED,
            ocr_fallback=settings.OCR_FALLBACK_ENABLED,
        )

    async def extract(
        self, document: UploadedDocument, options: Optional[ExtractionOptions] = None
    ) -> ExtractionResult:
        opts = options or self.default_options()

        # Size gate runs before any byte is inspected.
        if document.size > opts.max_bytes:
            logger.info("extract.too_large bytes=%d max=%d", document.size, opts.max_bytes)
            raise FileTooLarge(
                f"File size ({document.size / MIB:.1f}MB) exceeds maximum allowed size "
                f"({opts.max_bytes / MIB:.1f}MB)"
            )

        fmt = detect(document.data, document.filename)
        with timed(logger, "extract", kind=fmt.kind.value, bytes=document.size):
            if fmt.kind is DocumentKind.plain_text:
                result = self._plain(document, fmt)
            elif fmt.kind is DocumentKind.pdf:
                result = await self._pdf(document, fmt, opts)
            elif fmt.kind is DocumentKind.word_processor:
                result = await self._word(document, fmt)
            else:
                result = await self._image(document, fmt, opts)

        if not result.text.strip():
            raise EmptyExtraction(f"{result.method.value} produced no text")
        result.file_size = document.size
        logger.info(
            "extract.ok method=%s chars=%d pages=%s",
            result.method.value,
            len(result.text),
            result.page_count,
        )
        return result

    def _plain(self, document: UploadedDocument, fmt: DetectedFormat) -> ExtractionResult:
        return ExtractionResult(
            text=decode_text(document.data),
            method=ExtractionMethod.direct_text,
            confidence=1.0,
            mime_type=fmt.mime_type,
        )

    async def _word(self, document: UploadedDocument, fmt: DetectedFormat) -> ExtractionResult:
        text = await asyncio.to_thread(extract_docx_text, document.data)
        return ExtractionResult(
            text=text,
            method=ExtractionMethod.word_parse,
            confidence=1.0,
            mime_type=fmt.mime_type,
        )

    async def _pdf(
        self, document: UploadedDocument, fmt: DetectedFormat, opts: ExtractionOptions
    ) -> ExtractionResult:
        pages: List[Tuple[int, str]] = []
        parse_error: Optional[str] = None
        try:
            pages = await asyncio.to_thread(extract_pages_texts, document.data)
        except ExtractionFailed as e:
            parse_error = e.reason

        # Any text at all is accepted; quality is not second-guessed.
        text = join_pages(pages)
        if text:
            return ExtractionResult(
                text=text,
                method=ExtractionMethod.pdf_parse,
                confidence=1.0,
                mime_type=fmt.mime_type,
                page_count=len(pages),
            )

        logger.info(
            "extract.pdf.no_text pages=%d parse_error=%s", len(pages), parse_error is not None
        )
        if not opts.enable_ocr:
            if parse_error:
                raise ExtractionFailed(parse_error)
            raise EmptyExtraction(
                "PDF contains no extractable text and OCR is disabled. "
                f"This appears to be an image-based PDF with {len(pages)} pages."
            )

        try:
            result = await self._ocr.recognize(
                document.data, fmt.mime_type, allow_fallback=opts.ocr_fallback
            )
        except OCRFailed as e:
            raise OCRFailed(
                f"PDF text extraction found no text, and OCR processing also failed: {e.reason}"
            ) from e
        result.page_count = len(pages) or None
        return result

    async def _image(
        self, document: UploadedDocument, fmt: DetectedFormat, opts: ExtractionOptions
    ) -> ExtractionResult:
        if not opts.enable_ocr:
            raise ExtractionFailed(f"{fmt.extension} images can only be read with OCR, which is disabled")
        return await self._ocr.recognize(
            document.data, fmt.mime_type, allow_fallback=opts.ocr_fallback
        )
