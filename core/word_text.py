# core/word_text.py
import io
from typing import List
from docx import Document
from util.errors import ExtractionFailed
from util.timing import timed
import logging

logger = logging.getLogger(__name__)


def extract_docx_text(file_bytes: bytes) -> str:
    """
    Raw text of a .docx: body paragraphs in order, then table rows
    (cells joined with ' | '). A single attempt; Word files have no OCR path,
    so an unreadable or empty document is a terminal ExtractionFailed.
    """
    try:
        with timed(logger, "docx.parse", bytes=len(file_bytes)):
            doc = Document(io.BytesIO(file_bytes))
            lines: List[str] = [p.text for p in doc.paragraphs]
            for table in doc.tables:
                for row in table.rows:
                    cells = [c.text.strip() for c in row.cells]
                    if any(cells):
                        lines.append(" | ".join(cells))
    except Exception as e:
        logger.warning("docx.parse.error err=%s", type(e).__name__)
        raise ExtractionFailed(f"Failed to parse DOCX file: {e}") from e

    text = "\n".join(lines).strip()
    if not text:
        raise ExtractionFailed("DOCX file appears to be empty or contains no readable text")
    logger.info("docx.text chars=%d paragraphs=%d", len(text), len(doc.paragraphs))
    return text
