# core/pdf_text.py
from typing import List, Tuple
import fitz
from util.errors import ExtractionFailed
from util.timing import timed
import logging

logger = logging.getLogger(__name__)


def extract_pages_texts(file_bytes: bytes) -> List[Tuple[int, str]]:
    """
    Return [(page_number, page_text)] for the whole PDF.
    Raises ExtractionFailed when PyMuPDF cannot open or parse the file.
    """
    try:
        out: List[Tuple[int, str]] = []
        with timed(logger, "pdf.open"):
            with fitz.open(stream=file_bytes, filetype="pdf") as doc:
                pages = doc.page_count
                with timed(logger, "pdf.parse", pages=pages):
                    for i in range(pages):
                        page = doc.load_page(i)
                        txt = (page.get_text("text") or "").strip()
                        out.append((i + 1, txt))
        logger.info("pdf.pages count=%d", len(out))
        return out
    except Exception as e:
        # do not log payloads
        logger.warning("pdf.parse.error err=%s", type(e).__name__)
        raise ExtractionFailed(f"PDF parsing failed: {e}") from e


def join_pages(pages: List[Tuple[int, str]]) -> str:
    return "\n\n".join(txt for _, txt in pages if txt).strip()


def render_page_images(file_bytes: bytes, dpi: int = 200) -> List[bytes]:
    """
    Rasterize every page to PNG bytes for engines that only read images.
    """
    images: List[bytes] = []
    with timed(logger, "pdf.render", dpi=dpi):
        with fitz.open(stream=file_bytes, filetype="pdf") as doc:
            for page in doc:
                pix = page.get_pixmap(dpi=dpi)
                images.append(pix.tobytes("png"))
    logger.info("pdf.render.pages count=%d", len(images))
    return images
