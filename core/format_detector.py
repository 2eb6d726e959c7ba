# core/format_detector.py
import io
import zipfile
from typing import Optional
from core.entities import DetectedFormat
from model.document import DocumentKind
from util.constants import SUPPORTED_EXTENSIONS
from util.errors import UnsupportedFormat
import logging

logger = logging.getLogger(__name__)

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

# extension -> (kind, mime, image subtype)
_BY_EXTENSION = {
    "txt": (DocumentKind.plain_text, "text/plain", None),
    "pdf": (DocumentKind.pdf, "application/pdf", None),
    "docx": (DocumentKind.word_processor, DOCX_MIME, None),
    "jpg": (DocumentKind.image, "image/jpeg", "jpeg"),
    "jpeg": (DocumentKind.image, "image/jpeg", "jpeg"),
    "png": (DocumentKind.image, "image/png", "png"),
    "gif": (DocumentKind.image, "image/gif", "gif"),
    "bmp": (DocumentKind.image, "image/bmp", "bmp"),
    "tiff": (DocumentKind.image, "image/tiff", "tiff"),
    "tif": (DocumentKind.image, "image/tiff", "tiff"),
    "webp": (DocumentKind.image, "image/webp", "webp"),
}

_SUPPORTED = ", ".join(f".{e}" for e in SUPPORTED_EXTENSIONS)

# Known BITMAPINFOHEADER variants; guards text that merely starts with "BM".
_BMP_DIB_SIZES = (12, 40, 52, 56, 64, 108, 124)


def _bmp_header_size(data: bytes) -> int:
    return int.from_bytes(data[14:18], "little") if len(data) >= 18 else -1


def _sniff(data: bytes) -> Optional[str]:
    """
    Map leading magic bytes to a canonical extension.
    Returns None when no signature matches (plain text has none).
    Returns "zip" for archives that are not Word documents.
    """
    head = data[:16]
    if head.startswith(b"%PDF-"):
        return "pdf"
    if head.startswith(b"\x89PNG\r\n\x1a\n"):
        return "png"
    if head.startswith(b"\xff\xd8\xff"):
        return "jpeg"
    if head.startswith((b"GIF87a", b"GIF89a")):
        return "gif"
    if head.startswith((b"II*\x00", b"MM\x00*")):
        return "tiff"
    if head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return "webp"
    if head.startswith(b"BM") and _bmp_header_size(data) in _BMP_DIB_SIZES:
        return "bmp"
    if head.startswith(b"PK\x03\x04"):
        return _zip_kind(data)
    return None


def _zip_kind(data: bytes) -> Optional[str]:
    # Unreadable archives are inconclusive; the extension decides.
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            names = zf.namelist()
    except zipfile.BadZipFile:
        return None
    return "docx" if "word/document.xml" in names else "zip"


def _extension(filename: Optional[str]) -> str:
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].strip().lower()


def detect(data: bytes, filename: Optional[str] = None) -> DetectedFormat:
    """
    Decide how a document will be handled.

    Byte signatures win; the filename extension is only consulted when the
    signature is inconclusive. Pure: same input, same answer.
    Raises UnsupportedFormat listing the accepted extensions.
    """
    sniffed = _sniff(data)
    ext = sniffed if sniffed is not None else _extension(filename)

    entry = _BY_EXTENSION.get(ext)
    if entry is None:
        shown = ext or "unknown"
        logger.info("detect.unsupported type=%s", shown)
        raise UnsupportedFormat(
            f"Unsupported file type: {shown}. Supported types: {_SUPPORTED}"
        )

    kind, mime, subtype = entry
    logger.debug(
        "detect.ok kind=%s ext=%s by=%s", kind.value, ext, "magic" if sniffed else "name"
    )
    return DetectedFormat(kind=kind, mime_type=mime, extension=ext, image_subtype=subtype)
