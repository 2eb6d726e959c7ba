# model/document.py
from enum import Enum


class DocumentKind(str, Enum):
    plain_text = "plain_text"
    pdf = "pdf"
    word_processor = "word_processor"
    image = "image"


class ExtractionMethod(str, Enum):
    # Wire values are what the UI shows as the extraction method.
    direct_text = "text"
    pdf_parse = "pdf-parse"
    word_parse = "docx-parse"
    ocr_primary = "ocr-vision"
    ocr_secondary = "ocr-tesseract"
