# util/enums.py
from enum import Enum
from typing import NamedTuple
from fastapi import status


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    BOLD = "\033[1m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    PROD = "prod"


class ErrorInfo(NamedTuple):
    message: str
    http_status: int


class ErrorMessage(Enum):
    FILE_TOO_LARGE = ErrorInfo(
        "This file is too large to process. Please upload a smaller document "
        "or split it into several files.",
        status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    )
    UNSUPPORTED_FORMAT = ErrorInfo(
        "This file type is not supported. Please upload a .txt, .pdf, .docx or "
        "image file (.jpg, .jpeg, .png, .gif, .bmp, .tiff, .tif, .webp).",
        status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    )
    EMPTY_EXTRACTION = ErrorInfo(
        "The document appears to be empty or contains no readable text. "
        "Please check your file and try again.",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    EXTRACTION_FAILED = ErrorInfo(
        "We could not read the text in this document. The file may be corrupted; "
        "try re-saving it or converting it to PDF.",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    OCR_FAILED = ErrorInfo(
        "Unable to extract text from this document. It may be a low-quality scan; "
        "try a clearer image or a text-based PDF.",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    GENERATION_FAILED = ErrorInfo(
        "The analysis service is temporarily unavailable. Please try again in a moment.",
        status.HTTP_502_BAD_GATEWAY,
    )
    SCHEMA_MISMATCH = ErrorInfo(
        "The analysis service returned an unexpected response. Please try again.",
        status.HTTP_502_BAD_GATEWAY,
    )
    COUNT_MISMATCH = ErrorInfo(
        "The analysis service did not explain every clause. Please try again.",
        status.HTTP_502_BAD_GATEWAY,
    )
    INTERNAL_ERROR = ErrorInfo("Internal Error", status.HTTP_502_BAD_GATEWAY)
