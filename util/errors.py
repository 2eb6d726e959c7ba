# util/errors.py
from fastapi import HTTPException, status
from util.enums import ErrorMessage


class AppError(HTTPException):
    # Flow: raise AppError to short-circuit with a typed status & message.
    def __init__(
        self,
        message: str,
        http_status: int = status.HTTP_400_BAD_REQUEST,
        *,
        code: str | None = None,
        reason: str | None = None,
    ) -> None:
        detail: str | dict = message
        if code is not None:
            detail = {"ok": False, "error": code, "message": message}
            if reason:
                detail["reason"] = reason
        super().__init__(status_code=http_status, detail=detail)
        self.message = message
        self.code = code
        self.reason = reason or message


class DocumentError(AppError):
    """
    Base for the document pipeline failures.

    Each subclass pins an ErrorMessage (user-facing cause + remedy, HTTP status);
    `reason` carries the technical cause for logs, retry feedback and the
    response envelope.
    """

    info: ErrorMessage = ErrorMessage.INTERNAL_ERROR

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(
            self.info.value.message,
            self.info.value.http_status,
            code=self.info.name.lower(),
            reason=reason,
        )


class FileTooLarge(DocumentError):
    info = ErrorMessage.FILE_TOO_LARGE


class UnsupportedFormat(DocumentError):
    info = ErrorMessage.UNSUPPORTED_FORMAT


class EmptyExtraction(DocumentError):
    info = ErrorMessage.EMPTY_EXTRACTION


class ExtractionFailed(DocumentError):
    info = ErrorMessage.EXTRACTION_FAILED


class OCRFailed(DocumentError):
    info = ErrorMessage.OCR_FAILED


class GenerationFailed(DocumentError):
    info = ErrorMessage.GENERATION_FAILED


class SchemaMismatch(DocumentError):
    info = ErrorMessage.SCHEMA_MISMATCH


class CountMismatch(DocumentError):
    info = ErrorMessage.COUNT_MISMATCH
