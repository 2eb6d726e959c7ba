# service/document_service.py
import logging
from typing import List
from fastapi import UploadFile
from config.settings import settings
from core.clause_splitter import split_clauses, unique_clauses
from core.entities import (
    Clause,
    ExplanationOutcome,
    ExtractionOptions,
    ExtractionResult,
    UploadedDocument,
)
from core.extraction import ExtractionOrchestrator
from core.retry_controller import RetryController
from model.api import (
    AnalyzeDocumentResponse,
    DocumentMetadata,
    ExplainClausesRequest,
    ExplainClausesResponse,
    ParseDocumentResponse,
)
from util.errors import EmptyExtraction

logger = logging.getLogger(__name__)


def _metadata(result: ExtractionResult) -> DocumentMetadata:
    return DocumentMetadata(
        fileType=result.mime_type,
        fileSize=result.file_size,
        extractionMethod=result.method,
        confidence=result.confidence,
        pages=result.page_count,
    )


class DocumentService:
    def __init__(self, extractor: ExtractionOrchestrator, explainer: RetryController) -> None:
        self._extractor = extractor
        self._explainer = explainer

    @staticmethod
    async def _read(file: UploadFile) -> UploadedDocument:
        """
        Buffer the upload for this request only. Logs byte size, never content.
        """
        try:
            data = await file.read()
        except Exception:
            logger.error("upload.read.error name=%s", file.filename)
            raise
        logger.info("upload.ok bytes=%d", len(data))
        return UploadedDocument(data=data, filename=file.filename, size=len(data))

    def _options(self, enable_ocr: bool, ocr_fallback: bool) -> ExtractionOptions:
        base = self._extractor.default_options()
        return ExtractionOptions(
            max_bytes=base.max_bytes,
            enable_ocr=enable_ocr and base.enable_ocr,
            ocr_fallback=ocr_fallback and base.ocr_fallback,
        )

    async def parse_upload(
        self, file: UploadFile, *, enable_ocr: bool = True, ocr_fallback: bool = True
    ) -> ParseDocumentResponse:
        document = await self._read(file)
        result = await self._extractor.extract(document, self._options(enable_ocr, ocr_fallback))
        return ParseDocumentResponse(text=result.text, metadata=_metadata(result))

    async def explain(self, request: ExplainClausesRequest) -> ExplainClausesResponse:
        if request.clauses:
            clauses = unique_clauses(request.clauses)
        else:
            clauses = split_clauses(request.documentText or "")
        if not clauses:
            raise EmptyExtraction("No clause text to explain")

        outcome = await self._explainer.run(
            clauses, request.userRole, request.language or settings.DEFAULT_LANGUAGE
        )
        return ExplainClausesResponse(
            explanations=outcome.explanations,
            verified=outcome.verified,
            attempts=outcome.attempts,
            unresolved=outcome.unresolved,
        )

    async def analyze_upload(
        self, file: UploadFile, *, user_role: str, language: str | None = None
    ) -> AnalyzeDocumentResponse:
        """
        Whole pipeline for one upload: extract -> split -> explain/verify.
        """
        document = await self._read(file)
        result = await self._extractor.extract(document)
        clauses: List[Clause] = split_clauses(result.text)
        logger.info("analyze.clauses count=%d method=%s", len(clauses), result.method.value)

        outcome: ExplanationOutcome = await self._explainer.run(
            clauses, user_role, language or settings.DEFAULT_LANGUAGE
        )
        metadata = _metadata(result)
        if not outcome.verified:
            metadata.error = (
                f"{len(outcome.unresolved) or len(clauses)} explanation(s) could not be verified "
                f"after {outcome.attempts} attempt(s); review them against the original text."
            )
        return AnalyzeDocumentResponse(
            metadata=metadata,
            clauseCount=len(clauses),
            explanations=outcome.explanations,
            verified=outcome.verified,
            attempts=outcome.attempts,
            unresolved=outcome.unresolved,
        )
