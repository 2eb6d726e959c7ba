# controller/document_controller.py
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from controller.controller_dependencies import (
    cancel_on_disconnect,
    enforce_max_upload_size,
    get_document_service,
    rate_limit,
)
from model.api import (
    AnalyzeDocumentResponse,
    ExplainClausesRequest,
    ExplainClausesResponse,
    ParseDocumentResponse,
)
from service.document_service import DocumentService
from util.constants import InternalURIs

document_router = APIRouter(dependencies=[Depends(rate_limit)])


@document_router.post(
    InternalURIs.PARSE_DOCUMENT,
    response_model=ParseDocumentResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(enforce_max_upload_size)],
)
async def parse_document(
    request: Request,
    file: UploadFile = File(...),
    enableOcr: bool = Form(True),
    ocrFallback: bool = Form(True),
    service: DocumentService = Depends(get_document_service),
) -> ParseDocumentResponse:
    return await cancel_on_disconnect(
        request,
        service.parse_upload(file, enable_ocr=enableOcr, ocr_fallback=ocrFallback),
    )


@document_router.post(InternalURIs.EXPLAIN_CLAUSES, response_model=ExplainClausesResponse)
async def explain_clauses(
    request: Request,
    payload: ExplainClausesRequest,
    service: DocumentService = Depends(get_document_service),
) -> ExplainClausesResponse:
    return await cancel_on_disconnect(request, service.explain(payload))


@document_router.post(
    InternalURIs.ANALYZE_DOCUMENT,
    response_model=AnalyzeDocumentResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(enforce_max_upload_size)],
)
async def analyze_document(
    request: Request,
    file: UploadFile = File(...),
    userRole: str = Form(..., min_length=1),
    language: str | None = Form(None),
    service: DocumentService = Depends(get_document_service),
) -> AnalyzeDocumentResponse:
    return await cancel_on_disconnect(
        request, service.analyze_upload(file, user_role=userRole, language=language)
    )
