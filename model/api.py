# model/api.py
from pydantic import BaseModel, Field, model_validator
from model.document import ExtractionMethod
from model.explanation import ClauseExplanation, VerificationFeedback


class DocumentMetadata(BaseModel):
    fileType: str
    fileSize: int
    extractionMethod: ExtractionMethod
    confidence: float | None = None
    pages: int | None = None
    error: str | None = None


class ParseDocumentResponse(BaseModel):
    text: str
    metadata: DocumentMetadata


class ExplainClausesRequest(BaseModel):
    clauses: list[str] | None = None
    documentText: str | None = None
    userRole: str = Field(min_length=1)
    language: str | None = None

    @model_validator(mode="after")
    def _one_source(self) -> "ExplainClausesRequest":
        if not self.clauses and not (self.documentText or "").strip():
            raise ValueError("Provide either 'clauses' or 'documentText'.")
        return self


class ExplainClausesResponse(BaseModel):
    explanations: list[ClauseExplanation]
    verified: bool
    attempts: int
    unresolved: list[VerificationFeedback] = []


class AnalyzeDocumentResponse(BaseModel):
    metadata: DocumentMetadata
    clauseCount: int
    explanations: list[ClauseExplanation]
    verified: bool
    attempts: int
    unresolved: list[VerificationFeedback] = []
