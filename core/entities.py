# core/entities.py
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
from model.document import DocumentKind, ExtractionMethod
from model.explanation import ClauseExplanation, VerificationFeedback


@dataclass(frozen=True)
class UploadedDocument:
    """
    Request-scoped upload. Never persisted.
    """

    data: bytes
    filename: Optional[str] = None
    size: int = -1

    def __post_init__(self) -> None:
        if self.size < 0:
            object.__setattr__(self, "size", len(self.data))


@dataclass(frozen=True)
class DetectedFormat:
    kind: DocumentKind
    mime_type: str
    extension: str
    image_subtype: Optional[str] = None  # jpeg, png, gif, bmp, tiff, webp


@dataclass(frozen=True)
class ExtractionOptions:
    max_bytes: int
    enable_ocr: bool = True
    ocr_fallback: bool = True  # allow the secondary OCR backend


@dataclass
class ExtractionResult:
    text: str
    method: ExtractionMethod
    confidence: float
    mime_type: str = "application/octet-stream"
    file_size: int = 0
    page_count: Optional[int] = None


@dataclass(frozen=True)
class Clause:
    index: int  # 0-based position in the document
    text: str


class RetryState(str, Enum):
    GENERATING = "generating"
    VERIFYING = "verifying"
    RETRYING = "retrying"
    DONE = "done"
    EXHAUSTED = "exhausted"


@dataclass
class AttemptState:
    attempt_number: int = 0
    last_explanations: List[ClauseExplanation] = field(default_factory=list)
    pending_feedback: List[VerificationFeedback] = field(default_factory=list)


@dataclass
class ExplanationOutcome:
    explanations: List[ClauseExplanation]
    verified: bool
    attempts: int
    state: RetryState
    unresolved: List[VerificationFeedback] = field(default_factory=list)
