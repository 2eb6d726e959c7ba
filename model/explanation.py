# model/explanation.py
from pydantic import BaseModel, ConfigDict, TypeAdapter


class _Strict(BaseModel):
    # Generation output is decoded fail-closed: missing or mistyped fields never get defaults.
    model_config = ConfigDict(strict=True, frozen=True)


class JargonTerm(_Strict):
    term: str
    definition: str


class ClauseExplanation(_Strict):
    original_text: str
    plain_english_explanation: str
    jargon_terms: list[JargonTerm]


class VerificationFeedback(_Strict):
    # Short verbatim quote of the failing clause, never a position.
    clause_substring: str
    reason: str


class VerificationReport(_Strict):
    all_verified: bool
    feedback: list[VerificationFeedback]

    @property
    def passed(self) -> bool:
        return self.all_verified and not self.feedback


ExplanationList = TypeAdapter(list[ClauseExplanation])
