# core/analyzer.py
from typing import List, Optional, Sequence
from config.settings import settings
from core.anthropic_client import complete_structured
from core.entities import Clause
from model.explanation import ClauseExplanation, ExplanationList, VerificationFeedback
from util.errors import CountMismatch
from util.timing import timed
import logging

logger = logging.getLogger(__name__)


def _user_prompt(
    clauses: Sequence[Clause],
    role: str,
    language: str,
    feedback: Optional[Sequence[VerificationFeedback]],
    previous: Optional[Sequence[ClauseExplanation]],
) -> str:
    """
    Build the user message: role, output language, optional retry feedback,
    then every clause in order.
    """
    n = len(clauses)
    lines: List[str] = [
        f"User Role: {role}",
        f"IMPORTANT: Write every explanation and definition in {language}. "
        "Keep original_text exactly as given.",
        "",
    ]

    if feedback:
        lines += [
            "You are being asked to retry. A verifier flagged explanations from the previous attempt "
            "as not grounded in their clauses.",
            "Regenerate ONLY the explanations of the clauses quoted below and correct them based on the "
            "reason given. Keep every other explanation exactly as it was.",
        ]
        for fb in feedback:
            lines.append(f'- Clause containing "{fb.clause_substring}": {fb.reason}')
        if previous and len(previous) == n:
            lines += ["", "Previous explanations (same order as the clauses):"]
            lines += [
                f"{i}. {e.plain_english_explanation}" for i, e in enumerate(previous, start=1)
            ]
        lines.append("")

    lines.append(f"Clauses to explain ({n}):")
    for i, c in enumerate(clauses, start=1):
        lines.append(f'Clause {i}:\n"""\n{c.text}\n"""')
    lines.append(
        f"\nReturn a JSON array of exactly {n} objects, one per clause, in the same order."
    )
    return "\n".join(lines)


class AnalyzerAgent:
    """
    Stateless: one batched generation request per call, never one per clause.
    """

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None) -> None:
        self._api_key = api_key or settings.ANALYZER_API_KEY or settings.ANTHROPIC_API_KEY
        self._timeout = timeout or settings.GENERATION_TIMEOUT_SECONDS

    async def explain(
        self,
        clauses: Sequence[Clause],
        role: str,
        language: str,
        feedback: Optional[Sequence[VerificationFeedback]] = None,
        previous: Optional[Sequence[ClauseExplanation]] = None,
    ) -> List[ClauseExplanation]:
        """
        Explanations positionally aligned with `clauses`.

        Raises GenerationFailed, SchemaMismatch, or CountMismatch when the
        response does not hold exactly one explanation per clause.
        """
        if not clauses:
            return []

        with timed(logger, "analyzer.explain", clauses=len(clauses), retry=bool(feedback)):
            out = await complete_structured(
                adapter=ExplanationList,
                api_key=self._api_key,
                system=settings.ANALYZE_SYSTEM_PROMPT,
                content=_user_prompt(clauses, role, language, feedback, previous),
                label="analyze",
                max_tokens=settings.ANALYZER_MAX_TOKENS,
                timeout=self._timeout,
            )

        if len(out) != len(clauses):
            logger.warning("analyzer.count_mismatch expected=%d got=%d", len(clauses), len(out))
            raise CountMismatch(f"Expected {len(clauses)} explanations, got {len(out)}")

        # original_text always mirrors the source clause; the model's echo is not trusted.
        rewritten = sum(1 for c, e in zip(clauses, out) if e.original_text != c.text)
        if rewritten:
            logger.warning("analyzer.original_text.rewritten count=%d", rewritten)
        return [e.model_copy(update={"original_text": c.text}) for c, e in zip(clauses, out)]
