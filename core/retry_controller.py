# core/retry_controller.py
from typing import List, Optional, Sequence
from config.settings import settings
from core.analyzer import AnalyzerAgent
from core.entities import AttemptState, Clause, ExplanationOutcome, RetryState
from core.llm_verifier import VerifierAgent, all_failed
from model.explanation import ClauseExplanation
from util.errors import AppError
from util.functions import matches_fingerprint
import logging

logger = logging.getLogger(__name__)

FALLBACK_EXPLANATION = (
    "Error: The AI was unable to generate a reliable explanation for this clause after "
    "{attempts} attempt(s). The last attempt failed due to: {reason}"
)


class RetryController:
    """
    Analyzer <-> Verifier self-correction loop as a bounded state machine:

        GENERATING -> VERIFYING -> DONE
                  \\           \\
                   -> RETRYING <-
        RETRYING -> GENERATING   while attempt < max_retries
        RETRYING -> EXHAUSTED    otherwise

    At most max_retries + 1 analyzer calls and as many verifier calls.
    The outcome always holds one explanation per input clause.
    """

    def __init__(
        self,
        analyzer: Optional[AnalyzerAgent] = None,
        verifier: Optional[VerifierAgent] = None,
        max_retries: Optional[int] = None,
    ) -> None:
        self._analyzer = analyzer or AnalyzerAgent()
        self._verifier = verifier or VerifierAgent()
        self._max_retries = max(0, settings.EXPLAIN_MAX_RETRIES if max_retries is None else max_retries)

    @property
    def max_retries(self) -> int:
        return self._max_retries

    async def run(
        self, clauses: Sequence[Clause], role: str, language: str
    ) -> ExplanationOutcome:
        if not clauses:
            return ExplanationOutcome(explanations=[], verified=True, attempts=0, state=RetryState.DONE)

        attempt = AttemptState()
        phase = RetryState.GENERATING
        candidate: List[ClauseExplanation] = []
        calls = 0

        while True:
            if phase is RetryState.GENERATING:
                calls += 1
                try:
                    candidate = await self._analyzer.explain(
                        clauses,
                        role,
                        language,
                        feedback=attempt.pending_feedback or None,
                        previous=attempt.last_explanations or None,
                    )
                except AppError as e:
                    # Analyzer failure counts as a failed verification, error text as feedback.
                    logger.warning(
                        "explain.analyzer.failed attempt=%d code=%s", attempt.attempt_number, e.code
                    )
                    attempt.pending_feedback = all_failed(clauses, e.reason)
                    phase = RetryState.RETRYING
                    continue
                attempt.last_explanations = candidate
                phase = RetryState.VERIFYING

            elif phase is RetryState.VERIFYING:
                try:
                    report = await self._verifier.verify(clauses, candidate)
                except AppError as e:
                    logger.warning(
                        "explain.verifier.failed attempt=%d code=%s", attempt.attempt_number, e.code
                    )
                    attempt.pending_feedback = all_failed(clauses, e.reason)
                    phase = RetryState.RETRYING
                    continue
                if report.passed:
                    logger.info("explain.done attempts=%d clauses=%d", calls, len(clauses))
                    return ExplanationOutcome(
                        explanations=list(candidate),
                        verified=True,
                        attempts=calls,
                        state=RetryState.DONE,
                    )
                attempt.pending_feedback = list(report.feedback)
                logger.warning(
                    "explain.unverified attempt=%d failed=%d",
                    attempt.attempt_number,
                    len(report.feedback),
                )
                phase = RetryState.RETRYING

            elif phase is RetryState.RETRYING:
                if attempt.attempt_number < self._max_retries:
                    attempt.attempt_number += 1
                    phase = RetryState.GENERATING
                else:
                    return self._exhausted(clauses, attempt, calls)

    def _exhausted(
        self, clauses: Sequence[Clause], attempt: AttemptState, calls: int
    ) -> ExplanationOutcome:
        feedback = attempt.pending_feedback
        if attempt.last_explanations:
            logger.error(
                "explain.exhausted attempts=%d unresolved=%d", calls, len(feedback)
            )
            explanations = list(attempt.last_explanations)
        else:
            logger.error("explain.exhausted.no_output attempts=%d", calls)
            explanations = [
                ClauseExplanation(
                    original_text=c.text,
                    plain_english_explanation=FALLBACK_EXPLANATION.format(
                        attempts=calls, reason=self._reason_for(c, feedback)
                    ),
                    jargon_terms=[],
                )
                for c in clauses
            ]
        return ExplanationOutcome(
            explanations=explanations,
            verified=False,
            attempts=calls,
            state=RetryState.EXHAUSTED,
            unresolved=list(feedback),
        )

    @staticmethod
    def _reason_for(clause: Clause, feedback) -> str:
        for fb in feedback:
            if matches_fingerprint(clause.text, fb.clause_substring):
                return fb.reason
        return feedback[0].reason if feedback else "unknown error"
