# core/llm_verifier.py
from typing import List, Optional, Sequence
from pydantic import TypeAdapter
from config.settings import settings
from core.anthropic_client import complete_structured
from core.entities import Clause
from model.explanation import ClauseExplanation, VerificationFeedback, VerificationReport
import logging
from util.functions import fingerprint, matches_fingerprint
from util.timing import timed

logger = logging.getLogger(__name__)

_REPORT = TypeAdapter(VerificationReport)

COUNT_MISMATCH_REASON = (
    "The number of explanations did not match the number of source clauses provided."
)


def _user_prompt(clauses: Sequence[Clause], explanations: Sequence[ClauseExplanation]) -> str:
    """
    Build the user message pairing each source clause with its explanation.
    """
    blocks: List[str] = ["Here are the clauses and their explanations to verify:"]
    for i, (c, e) in enumerate(zip(clauses, explanations), start=1):
        blocks.append(
            f"Pair {i}:\nSource Text:\n\"\"\"\n{c.text}\n\"\"\"\n"
            f"Explanation to Verify:\n\"\"\"\n{e.plain_english_explanation}\n\"\"\"\n---"
        )
    blocks.append("Now, provide your final assessment of all pairs in the required JSON format.")
    return "\n".join(blocks)


def all_failed(clauses: Sequence[Clause], reason: str) -> List[VerificationFeedback]:
    return [VerificationFeedback(clause_substring=fingerprint(c.text), reason=reason) for c in clauses]


class VerifierAgent:
    """
    Stateless grounding check for a batch of explanations.
    """

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None) -> None:
        self._api_key = api_key or settings.VERIFIER_API_KEY or settings.ANTHROPIC_API_KEY
        self._timeout = timeout or settings.GENERATION_TIMEOUT_SECONDS

    async def verify(
        self, clauses: Sequence[Clause], explanations: Sequence[ClauseExplanation]
    ) -> VerificationReport:
        # Structural precondition, checked before spending a backend call.
        if len(clauses) != len(explanations):
            logger.error(
                "verifier.count_mismatch clauses=%d explanations=%d",
                len(clauses),
                len(explanations),
            )
            return VerificationReport(
                all_verified=False, feedback=all_failed(clauses, COUNT_MISMATCH_REASON)
            )
        if not clauses:
            return VerificationReport(all_verified=True, feedback=[])

        with timed(logger, "verifier.verify", pairs=len(clauses)):
            report = await complete_structured(
                adapter=_REPORT,
                api_key=self._api_key,
                system=settings.VERIFY_SYSTEM_PROMPT,
                content=_user_prompt(clauses, explanations),
                label="verify",
                max_tokens=settings.VERIFIER_MAX_TOKENS,
                timeout=self._timeout,
            )

        # Listed failures always win over the flag.
        if report.all_verified and report.feedback:
            report = VerificationReport(all_verified=False, feedback=report.feedback)

        unmatched = sum(
            1
            for fb in report.feedback
            if not any(matches_fingerprint(c.text, fb.clause_substring) for c in clauses)
        )
        if unmatched:
            logger.warning("verifier.fingerprint.unmatched count=%d", unmatched)
        logger.info(
            "verifier.result verified=%s failed=%d", report.all_verified, len(report.feedback)
        )
        return report
