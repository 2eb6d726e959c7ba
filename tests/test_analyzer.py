from unittest.mock import AsyncMock, patch

import pytest

from core.analyzer import AnalyzerAgent
from core.entities import Clause
from helpers import explanation
from model.explanation import VerificationFeedback
from util.errors import CountMismatch, SchemaMismatch

CLAUSES = [
    Clause(0, "The Tenant shall pay rent on the first day of each month."),
    Clause(1, "The Landlord may enter the premises with 24 hours notice."),
]


@pytest.mark.asyncio
async def test_one_batched_call_for_all_clauses():
    reply = [explanation(c.text, f"Explained {c.index}") for c in CLAUSES]
    with patch("core.analyzer.complete_structured", AsyncMock(return_value=reply)) as mocked:
        out = await AnalyzerAgent(api_key="k").explain(CLAUSES, "Tenant", "Spanish")

    assert out == reply
    mocked.assert_awaited_once()
    kwargs = mocked.await_args.kwargs
    assert kwargs["label"] == "analyze"
    assert kwargs["api_key"] == "k"
    prompt = kwargs["content"]
    assert "User Role: Tenant" in prompt
    assert "in Spanish" in prompt
    assert prompt.index(CLAUSES[0].text) < prompt.index(CLAUSES[1].text)
    assert "exactly 2 objects" in prompt
    assert "retry" not in prompt


@pytest.mark.asyncio
async def test_retry_prompt_carries_feedback_and_previous_output():
    feedback = [VerificationFeedback(clause_substring="shall pay rent", reason="Invented a grace period.")]
    previous = [explanation(CLAUSES[0].text, "Pay rent, with a 10 day grace period."), explanation(CLAUSES[1].text, "Fine.")]
    reply = [explanation(c.text, "ok") for c in CLAUSES]
    with patch("core.analyzer.complete_structured", AsyncMock(return_value=reply)) as mocked:
        await AnalyzerAgent(api_key="k").explain(CLAUSES, "Tenant", "English", feedback=feedback, previous=previous)

    prompt = mocked.await_args.kwargs["content"]
    assert '"shall pay rent": Invented a grace period.' in prompt
    assert "Regenerate ONLY" in prompt
    assert "10 day grace period" in prompt


@pytest.mark.asyncio
async def test_wrong_count_is_count_mismatch():
    reply = [explanation(CLAUSES[0].text, "only one")]
    with patch("core.analyzer.complete_structured", AsyncMock(return_value=reply)):
        with pytest.raises(CountMismatch) as ei:
            await AnalyzerAgent(api_key="k").explain(CLAUSES, "Tenant", "English")
    assert "Expected 2 explanations, got 1" == ei.value.reason


@pytest.mark.asyncio
async def test_schema_errors_propagate():
    with patch("core.analyzer.complete_structured", AsyncMock(side_effect=SchemaMismatch("analyze: bad"))):
        with pytest.raises(SchemaMismatch):
            await AnalyzerAgent(api_key="k").explain(CLAUSES, "Tenant", "English")


@pytest.mark.asyncio
async def test_no_clauses_no_call():
    with patch("core.analyzer.complete_structured", AsyncMock()) as mocked:
        assert await AnalyzerAgent(api_key="k").explain([], "Tenant", "English") == []
    mocked.assert_not_awaited()


@pytest.mark.asyncio
async def test_original_text_is_pinned_to_the_source_clause():
    reply = [
        explanation("Landlord may evict without notice.", "Pay rent on the first."),
        explanation(CLAUSES[1].text, "Landlord gives a day's notice."),
    ]
    with patch("core.analyzer.complete_structured", AsyncMock(return_value=reply)):
        out = await AnalyzerAgent(api_key="k").explain(CLAUSES, "Tenant", "English")
    assert [e.original_text for e in out] == [c.text for c in CLAUSES]
    assert out[0].plain_english_explanation == "Pay rent on the first."
