from unittest.mock import AsyncMock, patch

import pytest

from core.entities import ExtractionOptions, UploadedDocument
from core.extraction import ExtractionOrchestrator
from helpers import chain_of, primary, secondary
from model.document import ExtractionMethod
from util.constants import MIB
from util.errors import (
    EmptyExtraction,
    ExtractionFailed,
    FileTooLarge,
    OCRFailed,
    UnsupportedFormat,
)

OPTS = ExtractionOptions(max_bytes=10 * MIB)


def _orchestrator(*backends):
    return ExtractionOrchestrator(ocr_chain=chain_of(*backends), max_bytes=10 * MIB)


@pytest.mark.asyncio
async def test_plain_text_is_decoded_directly():
    doc = UploadedDocument(data="\ufeff  Rent is due monthly.\n".encode("utf-8"), filename="lease.txt")
    result = await _orchestrator(primary()).extract(doc, OPTS)
    assert result.text == "Rent is due monthly."
    assert result.method is ExtractionMethod.direct_text
    assert result.confidence == 1.0
    assert result.file_size == doc.size


@pytest.mark.asyncio
async def test_zero_byte_txt_is_empty_extraction():
    doc = UploadedDocument(data=b"", filename="empty.txt")
    with pytest.raises(EmptyExtraction) as ei:
        await _orchestrator(primary()).extract(doc, OPTS)
    assert ei.value.status_code == 422


@pytest.mark.asyncio
async def test_oversized_upload_rejected_before_detection():
    data = b"x" * (11 * MIB)
    doc = UploadedDocument(data=data, filename="big.txt")
    with patch("core.extraction.detect") as detect_mock:
        with pytest.raises(FileTooLarge) as ei:
            await _orchestrator(primary()).extract(doc, OPTS)
    detect_mock.assert_not_called()
    assert ei.value.status_code == 413
    assert "10.0MB" in ei.value.reason


@pytest.mark.asyncio
async def test_pdf_with_text_skips_ocr(text_pdf_bytes):
    first = primary(text="should not be used")
    result = await _orchestrator(first).extract(
        UploadedDocument(data=text_pdf_bytes, filename="lease.pdf"), OPTS
    )
    assert result.method is ExtractionMethod.pdf_parse
    assert "Tenant shall pay rent" in result.text
    assert result.page_count == 1
    assert first.calls == []


@pytest.mark.asyncio
async def test_blank_pdf_invokes_ocr_chain_once_primary_first(blank_pdf_bytes):
    first = primary(text="Scanned clause text")
    second = secondary(text="never")
    orch = _orchestrator(first, second)
    chain = orch._ocr
    with patch.object(chain, "recognize", AsyncMock(wraps=chain.recognize)) as spy:
        result = await orch.extract(UploadedDocument(data=blank_pdf_bytes, filename="scan.pdf"), OPTS)

    spy.assert_awaited_once()
    assert spy.await_args.args[0] == blank_pdf_bytes
    assert first.calls == ["application/pdf"]
    assert second.calls == []
    assert result.method is ExtractionMethod.ocr_primary
    assert result.confidence == 0.95
    assert result.page_count == 1


@pytest.mark.asyncio
async def test_unparseable_pdf_goes_to_ocr():
    first = primary(text="Recovered by OCR")
    with patch("core.extraction.extract_pages_texts", side_effect=ExtractionFailed("broken xref")):
        result = await _orchestrator(first).extract(
            UploadedDocument(data=b"%PDF-1.7 garbage", filename="x.pdf"), OPTS
        )
    assert result.method is ExtractionMethod.ocr_primary
    assert result.page_count is None
    assert first.calls == ["application/pdf"]


@pytest.mark.asyncio
async def test_blank_pdf_with_ocr_disabled_is_empty(blank_pdf_bytes):
    first = primary(text="unused")
    opts = ExtractionOptions(max_bytes=10 * MIB, enable_ocr=False)
    with pytest.raises(EmptyExtraction):
        await _orchestrator(first).extract(UploadedDocument(data=blank_pdf_bytes, filename="s.pdf"), opts)
    assert first.calls == []


@pytest.mark.asyncio
async def test_blank_pdf_with_failing_ocr_is_ocr_failed(blank_pdf_bytes):
    orch = _orchestrator(primary(exc=RuntimeError("vision down")), secondary(exc=RuntimeError("tesseract crashed")))
    with pytest.raises(OCRFailed) as ei:
        await orch.extract(UploadedDocument(data=blank_pdf_bytes, filename="s.pdf"), OPTS)
    assert "vision down" in ei.value.reason
    assert "tesseract crashed" in ei.value.reason


@pytest.mark.asyncio
async def test_docx_is_parsed_without_ocr(docx_bytes):
    first = primary(text="unused")
    result = await _orchestrator(first).extract(UploadedDocument(data=docx_bytes, filename="lease.docx"), OPTS)
    assert result.method is ExtractionMethod.word_parse
    assert "good repair" in result.text
    assert "Rent | $1,200" in result.text
    assert first.calls == []


@pytest.mark.asyncio
async def test_empty_docx_is_terminal_extraction_failure(empty_docx_bytes):
    first = primary(text="unused")
    with pytest.raises(ExtractionFailed):
        await _orchestrator(first).extract(UploadedDocument(data=empty_docx_bytes, filename="e.docx"), OPTS)
    assert first.calls == []


@pytest.mark.asyncio
async def test_corrupt_docx_is_extraction_failure():
    with pytest.raises(ExtractionFailed):
        await _orchestrator(primary()).extract(
            UploadedDocument(data=b"not really a word file", filename="bad.docx"), OPTS
        )


@pytest.mark.asyncio
async def test_images_go_straight_to_ocr(png_bytes):
    first = primary(exc=TimeoutError("vision OCR timed out"))
    second = secondary(text="  Signed by both parties.  ")
    result = await _orchestrator(first, second).extract(UploadedDocument(data=png_bytes, filename="p.png"), OPTS)
    assert result.method is ExtractionMethod.ocr_secondary
    assert result.text == "Signed by both parties."
    assert result.confidence == 0.90
    assert first.calls == second.calls == ["image/png"]


@pytest.mark.asyncio
async def test_image_with_ocr_disabled_fails(png_bytes):
    opts = ExtractionOptions(max_bytes=10 * MIB, enable_ocr=False)
    with pytest.raises(ExtractionFailed):
        await _orchestrator(primary(text="x")).extract(UploadedDocument(data=png_bytes, filename="p.png"), opts)


@pytest.mark.asyncio
async def test_unsupported_upload():
    with pytest.raises(UnsupportedFormat):
        await _orchestrator(primary()).extract(UploadedDocument(data=b"{}", filename="data.json"), OPTS)


@pytest.mark.asyncio
async def test_success_never_has_empty_text(png_bytes):
    orch = _orchestrator(primary(text="   "), secondary(text="\n\n"))
    with pytest.raises(OCRFailed):
        await orch.extract(UploadedDocument(data=png_bytes, filename="blank.png"), OPTS)
