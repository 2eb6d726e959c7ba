import pytest

from core.format_detector import detect
from model.document import DocumentKind
from util.errors import UnsupportedFormat


def test_pdf_signature_wins_over_extension(text_pdf_bytes):
    fmt = detect(text_pdf_bytes, "contract.txt")
    assert fmt.kind is DocumentKind.pdf
    assert fmt.mime_type == "application/pdf"


def test_docx_detected_from_zip_contents(docx_bytes):
    fmt = detect(docx_bytes, None)
    assert fmt.kind is DocumentKind.word_processor
    assert fmt.extension == "docx"


@pytest.mark.parametrize(
    "fixture_name, subtype",
    [("png_bytes", "png"), ("bmp_bytes", "bmp")],
)
def test_images_detected_by_signature(request, fixture_name, subtype):
    data = request.getfixturevalue(fixture_name)
    fmt = detect(data, "scan.bin")
    assert fmt.kind is DocumentKind.image
    assert fmt.image_subtype == subtype


def test_jpeg_and_webp_signatures():
    assert detect(b"\xff\xd8\xff\xe0" + b"\x00" * 20).image_subtype == "jpeg"
    webp = b"RIFF" + b"\x10\x00\x00\x00" + b"WEBPVP8 " + b"\x00" * 8
    assert detect(webp).image_subtype == "webp"


def test_plain_text_falls_back_to_extension():
    fmt = detect(b"The Tenant shall pay rent.", "lease.TXT")
    assert fmt.kind is DocumentKind.plain_text


def test_text_starting_with_bm_is_not_bitmap():
    fmt = detect(b"BMW Financial Services lease agreement, 2024 edition.", "lease.txt")
    assert fmt.kind is DocumentKind.plain_text


@pytest.mark.parametrize("ext", ["tif", "tiff", "gif", "webp", "jpg", "jpeg"])
def test_image_extensions_accepted_when_bytes_are_inconclusive(ext):
    fmt = detect(b"\x00\x01\x02", f"page.{ext}")
    assert fmt.kind is DocumentKind.image


def test_unsupported_extension_lists_supported_set():
    with pytest.raises(UnsupportedFormat) as ei:
        detect(b"MZ\x90\x00", "setup.exe")
    assert ".docx" in ei.value.reason
    assert ".webp" in ei.value.reason
    assert ei.value.status_code == 415


def test_zip_that_is_not_word_is_rejected():
    import io
    import zipfile

    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        zf.writestr("readme.md", "hello")
    with pytest.raises(UnsupportedFormat):
        detect(buf.getvalue(), "archive.docx")


def test_missing_filename_and_no_signature_is_unsupported():
    with pytest.raises(UnsupportedFormat):
        detect(b"just some words", None)


def test_detection_is_deterministic(docx_bytes, png_bytes, text_pdf_bytes):
    for data, name in [(docx_bytes, "a.docx"), (png_bytes, None), (text_pdf_bytes, "x.pdf"), (b"hi", "n.txt")]:
        assert detect(data, name) == detect(data, name)
