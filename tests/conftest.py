"""
Shared fixtures. The required environment is seeded before anything imports
config.settings, and no test reaches the network or a real OCR engine.
"""

import io
import os

# Must run before config.settings is imported anywhere.
for _k, _v in {
    "APP_ENV": "test",
    "REDIS_URL": "redis://localhost:6379/0",
    "ALLOWED_ORIGIN": "http://localhost:3000",
    "RATE_LIMIT_TIMES": "100",
    "RATE_LIMIT_SECONDS": "60",
    "TRUST_PROXY": "false",
    "ANTHROPIC_API_KEY": "test-key",
    "MAX_FILE_MB": "10",
}.items():
    os.environ.setdefault(_k, _v)

import fitz  # noqa: E402
import pytest  # noqa: E402
from docx import Document  # noqa: E402
from PIL import Image  # noqa: E402


@pytest.fixture
def text_pdf_bytes() -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "1. The Tenant shall pay rent monthly.")
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def blank_pdf_bytes() -> bytes:
    doc = fitz.open()
    doc.new_page()
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def docx_bytes() -> bytes:
    doc = Document()
    doc.add_paragraph("This Agreement is made between Landlord and Tenant.")
    doc.add_paragraph("The Tenant shall keep the premises in good repair.")
    table = doc.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Rent"
    table.rows[0].cells[1].text = "$1,200"
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


@pytest.fixture
def empty_docx_bytes() -> bytes:
    buf = io.BytesIO()
    Document().save(buf)
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (40, 20), "white").save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def bmp_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (40, 20), "white").save(buf, format="BMP")
    return buf.getvalue()
