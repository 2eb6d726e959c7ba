# config/settings.py
import os
import sys
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.enums import Environment
import logging


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()

_log = logging.getLogger("config.settings")


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(..., validation_alias="APP_ENV")
    REDIS_URL: str = Field(..., validation_alias="REDIS_URL")

    # CORS & Limits
    ALLOWED_ORIGIN: str = Field(..., validation_alias="ALLOWED_ORIGIN")
    RATE_LIMIT_TIMES: int = Field(..., validation_alias="RATE_LIMIT_TIMES")
    RATE_LIMIT_SECONDS: int = Field(..., validation_alias="RATE_LIMIT_SECONDS")
    MAX_FILE_MB: int = Field(default=10, validation_alias="MAX_FILE_MB")
    TRUST_PROXY: bool = Field(..., validation_alias="TRUST_PROXY")

    # Anthropic Settings
    ANTHROPIC_API_URL: str = Field(
        default="https://api.anthropic.com/v1/messages",
        validation_alias="ANTHROPIC_API_URL",
    )
    ANTHROPIC_MODEL: str = Field(
        default="claude-3-5-haiku-latest", validation_alias="ANTHROPIC_MODEL"
    )
    ANTHROPIC_VERSION: str = Field(
        default="2023-06-01", validation_alias="ANTHROPIC_VERSION"
    )
    ANTHROPIC_API_KEY: str = Field(default="", validation_alias="ANTHROPIC_API_KEY")
    # Analyzer and verifier may run on isolated keys; empty falls back to ANTHROPIC_API_KEY
    ANALYZER_API_KEY: str = Field(default="", validation_alias="ANALYZER_API_KEY")
    VERIFIER_API_KEY: str = Field(default="", validation_alias="VERIFIER_API_KEY")
    OCR_VISION_MODEL: str = Field(
        default="claude-3-5-sonnet-latest", validation_alias="OCR_VISION_MODEL"
    )

    # Generation
    GENERATION_TIMEOUT_SECONDS: float = Field(
        default=60.0, validation_alias="GENERATION_TIMEOUT_SECONDS"
    )
    GENERATION_CONCURRENCY: int = Field(
        default=4, validation_alias="GENERATION_CONCURRENCY"
    )
    ANALYZER_MAX_TOKENS: int = 8000
    VERIFIER_MAX_TOKENS: int = 2000
    OCR_MAX_TOKENS: int = 8000
    EXPLAIN_MAX_RETRIES: int = Field(default=1, validation_alias="EXPLAIN_MAX_RETRIES")
    DEFAULT_LANGUAGE: str = Field(default="English", validation_alias="DEFAULT_LANGUAGE")

    # OCR
    OCR_ENABLED: bool = Field(default=True, validation_alias="OCR_ENABLED")
    OCR_FALLBACK_ENABLED: bool = Field(
        default=True, validation_alias="OCR_FALLBACK_ENABLED"
    )
    OCR_TIMEOUT_SECONDS: float = Field(default=120.0, validation_alias="OCR_TIMEOUT_SECONDS")
    OCR_CONCURRENCY: int = Field(default=2, validation_alias="OCR_CONCURRENCY")
    OCR_RENDER_DPI: int = Field(default=200, validation_alias="OCR_RENDER_DPI")
    TESSERACT_CMD: str = Field(default="tesseract", validation_alias="TESSERACT_CMD")
    TESSERACT_LANG: str = Field(default="eng", validation_alias="TESSERACT_LANG")

    # Logging knobs
    LOGGER_NAME: str = "clause-explainer"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="app.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")

    # Prompts
    OCR_SYSTEM_PROMPT: str = (
        "You are a precise OCR engine. Transcribe ALL text visible in the provided document.\n"
        "\n"
        "RULES:\n"
        "- Preserve the document structure: paragraphs, headings, numbered lists and tables.\n"
        "- Render tables as plain rows with cells separated by ' | '.\n"
        "- Keep the original wording, spelling, numbers and punctuation exactly as printed.\n"
        "- Do NOT summarize, translate, correct or add anything that is not on the page.\n"
        "- If a word is illegible, write [illegible] instead of guessing.\n"
        "- Return the extracted text ONLY. No commentary, no code fences.\n"
    )

    ANALYZE_SYSTEM_PROMPT: str = (
        "You are an AI legal assistant specializing in simplifying complex legal documents "
        "for people without legal training.\n"
        "\n"
        "For EACH clause you receive, in the same order:\n"
        "1. Explain the clause in plain language, tailored to the reader's role in the agreement.\n"
        "2. Identify any legal jargon terms in the clause.\n"
        "3. Give a simple, one-sentence definition for each jargon term.\n"
        "\n"
        "GROUNDING RULES:\n"
        "- The explanation must be grounded SOLELY in the clause text. Do not add consequences, "
        "penalties, deadlines, amounts or parties that the clause does not state.\n"
        "- Copy the clause into original_text exactly as given.\n"
        "\n"
        "OUTPUT:\n"
        "- A JSON array with exactly one object per clause, in input order.\n"
        '- Each object: {"original_text":"...","plain_english_explanation":"...",'
        '"jargon_terms":[{"term":"...","definition":"..."}]}\n'
        "- JSON only. No code fences, no prose outside the array.\n"
    )

    VERIFY_SYSTEM_PROMPT: str = (
        "You are an AI verifier. Your sole purpose is to check whether each explanation accurately "
        "reflects its source clause without adding any external information.\n"
        "\n"
        "For EACH pair:\n"
        "- The explanation is VALID if it only contains information present in the source clause.\n"
        "- The explanation is INVALID if it includes information not found in the source clause, "
        "or if it misrepresents the source clause.\n"
        "\n"
        "Return JSON ONLY, no code fences:\n"
        '- If ALL explanations are valid: {"all_verified": true, "feedback": []}\n'
        '- Otherwise: {"all_verified": false, "feedback": [{"clause_substring": "<short, unique verbatim '
        'quote from the SOURCE clause that failed>", "reason": "<why the explanation failed>"}]}\n'
        "- Include one feedback object per invalid explanation. Never use pair numbers as the quote.\n"
    )


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
