# controller/controller_dependencies.py
import asyncio
import logging
from typing import Awaitable, TypeVar
from fastapi import File, Request, Response, UploadFile
from fastapi_limiter.depends import RateLimiter
from config.settings import settings
from core.extraction import ExtractionOrchestrator
from core.retry_controller import RetryController
from service.document_service import DocumentService
from util.constants import MIB
from util.errors import AppError, FileTooLarge

logger = logging.getLogger(__name__)

T = TypeVar("T")

_limiter = RateLimiter(times=settings.RATE_LIMIT_TIMES, seconds=settings.RATE_LIMIT_SECONDS)


async def rate_limit(request: Request, response: Response) -> None:
    await _limiter(request, response)


def get_document_service() -> DocumentService:
    _extractor = ExtractionOrchestrator()
    _explainer = RetryController()
    _service = DocumentService(_extractor, _explainer)
    return _service


async def enforce_max_upload_size(
    request: Request, file: UploadFile = File(...)
) -> UploadFile:
    # Fast pre-check via Content-Length if present
    max_bytes = settings.MAX_FILE_MB * MIB
    cl = request.headers.get("content-length")
    if cl and cl.isdigit() and int(cl) > max_bytes:
        raise FileTooLarge(f"Request body of {int(cl)} bytes exceeds {settings.MAX_FILE_MB}MB")

    # Hard cap while reading initial bytes (works even if no Content-Length)
    blob = await file.read(max_bytes + 1)
    if len(blob) > max_bytes:
        raise FileTooLarge(f"Upload exceeds {settings.MAX_FILE_MB}MB")

    # Reset so downstream can re-read file stream
    await file.seek(0)
    return file


async def cancel_on_disconnect(
    request: Request, aw: Awaitable[T], poll_seconds: float = 1.0
) -> T:
    """
    Run `aw`, cancelling it (and every backend call under it) when the client
    goes away.
    """
    task = asyncio.ensure_future(aw)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_seconds)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info("request.disconnected path=%s", request.url.path)
                task.cancel()
                raise AppError("Client closed request", 499)
    finally:
        if not task.done():
            task.cancel()
