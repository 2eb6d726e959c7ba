# main.py
import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware
import routes
from config.rate_limit import close_rate_limiter, init_rate_limiter
from config.settings import settings
from core.ocr_chain import default_ocr_chain
from util.enums import Color, Environment
from util.errors import DocumentError
from util.logger import init_logger

logger = logging.getLogger(__name__)


async def _report_backends() -> None:
    # Probing tesseract shells out; keep it off the loop.
    for backend in default_ocr_chain().backends:
        ready = await asyncio.to_thread(backend.is_available)
        logger.info("startup.ocr backend=%s available=%s", backend.name, ready)
    if not settings.ANTHROPIC_API_KEY:
        logger.warning("startup.no_api_key explanations and vision OCR will fail")


@asynccontextmanager
async def lifespan(fastApi: FastAPI):
    init_logger()
    print(f"{Color.GREEN}Starting clause explainer ({settings.APP_ENV})...{Color.RESET}")
    try:
        await init_rate_limiter()
    except Exception as e:
        print(f"{Color.RED}Rate limiter unavailable, Redis did not answer:{Color.RESET}", e)
        raise
    await _report_backends()
    print(f"{Color.BLUE}Ready: max upload {settings.MAX_FILE_MB}MB{Color.RESET}")

    try:
        yield
    finally:
        try:
            await close_rate_limiter()
        except Exception as e:
            print("Error closing Redis:", e)
        print(f"{Color.RED}Server Shutdown{Color.RESET}")


app: FastAPI = FastAPI(title="Clause Explainer", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.ALLOWED_ORIGIN],
    allow_credentials=False,  # No cookies or auth headers are used
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Accept"],
    expose_headers=["Retry-After"],
)


@app.get("/healthz")
async def healthz():
    return {"ok": True}


@app.exception_handler(DocumentError)
async def document_error_handler(request: Request, exc: DocumentError):
    # Logged once here; the envelope carries the technical reason to the client.
    logger.warning(
        "request.failed path=%s status=%d error=%s reason=%s",
        request.url.path,
        exc.status_code,
        exc.code,
        exc.reason,
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(429)
async def ratelimit_handler(request: Request, exc):
    return JSONResponse(
        status_code=429,
        content={
            "ok": False,
            "error": "rate_limited",
            "message": f"Too many requests. Try again in {settings.RATE_LIMIT_SECONDS}s.",
        },
        headers={"Retry-After": str(settings.RATE_LIMIT_SECONDS)},
    )


routes.register_routes(app)

if __name__ == "__main__":
    import uvicorn

    reload = settings.APP_ENV == Environment.DEV
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=reload)
