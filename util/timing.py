# util/timing.py
import asyncio
import time
from contextlib import contextmanager
from typing import Any, Awaitable, Iterator, TypeVar
import logging

T = TypeVar("T")


@contextmanager
def timed(logger: logging.Logger, name: str, **kv: Any) -> Iterator[None]:
    """
    Usage:
      with timed(logger, "extract.pdf", pages=10):
          ...
    Emits one INFO on exit: "<name>.done ms=<int> key=val ..."
    """
    t0 = time.perf_counter()
    try:
        yield
    finally:
        dt_ms = int((time.perf_counter() - t0) * 1000)
        suffix = "".join(f" {k}={v}" for k, v in kv.items())
        logger.info("%s.done ms=%d%s", name, dt_ms, suffix)


async def bounded(aw: Awaitable[T], seconds: float, label: str) -> T:
    """
    Await `aw` for at most `seconds`.

    Expiry raises TimeoutError with `label` in the message; callers handle it
    exactly like any other backend failure. Cancellation of the caller still
    propagates into `aw`.
    """
    try:
        return await asyncio.wait_for(aw, timeout=seconds)
    except asyncio.TimeoutError as e:
        raise TimeoutError(f"{label} timed out after {seconds:g}s") from e
