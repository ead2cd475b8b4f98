"""
PharmaStock API Dependencies

One AlertEngine per process, injected into every router, plus the mapping
from domain errors to HTTP responses.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache

from fastapi import HTTPException

from alerts.engine import AlertEngine, build_engine
from core.config import get_settings
from core.errors import InvalidAmount, InvalidRange, InvalidTransition, NotFound


@lru_cache
def get_engine() -> AlertEngine:
    """Process-wide engine. Tests override this dependency with a fresh one."""
    return build_engine(get_settings())


@contextmanager
def domain_errors() -> Iterator[None]:
    """Translate domain errors raised inside the block into HTTPExceptions."""
    try:
        yield
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except InvalidTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except (InvalidRange, InvalidAmount) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
