from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from clubpay.core.settings import settings
from clubpay.db.session import SessionLocal
from clubpay.services.data_sources import CompensationStore, SqlCompensationStore
from clubpay.services.errors import (
    DataSourceError,
    PayoutError,
    RecordNotFoundError,
    SchemeConfigurationError,
    StalePayoutError,
)

logger = logging.getLogger("compensation")


def get_session_factory() -> Callable[[], Session]:
    return SessionLocal


def get_compensation_store() -> CompensationStore:
    return SqlCompensationStore(SessionLocal, max_concurrency=settings.summary_max_concurrency)


@contextmanager
def compensation_errors() -> Iterator[None]:
    """Translate engine errors raised inside the block into HTTP errors."""
    try:
        yield
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except StalePayoutError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except PayoutError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SchemeConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except DataSourceError as exc:
        logger.error("compensation data source failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Compensation data unavailable"
        ) from exc
    except TimeoutError as exc:
        logger.error("compensation request timed out")
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail="Compensation calculation timed out"
        ) from exc
