"""Helpers shared by the services for talking to the document store."""

import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, TypeVar

from pydantic import BaseModel

from core.errors import OperationFailedError, StoreUnavailableError
from utils.clock import to_utc

logger = logging.getLogger(__name__)

R = TypeVar("R")


def stamp(moment: datetime) -> str:
    """
    Fixed-width UTC timestamp string.

    Always carries microseconds so that string order equals time order in
    every store (Postgres orders by data->>'created_at').
    """
    return to_utc(moment).isoformat(timespec="microseconds")


def to_document_value(value: Any) -> Any:
    """Convert a Python/pydantic value into its stored JSON form."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return stamp(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, list):
        return [to_document_value(v) for v in value]
    if isinstance(value, dict):
        return {k: to_document_value(v) for k, v in value.items()}
    return value


def to_document(fields: dict[str, Any]) -> dict[str, Any]:
    return {key: to_document_value(value) for key, value in fields.items()}


def store_call(operation: str, fn: Callable[..., R], *args) -> R:
    """
    Run a store call, turning backend failures into OperationFailedError.

    The original error is logged with its traceback and chained.
    """
    try:
        return fn(*args)
    except StoreUnavailableError as e:
        logger.exception(f"Store failure while trying to {operation}")
        raise OperationFailedError(operation) from e
