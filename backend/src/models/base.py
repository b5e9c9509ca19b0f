"""
Base model for records received from the practice API.

Records arrive as camelCase JSON. They are read-only snapshots: the engine never
writes them back, so models are frozen once validated.
"""

import logging
from typing import Any, Iterable, List, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound="RecordModel")


class RecordModel(BaseModel):
    """Base class for external records (camelCase aliases, immutable)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )


def parse_records(raw_records: Iterable[Any], model: Type[RecordT]) -> List[RecordT]:
    """
    Validate raw API records, dropping malformed ones.

    A record that fails validation (non-numeric amount, unparseable date,
    missing id) is treated as "not yet a valid record" and excluded rather
    than raised. Already-validated instances pass through unchanged.

    Args:
        raw_records: Iterable of dicts (or model instances)
        model: Record model to validate against

    Returns:
        List of valid records, in input order
    """
    records: List[RecordT] = []
    dropped = 0
    for raw in raw_records:
        if isinstance(raw, model):
            records.append(raw)
            continue
        try:
            records.append(model.model_validate(raw))
        except ValidationError as e:
            dropped += 1
            logger.debug(f"Dropping malformed {model.__name__} record: {e.error_count()} validation error(s)")
    if dropped:
        logger.debug(f"Dropped {dropped} malformed {model.__name__} record(s) out of {dropped + len(records)}")
    return records
