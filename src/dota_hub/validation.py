"""Pydantic gate in front of the ingestor.

Raw dicts from OpenDota, the Liquipedia parser or the ``matches`` table are
validated here. A record that fails is logged, turned into a ``quarantine``
row for later review and dropped, so one malformed record never stops a
batch.

Usage::

    record = validate_and_quarantine(data, OpenDotaMatchModel, ctx, repo)
    if record is not None:
        game = ingest(record, SourceKind.OPENDOTA)
"""

import json
import logging
from datetime import datetime, timezone

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)


def quarantine_row(
    data: dict, model_cls: type[BaseModel], context: dict, error: ValidationError
) -> dict:
    """Build the ``quarantine`` table row for a rejected record."""
    match_id = context.get("match_id")
    return {
        "entity_type": model_cls.__name__,
        "match_id": None if match_id is None else str(match_id),
        "source": context.get("source"),
        "raw_data": json.dumps(data, default=str, ensure_ascii=False),
        "error_details": json.dumps(
            [
                {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
                for err in error.errors()
            ],
            ensure_ascii=False,
        ),
        "quarantined_at": datetime.now(timezone.utc).isoformat(),
        "resolved": 0,
    }


def validate_and_quarantine(
    data: dict,
    model_cls: type[BaseModel],
    context: dict,
    repo=None,
) -> BaseModel | None:
    """Validate *data* with *model_cls*; quarantine and return None on failure.

    Args:
        data: Raw record as received.
        model_cls: Model for the record's source (e.g. OpenDotaMatchModel).
        context: ``match_id`` and ``source``, used in the log line and the
            quarantine row.
        repo: MatchRepository. Without one nothing is written.
    """
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        logger.warning(
            "Rejected %s record %s (%s): %d validation error(s)",
            context.get("source"),
            context.get("match_id"),
            model_cls.__name__,
            e.error_count(),
        )
        logger.debug("Validation details for %s: %s", context.get("match_id"), e)
        if repo is None:
            return None

        try:
            repo.insert_quarantine(quarantine_row(data, model_cls, context, e))
        except Exception:
            logger.exception("Could not quarantine record %s", context.get("match_id"))
        return None
