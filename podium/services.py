"""Vote submission, status lookup, aggregation and the raw votes feed.

One-vote-per-fingerprint is enforced by the ``uniq_vote_fingerprint``
constraint. ``submit_vote`` never checks for an existing row first: it
inserts and translates the constraint violation, which is the only
check-then-write the database can make atomic.
"""

import logging
from collections.abc import Mapping

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from podium.errors import DuplicateVoteError, InternalError, ValidationError
from podium.models import (
    FINGERPRINT_MAX_LENGTH,
    IP_MAX_LENGTH,
    MAX_NUMBER,
    MIN_NUMBER,
    UNKNOWN_IP,
    USER_AGENT_MAX_LENGTH,
    Vote,
)
from podium.schemas import RankedNumber, ResultsResponse

logger = logging.getLogger(__name__)

PODIUM_SIZE = 3

FINGERPRINT_CONSTRAINT = "uniq_vote_fingerprint"
# SQLite names the column, not the constraint.
_SQLITE_FINGERPRINT_CONFLICT = "UNIQUE constraint failed: votes.fingerprint"


def _short(fingerprint: str) -> str:
    return f"{fingerprint[:8]}…" if len(fingerprint) > 8 else fingerprint


def _is_duplicate_fingerprint(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return FINGERPRINT_CONSTRAINT in message or _SQLITE_FINGERPRINT_CONFLICT in message


def _validate_number(number: object) -> int:
    # bool is an int subclass; True must not count as a vote for 1.
    if isinstance(number, bool) or not isinstance(number, int):
        raise ValidationError("number must be an integer")
    if not MIN_NUMBER <= number <= MAX_NUMBER:
        raise ValidationError(f"number must be between {MIN_NUMBER} and {MAX_NUMBER}")
    return number


def _validate_fingerprint(fingerprint: object) -> str:
    if not isinstance(fingerprint, str) or not fingerprint:
        raise ValidationError("fingerprint is required")
    if len(fingerprint) > FINGERPRINT_MAX_LENGTH:
        raise ValidationError("fingerprint is too long")
    return fingerprint


async def submit_vote(
    session: AsyncSession,
    number: int,
    fingerprint: str,
    ip: str | None = UNKNOWN_IP,
    user_agent: str | None = None,
) -> None:
    number = _validate_number(number)
    fingerprint = _validate_fingerprint(fingerprint)

    vote = Vote(
        number=number,
        fingerprint=fingerprint,
        ip=(ip or UNKNOWN_IP)[:IP_MAX_LENGTH],
        user_agent=user_agent[:USER_AGENT_MAX_LENGTH] if user_agent else None,
    )
    session.add(vote)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if not _is_duplicate_fingerprint(exc):
            logger.exception("Vote insert violated a storage constraint")
            raise InternalError() from exc
        logger.info("Duplicate vote rejected for fingerprint %s", _short(fingerprint))
        raise DuplicateVoteError() from None
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Vote insert failed")
        raise InternalError() from exc

    logger.info("Vote recorded: number=%d", number)


async def has_voted(session: AsyncSession, fingerprint: str | None) -> bool:
    if not fingerprint:
        raise ValidationError("fingerprint is required")

    try:
        result = await session.execute(
            select(Vote.id).where(Vote.fingerprint == fingerprint).limit(1)
        )
    except SQLAlchemyError as exc:
        logger.exception("Vote status lookup failed")
        raise InternalError() from exc
    return result.scalar_one_or_none() is not None


def rank_top(
    counts: Mapping[str | int, int], limit: int = PODIUM_SIZE
) -> list[RankedNumber]:
    """Most-voted numbers first; equal counts go to the smaller number."""
    ranked = sorted(
        ((int(number), count) for number, count in counts.items()),
        key=lambda item: (-item[1], item[0]),
    )
    return [RankedNumber(number=number, count=count) for number, count in ranked[:limit]]


async def aggregate_results(session: AsyncSession) -> ResultsResponse:
    try:
        counts_result = await session.execute(
            select(Vote.number, func.count(Vote.id))
            .group_by(Vote.number)
            .order_by(Vote.number)
        )
    except SQLAlchemyError as exc:
        logger.exception("Results aggregation failed")
        raise InternalError() from exc

    counts = {str(row[0]): int(row[1]) for row in counts_result.all()}
    return ResultsResponse(
        counts=counts,
        top3=rank_top(counts),
        totalVotes=sum(counts.values()),
    )


async def list_vote_numbers(session: AsyncSession) -> list[int]:
    # created_at has second resolution; id keeps same-second inserts in order.
    try:
        result = await session.execute(
            select(Vote.number).order_by(Vote.created_at, Vote.id)
        )
    except SQLAlchemyError as exc:
        logger.exception("Raw votes feed failed")
        raise InternalError() from exc
    return [int(number) for number in result.scalars().all()]
