"""
Activity Service — recent-activity feed

Writes are issued from background tasks, so record() opens its own session
instead of borrowing the (already closed) request session. Reads happen on
the request path and use the request session.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from app.db.session import session_scope
from app.models.activity import Activity, ActivityType

logger = logging.getLogger(__name__)

DEFAULT_FEED_LIMIT = 10
MAX_FEED_LIMIT = 50


def clamp_feed_limit(limit: int | None) -> int:
    if limit is None or limit <= 0:
        return DEFAULT_FEED_LIMIT
    return min(limit, MAX_FEED_LIMIT)


class ActivityService:

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory

    async def record(
        self,
        *,
        user_id: uuid.UUID,
        activity_type: ActivityType,
        subject_id: uuid.UUID | None = None,
        document_id: uuid.UUID | None = None,
        details: dict | None = None,
    ) -> Activity:
        """Insert one activity row in its own transaction."""
        activity = Activity(
            user_id=user_id,
            activity_type=activity_type.value,
            subject_id=subject_id,
            document_id=document_id,
            details=details or {},
        )
        async with session_scope(self._session_factory) as session:
            session.add(activity)

        logger.info(
            "Activity recorded | type=%s user=%s subject=%s doc=%s",
            activity_type.value, user_id, subject_id, document_id,
        )
        return activity

    @staticmethod
    async def recent(db: AsyncSession, limit: int | None = None) -> list[Activity]:
        """Newest first, with user, subject and (still existing) document loaded."""
        result = await db.execute(
            select(Activity)
            .options(
                selectinload(Activity.user),
                selectinload(Activity.subject),
                selectinload(Activity.document),
            )
            .order_by(Activity.created_at.desc())
            .limit(clamp_feed_limit(limit))
        )
        return list(result.scalars().all())
