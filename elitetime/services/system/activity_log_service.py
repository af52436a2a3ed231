import logging
from datetime import date
from typing import Any, Dict, List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from elitetime.models.auth.activity_log import ActivityLog
from elitetime.models.shared.enums import ActivityType
from elitetime.utils.time_utils import day_bounds, utcnow

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 200
DEFAULT_REPORT_LIMIT = 2000
MAX_REPORT_LIMIT = 10000


class ActivityLogService:
    """
    Append-only audit trail.

    ``create_activity_log`` is best effort: it never raises and reports
    failures as ``{"success": False, "error": ...}``. The row is written in a
    savepoint of the caller's session and the caller's session is never rolled
    back, so objects the caller already loaded stay usable after a failure.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_activity_log(
        self,
        user_id: Optional[int],
        action: str,
        details: Optional[str],
        type: ActivityType,
    ) -> Dict[str, Any]:
        try:
            # A failed write only unwinds this savepoint; the caller's objects stay loaded
            async with self.session.begin_nested():
                log = ActivityLog(
                    user_id=user_id,
                    action=action,
                    details=details,
                    type=ActivityType(type),
                    timestamp=utcnow(),
                )
                self.session.add(log)
            await self.session.commit()
            return {"success": True, "log": log}
        except Exception as e:
            logger.error(f"Failed to create activity log ({action}): {e}")
            return {"success": False, "error": str(e)}

    # ---------- Listing ----------
    async def get_activity_logs(self, limit: int = DEFAULT_LIST_LIMIT) -> List[ActivityLog]:
        result = await self.session.execute(
            select(ActivityLog)
            .options(selectinload(ActivityLog.user))
            .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_logs_between(
        self,
        start: date,
        end: date,
        limit: int = DEFAULT_REPORT_LIMIT,
        type: Optional[ActivityType] = None,
    ) -> List[ActivityLog]:
        limit = max(1, min(limit, MAX_REPORT_LIMIT))
        begin, finish = day_bounds(start, end)
        query = (
            select(ActivityLog)
            .options(selectinload(ActivityLog.user))
            .where(ActivityLog.timestamp >= begin, ActivityLog.timestamp <= finish)
        )
        if type is not None:
            query = query.where(ActivityLog.type == ActivityType(type))
        result = await self.session.execute(
            query.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc()).limit(limit)
        )
        return list(result.scalars().all())
