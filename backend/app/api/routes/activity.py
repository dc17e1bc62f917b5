from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_schedule_manager
from app.models.activity_log import ActivityLog
from app.models.user import User
from app.schemas.activity import ActivityLogOut

router = APIRouter()


@router.get("/activity/logs", response_model=list[ActivityLogOut])
def list_activity_logs(
    academic_term_id: str | None = None,
    action: str | None = None,
    limit: int = Query(default=200, ge=1, le=500),
    current_user: User = Depends(require_schedule_manager),
    db: Session = Depends(get_db),
) -> list[ActivityLogOut]:
    query = select(ActivityLog).order_by(ActivityLog.created_at.desc(), ActivityLog.id)
    if academic_term_id:
        query = query.where(ActivityLog.academic_term_id == academic_term_id)
    if action:
        query = query.where(ActivityLog.action == action)
    return list(db.execute(query.limit(limit)).scalars())
