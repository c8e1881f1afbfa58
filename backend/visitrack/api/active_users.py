from typing import List
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..core.security import Caller, require_api_access
from ..database import get_db
from ..errors import BadRequestError, NotFoundError
from ..schemas.active_user import ActiveUser, Heartbeat
from ..services.active_users import ActiveUserStore
from ..services.statistics import record_user_activity

router = APIRouter(prefix="/active-users", tags=["active-users"])


def get_active_user_store(request: Request) -> ActiveUserStore:
    return request.app.state.active_users


@router.post("/heartbeat", response_model=ActiveUser)
def heartbeat(
    beat: Heartbeat,
    caller: Caller = Depends(require_api_access),
    store: ActiveUserStore = Depends(get_active_user_store),
    db: Session = Depends(get_db)
):
    """
    Mark a dashboard user as active.

    Signed-in admins are identified by their token; API clients must pass
    ``user_id``.
    """
    if caller.user is not None:
        record_user_activity(db, caller.user, beat.current_page)
        return store.touch(
            str(caller.user.id),
            name=beat.name or caller.user.username,
            email=beat.email or caller.user.email,
            current_page=beat.current_page,
        )

    if not beat.user_id:
        raise BadRequestError("user_id is required for API clients")

    return store.touch(beat.user_id, name=beat.name, email=beat.email, current_page=beat.current_page)


@router.get("", response_model=List[ActiveUser], dependencies=[Depends(require_api_access)])
def list_active_users(store: ActiveUserStore = Depends(get_active_user_store)):
    """Users active within the configured window"""
    return store.list_active()


@router.delete("/{user_id}", dependencies=[Depends(require_api_access)])
def end_session(user_id: str, store: ActiveUserStore = Depends(get_active_user_store)):
    if not store.remove(user_id):
        raise NotFoundError("Session not found", user_id=user_id)
    return {"message": "Session ended successfully"}
