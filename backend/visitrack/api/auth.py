import logging
from fastapi import APIRouter, Depends, Request
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from slowapi import Limiter
from slowapi.util import get_remote_address

from ..config import settings
from ..core.security import authenticate_user, create_access_token, get_current_user
from ..database import get_db
from ..errors import ForbiddenError, UnauthorizedError
from ..models import User
from ..schemas.user import Token, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])
limiter = Limiter(key_func=get_remote_address)


@router.post("/login", response_model=Token)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """
    Exchange username and password for an access token.

    Rate limited per client address.
    """
    user = authenticate_user(db, form_data.username, form_data.password)

    if not user:
        logger.warning("Failed login for %r from %s", form_data.username, get_remote_address(request))
        raise UnauthorizedError("Incorrect username or password")

    if not user.is_active:
        raise ForbiddenError("Inactive user")

    access_token = create_access_token(data={"sub": user.username})
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=UserResponse)
async def read_current_user(current_user: User = Depends(get_current_user)):
    return current_user
