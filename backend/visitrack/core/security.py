import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional
import jwt
from jwt.exceptions import InvalidTokenError
from passlib.context import CryptContext
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..errors import ForbiddenError, UnauthorizedError
from ..models import User

logger = logging.getLogger(__name__)

# Password hashing
# Use bcrypt 4.x compatible settings
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=12
)

# OAuth2 scheme
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except Exception:
        # Fallback for bcrypt 4.x
        import bcrypt
        try:
            return bcrypt.checkpw(
                plain_password.encode('utf-8'),
                hashed_password.encode('utf-8') if isinstance(hashed_password, str) else hashed_password
            )
        except ValueError:
            return False


def get_password_hash(password: str) -> str:
    """Hash a password"""
    try:
        return pwd_context.hash(password)
    except Exception:
        # Fallback for bcrypt 4.x
        import bcrypt
        hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt())
        return hashed.decode('utf-8')


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Data to encode in the token
        expires_delta: Token expiration time

    Returns:
        Encoded JWT token
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def authenticate_user(db: Session, username: str, password: str) -> Optional[User]:
    """
    Authenticate a user.

    Returns:
        User object if authenticated, None otherwise
    """
    user = db.query(User).filter(
        User.username == username,
        User.is_deleted == False
    ).first()

    if not user:
        return None

    if not verify_password(password, user.hashed_password):
        return None

    return user


def _user_from_token(db: Session, token: str) -> User:
    """Resolve and check the user a JWT was issued to"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except InvalidTokenError:
        raise UnauthorizedError("Invalid or expired token")

    username = payload.get("sub")
    if not username:
        raise UnauthorizedError("Invalid or expired token")

    user = db.query(User).filter(
        User.username == username,
        User.is_deleted == False
    ).first()

    if user is None:
        raise UnauthorizedError("User no longer exists")

    if not user.is_active:
        raise ForbiddenError("Inactive user")

    return user


def is_api_key(token: str) -> bool:
    """Constant-time comparison against the configured API key"""
    if not settings.API_SECRET_TOKEN or not token:
        return False
    return secrets.compare_digest(token.encode("utf-8"), settings.API_SECRET_TOKEN.encode("utf-8"))


class Caller:
    """Identity of an authenticated request"""
    def __init__(self, user: Optional[User] = None, is_api_client: bool = False):
        self.user = user
        self.is_api_client = is_api_client

    @property
    def name(self) -> str:
        if self.user is not None:
            return self.user.username
        return "api-client"


def require_api_access(request: Request, db: Session = Depends(get_db)) -> Caller:
    """
    Accept either an admin session token or the static API key.

    Supported headers:
        Authorization: Bearer <jwt>
        Authorization: ApiKey <token>
        Authorization: Bearer <token>   (token equal to the API key)

    Raises:
        UnauthorizedError: Missing, malformed or invalid credentials
        ForbiddenError: Token belongs to an inactive user
    """
    auth_header = request.headers.get("Authorization")
    client = request.client.host if request.client else "-"

    if not auth_header:
        raise UnauthorizedError("Authorization header required")

    scheme, _, token = auth_header.partition(" ")
    token = token.strip()
    scheme = scheme.lower()

    if scheme == "apikey":
        if is_api_key(token):
            return Caller(is_api_client=True)
        logger.warning("Invalid API key attempt from %s path=%s", client, request.url.path)
        raise UnauthorizedError("Invalid API token")

    if scheme == "bearer" and token:
        if is_api_key(token):
            return Caller(is_api_client=True)
        try:
            return Caller(user=_user_from_token(db, token))
        except UnauthorizedError:
            logger.warning("Rejected bearer token from %s path=%s", client, request.url.path)
            raise

    raise UnauthorizedError("Invalid authorization format")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """
    Get the current authenticated user from token.

    Raises:
        UnauthorizedError: If authentication fails
    """
    return _user_from_token(db, token)
