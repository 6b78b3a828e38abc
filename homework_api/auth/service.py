"""Authentication service and the current-actor dependencies."""
import logging
from datetime import datetime, timedelta, UTC
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..access import Actor
from ..database import get_db
from ..errors import AuthenticationRequired, DuplicateEmailError
from ..models import Lifecycle, User
from ..schemas import UserCreate
from .credentials import hash_password, needs_rehash, verify_password
from .models import (
    ALGORITHM,
    SECRET_KEY,
    SESSION_COOKIE_NAME,
    SESSION_EXPIRE_MINUTES,
    TokenData,
)

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/login", auto_error=False)


class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def create_session_token(self, user: User, expires_delta: Optional[timedelta] = None) -> str:
        """Create a signed session token for ``user``."""
        expire = datetime.now(UTC) + (expires_delta or timedelta(minutes=SESSION_EXPIRE_MINUTES))
        to_encode = {"sub": str(user.id), "role": user.role.value, "exp": expire}
        return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

    def verify_token(self, token: str) -> TokenData:
        """Verify and decode a session token."""
        try:
            payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
            subject = payload.get("sub")
            if subject is None:
                raise AuthenticationRequired("Could not validate credentials")
            return TokenData(user_id=int(subject), role=payload.get("role"))
        except (JWTError, ValueError):
            raise AuthenticationRequired("Could not validate credentials")

    def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """Authenticate a user with email and password."""
        user = self.db.query(User).filter(User.email == email).first()
        if not user or user.lifecycle != Lifecycle.active:
            return None
        if not verify_password(password, user.password_hash):
            return None
        if needs_rehash(user.password_hash):
            user.password_hash = hash_password(password)
            self.db.commit()
            logger.info(f"Re-hashed legacy credential for user {user.id}")
        return user

    def register_user(self, user_data: UserCreate) -> User:
        """Create a user with a freshly hashed password."""
        email = user_data.email.lower()
        if self.db.query(User).filter(User.email == email).first():
            raise DuplicateEmailError()

        user = User(
            email=email,
            name=user_data.name,
            role=user_data.role,
            branch_id=user_data.branch_id,
            phone=user_data.phone,
            birth_date=user_data.birth_date,
            password_hash=hash_password(user_data.password),
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateEmailError()
        self.db.refresh(user)
        logger.info(f"Registered user {user.id} as {user.role.value}")
        return user

    def resolve_actor(self, token: str) -> Actor:
        """Turn a session token into an actor, re-reading the user row."""
        token_data = self.verify_token(token)
        user = self.db.get(User, token_data.user_id)
        if user is None or user.lifecycle != Lifecycle.active:
            raise AuthenticationRequired("Could not validate credentials")
        return Actor(user_id=user.id, role=user.role, email=user.email, name=user.name)


def _session_token(request: Request, bearer: Optional[str]) -> Optional[str]:
    return bearer or request.cookies.get(SESSION_COOKIE_NAME)


def get_current_actor(
    request: Request,
    bearer: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> Actor:
    """Dependency to get the acting user from the session cookie or bearer token."""
    token = _session_token(request, bearer)
    if not token:
        raise AuthenticationRequired()
    return AuthService(db).resolve_actor(token)


def get_current_user(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> User:
    """Dependency to get the current user row."""
    user = db.get(User, actor.user_id)
    if user is None:
        raise AuthenticationRequired()
    return user

