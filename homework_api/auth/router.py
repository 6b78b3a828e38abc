"""Authentication router: login, registration, logout and the session user."""
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..errors import AuthenticationRequired
from ..models import User
from ..schemas import UserCreate, UserResponse
from .models import LoginRequest, SESSION_COOKIE_NAME, SESSION_COOKIE_SECURE, SESSION_EXPIRE_MINUTES
from .service import AuthService, get_current_user

router = APIRouter(prefix="/api", tags=["Authentication"])


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    """Dependency to get an instance of AuthService."""
    return AuthService(db)


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        httponly=True,
        max_age=SESSION_EXPIRE_MINUTES * 60,
        samesite="lax",
        secure=SESSION_COOKIE_SECURE,
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register_user(
    user_data: UserCreate,
    response: Response,
    service: AuthService = Depends(get_auth_service),
):
    """Register a new user and start a session for them."""
    user = service.register_user(user_data)
    _set_session_cookie(response, service.create_session_token(user))
    return user


@router.post("/login", response_model=UserResponse)
def login(
    credentials: LoginRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
):
    """Validate credentials and start a session."""
    user = service.authenticate_user(credentials.email.lower(), credentials.password)
    if not user:
        raise AuthenticationRequired("Invalid email or password")
    _set_session_cookie(response, service.create_session_token(user))
    return user


@router.post("/logout")
def logout(response: Response):
    """End the current session."""
    response.delete_cookie(SESSION_COOKIE_NAME)
    return {"message": "Logged out"}


@router.get("/user", response_model=UserResponse)
def read_current_user(current_user: User = Depends(get_current_user)):
    """Get the current session user."""
    return current_user
