import secrets

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.core.auth import AuthContext, create_access_token, get_current_user, verify_password
from app.core.db import SessionLocal
from app.core.models import UserAccount
from app.gateway.schemas import LoginRequest

logger = structlog.get_logger()

router = APIRouter(prefix="/auth", tags=["auth"])
AUTH_COOKIE = "lingua_access_token"
CSRF_COOKIE = "lingua_csrf_token"


def _set_auth_cookies(response: Response, token: str) -> None:
    # Secure cookie session for browser clients.
    response.set_cookie(
        key=AUTH_COOKIE,
        value=token,
        httponly=True,
        secure=True,
        samesite="lax",
        path="/",
    )
    response.set_cookie(
        key=CSRF_COOKIE,
        value=secrets.token_urlsafe(24),
        httponly=False,
        secure=True,
        samesite="lax",
        path="/",
    )


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


@router.post("/login")
async def login(req: LoginRequest, response: Response) -> dict:
    db = SessionLocal()
    try:
        email = _normalize_email(req.email)
        user = db.query(UserAccount).filter(UserAccount.email == email).first()
        if not user or not user.is_active or not verify_password(req.password, user.password_hash):
            logger.warning("auth.login_failed", email=email)
            raise HTTPException(status_code=401, detail="Invalid credentials")
        token = create_access_token(user_id=user.id, email=user.email, role=user.role)
        _set_auth_cookies(response, token)
        logger.info("auth.login", user_id=user.id)
        return {
            "access_token": token,
            "token_type": "bearer",
            "user": {"id": user.id, "email": user.email, "role": user.role},
        }
    finally:
        db.close()


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(response: Response) -> Response:
    response.delete_cookie(AUTH_COOKIE, path="/")
    response.delete_cookie(CSRF_COOKIE, path="/")
    response.status_code = status.HTTP_204_NO_CONTENT
    return response


@router.get("/me")
async def me(user: AuthContext = Depends(get_current_user)) -> dict:
    return {"id": user.user_id, "email": user.email, "role": user.role}
