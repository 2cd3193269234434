import base64
import hashlib
import hmac
import json
import os
import secrets
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from fastapi import Cookie, Header, HTTPException

from app.core.db import SessionLocal, run_migrations
from app.core.models import UserAccount
from config.settings import get_settings


ALLOWED_ROLES = {"admin", "editor"}


@dataclass
class AuthContext:
    user_id: int
    email: str
    role: str


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("utf-8").rstrip("=")


def _b64url_decode(raw: str) -> bytes:
    padding = "=" * (-len(raw) % 4)
    return base64.urlsafe_b64decode(raw + padding)


def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, 200_000)
    return f"pbkdf2_sha256$200000${_b64url_encode(salt)}${_b64url_encode(digest)}"


def verify_password(password: str, password_hash: str) -> bool:
    try:
        algo, rounds_raw, salt_b64, digest_b64 = password_hash.split("$", 3)
        if algo != "pbkdf2_sha256":
            return False
        rounds = int(rounds_raw)
        salt = _b64url_decode(salt_b64)
        expected = _b64url_decode(digest_b64)
        actual = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
        return hmac.compare_digest(actual, expected)
    except (ValueError, TypeError):
        return False


def create_access_token(
    *,
    user_id: int,
    email: str,
    role: str,
    ttl_seconds: int | None = None,
) -> str:
    settings = get_settings()
    if ttl_seconds is None:
        exp_at = datetime.now(timezone.utc) + timedelta(hours=max(1, settings.auth_token_ttl_hours))
    else:
        exp_at = datetime.now(timezone.utc) + timedelta(seconds=int(ttl_seconds))
    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "exp": int(exp_at.timestamp()),
        "jti": str(uuid4()),
    }
    payload_raw = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
    payload_part = _b64url_encode(payload_raw)
    sig = hmac.new(settings.auth_secret.encode("utf-8"), payload_part.encode("utf-8"), hashlib.sha256).digest()
    return f"{payload_part}.{_b64url_encode(sig)}"


def decode_access_token(token: str) -> dict:
    settings = get_settings()
    try:
        payload_part, sig_part = token.split(".", 1)
        expected_sig = hmac.new(
            settings.auth_secret.encode("utf-8"),
            payload_part.encode("utf-8"),
            hashlib.sha256,
        ).digest()
        if not hmac.compare_digest(_b64url_encode(expected_sig), sig_part):
            raise HTTPException(status_code=401, detail="Invalid token signature")
        payload = json.loads(_b64url_decode(payload_part))
        exp = int(payload.get("exp", 0))
        if exp < int(datetime.now(timezone.utc).timestamp()):
            raise HTTPException(status_code=401, detail="Token expired")
        if payload.get("role") not in ALLOWED_ROLES:
            raise HTTPException(status_code=401, detail="Invalid token role")
        return payload
    except HTTPException:
        raise
    except (ValueError, TypeError):
        raise HTTPException(status_code=401, detail="Invalid token")


def _resolve_context_from_payload(payload: dict) -> AuthContext:
    db = SessionLocal()
    try:
        user = db.query(UserAccount).filter(UserAccount.id == int(payload["sub"])).first()
        if not user or not user.is_active:
            raise HTTPException(status_code=401, detail="User not found or inactive")
        return AuthContext(user_id=user.id, email=user.email, role=user.role)
    finally:
        db.close()


def get_current_user(
    authorization: str | None = Header(default=None),
    lingua_access_token: str | None = Cookie(default=None),
) -> AuthContext:
    if authorization and authorization.startswith("Bearer "):
        payload = decode_access_token(authorization.removeprefix("Bearer ").strip())
        return _resolve_context_from_payload(payload)
    if lingua_access_token:
        payload = decode_access_token(lingua_access_token)
        return _resolve_context_from_payload(payload)
    raise HTTPException(status_code=401, detail="Missing bearer token")


def require_role(user: AuthContext, allowed_roles: set[str]) -> None:
    if user.role not in allowed_roles:
        raise HTTPException(status_code=403, detail="Insufficient role")


def require_admin(user: AuthContext) -> None:
    require_role(user, {"admin"})


def _validate_admin_password(password: str) -> None:
    """Refuse startup if admin password is weak or default."""
    weak_defaults = {"password123", "password", "admin", "admin123", "changeme", "12345678", ""}
    if password.lower() in weak_defaults:
        sys.exit(
            "\n[LINGUA STARTUP BLOCKED]\n"
            "SYSTEM_ADMIN_PASSWORD is weak or uses a known default value.\n"
            "Set a strong password (>=12 chars) in your .env file.\n"
        )
    if len(password) < 12:
        sys.exit(
            "\n[LINGUA STARTUP BLOCKED]\n"
            f"SYSTEM_ADMIN_PASSWORD must be at least 12 characters (got {len(password)}).\n"
        )


def ensure_default_admin() -> None:
    settings = get_settings()
    admin_email = (os.getenv("SYSTEM_ADMIN_EMAIL") or settings.system_admin_email).strip().lower()
    admin_password = os.getenv("SYSTEM_ADMIN_PASSWORD") or settings.system_admin_password
    if settings.is_production:
        _validate_admin_password(admin_password)
    run_migrations()
    db = SessionLocal()
    try:
        user = db.query(UserAccount).filter(UserAccount.email == admin_email).first()
        if not user:
            user = UserAccount(
                email=admin_email,
                full_name="System Admin",
                role="admin",
                password_hash=hash_password(admin_password),
                is_active=True,
            )
            db.add(user)
            db.commit()
    finally:
        db.close()
