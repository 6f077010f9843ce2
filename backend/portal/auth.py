# backend/portal/auth.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

import jwt
from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .domain.enums import Role
from .middleware.request_id import tag_principal
from .models import AppUser


@dataclass(frozen=True)
class Principal:
    user_id: int
    email: str
    role: str  # ADMIN | TENANT

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


# -------------------------
# JWT helpers
# -------------------------
def create_access_token(user: AppUser, *, expires_minutes: Optional[int] = None) -> str:
    now = datetime.utcnow()
    payload: dict[str, Any] = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes or settings.jwt_exp_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def _decode_token(token: str) -> dict[str, Any]:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def _principal(user: AppUser) -> Principal:
    return Principal(user_id=int(user.id), email=str(user.email), role=str(user.role))


# -------------------------
# get_principal
# -------------------------
def get_principal(
    request: Request,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Principal:
    """
    Auth modes supported (in priority order):
      1) Authorization: Bearer <token>
      2) dev header spoofing (ONLY if settings.auth_mode == "dev")
    """
    token = None
    if authorization and str(authorization).lower().startswith("bearer "):
        token = str(authorization).split(" ", 1)[1].strip()

    if token:
        claims = _decode_token(token)
        sub = str(claims.get("sub") or "")
        if not sub.isdigit():
            raise HTTPException(status_code=401, detail="Token missing sub")

        user = db.get(AppUser, int(sub))
        if user is None:
            raise HTTPException(status_code=401, detail="Unknown user")
        return tag_principal(request, _principal(user))

    if settings.auth_mode == "dev":
        email = (request.headers.get(settings.dev_header_user_email) or "").strip().lower()
        role_hint = (request.headers.get(settings.dev_header_user_role) or Role.TENANT.value).strip().upper()
        if not email:
            raise HTTPException(status_code=401, detail=f"Missing {settings.dev_header_user_email} for dev auth")

        user = db.scalar(select(AppUser).where(AppUser.email == email))
        if user is None and settings.dev_auto_provision:
            role = role_hint if role_hint in (Role.ADMIN.value, Role.TENANT.value) else Role.TENANT.value
            user = AppUser(email=email, full_name=email.split("@")[0], role=role, created_at=datetime.utcnow())
            db.add(user)
            db.commit()
            db.refresh(user)

        if user is None:
            raise HTTPException(status_code=401, detail="Dev auth could not provision user")

        # the stored role wins over the header once the user exists
        return tag_principal(request, _principal(user))

    raise HTTPException(status_code=401, detail="Not authenticated")


def require_admin(p: Principal = Depends(get_principal)) -> Principal:
    if p.role != Role.ADMIN.value:
        raise HTTPException(status_code=403, detail="Admin access required")
    return p


def require_tenant(p: Principal = Depends(get_principal)) -> Principal:
    if p.role != Role.TENANT.value:
        raise HTTPException(status_code=403, detail="Tenant access required")
    return p
