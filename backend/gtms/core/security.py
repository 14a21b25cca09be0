"""
Bearer-token authentication. Tokens are issued elsewhere (auth service); here we only verify
the HS256 signature and read the userId / role claims.
"""
from dataclasses import dataclass

import jwt
from fastapi import Header

from gtms.config import settings
from gtms.core.errors import STATUS_FORBIDDEN, STATUS_UNAUTHORIZED, ApiError

ROLE_PATIENT = "patient"


@dataclass(frozen=True)
class CurrentUser:
    user_id: str
    role: str


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise ApiError(STATUS_UNAUTHORIZED, "TOKEN_EXPIRED", "Token expired")
    except jwt.InvalidTokenError:
        raise ApiError(STATUS_FORBIDDEN, "TOKEN_INVALID", "Invalid token")


def get_current_user(authorization: str | None = Header(None)) -> CurrentUser:
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise ApiError(STATUS_UNAUTHORIZED, "TOKEN_REQUIRED", "Access token required")
    claims = decode_token(token.strip())
    user_id = claims.get("userId")
    if not user_id:
        raise ApiError(STATUS_FORBIDDEN, "TOKEN_INVALID", "Invalid token")
    return CurrentUser(user_id=str(user_id), role=str(claims.get("role") or ""))


def get_current_patient(authorization: str | None = Header(None)) -> CurrentUser:
    user = get_current_user(authorization)
    if user.role != ROLE_PATIENT:
        raise ApiError(STATUS_FORBIDDEN, "INSUFFICIENT_PERMISSIONS", "Access denied. Patient role required.")
    return user
