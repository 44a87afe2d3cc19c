"""Staff accounts and bearer-token sessions."""

import asyncio
import hashlib
import hmac
import logging
import secrets
from datetime import UTC, datetime, timedelta

from carechat.config import SESSION_TTL_HOURS
from carechat.models.auth import Profile, Session, SignInRequest, SignUpRequest
from carechat.storage import Storage, eq, now_iso

logger = logging.getLogger(__name__)

_ALGO = "pbkdf2_sha256"
_ITERATIONS = 210000

PROFILE_COLUMNS = ("id", "email", "full_name", "role", "department", "created_at")


class AuthError(Exception):
    """Bad credentials or an unknown/expired session."""


class SignUpError(ValueError):
    pass


def _hash_password(raw_password: str, salt: bytes | None = None) -> str:
    salt = salt or secrets.token_bytes(16)
    dk = hashlib.pbkdf2_hmac("sha256", raw_password.encode("utf-8"), salt, _ITERATIONS)
    return f"{_ALGO}${_ITERATIONS}${salt.hex()}${dk.hex()}"


def _verify_password(raw_password: str, stored: str) -> bool:
    try:
        algo, iters, salt_hex, hash_hex = (stored or "").split("$", 3)
        if algo != _ALGO:
            return False
        iterations = int(iters)
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(hash_hex)
    except ValueError:
        return False
    actual = hashlib.pbkdf2_hmac("sha256", raw_password.encode("utf-8"), salt, iterations)
    return hmac.compare_digest(actual, expected)


def _profile(row: dict) -> Profile:
    return Profile.model_validate({k: row.get(k) for k in PROFILE_COLUMNS})


async def _create_session(storage: Storage, profile: Profile) -> Session:
    expires_at = (datetime.now(UTC) + timedelta(hours=SESSION_TTL_HOURS)).isoformat()
    result = await storage.insert(
        "sessions",
        {"token": secrets.token_urlsafe(32), "user_id": profile.id, "expires_at": expires_at},
    )
    if not result.ok:
        raise AuthError(f"Could not start a session: {result.error}")
    return Session(access_token=result.data["token"], expires_at=expires_at, user=profile)


async def sign_up(storage: Storage, body: SignUpRequest) -> Session:
    email = body.email.strip().lower()
    existing = await storage.select_one("profiles", [eq("email", email)], columns=("id",))
    if not existing.ok:
        raise SignUpError(existing.error)
    if existing.data:
        raise SignUpError("An account with this email already exists.")

    password_hash = await asyncio.to_thread(_hash_password, body.password)
    result = await storage.insert(
        "profiles",
        {
            "email": email,
            "full_name": body.full_name,
            "role": body.role,
            "department": body.department,
            "password_hash": password_hash,
        },
    )
    if not result.ok:
        raise SignUpError(result.error)
    profile = _profile(result.data)
    logger.info("Created %s account %s", profile.role, profile.id)
    return await _create_session(storage, profile)


async def sign_in(storage: Storage, body: SignInRequest) -> Session:
    result = await storage.select_one("profiles", [eq("email", body.email.strip().lower())])
    if not result.ok:
        raise AuthError(result.error)
    row = result.data
    if not row or not await asyncio.to_thread(_verify_password, body.password, row["password_hash"]):
        logger.info("Failed sign-in for %s", body.email)
        raise AuthError("Invalid email or password.")
    return await _create_session(storage, _profile(row))


async def sign_out(storage: Storage, token: str) -> None:
    result = await storage.delete("sessions", [eq("token", token)])
    if not result.ok:
        logger.warning("Could not delete session: %s", result.error)


async def get_user_for_token(storage: Storage, token: str | None) -> Profile | None:
    if not token:
        return None
    session = await storage.select_one("sessions", [eq("token", token)])
    if not session.ok or not session.data:
        return None
    if session.data["expires_at"] <= now_iso():
        logger.info("Session for user %s expired", session.data["user_id"])
        await storage.delete("sessions", [eq("token", token)])
        return None
    profile = await storage.select_one("profiles", [eq("id", session.data["user_id"])], columns=PROFILE_COLUMNS)
    if not profile.ok or not profile.data:
        return None
    return _profile(profile.data)
