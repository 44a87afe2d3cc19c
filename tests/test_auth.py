"""Tests for staff accounts and sessions."""

import threading
from unittest.mock import patch

import pytest

from carechat.models.auth import SignInRequest, SignUpRequest
from carechat.services import auth
from carechat.storage import eq


def signup(**overrides):
    data = {"email": "Nia@Example.com", "password": "long-enough", "full_name": "Nia Doctor", "role": "doctor"}
    data.update(overrides)
    return SignUpRequest(**data)


class TestPasswords:
    def test_hash_round_trip(self):
        stored = auth._hash_password("correct horse")
        assert stored.startswith("pbkdf2_sha256$")
        assert auth._verify_password("correct horse", stored)
        assert not auth._verify_password("wrong horse", stored)

    def test_malformed_hash(self):
        assert not auth._verify_password("x", "not-a-hash")

    async def test_hashing_runs_off_the_event_loop_thread(self, storage):
        loop_thread = threading.get_ident()
        threads = []
        real_hash, real_verify = auth._hash_password, auth._verify_password

        def hash_password(*args):
            threads.append(threading.get_ident())
            return real_hash(*args)

        def verify_password(*args):
            threads.append(threading.get_ident())
            return real_verify(*args)

        with (
            patch.object(auth, "_hash_password", hash_password),
            patch.object(auth, "_verify_password", verify_password),
        ):
            await auth.sign_up(storage, signup())
            await auth.sign_in(storage, SignInRequest(email="nia@example.com", password="long-enough"))

        assert len(threads) == 2
        assert loop_thread not in threads


class TestSessions:
    async def test_sign_up_then_sign_in(self, storage):
        session = await auth.sign_up(storage, signup())
        assert session.user.email == "nia@example.com"
        assert session.user.role == "doctor"

        again = await auth.sign_in(storage, SignInRequest(email="nia@example.com", password="long-enough"))
        assert again.access_token != session.access_token
        assert (await auth.get_user_for_token(storage, again.access_token)).id == session.user.id

    async def test_duplicate_email(self, storage):
        await auth.sign_up(storage, signup())
        with pytest.raises(auth.SignUpError, match="already exists"):
            await auth.sign_up(storage, signup(email="nia@example.com"))

    async def test_invalid_role(self, storage):
        with pytest.raises(auth.SignUpError, match="Role must be doctor or intern."):
            await auth.sign_up(storage, signup(role="admin"))

    async def test_wrong_password(self, storage):
        await auth.sign_up(storage, signup())
        with pytest.raises(auth.AuthError):
            await auth.sign_in(storage, SignInRequest(email="nia@example.com", password="nope-nope"))

    async def test_sign_out(self, storage):
        session = await auth.sign_up(storage, signup())
        await auth.sign_out(storage, session.access_token)
        assert await auth.get_user_for_token(storage, session.access_token) is None

    async def test_expired_session(self, storage):
        session = await auth.sign_up(storage, signup())
        await storage.update("sessions", session.access_token, {"expires_at": "2000-01-01T00:00:00+00:00"})

        assert await auth.get_user_for_token(storage, session.access_token) is None
        remaining = await storage.count("sessions", [eq("token", session.access_token)])
        assert remaining.data == 0
