import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from carechat.models.auth import Profile, Session, SignInRequest, SignUpRequest
from carechat.services import auth
from carechat.storage import get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

_bearer = HTTPBearer(auto_error=False)


async def current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> Profile | None:
    """Profile for the bearer token, or None for anonymous callers."""
    if credentials is None:
        return None
    return await auth.get_user_for_token(await get_storage(), credentials.credentials)


async def require_user(user: Profile | None = Depends(current_user)) -> Profile:
    if user is None:
        raise HTTPException(status_code=401, detail="Not signed in")
    return user


@router.post("/sign-up", response_model=Session)
async def sign_up(body: SignUpRequest):
    """Create a staff account and start a session."""
    try:
        return await auth.sign_up(await get_storage(), body)
    except auth.SignUpError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/sign-in", response_model=Session)
async def sign_in(body: SignInRequest):
    try:
        return await auth.sign_in(await get_storage(), body)
    except auth.AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))


@router.post("/sign-out")
async def sign_out(credentials: HTTPAuthorizationCredentials | None = Depends(_bearer)):
    if credentials is not None:
        await auth.sign_out(await get_storage(), credentials.credentials)
    return {"status": "signed_out"}


@router.get("/session", response_model=Profile)
async def get_session(user: Profile = Depends(require_user)):
    """The signed-in profile."""
    return user
