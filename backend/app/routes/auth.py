"""
Project Gallery Backend — Login Route
"""

from fastapi import APIRouter

from app.dependencies import Auth, DBSession
from app.schemas.auth import LoginRequest, LoginResponse
from app.schemas.common import ErrorResponse

router = APIRouter(tags=["Auth"])


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Check a username and password",
)
async def login(payload: LoginRequest, db: DBSession, auth: Auth) -> LoginResponse:
    return await auth.authenticate(db, payload.username, payload.password)
