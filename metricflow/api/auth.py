"""Authentication routes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ..errors import MetricFlowError, PostCreateSignInError, ValidationError, failure_boundary
from ..identity import IdentityProvider
from ..schemas import (
    AuthResponse,
    Identity,
    LoginRequest,
    RecoverRequest,
    SignupRequest,
    SuccessResponse,
    UserResponse,
)
from .dependencies import get_identity_dependency, get_token_dependency

logger = logging.getLogger(__name__)


def get_auth_router(provider: IdentityProvider, password_reset_redirect_url: str | None = None) -> APIRouter:
    router = APIRouter(prefix="/auth", tags=["auth"])
    current_identity = get_identity_dependency(provider)
    current_token = get_token_dependency()

    @router.post("/signup", response_model=AuthResponse)
    async def signup(payload: SignupRequest) -> AuthResponse:
        if not (payload.email and payload.password and payload.full_name):
            raise ValidationError("Email, password, and full name are required")

        email = payload.email.strip()
        metadata = {
            "full_name": payload.full_name.strip(),
            "business_name": (payload.business_name or "").strip(),
        }
        with failure_boundary("Failed to sign up"):
            user = await provider.create_user(email, payload.password, metadata)
            logger.info("Created account %s", user.id)
            try:
                session = await provider.sign_in(email, payload.password)
            except MetricFlowError as exc:
                logger.warning("Auto sign-in failed for new account %s: %s", user.id, exc.message)
                raise PostCreateSignInError(f"Account created but sign-in failed: {exc.message}") from exc
        return AuthResponse(user=user, session=session)

    @router.post("/login", response_model=AuthResponse)
    async def login(payload: LoginRequest) -> AuthResponse:
        with failure_boundary("Failed to log in"):
            session = await provider.sign_in(payload.email, payload.password)
        logger.info("Signed in account %s", session.user.id)
        return AuthResponse(user=session.user, session=session)

    @router.post("/logout", response_model=SuccessResponse)
    async def logout(token: str = Depends(current_token)) -> SuccessResponse:
        with failure_boundary("Failed to log out"):
            await provider.sign_out(token)
        return SuccessResponse()

    @router.post("/recover", response_model=SuccessResponse)
    async def recover(payload: RecoverRequest) -> SuccessResponse:
        with failure_boundary("Failed to send reset email"):
            await provider.send_password_reset(payload.email, payload.redirect_to or password_reset_redirect_url)
        return SuccessResponse()

    @router.get("/user", response_model=UserResponse)
    async def current_user(identity: Identity = Depends(current_identity)) -> UserResponse:
        return UserResponse(user=identity)

    return router


__all__ = ["get_auth_router"]
