# backend/routers/auth_router.py
import logging
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession
from authlib.integrations.starlette_client import OAuthError

import config
from auth import clear_auth_cookie, get_current_user, oauth, set_auth_cookie, token_for
from database import get_session
from errors import ConflictError, ValidationError
from rate_limit import auth_rate_limit
from schemas import (
    ForgotPasswordRequest, GoogleProfile, LoginRequest, PasswordChangeRequest,
    ProfileUpdateRequest, ResetPasswordRequest, SessionUser, SignupRequest,
)
from services import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

@router.post("/signup", status_code=201, dependencies=[Depends(auth_rate_limit)])
async def signup(payload: SignupRequest, response: Response, session: AsyncSession = Depends(get_session)):
    user = await user_service.signup(session, payload.email, payload.password, payload.name)
    set_auth_cookie(response, token_for(user))
    return {"user": user_service.to_public(user)}

@router.post("/login", dependencies=[Depends(auth_rate_limit)])
async def login(payload: LoginRequest, response: Response, session: AsyncSession = Depends(get_session)):
    user = await user_service.authenticate(session, payload.email, payload.password)
    set_auth_cookie(response, token_for(user))
    return {"user": user_service.to_public(user)}

@router.post("/logout")
async def logout(response: Response):
    clear_auth_cookie(response)
    return {"ok": True}

@router.get("/me")
async def get_profile(current_user: SessionUser = Depends(get_current_user), session: AsyncSession = Depends(get_session)):
    user = await user_service.get_user(session, current_user.id)
    return {"user": user_service.to_profile(user)}

@router.put("/profile")
async def update_profile(
    payload: ProfileUpdateRequest,
    response: Response,
    current_user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    user = await user_service.update_profile(session, current_user.id, payload.name)
    # Re-issue so the cookie's claims carry the new name.
    set_auth_cookie(response, token_for(user))
    return {"user": user_service.to_public(user)}

@router.put("/password")
async def change_password(
    payload: PasswordChangeRequest,
    current_user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    await user_service.change_password(session, current_user.id, payload.currentPassword, payload.newPassword)
    return {"ok": True}

@router.delete("/account")
async def delete_account(response: Response, current_user: SessionUser = Depends(get_current_user), session: AsyncSession = Depends(get_session)):
    await user_service.delete_account(session, current_user.id)
    clear_auth_cookie(response)
    return {"ok": True}

@router.post("/forgot-password", dependencies=[Depends(auth_rate_limit)])
async def forgot_password(payload: ForgotPasswordRequest, session: AsyncSession = Depends(get_session)):
    token = await user_service.request_password_reset(session, payload.email)
    body = {"ok": True}
    if token and config.EXPOSE_RESET_TOKENS:
        body["resetToken"] = token
    return body

@router.post("/reset-password", dependencies=[Depends(auth_rate_limit)])
async def reset_password(payload: ResetPasswordRequest, session: AsyncSession = Depends(get_session)):
    await user_service.reset_password(session, payload.token, payload.password)
    return {"ok": True}

# --- Google OAuth ---
def _google_client():
    client = oauth.create_client("google")
    if client is None:
        raise HTTPException(status_code=503, detail="Google sign-in is not configured")
    return client

@router.get("/google")
async def google_login(request: Request):
    google = _google_client()
    redirect_uri = request.url_for("google_callback")
    return await google.authorize_redirect(request, redirect_uri)

@router.get("/google/callback", name="google_callback")
async def google_callback(request: Request, session: AsyncSession = Depends(get_session)):
    google = _google_client()
    try:
        token = await google.authorize_access_token(request)
        user_info = token.get("userinfo") or {}
        if not user_info.get("sub"):
            raise ValidationError("Invalid user info from Google")
        profile = GoogleProfile(
            googleId=user_info["sub"], email=user_info.get("email"),
            name=user_info.get("name"), avatar=user_info.get("picture"),
        )
        user, created = await user_service.link_google_account(session, profile)
    except (OAuthError, ValidationError, ConflictError) as e:
        logger.warning(f"Google sign-in failed: {e}")
        return RedirectResponse(url=f"{config.CLIENT_URL}/login?error=google")

    target = f"{config.CLIENT_URL}/?welcome=true"
    if created:
        target += "&newUser=true"
    response = RedirectResponse(url=target)
    set_auth_cookie(response, token_for(user))
    return response
