"""Authentication endpoints.

Credential checks, sessions and OAuth exchange belong to the authentication
provider. Every successful exchange here is followed by profile
reconciliation, which never fails the request.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote, urlparse

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import RedirectResponse

from .. import schemas, settings
from ..auth import get_current_identity
from ..auth_provider import AuthProvider, AuthSession
from ..deps import get_auth_provider, get_profile_service, get_store
from ..errors import AuthError, InternalError, InvalidDataUrlError
from ..identity import Identity
from ..services.profiles import ProfileChanges, ProfileService
from ..services.roles import fetch_role, is_admin_role
from ..store import RowStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def build_callback_url() -> str:
    """Callback URL under the API prefix, whatever form APP_URL takes."""
    raw = settings.APP_URL
    parsed = urlparse(raw)
    if parsed.scheme and parsed.netloc:
        path = parsed.path.rstrip("/")
        if not path.endswith("/api"):
            path = f"{path}/api"
        return f"{parsed.scheme}://{parsed.netloc}{path}/auth/callback"
    base = raw.rstrip("/")
    if not base.endswith("/api"):
        base = f"{base}/api"
    return f"{base}/auth/callback"


def _session_response(session: AuthSession, **extra: Any) -> dict[str, Any]:
    return {
        "user": session.identity.to_public(),
        "access_token": session.access_token,
        "refresh_token": session.refresh_token,
        **extra,
    }


def _internal(e: InternalError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=schemas.MessageResponse)
def register(
    payload: schemas.RegisterRequest,
    provider: AuthProvider = Depends(get_auth_provider),
) -> schemas.MessageResponse:
    redirect_to = f"{settings.FRONTEND_URL}/verify?email={quote(payload.email)}"
    try:
        provider.sign_up(payload.email, payload.password, {"full_name": payload.full_name}, redirect_to)
    except AuthError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return schemas.MessageResponse(message="Registration successful. Please check your email to confirm.")


@router.post("/login/email")
def email_login(
    payload: schemas.LoginRequest,
    provider: AuthProvider = Depends(get_auth_provider),
    profiles: ProfileService = Depends(get_profile_service),
) -> dict[str, Any]:
    try:
        session = provider.sign_in_with_password(payload.email, payload.password)
    except AuthError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))

    profiles.reconcile(session.identity)
    return _session_response(session)


@router.post("/admin/login")
def admin_login(
    payload: schemas.LoginRequest,
    provider: AuthProvider = Depends(get_auth_provider),
    profiles: ProfileService = Depends(get_profile_service),
    store: RowStore = Depends(get_store),
) -> dict[str, Any]:
    try:
        session = provider.sign_in_with_password(payload.email, payload.password)
    except AuthError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))

    try:
        role = fetch_role(store, session.identity.id)
    except InternalError as e:
        raise _internal(e)
    if not is_admin_role(role):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Admins only")

    profiles.reconcile(session.identity)
    return _session_response(session, role=role)


@router.get("/login")
def oauth_login(provider: AuthProvider = Depends(get_auth_provider)) -> RedirectResponse:
    return RedirectResponse(provider.authorize_url("google", build_callback_url()))


def _exchange_and_redirect(code: str, provider: AuthProvider, profiles: ProfileService) -> RedirectResponse:
    try:
        session = provider.exchange_code_for_session(code)
    except AuthError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    profiles.reconcile(session.identity)
    return RedirectResponse(f"{settings.FRONTEND_URL}/profile", status_code=status.HTTP_302_FOUND)


@router.get("/callback")
def oauth_callback(
    code: str | None = Query(None),
    provider: AuthProvider = Depends(get_auth_provider),
    profiles: ProfileService = Depends(get_profile_service),
) -> RedirectResponse:
    if not code:
        return RedirectResponse("/", status_code=status.HTTP_302_FOUND)
    return _exchange_and_redirect(code, provider, profiles)


@router.get("/verify")
def verify_email(
    token: str | None = Query(None),
    provider: AuthProvider = Depends(get_auth_provider),
    profiles: ProfileService = Depends(get_profile_service),
) -> RedirectResponse:
    if not token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing token")
    return _exchange_and_redirect(token, provider, profiles)


@router.get("/me")
def me(
    identity: Identity = Depends(get_current_identity),
    profiles: ProfileService = Depends(get_profile_service),
) -> dict[str, Any]:
    try:
        profile = profiles.get_profile(identity.id)
    except InternalError as e:
        raise _internal(e)
    return {"user": identity.to_public(), "profile": profile}


@router.patch("/me")
def update_me(
    payload: schemas.ProfileUpdateRequest,
    identity: Identity = Depends(get_current_identity),
    profiles: ProfileService = Depends(get_profile_service),
) -> dict[str, Any]:
    changes = ProfileChanges(
        display_name=payload.displayName or payload.full_name,
        contact=payload.contact or payload.phone,
        bio=payload.bio or payload.about,
        avatar_ref=payload.avatarUrl or payload.avatar_url,
        avatar_data_url=payload.avatar,
    )
    try:
        profile = profiles.update_profile(identity, changes)
    except InvalidDataUrlError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except InternalError as e:
        raise _internal(e)
    return {"ok": True, "profile": profile}


@router.get("/profile")
def my_profile(
    identity: Identity = Depends(get_current_identity),
    profiles: ProfileService = Depends(get_profile_service),
) -> dict[str, Any] | None:
    try:
        return profiles.get_profile(identity.id)
    except InternalError as e:
        raise _internal(e)


@router.get("/profile/public/{user_id}")
def public_profile(
    user_id: str,
    profiles: ProfileService = Depends(get_profile_service),
) -> dict[str, Any]:
    try:
        profile = profiles.get_profile(user_id)
    except InternalError as e:
        raise _internal(e)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile


@router.get("/role")
def get_role(
    identity: Identity = Depends(get_current_identity),
    store: RowStore = Depends(get_store),
) -> dict[str, Any]:
    try:
        return {"role": fetch_role(store, identity.id)}
    except InternalError as e:
        raise _internal(e)
