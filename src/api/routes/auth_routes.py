"""
Authentication routes - login, logout, current session.
The session lives in an httpOnly cookie; there is no bearer header.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

import config
from api.auth.models import ErrorResponse, MessageResponse, SessionUser, UserLogin
from api.auth.dependencies import get_current_user, get_jwt_handler, get_user_db
from utils.logger import get_logger

router = APIRouter()
logger = get_logger()


def _cookie_options() -> dict:
    options = {
        "path": "/",
        "httponly": True,
        "samesite": "lax",
        "secure": config.COOKIE_SECURE,
    }
    if config.COOKIE_DOMAIN:
        options["domain"] = config.COOKIE_DOMAIN
    return options


@router.post(
    "/login",
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
    summary="Login and set the session cookie",
)
async def login(request: Request):
    """
    Authenticate with email and password.

    On success the ``auth_token`` cookie is set (JWT, valid for 7 days by
    default) and the session user is returned.
    """
    try:
        payload = await request.json()
    except ValueError:
        payload = {}
    try:
        body = UserLogin.model_validate(payload if isinstance(payload, dict) else {})
    except ValidationError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Credenciais ausentes")

    if not body.email or not body.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Credenciais ausentes")

    user = get_user_db().authenticate(email=body.email, password=body.password)
    if not user:
        logger.warning(f"Failed login for {body.email}", "Auth")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="E-mail ou senha inválidos")

    jwt_handler = get_jwt_handler()
    token = jwt_handler.create_session_token(user["id"], user["email"], user["role"])

    response = JSONResponse({"ok": True, "user": SessionUser(**user).model_dump(mode="json")})
    response.set_cookie(
        config.AUTH_COOKIE_NAME,
        token,
        max_age=jwt_handler.max_age_seconds,
        **_cookie_options(),
    )
    logger.info(f"User {user['email']} logged in", "Auth")
    return response


@router.api_route(
    "/logout",
    methods=["GET", "POST"],
    response_model=MessageResponse,
    summary="Clear the session cookies",
)
async def logout():
    """Expire the session cookie and every legacy session cookie name."""
    response = JSONResponse({"ok": True})
    for name in [config.AUTH_COOKIE_NAME, *config.AUTH_LEGACY_COOKIES]:
        response.delete_cookie(name, **_cookie_options())
    return response


@router.get(
    "/me",
    response_model=SessionUser,
    responses={401: {"model": ErrorResponse}},
    summary="Get the current session",
)
async def me(user: dict = Depends(get_current_user)):
    return SessionUser(**user)
