"""
FastAPI dependencies.
Cookie-session authentication plus the order store and the PDF / mail
capabilities, all overridable through ``app.dependency_overrides`` in tests.
"""
from fastapi import Depends, HTTPException, Request, status
from typing import Any, Dict, Optional

import config

# Initialized in main.py when the app starts
_jwt_handler = None
_user_db = None
_order_db = None


def init_auth(jwt_handler, user_db):
    """Initialize auth dependencies with actual instances. Called from main.py."""
    global _jwt_handler, _user_db
    _jwt_handler = jwt_handler
    _user_db = user_db


def init_store(order_db):
    """Initialize the order store. Called from main.py."""
    global _order_db
    _order_db = order_db


def get_jwt_handler():
    """Get the JWT handler instance."""
    if _jwt_handler is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Auth system not initialized"
        )
    return _jwt_handler


def get_user_db():
    """Get the user database instance."""
    if _user_db is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Auth system not initialized"
        )
    return _user_db


def get_order_db():
    """Get the order database instance."""
    if _order_db is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Order store not initialized"
        )
    return _order_db


def get_pdf_renderer():
    """Headless-browser PDF renderer (replaced by a fake in tests)."""
    from order_normalization.pdf_generator import PlaywrightPdfRenderer
    return PlaywrightPdfRenderer()


def get_mail_transport():
    """Mail transport chosen by configuration (replaced by a fake in tests)."""
    from order_normalization.mailer import get_mail_transport as _configured_transport
    return _configured_transport()


def session_from_request(request: Request) -> Optional[Dict[str, Any]]:
    """Decoded session token from the auth cookie, or None. Used by the page gate."""
    if _jwt_handler is None:
        return None
    return _jwt_handler.verify_token(request.cookies.get(config.AUTH_COOKIE_NAME))


async def get_current_user(request: Request) -> Dict[str, Any]:
    """
    FastAPI dependency that validates the session cookie and returns the current user.
    Use this on any route that requires authentication:

        @router.get("/protected")
        async def protected_route(user: dict = Depends(get_current_user)):
            return {"user_id": user["id"]}
    """
    jwt_handler = get_jwt_handler()
    user_db = get_user_db()

    payload = jwt_handler.verify_token(request.cookies.get(config.AUTH_COOKIE_NAME))
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Não autenticado",
        )

    # Verify user still exists and is active
    user = user_db.get_user_by_id(payload["sub"])
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Usuário não encontrado ou desativado",
        )

    return user


