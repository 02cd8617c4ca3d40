"""
Health check route - public, no authentication required.
"""
from fastapi import APIRouter, Request

import config

router = APIRouter()


@router.get(
    "",
    summary="System health check",
)
async def health_check(request: Request):
    """
    Check system health status.

    Reports the configured mail transport and whether the order store
    is reachable. No authentication required.
    """
    health = {
        "status": "healthy",
        "service": config.APP_NAME,
        "version": config.APP_VERSION,
        "components": {
            "mail": "gmail" if config.has_gmail_credentials() else "smtp" if config.SMTP_HOST else "unconfigured",
        },
    }

    if getattr(request.app.state, "order_db", None) is None:
        health["components"]["database"] = "uninitialized"
        health["status"] = "degraded"
    else:
        health["components"]["database"] = "ok"

    return health
