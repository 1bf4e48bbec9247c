"""
Security utilities for API authentication and authorization
"""

import secrets
from typing import Optional

from fastapi import Request, Security
from fastapi.security.api_key import APIKeyHeader

from benderscore.core.config import settings
from benderscore.core.exceptions import BaseAPIException, UnauthorizedError
from benderscore.core.logging import log

# API Key authentication for admin endpoints
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


class AdminNotConfiguredError(BaseAPIException):
    """Admin endpoints called while no admin API key is configured"""

    detail = "Server configuration error"


async def verify_admin_api_key(api_key: Optional[str] = Security(api_key_header)) -> bool:
    """
    Verify admin API key for protected endpoints

    Args:
        api_key: API key from X-API-Key header

    Returns:
        True if valid, raises UnauthorizedError if invalid
    """
    if not api_key:
        raise UnauthorizedError("API key required for admin endpoints")

    if not settings.admin_api_key:
        log.error("ADMIN_API_KEY not configured")
        raise AdminNotConfiguredError()

    if not secrets.compare_digest(api_key, settings.admin_api_key):
        log.warning(f"Invalid API key attempt: {api_key[:4]}...")
        raise UnauthorizedError("Invalid API key")

    return True


def get_client_ip(request: Request) -> str:
    """
    Get client IP address for rate limiting and attribution

    Args:
        request: FastAPI request object

    Returns:
        Client IP address
    """
    # Client-supplied headers are only trusted behind a known proxy
    if settings.trust_proxy_headers:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

    return request.client.host if request.client else "unknown"


def get_admin_actor(request: Request) -> str:
    """Actor string recorded on drafts, publishes and evidence"""
    return f"admin:{get_client_ip(request)}"


class SecurityHeaders:
    """Security headers for API responses"""

    @staticmethod
    def get_security_headers() -> dict:
        """Get security headers for responses"""
        return {
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
            "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
            "Referrer-Policy": "strict-origin-when-cross-origin",
        }
