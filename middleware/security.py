"""
HTTP hardening for the report API: fixed response headers and CORS.
"""
from typing import Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

import config

# No CSP: the dashboard frontend calls this API cross-origin
DEFAULT_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    # Report data is per-user and polled; never serve it from a cache
    "Cache-Control": "no-store",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Stamp every response with DEFAULT_HEADERS plus the API version."""

    def __init__(self, app, headers: Optional[Dict[str, str]] = None):
        super().__init__(app)
        self.headers = dict(DEFAULT_HEADERS if headers is None else headers)
        self.headers.setdefault("X-API-Version", config.APP_VERSION)

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers.setdefault(name, value)
        return response


def setup_cors(app: FastAPI, allowed_origins: List[str]) -> None:
    """Allow the dashboard origins to call the API with bearer credentials."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=config.CORS_ALLOW_CREDENTIALS,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
