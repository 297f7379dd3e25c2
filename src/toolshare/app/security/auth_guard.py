"""Auth guard middleware for management and export routes.

Sets ``request.state.auth_identity`` from a Bearer token or the app session
cookie. Transport precedence: Bearer token > session cookie.

Public share routes are exempt: anonymous viewers carry no identity and
are authorized by their share token only.
"""

from __future__ import annotations

import jwt as pyjwt
from fastapi import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from .token_verify import (
    AuthIdentity,
    TokenVerificationError,
    TokenVerifier,
    extract_bearer_token,
)

DEFAULT_EXEMPT_PREFIXES: tuple[str, ...] = (
    '/health',
    '/api/share/',
    '/share/',
    '/docs',
    '/openapi.json',
)

SESSION_COOKIE_NAME = 'toolshare_session'


def _unauthorized(code: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content={'error': 'unauthorized', 'code': code, 'detail': detail},
        headers={'WWW-Authenticate': 'Bearer'},
    )


class AuthGuardMiddleware(BaseHTTPMiddleware):
    """Enforce authentication on every non-exempt path.

    Args:
        app: The ASGI application.
        token_verifier: Verifier for Bearer tokens, or None to skip them.
        exempt_prefixes: Path prefixes that skip auth.
        session_secret: HS256 secret for the session cookie, or None.
        session_cookie_name: Cookie carrying the session JWT.
    """

    def __init__(
        self,
        app,
        token_verifier: TokenVerifier | None,
        exempt_prefixes: tuple[str, ...] = DEFAULT_EXEMPT_PREFIXES,
        session_secret: str | None = None,
        session_cookie_name: str = SESSION_COOKIE_NAME,
    ) -> None:
        super().__init__(app)
        self._verifier = token_verifier
        self._exempt_prefixes = exempt_prefixes
        self._session_secret = session_secret
        self._session_cookie_name = session_cookie_name

    def _is_exempt(self, path: str) -> bool:
        return any(
            path == prefix or path.startswith(prefix)
            for prefix in self._exempt_prefixes
        )

    async def dispatch(self, request: Request, call_next) -> Response:
        request.state.auth_identity = None

        if request.method == 'OPTIONS' or self._is_exempt(request.url.path):
            return await call_next(request)

        token = extract_bearer_token(request)
        if token and self._verifier is not None:
            try:
                request.state.auth_identity = self._verifier.verify(token)
            except TokenVerificationError as exc:
                return _unauthorized(exc.code, exc.detail)
            return await call_next(request)

        session_cookie = request.cookies.get(self._session_cookie_name)
        if self._session_secret and session_cookie:
            try:
                claims = pyjwt.decode(
                    session_cookie,
                    self._session_secret,
                    algorithms=['HS256'],
                    options={'require': ['sub', 'exp']},
                )
            except pyjwt.ExpiredSignatureError:
                return _unauthorized('session_expired', 'Session has expired')
            except pyjwt.InvalidTokenError:
                return _unauthorized('invalid_session', 'Session cookie is invalid')
            request.state.auth_identity = AuthIdentity(
                user_id=claims['sub'],
                email=claims.get('email', ''),
                role=claims.get('role', 'authenticated'),
                raw_claims=claims,
            )
            return await call_next(request)

        return _unauthorized('no_credentials', 'Authentication required')


def get_auth_identity(request: Request) -> AuthIdentity:
    """FastAPI dependency returning the authenticated identity.

    Raises:
        HTTPException: 401 if the request carries no identity.
    """
    identity: AuthIdentity | None = getattr(request.state, 'auth_identity', None)
    if identity is None:
        raise HTTPException(
            status_code=401,
            detail={
                'error': 'unauthorized',
                'code': 'no_credentials',
                'detail': 'Authentication required',
            },
            headers={'WWW-Authenticate': 'Bearer'},
        )
    return identity
