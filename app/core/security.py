"""
Authentication boundary

Session tokens issued by Clerk are verified with python-jose against the
instance's PEM public key. The resolved Identity is attached to
request.state by AuthMiddleware; routes read it through get_identity.
"""
import fnmatch
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from fastapi import Depends, Request
from jose import JWTError, jwt
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.core.config import settings
from app.core.errors import Forbidden, Unauthenticated, error_response
from app.core.logging import request_id_ctx, user_id_ctx

logger = logging.getLogger(__name__)

DEVELOPER_ROLE = "developer"

SESSION_COOKIE = "__session"

PUBLIC_PATHS = [
    "/",
    "/health",
    "/api/health/*",
    "/r/*",
    "/api/webhooks/*",
    "/auth/sign-in*",
    "/auth/sign-up*",
    "/docs",
    "/docs/*",
    "/openapi.json",
]


@dataclass(frozen=True)
class Identity:
    """An authenticated principal as reported by the identity provider"""

    clerk_user_id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    roles: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def is_developer(self) -> bool:
        return DEVELOPER_ROLE in self.roles


class ClerkIdentityResolver:
    """Verifies Clerk session JWTs and builds an Identity from their claims"""

    algorithms = ["RS256"]

    def __init__(
        self,
        public_key: str,
        authorized_parties: Optional[Iterable[str]] = None,
        developer_user_ids: Optional[Iterable[str]] = None,
    ):
        self.public_key = public_key
        self.authorized_parties = list(authorized_parties or [])
        self.developer_user_ids = set(developer_user_ids or [])

    def resolve(self, token: str) -> Optional[Identity]:
        if not token or not self.public_key:
            return None

        try:
            claims = jwt.decode(
                token,
                self.public_key,
                algorithms=self.algorithms,
                options={"verify_aud": False},
            )
        except JWTError as e:
            logger.info("Rejected session token: %s", e)
            return None

        user_id = claims.get("sub")
        if not user_id:
            return None

        azp = claims.get("azp")
        if self.authorized_parties and azp and azp not in self.authorized_parties:
            logger.warning(
                "Session token from unauthorized party",
                extra={"extra_data": {"azp": azp}},
            )
            return None

        return Identity(
            clerk_user_id=user_id,
            email=claims.get("email"),
            first_name=claims.get("first_name"),
            last_name=claims.get("last_name"),
            roles=frozenset(self.roles_for(user_id, claims)),
        )

    def roles_for(self, user_id: str, claims: Dict[str, Any]) -> List[str]:
        roles = []
        for key in ("metadata", "public_metadata"):
            metadata = claims.get(key) or {}
            if isinstance(metadata, dict) and metadata.get("role"):
                roles.append(metadata["role"])
        if user_id in self.developer_user_ids:
            roles.append(DEVELOPER_ROLE)
        return roles


def build_identity_resolver() -> ClerkIdentityResolver:
    if not settings.CLERK_JWT_KEY:
        logger.warning("CLERK_JWT_KEY is not set; every protected route will return 401")
    return ClerkIdentityResolver(
        public_key=settings.CLERK_JWT_KEY,
        authorized_parties=settings.authorized_parties,
        developer_user_ids=settings.developer_user_ids,
    )


def is_public_path(path: str) -> bool:
    return any(fnmatch.fnmatchcase(path, pattern) for pattern in PUBLIC_PATHS)


def extract_session_token(request: Request) -> Optional[str]:
    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get(SESSION_COOKIE)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assigns or propagates X-Request-ID for log correlation"""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = request_id_ctx.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response


class AuthMiddleware(BaseHTTPMiddleware):
    """Rejects unauthenticated requests to every non-public path"""

    async def dispatch(self, request: Request, call_next) -> Response:
        request.state.identity = None

        if request.method == "OPTIONS" or is_public_path(request.url.path):
            return await call_next(request)

        resolver = request.app.state.identity_resolver
        token = extract_session_token(request)
        identity = resolver.resolve(token) if token else None
        if identity is None:
            return error_response(401, Unauthenticated.code, "Authentication required")

        request.state.identity = identity
        ctx_token = user_id_ctx.set(identity.clerk_user_id)
        try:
            return await call_next(request)
        finally:
            user_id_ctx.reset(ctx_token)


def get_identity(request: Request) -> Identity:
    identity = getattr(request.state, "identity", None)
    if identity is None:
        raise Unauthenticated()
    return identity


def require_developer(identity: Identity = Depends(get_identity)) -> Identity:
    if not identity.is_developer:
        raise Forbidden("Developer access required")
    return identity
