"""Security utilities: password hashing and the bearer token codec."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import Settings

# ── Password hashing (Argon2) ────────────────────────────────

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


# ── JWT ───────────────────────────────────────────────────────

class InvalidToken(Exception):
    """Signature mismatch, malformed payload, wrong issuer or expiry."""


@dataclass(frozen=True)
class Claims:
    """Principal identity embedded in a bearer token."""

    user_id: uuid.UUID
    email: str
    role: str
    tenant_id: uuid.UUID
    tenant_slug: str


class TokenCodec:
    """Issues and verifies signed, time-boxed claim sets.

    Built once from the application settings; holds no mutable state.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        expire_minutes: int = 7 * 24 * 60,
        issuer: str = "notes-saas",
    ) -> None:
        if not secret_key:
            raise RuntimeError("JWT_SECRET_KEY is not configured")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expires_delta = timedelta(minutes=expire_minutes)
        self.issuer = issuer

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenCodec":
        return cls(
            secret_key=settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
            expire_minutes=settings.jwt_expire_minutes,
            issuer=settings.jwt_issuer,
        )

    def issue(self, claims: Claims, expires_delta: timedelta | None = None) -> str:
        expire = datetime.now(timezone.utc) + (expires_delta or self.expires_delta)
        payload = {
            "userId": str(claims.user_id),
            "email": claims.email,
            "role": claims.role,
            "tenantId": str(claims.tenant_id),
            "tenantSlug": claims.tenant_slug,
            "exp": expire,
            "iss": self.issuer,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> Claims:
        """Decode and verify a token. Raises InvalidToken on any failure."""
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
            )
        except JWTError as exc:
            raise InvalidToken(str(exc)) from exc

        try:
            return Claims(
                user_id=uuid.UUID(payload["userId"]),
                email=payload["email"],
                role=payload["role"],
                tenant_id=uuid.UUID(payload["tenantId"]),
                tenant_slug=payload["tenantSlug"],
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidToken("Malformed token payload") from exc
