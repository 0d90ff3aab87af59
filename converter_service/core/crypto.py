# converter_service/core/crypto.py
from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping

import jwt
import structlog
from jwt import InvalidTokenError

from converter_service.core.config import Settings

logger = structlog.get_logger(__name__)

TOKEN_TTL_SECONDS = 3600
BEARER_PREFIX = "Bearer "
HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")


class ConfigurationError(Exception):
    """Startup configuration is unusable (e.g. JWT_SECRET missing)."""


class RejectionKind(str, Enum):
    MISSING_OR_MALFORMED = "missing_or_malformed_credential"
    INVALID = "invalid_credential"
    EXPIRED = "expired_credential"
    WRONG_PRINCIPAL = "wrong_principal"
    VERIFICATION_FAULT = "verification_fault"

    @property
    def status_code(self) -> int:
        if self is RejectionKind.WRONG_PRINCIPAL:
            return 403
        if self is RejectionKind.VERIFICATION_FAULT:
            return 500
        return 401

    @property
    def category(self) -> str:
        return {401: "Unauthorized", 403: "Forbidden"}.get(
            self.status_code, "Internal server error"
        )


@dataclass(frozen=True)
class ServiceClaims:
    """Decoded claims of an admitted token."""

    service: str
    issued_at: int
    expires_at: int
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class Admit:
    claims: ServiceClaims


@dataclass(frozen=True)
class Reject:
    kind: RejectionKind
    message: str

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def to_body(self) -> dict[str, str]:
        return {"error": self.kind.category, "message": self.message}


Outcome = Admit | Reject


def issue_token(
    secret: str,
    service: str,
    *,
    now: int | float | None = None,
    ttl: int = TOKEN_TTL_SECONDS,
    algorithm: str = "HS256",
) -> str:
    iat = int(time.time() if now is None else now)
    payload = {"service": service, "iat": iat, "exp": iat + ttl}
    return jwt.encode(payload, secret, algorithm=algorithm)


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class AuthGate:
    """
    Verifies service-to-service bearer tokens.

    The order of checks is fixed: header shape, signature, expiry, principal.
    The gate holds no mutable state, so one instance serves every request.
    """

    def __init__(
        self,
        secret: str | None,
        expected_service: str,
        *,
        clock: Callable[[], float] = time.time,
        algorithm: str = "HS256",
    ) -> None:
        if not secret:
            raise ConfigurationError(
                "JWT_SECRET is not set; refusing to start the converter service"
            )
        if not expected_service:
            raise ConfigurationError("EXPECTED_SERVICE must not be empty")
        if algorithm not in HMAC_ALGORITHMS:
            raise ConfigurationError(
                f"JWT_ALG must be one of {', '.join(HMAC_ALGORITHMS)} (shared-secret signing), got {algorithm!r}"
            )
        self._secret = secret
        self._expected_service = expected_service
        self._clock = clock
        self._algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> AuthGate:
        return cls(
            settings.jwt_secret,
            settings.expected_service,
            algorithm=settings.jwt_alg,
            **kwargs,
        )

    @property
    def expected_service(self) -> str:
        return self._expected_service

    def issue(self, service: str | None = None) -> str:
        """Mint a token with this gate's secret (tests / development route only)."""
        return issue_token(
            self._secret,
            service or self._expected_service,
            now=self._clock(),
            algorithm=self._algorithm,
        )

    def authenticate(self, authorization: str | None) -> Outcome:
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            return Reject(
                RejectionKind.MISSING_OR_MALFORMED,
                "Missing or invalid authorization header. Expected: Bearer <token>",
            )
        token = authorization[len(BEARER_PREFIX):]

        try:
            # Expiry is checked below against the gate's own clock
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={
                    "require": ["exp", "iat"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except InvalidTokenError:
            return Reject(RejectionKind.INVALID, "Invalid token")
        except Exception:
            logger.exception("token_verification_fault")
            return Reject(RejectionKind.VERIFICATION_FAULT, "Token verification failed")

        exp, iat = payload.get("exp"), payload.get("iat")
        if not _is_number(exp) or not _is_number(iat):
            return Reject(RejectionKind.INVALID, "Invalid token")

        if self._clock() > exp:
            return Reject(RejectionKind.EXPIRED, "Token has expired")

        if payload.get("service") != self._expected_service:
            return Reject(RejectionKind.WRONG_PRINCIPAL, "Invalid service identifier")

        return Admit(
            ServiceClaims(
                service=payload["service"],
                issued_at=int(iat),
                expires_at=int(exp),
                raw=MappingProxyType(dict(payload)),
            )
        )
