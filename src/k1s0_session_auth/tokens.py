"""JWT 発行・検証"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

import jwt
import structlog

from .timespan import TimeSpan, utcnow

logger = structlog.stdlib.get_logger(__name__)

JWT_NOT_ENABLED = "JWT is not enabled"
JWT_OPTIONS_NOT_DEFINED = "JWT options are not defined"

Duration = int | float | timedelta | TimeSpan

_HMAC_ALGORITHMS = ["HS256", "HS384", "HS512"]
_ASYMMETRIC_ALGORITHMS = [
    "RS256", "RS384", "RS512",
    "PS256", "PS384", "PS512",
    "ES256", "ES384", "ES512",
    "EdDSA",
]


def _is_shared_secret(key: Any) -> bool:
    """PEM でない文字列・バイト列を HMAC 共有鍵とみなす。"""
    if isinstance(key, str):
        return "-----BEGIN" not in key
    if isinstance(key, bytes):
        return b"-----BEGIN" not in key
    return False


def _to_timedelta(value: Duration) -> timedelta:
    if isinstance(value, timedelta):
        return value
    if isinstance(value, TimeSpan):
        return value.to_timedelta()
    return timedelta(seconds=value)


@dataclass
class SignOptions:
    """署名オプション。数値の期間は秒として扱う。"""

    algorithm: str = "HS256"
    expires_in: Duration | None = None
    not_before: Duration | None = None
    audience: str | list[str] | None = None
    issuer: str | None = None
    subject: str | None = None
    jwt_id: str | None = None
    key_id: str | None = None
    headers: dict[str, Any] = field(default_factory=dict)
    issued_at: bool = False


@dataclass
class VerifyOptions:
    """検証オプション。algorithms 未指定時は署名アルゴリズムを使う。"""

    algorithms: list[str] | None = None
    audience: str | list[str] | None = None
    issuer: str | None = None
    leeway: Duration = 0
    required_claims: list[str] = field(default_factory=list)


@dataclass
class JWTOptions:
    sign_options: SignOptions | None = None
    verify_options: VerifyOptions | None = None


@dataclass
class CreatedToken:
    """トークン発行結果。失敗時は status=False で error に理由が入る。"""

    token: str | None
    expires_at: datetime | None
    status: bool
    error: Exception | str | None = None


@dataclass
class VerifiedToken:
    """トークン検証結果。失敗時は status=False で error に理由が入る。"""

    decoded: dict[str, Any] | None
    status: bool
    error: Exception | str | None = None


class TokenIssuer:
    """JWT の発行と検証を行う。

    失敗は例外ではなく status=False の値として返す。
    """

    def __init__(
        self,
        enabled: bool = False,
        secret: str | bytes | None = None,
        options: JWTOptions | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._enabled = enabled
        self._secret = secret
        self._options = options
        self._clock = clock or utcnow

    @property
    def enabled(self) -> bool:
        return self._enabled and bool(self._secret)

    def create_token(
        self,
        payload: Mapping[str, Any],
        sign_options: SignOptions | None = None,
    ) -> CreatedToken:
        """payload に署名したトークンを返す。

        明示的な sign_options があればそれを、なければ設定済みのデフォルトを使う。
        """
        if not self.enabled:
            return CreatedToken(token=None, expires_at=None, status=False, error=JWT_NOT_ENABLED)
        options = sign_options if payload is not None and sign_options is not None else None
        if options is None and self._options is not None:
            options = self._options.sign_options
        if options is None:
            return CreatedToken(
                token=None, expires_at=None, status=False, error=JWT_OPTIONS_NOT_DEFINED
            )
        try:
            claims, expires_at = self._build_claims(payload, options)
            headers = dict(options.headers)
            if options.key_id is not None:
                headers["kid"] = options.key_id
            token = jwt.encode(
                claims,
                self._secret,  # type: ignore[arg-type]
                algorithm=options.algorithm,
                headers=headers or None,
            )
        except Exception as e:
            logger.debug("jwt signing failed", error=str(e))
            return CreatedToken(token=None, expires_at=None, status=False, error=e)
        return CreatedToken(token=token, expires_at=expires_at, status=True)

    def verify_token(
        self,
        token: str,
        secret_override: Any | None = None,
    ) -> VerifiedToken:
        """トークンを検証してクレームを返す。

        secret_override には非対称アルゴリズムの公開鍵も渡せる。
        """
        if not self._enabled:
            return VerifiedToken(decoded=None, status=False, error=JWT_NOT_ENABLED)
        key = secret_override if secret_override else self._secret
        if not key:
            return VerifiedToken(decoded=None, status=False, error=JWT_NOT_ENABLED)
        verify = (self._options.verify_options if self._options else None) or VerifyOptions()
        try:
            decoded: dict[str, Any] = jwt.decode(
                token,
                key,
                algorithms=verify.algorithms or self._default_algorithms(key),
                audience=verify.audience,
                issuer=verify.issuer,
                leeway=_to_timedelta(verify.leeway),
                options={
                    "verify_aud": verify.audience is not None,
                    "require": list(verify.required_claims),
                },
            )
        except Exception as e:
            logger.debug("jwt verification failed", error=str(e))
            return VerifiedToken(decoded=None, status=False, error=e)
        return VerifiedToken(decoded=decoded, status=True)

    def _default_algorithms(self, key: Any) -> list[str]:
        """検証オプション未指定時に許可するアルゴリズム。鍵の種類に合う系列を許可する。"""
        algorithms: list[str] = []
        if self._options is not None and self._options.sign_options is not None:
            algorithms.append(self._options.sign_options.algorithm)
        family = _HMAC_ALGORITHMS if _is_shared_secret(key) else _ASYMMETRIC_ALGORITHMS
        algorithms.extend(a for a in family if a not in algorithms)
        return algorithms

    def _build_claims(
        self, payload: Mapping[str, Any], options: SignOptions
    ) -> tuple[dict[str, Any], datetime | None]:
        now = self._clock()
        claims: dict[str, Any] = dict(payload)
        expires_at: datetime | None = None
        if options.issued_at:
            claims["iat"] = now
        if options.expires_in is not None:
            expires_at = now + _to_timedelta(options.expires_in)
            claims["exp"] = expires_at
        if options.not_before is not None:
            claims["nbf"] = now + _to_timedelta(options.not_before)
        if options.audience is not None:
            claims["aud"] = options.audience
        if options.issuer is not None:
            claims["iss"] = options.issuer
        if options.subject is not None:
            claims["sub"] = options.subject
        if options.jwt_id is not None:
            claims["jti"] = options.jwt_id
        return claims, expires_at
