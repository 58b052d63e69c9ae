"""設定型定義と YAML 読み込み"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from .cookie import SessionCookieAttributesOptions, SessionCookieOptions
from .exceptions import SessionAuthError, SessionAuthErrorCodes
from .tokens import JWTOptions, SignOptions, VerifyOptions


class SessionSection(BaseModel):
    """セッション有効期限設定。"""

    expires_in_seconds: int = Field(default=30 * 24 * 60 * 60, gt=0)


class CookieAttributesSection(BaseModel):
    """Cookie 属性の上書き。未指定はライブラリのデフォルト。"""

    same_site: Literal["lax", "strict", "none"] | None = None
    domain: str | None = None
    path: str | None = None
    secure: bool | None = None
    http_only: bool | None = None


class CookieSection(BaseModel):
    """セッション Cookie 設定。"""

    name: str = Field(default="auth_session", min_length=1)
    expires: bool = True
    attributes: CookieAttributesSection = Field(default_factory=CookieAttributesSection)

    def to_options(self) -> SessionCookieOptions:
        return SessionCookieOptions(
            name=self.name,
            expires=self.expires,
            attributes=SessionCookieAttributesOptions(**self.attributes.model_dump()),
        )


class JwtSignSection(BaseModel):
    """JWT 署名設定。"""

    algorithm: str = "HS256"
    expires_in_seconds: int | None = Field(default=None, gt=0)
    issuer: str | None = None
    audience: str | None = None
    issued_at: bool = False


class JwtVerifySection(BaseModel):
    """JWT 検証設定。"""

    algorithms: list[str] = Field(default_factory=list)
    issuer: str | None = None
    audience: str | None = None
    leeway_seconds: int = Field(default=0, ge=0)
    required_claims: list[str] = Field(default_factory=list)


class JwtSection(BaseModel):
    """JWT 設定。"""

    enabled: bool = False
    secret: str = ""
    sign: JwtSignSection | None = None
    verify: JwtVerifySection | None = None

    def to_options(self) -> JWTOptions:
        sign = None
        if self.sign is not None:
            sign = SignOptions(
                algorithm=self.sign.algorithm,
                expires_in=self.sign.expires_in_seconds,
                issuer=self.sign.issuer,
                audience=self.sign.audience,
                issued_at=self.sign.issued_at,
            )
        verify = None
        if self.verify is not None:
            verify = VerifyOptions(
                algorithms=self.verify.algorithms or None,
                issuer=self.verify.issuer,
                audience=self.verify.audience,
                leeway=self.verify.leeway_seconds,
                required_claims=list(self.verify.required_claims),
            )
        return JWTOptions(sign_options=sign, verify_options=verify)


class SessionAuthConfig(BaseModel):
    """session_auth 設定全体。"""

    session: SessionSection = Field(default_factory=SessionSection)
    cookie: CookieSection = Field(default_factory=CookieSection)
    jwt: JwtSection = Field(default_factory=JwtSection)


def _read_layer(path: Path) -> dict[str, Any]:
    """YAML 設定レイヤーを読み込む。空ファイルは空のレイヤー。"""
    try:
        layer = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise SessionAuthError(
            code=SessionAuthErrorCodes.READ_FILE,
            message=f"Failed to read config file: {path}",
            cause=e,
        ) from e
    except yaml.YAMLError as e:
        raise SessionAuthError(
            code=SessionAuthErrorCodes.PARSE_YAML,
            message=f"Failed to parse YAML: {path}",
            cause=e,
        ) from e
    if layer is None:
        return {}
    if not isinstance(layer, dict):
        raise SessionAuthError(
            code=SessionAuthErrorCodes.VALIDATION,
            message=f"Config root must be a mapping: {path}",
        )
    return layer


def _overlay(base: dict[str, Any], layer: dict[str, Any]) -> dict[str, Any]:
    """layer のセクションを base に重ねる。ネストしたセクション単位で上書きし、リストは置換。"""
    merged = dict(base)
    for key, value in layer.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _overlay(current, value)
        else:
            merged[key] = value
    return merged


def _secrets_layer(secrets: dict[str, str]) -> dict[str, Any]:
    """{"jwt.secret": "..."} 形式のドット区切りパスをネストしたレイヤーに展開する。"""
    layer: dict[str, Any] = {}
    for dotted, value in secrets.items():
        *sections, leaf = dotted.split(".")
        node = layer
        for section in sections:
            node = node.setdefault(section, {})
        node[leaf] = value
    return layer


def load(
    base_path: Path,
    env_path: Path | None = None,
    secrets: dict[str, str] | None = None,
) -> SessionAuthConfig:
    """設定ファイルを読み込んで SessionAuthConfig を返す。

    ベース -> 環境別ファイル（存在する場合）-> secrets の順に重ねる。
    secrets はシークレットストアから取得した値で、設定ファイルに署名鍵を置かないために使う。
    """
    data = _read_layer(base_path)
    if env_path is not None and env_path.exists():
        data = _overlay(data, _read_layer(env_path))
    if secrets:
        data = _overlay(data, _secrets_layer(secrets))
    try:
        return SessionAuthConfig.model_validate(data)
    except ValidationError as e:
        raise SessionAuthError(
            code=SessionAuthErrorCodes.VALIDATION,
            message=f"Config validation failed: {e}",
            cause=e,
        ) from e
