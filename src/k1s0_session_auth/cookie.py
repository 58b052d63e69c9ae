"""セッション Cookie の生成とパース"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Literal
from urllib.parse import quote, unquote

from .timespan import TimeSpan, create_date, utcnow

SameSite = Literal["lax", "strict", "none"]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class CookieAttributes:
    """Set-Cookie 属性。None の属性は出力しない。"""

    secure: bool | None = None
    path: str | None = None
    domain: str | None = None
    same_site: SameSite | None = None
    http_only: bool | None = None
    max_age: int | None = None
    expires: datetime | None = None


def serialize_cookie(name: str, value: str, attributes: CookieAttributes) -> str:
    """Set-Cookie ヘッダー値を組み立てる。値はパーセントエンコードする。"""
    parts = [f"{name}={quote(value, safe='')}"]
    if attributes.domain:
        parts.append(f"Domain={attributes.domain}")
    if attributes.expires is not None:
        expires = attributes.expires.astimezone(timezone.utc)
        parts.append(f"Expires={format_datetime(expires, usegmt=True)}")
    if attributes.http_only:
        parts.append("HttpOnly")
    if attributes.max_age is not None:
        parts.append(f"Max-Age={attributes.max_age}")
    if attributes.path:
        parts.append(f"Path={attributes.path}")
    if attributes.same_site == "lax":
        parts.append("SameSite=Lax")
    elif attributes.same_site == "strict":
        parts.append("SameSite=Strict")
    elif attributes.same_site == "none":
        parts.append("SameSite=None")
    if attributes.secure:
        parts.append("Secure")
    return "; ".join(parts)


def parse_cookies(header: str) -> dict[str, str]:
    """Cookie ヘッダーを名前と値の辞書に変換する。同名は最初の値を優先する。"""
    cookies: dict[str, str] = {}
    for item in header.split(";"):
        name, sep, raw = item.partition("=")
        name = name.strip()
        if not sep or not name or name in cookies:
            continue
        cookies[name] = unquote(raw.strip())
    return cookies


@dataclass(frozen=True)
class Cookie:
    """名前・値・属性からなる Cookie。"""

    name: str
    value: str
    attributes: CookieAttributes

    def serialize(self) -> str:
        return serialize_cookie(self.name, self.value, self.attributes)


class CookieController:
    """単一の名前付き Cookie を組み立て・読み取るコントローラー。"""

    def __init__(
        self,
        cookie_name: str,
        base_attributes: CookieAttributes,
        expires_in: TimeSpan | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.cookie_name = cookie_name
        self._base_attributes = base_attributes
        self._expires_in = expires_in
        self._clock = clock or utcnow

    def create_cookie(self, value: str) -> Cookie:
        if self._expires_in is None:
            return Cookie(self.cookie_name, value, self._base_attributes)
        attributes = replace(
            self._base_attributes,
            max_age=int(self._expires_in.seconds()),
            expires=create_date(self._expires_in, self._clock()),
        )
        return Cookie(self.cookie_name, value, attributes)

    def create_blank_cookie(self) -> Cookie:
        attributes = replace(self._base_attributes, max_age=0, expires=_EPOCH)
        return Cookie(self.cookie_name, "", attributes)

    def parse(self, header: str | None) -> str | None:
        if not header:
            return None
        return parse_cookies(header).get(self.cookie_name)


@dataclass(frozen=True)
class SessionCookieAttributesOptions:
    """セッション Cookie 属性の上書き設定。None はデフォルトを使う。"""

    same_site: SameSite | None = None
    domain: str | None = None
    path: str | None = None
    secure: bool | None = None
    http_only: bool | None = None


@dataclass(frozen=True)
class SessionCookieOptions:
    """セッション Cookie 設定。

    expires=False の場合、サーバー側の TTL はそのままで Cookie の寿命だけを長期にする。
    """

    name: str = "auth_session"
    expires: bool = True
    attributes: SessionCookieAttributesOptions = SessionCookieAttributesOptions()


DEFAULT_SESSION_COOKIE_ATTRIBUTES = CookieAttributes(
    http_only=True,
    secure=True,
    same_site="lax",
    path="/",
)

LONG_COOKIE_LIFETIME = TimeSpan(365 * 2, "d")


def build_session_cookie_attributes(options: SessionCookieAttributesOptions) -> CookieAttributes:
    """デフォルト属性に上書き設定を適用する。"""
    base = DEFAULT_SESSION_COOKIE_ATTRIBUTES
    return replace(
        base,
        same_site=options.same_site if options.same_site is not None else base.same_site,
        domain=options.domain if options.domain is not None else base.domain,
        path=options.path if options.path is not None else base.path,
        secure=options.secure if options.secure is not None else base.secure,
        http_only=options.http_only if options.http_only is not None else base.http_only,
    )
