"""Cookie 生成・パースのユニットテスト"""

from datetime import datetime, timedelta, timezone

from k1s0_session_auth.cookie import (
    Cookie,
    CookieAttributes,
    CookieController,
    SessionCookieAttributesOptions,
    build_session_cookie_attributes,
    parse_cookies,
    serialize_cookie,
)
from k1s0_session_auth.timespan import TimeSpan

from conftest import T0, FakeClock


def test_serialize_full_attributes() -> None:
    """全属性が既定の順序で出力されること。"""
    cookie = Cookie(
        "auth_session",
        "abc",
        CookieAttributes(
            http_only=True,
            secure=True,
            same_site="lax",
            path="/",
            max_age=3600,
            expires=T0,
            domain="example.com",
        ),
    )
    assert cookie.serialize() == (
        "auth_session=abc; Domain=example.com; Expires=Thu, 01 Jan 2026 00:00:00 GMT; "
        "HttpOnly; Max-Age=3600; Path=/; SameSite=Lax; Secure"
    )


def test_serialize_minimal() -> None:
    """属性なしの場合は name=value のみ。"""
    assert serialize_cookie("a", "b", CookieAttributes()) == "a=b"


def test_serialize_encodes_value() -> None:
    """値がパーセントエンコードされること。"""
    assert serialize_cookie("a", "x y;z", CookieAttributes()) == "a=x%20y%3Bz"


def test_serialize_same_site_variants() -> None:
    """SameSite の各値。"""
    assert "SameSite=Strict" in serialize_cookie("a", "b", CookieAttributes(same_site="strict"))
    assert "SameSite=None" in serialize_cookie("a", "b", CookieAttributes(same_site="none"))


def test_serialize_converts_expires_to_utc() -> None:
    """UTC 以外のタイムゾーンの Expires は GMT に変換されること。"""
    jst = timezone(timedelta(hours=9))
    expires = datetime(2026, 1, 1, 9, 0, tzinfo=jst)
    assert "Expires=Thu, 01 Jan 2026 00:00:00 GMT" in serialize_cookie(
        "a", "b", CookieAttributes(expires=expires)
    )


def test_parse_cookies() -> None:
    """Cookie ヘッダーのパース。"""
    cookies = parse_cookies("theme=dark; auth_session=abc123;  lang=ja")
    assert cookies == {"theme": "dark", "auth_session": "abc123", "lang": "ja"}


def test_parse_cookies_decodes_and_skips_malformed() -> None:
    """値のデコードと不正な項目のスキップ。"""
    cookies = parse_cookies("flag; a=x%20y; =empty; a=second")
    assert cookies == {"a": "x y"}


def test_create_cookie_sets_lifetime(clock: FakeClock) -> None:
    """create_cookie が Max-Age と Expires を設定すること。"""
    controller = CookieController(
        "auth_session", CookieAttributes(path="/"), TimeSpan(1, "h"), clock=clock
    )
    cookie = controller.create_cookie("sid")
    assert cookie.name == "auth_session"
    assert cookie.value == "sid"
    assert cookie.attributes.max_age == 3600
    assert cookie.attributes.expires == T0 + timedelta(hours=1)
    assert cookie.attributes.path == "/"


def test_create_cookie_without_lifetime() -> None:
    """期間未指定ならセッション Cookie になること。"""
    controller = CookieController("c", CookieAttributes())
    cookie = controller.create_cookie("v")
    assert cookie.attributes.max_age is None
    assert cookie.attributes.expires is None


def test_create_blank_cookie() -> None:
    """空 Cookie は即時失効すること。"""
    controller = CookieController("auth_session", CookieAttributes(secure=True), TimeSpan(1, "d"))
    cookie = controller.create_blank_cookie()
    assert cookie.value == ""
    assert cookie.attributes.max_age == 0
    assert "Expires=Thu, 01 Jan 1970 00:00:00 GMT" in cookie.serialize()
    assert "Max-Age=0" in cookie.serialize()


def test_controller_parse() -> None:
    """自身の名前の Cookie のみ取り出すこと。"""
    controller = CookieController("auth_session", CookieAttributes())
    assert controller.parse("other=1; auth_session=xyz") == "xyz"
    assert controller.parse("other=1") is None
    assert controller.parse("") is None
    assert controller.parse(None) is None


def test_session_cookie_defaults() -> None:
    """セッション Cookie のデフォルト属性。"""
    attributes = build_session_cookie_attributes(SessionCookieAttributesOptions())
    assert attributes.http_only is True
    assert attributes.secure is True
    assert attributes.same_site == "lax"
    assert attributes.path == "/"
    assert attributes.domain is None


def test_session_cookie_overrides() -> None:
    """上書き設定が反映されること。"""
    attributes = build_session_cookie_attributes(
        SessionCookieAttributesOptions(secure=False, same_site="strict", domain="example.com")
    )
    assert attributes.secure is False
    assert attributes.same_site == "strict"
    assert attributes.domain == "example.com"
    assert attributes.http_only is True
