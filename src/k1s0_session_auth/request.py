"""リクエスト送信元の検証"""

from __future__ import annotations

from urllib.parse import urlsplit


def _host_of(url: str) -> str | None:
    try:
        parsed = urlsplit(url)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    return parsed.netloc.lower()


def verify_request_origin(origin: str | None, allowed_domains: list[str]) -> bool:
    """Origin ヘッダーのホストが許可ドメインのいずれかと一致するか確認する。

    スキームのないドメインは https:// として扱う。CSRF 対策としてフォーム送信時に使う。
    """
    if not origin or not allowed_domains:
        return False
    origin_host = _host_of(origin)
    if origin_host is None:
        return False
    for domain in allowed_domains:
        if domain.startswith(("http://", "https://")):
            host = _host_of(domain)
        else:
            host = _host_of(f"https://{domain}")
        if host is not None and host == origin_host:
            return True
    return False
