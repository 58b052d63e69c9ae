"""セッション ID 生成"""

from __future__ import annotations

import base64
import secrets

_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"

SESSION_ID_ENTROPY_SIZE = 25


def generate_id_from_entropy_size(size: int) -> str:
    """size バイトの乱数を小文字・パディングなしの base32 で返す。

    25 バイトで 40 文字（200 bit のエントロピー）になる。
    """
    if size <= 0:
        raise ValueError("size must be positive")
    raw = secrets.token_bytes(size)
    return base64.b32encode(raw).decode("ascii").rstrip("=").lower()


def generate_id(length: int) -> str:
    """[a-z0-9] から length 文字のランダム ID を生成する。"""
    if length <= 0:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))
