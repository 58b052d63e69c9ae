"""セッション・ユーザーのデータモデル"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, TypeVar

SessionAttributesT = TypeVar("SessionAttributesT")
UserAttributesT = TypeVar("UserAttributesT")


@dataclass
class DatabaseSession:
    """Adapter が永続化するセッションレコード。"""

    id: str
    user_id: str
    expires_at: datetime
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass
class DatabaseUser:
    """Adapter が永続化するユーザーレコード。"""

    id: str
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass
class Session(Generic[SessionAttributesT]):
    """検証・作成結果として返すセッション。

    fresh は今回の呼び出しで有効期限を書き込んだ場合のみ True になり、永続化されない。
    attributes は SessionManager に渡したマッピング関数の戻り値。
    """

    id: str
    user_id: str
    expires_at: datetime
    fresh: bool
    attributes: SessionAttributesT


@dataclass
class User(Generic[UserAttributesT]):
    """検証結果として返すユーザー。"""

    id: str
    attributes: UserAttributesT


@dataclass
class SessionValidationResult(Generic[SessionAttributesT, UserAttributesT]):
    """validate_session の結果。無効な場合は両方 None。"""

    session: Session[SessionAttributesT] | None = None
    user: User[UserAttributesT] | None = None

    @property
    def is_valid(self) -> bool:
        return self.session is not None and self.user is not None
