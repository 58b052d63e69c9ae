"""Adapter 抽象基底クラスとインメモリ実装"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from .models import DatabaseSession, DatabaseUser
from .timespan import utcnow


class Adapter(ABC):
    """セッション・ユーザーの永続化抽象。

    各メソッドは単体でアトミックであることを前提とし、呼び出し間のトランザクションは要求しない。
    """

    @abstractmethod
    async def get_session_and_user(
        self, session_id: str
    ) -> tuple[DatabaseSession | None, DatabaseUser | None]:
        """セッションとその所有ユーザーを 1 回の論理的な呼び出しで取得する。"""
        ...

    @abstractmethod
    async def get_user_sessions(self, user_id: str) -> list[DatabaseSession]:
        """ユーザーの全セッションを取得する。期限切れを含んでもよい。"""
        ...

    @abstractmethod
    async def set_session(self, session: DatabaseSession) -> None:
        """セッションを保存する。"""
        ...

    @abstractmethod
    async def update_session_expiration(self, session_id: str, expires_at: datetime) -> None:
        """セッションの有効期限を更新する。"""
        ...

    @abstractmethod
    async def delete_session(self, session_id: str) -> None:
        """セッションを削除する。"""
        ...

    @abstractmethod
    async def delete_user_sessions(self, user_id: str) -> None:
        """ユーザーの全セッションを削除する。"""
        ...

    @abstractmethod
    async def delete_expired_sessions(self) -> None:
        """期限切れセッションを一括削除する。"""
        ...


class InMemoryAdapter(Adapter):
    """テスト用インメモリ Adapter。"""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or utcnow
        self._users: dict[str, DatabaseUser] = {}
        self._sessions: dict[str, DatabaseSession] = {}

    def add_user(self, user: DatabaseUser) -> None:
        self._users[user.id] = user

    def remove_user(self, user_id: str) -> None:
        """ユーザーのみを削除する。セッションは残る。"""
        self._users.pop(user_id, None)

    async def get_session_and_user(
        self, session_id: str
    ) -> tuple[DatabaseSession | None, DatabaseUser | None]:
        session = self._sessions.get(session_id)
        if session is None:
            return None, None
        # 呼び出し側での変更が保存データに波及しないようコピーを返す
        return replace(session), self._users.get(session.user_id)

    async def get_user_sessions(self, user_id: str) -> list[DatabaseSession]:
        return [replace(s) for s in self._sessions.values() if s.user_id == user_id]

    async def set_session(self, session: DatabaseSession) -> None:
        self._sessions[session.id] = replace(session)

    async def update_session_expiration(self, session_id: str, expires_at: datetime) -> None:
        session = self._sessions.get(session_id)
        if session is None:
            return
        session.expires_at = expires_at

    async def delete_session(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    async def delete_user_sessions(self, user_id: str) -> None:
        for sid, session in list(self._sessions.items()):
            if session.user_id == user_id:
                del self._sessions[sid]

    async def delete_expired_sessions(self) -> None:
        now = self._clock()
        for sid, session in list(self._sessions.items()):
            if session.expires_at <= now:
                del self._sessions[sid]
