"""セッションライフサイクル管理"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any, Generic, cast

import structlog

from .adapter import Adapter
from .cookie import (
    LONG_COOKIE_LIFETIME,
    Cookie,
    CookieController,
    SessionCookieOptions,
    build_session_cookie_attributes,
)
from .exceptions import SessionAuthError, SessionAuthErrorCodes
from .ids import SESSION_ID_ENTROPY_SIZE, generate_id_from_entropy_size
from .models import (
    DatabaseSession,
    DatabaseUser,
    Session,
    SessionAttributesT,
    SessionValidationResult,
    User,
    UserAttributesT,
)
from .timespan import TimeSpan, utcnow
from .tokens import CreatedToken, JWTOptions, SignOptions, TokenIssuer, VerifiedToken

if TYPE_CHECKING:
    from .config import SessionAuthConfig

logger = structlog.stdlib.get_logger(__name__)

DEFAULT_SESSION_EXPIRES_IN = TimeSpan(30, "d")


def _mask(session_id: str) -> str:
    return session_id[:6] + "..."


def _empty_attributes(_: Mapping[str, Any]) -> Any:
    return {}


class SessionManager(Generic[SessionAttributesT, UserAttributesT]):
    """セッションの作成・検証・無効化と資格情報の抽出を行う。

    構築後の設定は不変なので、1 インスタンスを複数のリクエストから同時に使ってよい。
    可変状態はすべて Adapter 側にある。

    検証時は有効期間の半分を過ぎたセッションだけを延長する（スライディング更新）。
    継続利用中のセッションへの書き込みは TTL/2 ごとに 1 回程度に抑えられる。
    """

    def __init__(
        self,
        adapter: Adapter | None = None,
        *,
        session_expires_in: TimeSpan = DEFAULT_SESSION_EXPIRES_IN,
        session_cookie: SessionCookieOptions | None = None,
        use_jwt: bool = False,
        jwt_secret: str | bytes | None = None,
        jwt_options: JWTOptions | None = None,
        get_session_attributes: Callable[[Mapping[str, Any]], SessionAttributesT] | None = None,
        get_user_attributes: Callable[[Mapping[str, Any]], UserAttributesT] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._adapter = adapter
        self._session_expires_in = session_expires_in
        self._clock = clock or utcnow
        self._get_session_attributes = cast(
            Callable[[Mapping[str, Any]], SessionAttributesT],
            get_session_attributes or _empty_attributes,
        )
        self._get_user_attributes = cast(
            Callable[[Mapping[str, Any]], UserAttributesT],
            get_user_attributes or _empty_attributes,
        )

        cookie_options = session_cookie or SessionCookieOptions()
        self.session_cookie_name = cookie_options.name
        cookie_expires_in = session_expires_in if cookie_options.expires else LONG_COOKIE_LIFETIME
        self._cookie_controller = CookieController(
            cookie_options.name,
            build_session_cookie_attributes(cookie_options.attributes),
            cookie_expires_in,
            clock=self._clock,
        )
        self._token_issuer = TokenIssuer(
            enabled=use_jwt,
            secret=jwt_secret,
            options=jwt_options,
            clock=self._clock,
        )

    @classmethod
    def from_config(
        cls,
        config: SessionAuthConfig,
        adapter: Adapter | None = None,
        *,
        get_session_attributes: Callable[[Mapping[str, Any]], SessionAttributesT] | None = None,
        get_user_attributes: Callable[[Mapping[str, Any]], UserAttributesT] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> SessionManager[SessionAttributesT, UserAttributesT]:
        """SessionAuthConfig から SessionManager を構築する。"""
        return cls(
            adapter,
            session_expires_in=TimeSpan(config.session.expires_in_seconds, "s"),
            session_cookie=config.cookie.to_options(),
            use_jwt=config.jwt.enabled,
            jwt_secret=config.jwt.secret or None,
            jwt_options=config.jwt.to_options(),
            get_session_attributes=get_session_attributes,
            get_user_attributes=get_user_attributes,
            clock=clock,
        )

    @property
    def session_expires_in(self) -> TimeSpan:
        return self._session_expires_in

    def _require_adapter(self) -> Adapter:
        if self._adapter is None:
            raise SessionAuthError(
                code=SessionAuthErrorCodes.NO_ADAPTER,
                message="No adapter provided.",
            )
        return self._adapter

    def _to_session(
        self, database_session: DatabaseSession, fresh: bool
    ) -> Session[SessionAttributesT]:
        return Session(
            id=database_session.id,
            user_id=database_session.user_id,
            expires_at=database_session.expires_at,
            fresh=fresh,
            attributes=self._get_session_attributes(database_session.attributes),
        )

    def _to_user(self, database_user: DatabaseUser) -> User[UserAttributesT]:
        return User(
            id=database_user.id,
            attributes=self._get_user_attributes(database_user.attributes),
        )

    async def create_session(
        self,
        user_id: str,
        attributes: Mapping[str, Any] | None = None,
        session_id: str | None = None,
    ) -> Session[SessionAttributesT]:
        """新しいセッションを作成して保存する。返すセッションは fresh=True。"""
        adapter = self._require_adapter()
        database_session = DatabaseSession(
            id=(
                session_id
                if session_id is not None
                else generate_id_from_entropy_size(SESSION_ID_ENTROPY_SIZE)
            ),
            user_id=user_id,
            expires_at=self._clock() + self._session_expires_in.to_timedelta(),
            attributes=dict(attributes or {}),
        )
        await adapter.set_session(database_session)
        logger.info("session created", session=_mask(database_session.id), user_id=user_id)
        return self._to_session(database_session, fresh=True)

    async def validate_session(
        self, session_id: str
    ) -> SessionValidationResult[SessionAttributesT, UserAttributesT]:
        """セッションを検証し、有効期間の後半に入っていれば延長する。

        - 存在しない: 書き込みなしで空の結果
        - ユーザーが存在しない / 期限切れ: セッションを削除して空の結果
        - 有効: 期限 - TTL/2 以降なら期限を now + TTL に更新して fresh=True
        """
        adapter = self._require_adapter()
        database_session, database_user = await adapter.get_session_and_user(session_id)
        if database_session is None:
            return SessionValidationResult()
        if database_user is None:
            await adapter.delete_session(database_session.id)
            logger.warning(
                "orphaned session deleted",
                session=_mask(database_session.id),
                user_id=database_session.user_id,
            )
            return SessionValidationResult()

        now = self._clock()
        if database_session.expires_at <= now:
            await adapter.delete_session(database_session.id)
            logger.info("expired session deleted", session=_mask(database_session.id))
            return SessionValidationResult()

        session = self._to_session(database_session, fresh=False)
        renewal_threshold = database_session.expires_at - self._session_expires_in.half()
        if now >= renewal_threshold:
            session.fresh = True
            session.expires_at = now + self._session_expires_in.to_timedelta()
            await adapter.update_session_expiration(database_session.id, session.expires_at)
            logger.debug("session renewed", session=_mask(session.id))
        return SessionValidationResult(session=session, user=self._to_user(database_user))

    async def get_user_sessions(self, user_id: str) -> list[Session[SessionAttributesT]]:
        """ユーザーの有効なセッション一覧を返す。

        期限切れのものは結果から除外するだけで削除はしない。
        """
        adapter = self._require_adapter()
        now = self._clock()
        return [
            self._to_session(s, fresh=False)
            for s in await adapter.get_user_sessions(user_id)
            if s.expires_at > now
        ]

    async def invalidate_session(self, session_id: str) -> None:
        adapter = self._require_adapter()
        await adapter.delete_session(session_id)
        logger.info("session invalidated", session=_mask(session_id))

    async def invalidate_user_sessions(self, user_id: str) -> None:
        adapter = self._require_adapter()
        await adapter.delete_user_sessions(user_id)
        logger.info("user sessions invalidated", user_id=user_id)

    async def delete_expired_sessions(self) -> None:
        adapter = self._require_adapter()
        await adapter.delete_expired_sessions()

    def read_session_cookie(self, cookie_header: str | None) -> str | None:
        """Cookie ヘッダーからセッション ID を取り出す。なければ None。"""
        return self._cookie_controller.parse(cookie_header)

    def read_bearer_token(self, authorization_header: str | None) -> str | None:
        """Authorization ヘッダーから Bearer トークンを取り出す。

        スキームは大文字小文字を区別して "Bearer" のみ受け付ける。
        """
        if not authorization_header:
            return None
        scheme, _, rest = authorization_header.partition(" ")
        if scheme != "Bearer":
            return None
        token = rest.split(" ", 1)[0]
        return token or None

    def create_session_cookie(self, session_id: str) -> Cookie:
        return self._cookie_controller.create_cookie(session_id)

    def create_blank_session_cookie(self) -> Cookie:
        """ログアウト用に即時失効する Cookie を返す。"""
        return self._cookie_controller.create_blank_cookie()

    def create_token(
        self,
        payload: Mapping[str, Any],
        sign_options: SignOptions | None = None,
    ) -> CreatedToken:
        return self._token_issuer.create_token(payload, sign_options)

    def verify_token(self, token: str, secret_override: Any | None = None) -> VerifiedToken:
        return self._token_issuer.verify_token(token, secret_override)
