# -*- coding: utf-8 -*-
"""
@Time    : 2025/7/12 10:00
@Desc    : 管理与 Telegram 的认证会话：恢复凭据、长轮询、发送消息以及断线重连
"""
import hashlib
from datetime import datetime, UTC
from typing import Callable

from loguru import logger
from telegram.constants import BOT_API_VERSION
from telegram.error import (
    Conflict,
    InvalidToken,
    NetworkError,
    RetryAfter,
    TelegramError,
    TimedOut,
)

from errors import CredentialsRejectedError, SessionError
from models import ConnectionState, DisconnectReason, SessionCredentials
from mybot.credential_store import CredentialStore
from mybot.events import EventCallback, EventEmitter, SessionEvent, Subscription
from mybot.services.message_adapter import to_incoming_message
from mybot.telegram_transport import TelegramTransport
from prompts import PAIRING_LINK_TEMPLATE
from settings import Settings


def token_fingerprint(token: str) -> str:
    return hashlib.sha256(token.encode("utf8")).hexdigest()[:16]


def _retry_after_seconds(err: RetryAfter) -> float:
    retry_after = err.retry_after
    if hasattr(retry_after, "total_seconds"):
        return float(retry_after.total_seconds())
    return float(retry_after)


def to_session_error(err: TelegramError) -> SessionError:
    """将 Telegram 的网络异常归类为断线原因"""
    if isinstance(err, InvalidToken):
        return CredentialsRejectedError(DisconnectReason.LOGGED_OUT, f"Bot token rejected: {err}")
    if isinstance(err, RetryAfter):
        return SessionError(
            DisconnectReason.RATE_LIMITED, str(err), retry_after=_retry_after_seconds(err)
        )
    if isinstance(err, Conflict):
        return SessionError(DisconnectReason.CONFLICT, f"Another poller is active: {err}")
    if isinstance(err, TimedOut):
        return SessionError(DisconnectReason.TIMED_OUT, str(err))
    if isinstance(err, NetworkError):
        return SessionError(DisconnectReason.NETWORK_ERROR, str(err))
    return SessionError(DisconnectReason.SERVER_ERROR, str(err))


class Session:
    """一次认证连接。断线后被丢弃，由新的 Session 取代"""

    def __init__(self, protocol_version: str = BOT_API_VERSION):
        self.state = ConnectionState.CONNECTING
        self.protocol_version = protocol_version
        self.credentials: SessionCredentials | None = None
        self.opened_at: datetime | None = None
        self.close_reason: DisconnectReason | None = None
        self.can_read_all_group_messages: bool | None = None

    @property
    def is_open(self) -> bool:
        return self.state == ConnectionState.OPEN

    @property
    def bot_username(self) -> str | None:
        return self.credentials.bot_username if self.credentials else None

    def __repr__(self):
        return f"<Session(state={self.state.value}, bot={self.bot_username}, protocol={self.protocol_version})>"


class SessionManager:
    def __init__(
        self,
        token: str,
        credential_store: CredentialStore,
        transport_factory: Callable[[], TelegramTransport],
        polling_timeout: int = 30,
    ):
        self._token = token
        self._credential_store = credential_store
        self._transport_factory = transport_factory
        self._polling_timeout = polling_timeout

        self._events = EventEmitter()
        self._session: Session | None = None
        self._transport: TelegramTransport | None = None
        self._credentials: SessionCredentials | None = None

    @classmethod
    def from_settings(cls, settings: Settings, credential_store: CredentialStore) -> "SessionManager":
        token = settings.TELEGRAM_BOT_API_TOKEN.get_secret_value()

        def transport_factory() -> TelegramTransport:
            return TelegramTransport(
                token=token,
                request_timeout=settings.HTTP_REQUEST_TIMEOUT,
                proxy_url=settings.proxy_url,
            )

        return cls(
            token=token,
            credential_store=credential_store,
            transport_factory=transport_factory,
            polling_timeout=settings.POLLING_TIMEOUT,
        )

    @property
    def session(self) -> Session | None:
        return self._session

    def subscribe(self, event: SessionEvent, callback: EventCallback) -> Subscription:
        return self._events.subscribe(event, callback)

    async def connect(self) -> Session:
        """
        建立或恢复连接

        首次运行（或 token 更换）时进入配对流程，通过 pairing_required 事件向运维人员展示
        将机器人拉进群组的链接。

        Raises:
            CredentialsCorruptedError: 持久化的凭据损坏，不会静默地以新会话启动
            CredentialsRejectedError: token 被服务端拒绝
            SessionError: 其他连接失败，可重试
        """
        if self._credentials is None:
            self._credentials = self._credential_store.load()

        session = Session()
        self._session = session
        self._transport = self._transport_factory()
        logger.info(f"Connecting to Telegram Bot API {session.protocol_version}...")

        try:
            bot_user = await self._transport.open()
        except TelegramError as err:
            error = to_session_error(err)
            await self._close(session, error.reason)
            raise error from err

        session.can_read_all_group_messages = bot_user.can_read_all_group_messages
        if bot_user.can_read_all_group_messages is False:
            # 隐私模式下 getUpdates 只会收到命令和对机器人的回复，普通群消息永远不会到达
            logger.warning(
                f"@{bot_user.username} has privacy mode enabled and will not see ordinary group "
                "messages. Disable it with @BotFather /setprivacy, or make the bot a group admin"
            )

        fingerprint = token_fingerprint(self._token)
        credentials = self._credentials
        if credentials and (
            credentials.token_fingerprint != fingerprint or credentials.bot_id != bot_user.id
        ):
            logger.warning("Persisted session belongs to a different bot token, pairing again")
            credentials = None

        if credentials is None:
            credentials = SessionCredentials(
                bot_id=bot_user.id, bot_username=bot_user.username, token_fingerprint=fingerprint
            )
            link = PAIRING_LINK_TEMPLATE.format(bot_username=bot_user.username)
            await self._events.emit(SessionEvent.PAIRING_REQUIRED, link)
            await self._update_credentials(session, credentials)
        elif credentials.bot_username != bot_user.username:
            await self._update_credentials(
                session, credentials.model_copy(update={"bot_username": bot_user.username})
            )
        else:
            session.credentials = credentials

        session.state = ConnectionState.OPEN
        session.opened_at = datetime.now(UTC)
        await self._events.emit(SessionEvent.CONNECTION_OPENED, session)
        return session

    async def listen(self) -> None:
        """
        长轮询直到会话关闭

        每批更新先推进并持久化 offset，再逐条分发，因此重启后不会重复分发同一条消息。

        Raises:
            SessionError: 连接中断，由调用方决定是否重连
        """
        session = self._require_open()

        while session.is_open:
            try:
                updates = await self._transport.fetch_updates(
                    offset=session.credentials.update_offset, timeout=self._polling_timeout
                )
            except TelegramError as err:
                error = to_session_error(err)
                await self._close(session, error.reason)
                raise error from err

            if not session.is_open or not updates:
                continue

            next_offset = max(update.update_id for update in updates) + 1
            await self._update_credentials(session, session.credentials.advance(next_offset))

            for update in updates:
                if update.message is None:
                    continue
                try:
                    incoming = to_incoming_message(update.message, session.credentials.bot_id)
                except Exception as err:
                    logger.exception(f"Failed to convert update {update.update_id}: {err}")
                    continue
                await self._events.emit(SessionEvent.MESSAGE_RECEIVED, incoming)

    async def send_text(
        self, chat_id: int, text: str, reply_to_message_id: int | None = None
    ) -> bool:
        if self._session is None or not self._session.is_open:
            logger.error(f"Cannot send to chat {chat_id}: session is not open")
            return False

        try:
            await self._transport.send_text(chat_id, text, reply_to_message_id=reply_to_message_id)
            return True
        except TelegramError as err:
            logger.error(f"Failed to send message to chat {chat_id}: {err}")
            return False

    async def reconnect(self) -> Session:
        """丢弃当前会话并建立一个新会话"""
        if self._session and self._session.state != ConnectionState.CLOSED:
            await self._close(self._session, DisconnectReason.NETWORK_ERROR)
        return await self.connect()

    async def disconnect(self) -> None:
        if self._session and self._session.state != ConnectionState.CLOSED:
            await self._close(self._session, DisconnectReason.SHUTDOWN)

    def _require_open(self) -> Session:
        if self._session is None or not self._session.is_open:
            raise SessionError(DisconnectReason.NETWORK_ERROR, "Session is not open")
        return self._session

    async def _update_credentials(self, session: Session, credentials: SessionCredentials):
        # 持久化失败时保留旧的 offset，重连后这一批更新会被重新拉取
        await self._events.emit(SessionEvent.CREDENTIALS_CHANGED, credentials, propagate=True)
        session.credentials = credentials
        self._credentials = credentials

    async def _close(self, session: Session, reason: DisconnectReason) -> None:
        session.state = ConnectionState.CLOSED
        session.close_reason = reason
        if self._transport is not None:
            try:
                await self._transport.close()
            except TelegramError as err:
                logger.warning(f"Error while closing transport: {err}")
        await self._events.emit(SessionEvent.CONNECTION_CLOSED, reason)
