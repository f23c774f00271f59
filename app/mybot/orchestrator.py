# -*- coding: utf-8 -*-
"""
@Time    : 2025/7/13 12:19
@Desc    : 订阅会话事件、分发消息管线，并在断线后以指数退避重连
"""
import asyncio
import random
from contextlib import suppress
from typing import List

from loguru import logger

from errors import FatalSessionError, SessionError
from models import DisconnectReason, IncomingMessage, SessionCredentials
from mybot.credential_store import CredentialStore
from mybot.events import SessionEvent, Subscription
from mybot.handlers.message_handler import MessagePipeline
from mybot.session_manager import Session, SessionManager
from mybot.task_manager import TaskManager


def compute_backoff_seconds(
    attempt: int, base: float = 1.0, cap: float = 60.0, *, jitter: bool = True
) -> float:
    """指数退避并限制上限；attempt 从 0 开始"""
    delay = min(cap, base * (2 ** max(0, attempt)))
    if jitter:
        delay = random.uniform(delay / 2, delay)
    return delay


class Orchestrator:
    def __init__(
        self,
        session_manager: SessionManager,
        pipeline: MessagePipeline,
        credential_store: CredentialStore,
        *,
        task_manager: TaskManager | None = None,
        reconnect_base_delay: float = 1.0,
        reconnect_max_delay: float = 60.0,
        shutdown_grace_period: float = 10.0,
    ):
        self._session_manager = session_manager
        self._pipeline = pipeline
        self._credential_store = credential_store
        self._task_manager = task_manager or TaskManager()
        self._reconnect_base_delay = reconnect_base_delay
        self._reconnect_max_delay = reconnect_max_delay
        self._shutdown_grace_period = shutdown_grace_period

        self._subscriptions: List[Subscription] = []
        self._stop_event = asyncio.Event()
        self._listen_task: asyncio.Task | None = None

    @property
    def task_manager(self) -> TaskManager:
        return self._task_manager

    @property
    def subscriptions(self) -> List[Subscription]:
        return list(self._subscriptions)

    def subscribe(self) -> None:
        if self._subscriptions:
            return
        manager = self._session_manager
        self._subscriptions = [
            manager.subscribe(SessionEvent.CREDENTIALS_CHANGED, self._on_credentials_changed),
            manager.subscribe(SessionEvent.CONNECTION_OPENED, self._on_connection_opened),
            manager.subscribe(SessionEvent.CONNECTION_CLOSED, self._on_connection_closed),
            manager.subscribe(SessionEvent.PAIRING_REQUIRED, self._on_pairing_required),
            manager.subscribe(SessionEvent.MESSAGE_RECEIVED, self._on_message_received),
        ]

    def unsubscribe(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()

    def dispatch(self, message: IncomingMessage) -> asyncio.Task | None:
        """过滤消息，并为合格的消息启动一个独立的后台管线"""
        if not self._pipeline.is_eligible(message):
            return None
        return self._task_manager.spawn(
            self._pipeline.handle(message), name=f"translate:{message.chat_id}/{message.message_id}"
        )

    def _on_message_received(self, message: IncomingMessage) -> None:
        # 不能返回 task，否则事件分发会等待翻译完成而阻塞轮询
        self.dispatch(message)

    def request_stop(self) -> None:
        logger.info("Receiving a shutdown signal, stopping the bot...")
        self._stop_event.set()
        if self._listen_task and not self._listen_task.done():
            self._listen_task.cancel()

    async def run(self) -> None:
        """
        连接并监听，直到收到停止信号

        Raises:
            FatalSessionError: 凭据损坏或被拒绝，需要人工处理
        """
        self.subscribe()
        attempt = 0
        try:
            while not self._stop_event.is_set():
                try:
                    if attempt == 0:
                        await self._session_manager.connect()
                    else:
                        await self._session_manager.reconnect()
                    if self._stop_event.is_set():
                        break
                    attempt = 0
                    self._listen_task = asyncio.create_task(self._session_manager.listen())
                    await self._listen_task
                except asyncio.CancelledError:
                    if not self._stop_event.is_set():
                        raise
                except FatalSessionError:
                    raise
                except SessionError as err:
                    delay = self._next_delay(attempt, err.retry_after)
                    attempt += 1
                    logger.warning(
                        f"Connection closed ({err.reason}): {err}. Reconnecting in {delay:.1f}s "
                        f"(attempt {attempt})"
                    )
                    await self._sleep_unless_stopped(delay)
                except Exception as err:
                    delay = self._next_delay(attempt)
                    attempt += 1
                    logger.exception(f"Unexpected error in session loop: {err}")
                    await self._sleep_unless_stopped(delay)
                finally:
                    self._listen_task = None
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        # 进行中的翻译仍需通过当前会话发送回复，先等待再断开
        if not await self._task_manager.wait_for_all(timeout=self._shutdown_grace_period):
            self._task_manager.cancel_all()
        await self._session_manager.disconnect()
        self.unsubscribe()

    def _next_delay(self, attempt: int, retry_after: float | None = None) -> float:
        delay = compute_backoff_seconds(
            attempt, base=self._reconnect_base_delay, cap=self._reconnect_max_delay
        )
        if retry_after:
            delay = max(delay, retry_after)
        return delay

    async def _sleep_unless_stopped(self, delay: float) -> None:
        with suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)

    async def _on_credentials_changed(self, credentials: SessionCredentials) -> None:
        await self._credential_store.save(credentials)
        logger.debug(f"Session saved (offset={credentials.update_offset})")

    @staticmethod
    def _on_connection_opened(session: Session) -> None:
        logger.success(f"✅ Telegram connected successfully as @{session.bot_username}")

    @staticmethod
    def _on_connection_closed(reason: DisconnectReason) -> None:
        if reason == DisconnectReason.SHUTDOWN:
            logger.info("Connection closed")
        else:
            logger.warning(f"❌ Connection closed: {reason.value}")

    @staticmethod
    def _on_pairing_required(link: str) -> None:
        logger.warning(f"\n📱 ADD THE BOT TO A GROUP WITH THIS LINK\n\n    {link}\n")
