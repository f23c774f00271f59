# -*- coding: utf-8 -*-
"""
Thin adapter over telegram.Bot.

The session manager only talks to the network through this class, which keeps the
Bot API wire protocol out of the rest of the code base and makes it easy to fake.
"""
from typing import Sequence

from loguru import logger
from telegram import Bot, Message, ReplyParameters, Update, User
from telegram.request import HTTPXRequest


class TelegramTransport:
    def __init__(
        self,
        token: str,
        request_timeout: float = 75.0,
        proxy_url: str | None = None,
        *,
        bot: Bot | None = None,
    ):
        if bot is None:
            request_kwargs = dict(
                connect_timeout=request_timeout,
                read_timeout=request_timeout,
                write_timeout=request_timeout,
            )
            if proxy_url:
                logger.success(f"使用代理: {proxy_url}")
                request_kwargs["proxy"] = proxy_url
            bot = Bot(
                token=token,
                request=HTTPXRequest(**request_kwargs),
                get_updates_request=HTTPXRequest(**request_kwargs),
            )
        self._bot = bot

    @property
    def bot(self) -> Bot:
        return self._bot

    async def open(self) -> User:
        """Initialize the bot and return its own user record (getMe)."""
        await self._bot.initialize()
        return self._bot.bot

    async def fetch_updates(self, offset: int | None, timeout: int) -> Sequence[Update]:
        return await self._bot.get_updates(
            offset=offset or None, timeout=timeout, allowed_updates=[Update.MESSAGE]
        )

    async def send_text(
        self, chat_id: int, text: str, reply_to_message_id: int | None = None
    ) -> Message:
        reply_parameters = None
        if reply_to_message_id:
            reply_parameters = ReplyParameters(
                message_id=reply_to_message_id, allow_sending_without_reply=True
            )
        return await self._bot.send_message(
            chat_id=chat_id, text=text, reply_parameters=reply_parameters
        )

    async def close(self) -> None:
        await self._bot.shutdown()
