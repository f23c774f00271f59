# -*- coding: utf-8 -*-
"""
@Time    : 2025/7/12 10:00
@Desc    : The message pipeline: filter → extract → translate → decide → send.
"""
from typing import Awaitable, Callable

from loguru import logger

from models import ChatKind, IncomingMessage, ReplyDecision
from mybot.services.message_extractor import extract
from mybot.services.reply_policy import ReplyPolicy
from translator import TranslationClient
from utils import preview

SendText = Callable[[int, str, int | None], Awaitable[bool]]


def skip_reason(message: IncomingMessage) -> str | None:
    """返回跳过该消息的原因；返回 None 表示消息需要处理"""
    if message.content is None:
        return "no content"

    # 机器人自己发出的消息必须跳过，否则会陷入无限回复
    if message.from_me:
        return "self-sent"

    if message.chat_kind != ChatKind.GROUP:
        return f"not a group chat ({message.chat_kind.value})"

    return None


class MessagePipeline:
    def __init__(self, translator: TranslationClient, reply_policy: ReplyPolicy, send_text: SendText):
        self._translator = translator
        self._reply_policy = reply_policy
        self._send_text = send_text

    def is_eligible(self, message: IncomingMessage) -> bool:
        if reason := skip_reason(message):
            logger.trace(f"Skip message {message.chat_id}/{message.message_id}: {reason}")
            return False
        return True

    async def handle(self, message: IncomingMessage) -> ReplyDecision:
        """
        处理一条消息。任何阶段的异常都会被捕获并记录，返回不回复的决定。

        Returns:
            本条消息的回复决定，便于调用方记录与测试
        """
        if not self.is_eligible(message):
            return ReplyDecision.no_reply(skip_reason(message))

        try:
            return await self._run(message)
        except Exception as e:
            logger.exception(f"Message pipeline failed for {message.chat_id}/{message.message_id}: {e}")
            return ReplyDecision.no_reply(f"pipeline error: {e}")

    async def _run(self, message: IncomingMessage) -> ReplyDecision:
        # ==================== Section 1: 提取文本 ====================
        text = extract(message.content)
        if not text:
            return self._reply_policy.decide(text, None, message.message_id)

        logger.info(f"📩 Received from chat {message.chat_id}: {preview(text)}")

        # ==================== Section 2: 调用翻译 ====================
        result = await self._translator.translate(text)

        # ==================== Section 3: 回复决策与发送 ====================
        decision = self._reply_policy.decide(text, result, message.message_id)
        if not decision.should_reply:
            logger.debug(f"No reply for {message.chat_id}/{message.message_id}: {decision.reason}")
            return decision

        sent = await self._send_text(message.chat_id, decision.text, decision.reply_to_message_id)
        if sent:
            logger.success(f"➡️ Sent translation to chat {message.chat_id}: {preview(decision.text)}")
        else:
            logger.error(f"Failed to deliver translation to chat {message.chat_id}")
        return decision
