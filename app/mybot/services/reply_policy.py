# -*- coding: utf-8 -*-
"""
@Desc    : 根据提取结果和翻译结果决定是否回复
"""
from loguru import logger

from models import ReplyDecision, TranslationResult
from prompts import REPLY_TEMPLATE
from settings import Settings

# Telegram text limits
MAX_MESSAGE_LENGTH = int(4096 * 0.9)  # 3686 characters (90% of 4096 for safety)
TRUNCATION_MARK = "..."


class ReplyPolicy:
    def __init__(self, prefix: str = "🌐 Translated to English:", quote_original: bool = False):
        self.prefix = prefix
        self.quote_original = quote_original

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReplyPolicy":
        return cls(prefix=settings.REPLY_PREFIX, quote_original=settings.QUOTE_ORIGINAL_MESSAGE)

    def format_reply(self, translation: str) -> str:
        """拼接前缀与译文；超出 Telegram 长度限制时截断译文，每条消息仍只回复一次"""
        translation = translation.strip()
        reply = REPLY_TEMPLATE.format(prefix=self.prefix, translation=translation)
        if len(reply) <= MAX_MESSAGE_LENGTH:
            return reply

        overflow = len(reply) - MAX_MESSAGE_LENGTH + len(TRUNCATION_MARK)
        logger.warning(f"Translation exceeds {MAX_MESSAGE_LENGTH} characters, truncating {overflow}")
        truncated = translation[: max(0, len(translation) - overflow)].rstrip() + TRUNCATION_MARK
        return REPLY_TEMPLATE.format(prefix=self.prefix, translation=truncated)

    def decide(
        self,
        extracted_text: str | None,
        result: TranslationResult | None,
        source_message_id: int | None = None,
    ) -> ReplyDecision:
        """
        规则按顺序匹配：

        1. 没有提取到文本 → 不回复
        2. 翻译失败 → 不回复（仅记录日志）
        3. 原文已是英语 → 不回复
        4. 否则回复带前缀的译文
        """
        if not extracted_text or not extracted_text.strip():
            return ReplyDecision.no_reply("no text extracted")

        if result is None or not result.success:
            error = result.error if result else "no translation result"
            logger.warning(f"Translation failed, no reply will be sent: {error}")
            return ReplyDecision.no_reply(f"translation failed: {error}")

        if result.same_language:
            return ReplyDecision.no_reply("already English")

        reply_to = source_message_id if self.quote_original else None
        return ReplyDecision.send_reply(self.format_reply(result.text), reply_to_message_id=reply_to)
