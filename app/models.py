# -*- coding: utf-8 -*-
"""
@Time    : 2025/7/8 12:34
@Desc    : 会话、消息与翻译结果的数据模型
"""

from datetime import datetime, UTC
from enum import Enum
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class ChatKind(str, Enum):
    GROUP = "group"
    """
    群组与超级群组，唯一会触发翻译回复的聊天类型
    """

    DIRECT = "direct"
    """
    一对一私聊
    """

    CHANNEL = "channel"


class DisconnectReason(str, Enum):
    NETWORK_ERROR = "network_error"
    TIMED_OUT = "timed_out"
    RATE_LIMITED = "rate_limited"
    CONFLICT = "conflict"
    SERVER_ERROR = "server_error"
    LOGGED_OUT = "logged_out"
    SHUTDOWN = "shutdown"


class ExtendedText(BaseModel):
    text: str | None = None
    quoted_message_id: int | None = Field(default=None, description="被回复的消息 id")


class MediaMessage(BaseModel):
    caption: str | None = None


class MessageContent(BaseModel):
    """
    消息内容的标签联合体。

    网络层可能同时填充多个字段，提取时按固定优先级选择；未知的字段被忽略。
    """

    model_config = ConfigDict(extra="ignore")

    conversation: str | None = None
    extended_text: ExtendedText | None = None
    image: MediaMessage | None = None
    video: MediaMessage | None = None
    other: str | None = Field(
        default=None, description="不支持的消息类型标签，例如 sticker、document、reaction"
    )


class IncomingMessage(BaseModel):
    message_id: int
    chat_id: int
    sender_id: int | None = None
    from_me: bool = False
    chat_kind: ChatKind
    content: MessageContent | None = None
    received_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class TranslationStatus(str, Enum):
    TRANSLATED = "translated"
    SAME = "same"
    ERROR = "error"


class TranslationResult(BaseModel):
    status: TranslationStatus
    text: str | None = Field(default=None, description="仅在成功翻译时存在")
    error: str | None = Field(default=None, description="仅在失败时存在")

    @model_validator(mode="after")
    def _check_fields(self) -> Self:
        if self.status == TranslationStatus.TRANSLATED and not (self.text and self.text.strip()):
            raise ValueError("a translated result must carry non-empty text")
        if self.status != TranslationStatus.TRANSLATED and self.text is not None:
            raise ValueError(f"a {self.status.value} result must not carry text")
        if self.status == TranslationStatus.ERROR and not self.error:
            raise ValueError("a failed result must carry an error detail")
        if self.status != TranslationStatus.ERROR and self.error is not None:
            raise ValueError(f"a {self.status.value} result must not carry an error detail")
        return self

    @property
    def success(self) -> bool:
        return self.status != TranslationStatus.ERROR

    @property
    def same_language(self) -> bool:
        return self.status == TranslationStatus.SAME

    @classmethod
    def translated(cls, text: str) -> "TranslationResult":
        return cls(status=TranslationStatus.TRANSLATED, text=text)

    @classmethod
    def same(cls) -> "TranslationResult":
        return cls(status=TranslationStatus.SAME)

    @classmethod
    def failed(cls, error: str) -> "TranslationResult":
        return cls(status=TranslationStatus.ERROR, error=error or "unknown error")


class ReplyDecision(BaseModel):
    should_reply: bool
    text: str | None = None
    reply_to_message_id: int | None = None
    reason: str | None = Field(default=None, description="不回复的原因，仅用于日志")

    @classmethod
    def no_reply(cls, reason: str) -> "ReplyDecision":
        return cls(should_reply=False, reason=reason)

    @classmethod
    def send_reply(cls, text: str, reply_to_message_id: int | None = None) -> "ReplyDecision":
        return cls(should_reply=True, text=text, reply_to_message_id=reply_to_message_id)


class SessionCredentials(BaseModel):
    """会话凭据，由 Session 独占，每次变化都会被持久化"""

    bot_id: int
    bot_username: str
    token_fingerprint: str = Field(description="bot token 的 sha256 前缀，用于识别 token 是否更换")
    update_offset: int = Field(default=0, description="下一次 getUpdates 使用的 offset")
    paired_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def advance(self, update_offset: int) -> "SessionCredentials":
        return self.model_copy(
            update={"update_offset": update_offset, "updated_at": datetime.now(UTC)}
        )
