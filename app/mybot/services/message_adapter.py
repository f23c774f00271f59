# -*- coding: utf-8 -*-
"""
@Time    : 2025/7/12 10:00
@Desc    : 将 Telegram 的 Message 转换为与平台无关的 IncomingMessage
"""
from telegram import Message
from telegram.constants import ChatType

from models import ChatKind, ExtendedText, IncomingMessage, MediaMessage, MessageContent

# Telegram 中不携带可翻译文本的消息类型；animation 会同时带 document 字段，需排在前面
UNSUPPORTED_ATTACHMENTS = (
    "sticker",
    "animation",
    "document",
    "voice",
    "audio",
    "video_note",
    "poll",
    "dice",
    "venue",
    "location",
    "contact",
    "game",
    "story",
)

_CHAT_KINDS = {
    ChatType.GROUP: ChatKind.GROUP,
    ChatType.SUPERGROUP: ChatKind.GROUP,
    ChatType.PRIVATE: ChatKind.DIRECT,
    ChatType.CHANNEL: ChatKind.CHANNEL,
}


def to_chat_kind(chat_type: str) -> ChatKind:
    return _CHAT_KINDS.get(chat_type, ChatKind.DIRECT)


def _is_extended_text(message: Message) -> bool:
    """带格式实体、链接预览或回复其他消息的文本视为扩展文本"""
    return bool(
        message.entities
        or message.reply_to_message
        or message.quote
        or message.link_preview_options
    )


def to_message_content(message: Message) -> MessageContent | None:
    """
    提取消息内容的形状

    Returns:
        没有任何内容的系统通知（例如成员加入、置顶）返回 None
    """
    if message.text:
        if _is_extended_text(message):
            quoted = message.reply_to_message.message_id if message.reply_to_message else None
            return MessageContent(
                extended_text=ExtendedText(text=message.text, quoted_message_id=quoted)
            )
        return MessageContent(conversation=message.text)

    if message.photo:
        return MessageContent(image=MediaMessage(caption=message.caption))

    if message.video:
        return MessageContent(video=MediaMessage(caption=message.caption))

    for attachment in UNSUPPORTED_ATTACHMENTS:
        if getattr(message, attachment, None):
            return MessageContent(other=attachment)

    return None


def to_incoming_message(message: Message, bot_id: int) -> IncomingMessage:
    sender_id = None
    if message.from_user:
        sender_id = message.from_user.id
    elif message.sender_chat:
        sender_id = message.sender_chat.id

    return IncomingMessage(
        message_id=message.message_id,
        chat_id=message.chat.id,
        sender_id=sender_id,
        from_me=bool(message.from_user and message.from_user.id == bot_id),
        chat_kind=to_chat_kind(message.chat.type),
        content=to_message_content(message),
        received_at=message.date,
    )
