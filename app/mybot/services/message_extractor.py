# -*- coding: utf-8 -*-
"""
@Desc    : 从消息内容中提取纯文本

按固定优先级尝试：普通文本 → 扩展文本 → 图片说明 → 视频说明。
其他任何消息类型（贴纸、文件、表情回应、系统通知以及将来新增的类型）都提取为 None。
"""
from typing import Callable, Tuple

from loguru import logger

from models import MessageContent

ContentGetter = Callable[[MessageContent], str | None]

CONTENT_EXTRACTORS: Tuple[Tuple[str, ContentGetter], ...] = (
    ("conversation", lambda content: content.conversation),
    ("extended_text", lambda content: content.extended_text.text),
    ("image_caption", lambda content: content.image.caption),
    ("video_caption", lambda content: content.video.caption),
)


def extract(content: MessageContent | None) -> str | None:
    """返回第一个非空的文本，都不匹配时返回 None"""
    if content is None:
        return None

    for shape, getter in CONTENT_EXTRACTORS:
        try:
            text = getter(content)
        except AttributeError:
            # 该形状不存在
            continue

        if isinstance(text, str) and text.strip():
            logger.trace(f"extracted text from {shape}")
            return text

    if label := getattr(content, "other", None):
        logger.debug(f"Unsupported message shape: {label}")
    return None
