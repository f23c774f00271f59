# -*- coding: utf-8 -*-
"""
@Time    : 2025/7/9 17:38
@Desc    : 提示词模板
"""

TRANSLATION_SYSTEM_PROMPT = """
Detect the language of the user's message.
If the message is already written in English, reply with exactly {sentinel} and nothing else.
Otherwise reply with the English translation only. No commentary, no quotes, no explanations.
""".strip()

REPLY_TEMPLATE = "{prefix}\n{translation}"

PAIRING_LINK_TEMPLATE = "https://t.me/{bot_username}?startgroup=true"
