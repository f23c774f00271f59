# -*- coding: utf-8 -*-
"""
@Time    : 2025/7/7 05:41
@Desc    : chat completions 接口的请求与响应模型
"""
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str | None = None


class ChatCompletionPayload(BaseModel):
    model: str
    messages: List[ChatMessage]
    temperature: float | None = Field(default=0, description="翻译任务不需要随机性")

    @classmethod
    def from_instruction(
        cls, model: str, system_instruction: str, user_text: str
    ) -> "ChatCompletionPayload":
        return cls(
            model=model,
            messages=[
                ChatMessage(role="system", content=system_instruction),
                ChatMessage(role="user", content=user_text),
            ],
        )

    def dumps_params(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class ChatCompletionChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    index: int = 0
    message: ChatMessage
    finish_reason: str | None = None


class ChatCompletionResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    model: str | None = None
    choices: List[ChatCompletionChoice] = Field(default_factory=list)

    @property
    def content(self) -> str | None:
        """第一个 choice 的文本内容，不存在时为 None"""
        if not self.choices:
            return None
        return self.choices[0].message.content
