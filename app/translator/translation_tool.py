# -*- coding: utf-8 -*-
"""
@Time    : 2025/7/8 19:51
@Desc    : 翻译服务：任意语言 → 英语

同语种判定策略：
1. 模型返回的标记值（默认 SAME）是权威信号。比较前去掉首尾空白、引号、反引号以及结尾的句号或感叹号，并忽略大小写。
2. 若模型原样回显输入（按同样的规则规范化后相等），同样视为同语种。
3. 模型有时会在标记值之后追加说明（例如 SAME 换行后再附一句 "(The text is already in English.)"）。只要第一条非空行规范化后等于标记值，同样视为同语种，说明文字不会被当作译文发出。
4. 其余非空输出一律视为译文。以标记词开头的译文（例如 "Same here"）仍是译文。
"""
import re

from loguru import logger

from errors import TranslationError, UpstreamFormatError
from models import TranslationResult
from prompts import TRANSLATION_SYSTEM_PROMPT
from settings import Settings
from translator.completion_client import CompletionClient
from translator.models import ChatCompletionPayload
from utils import preview

_WRAPPING_CHARS = "\"'`“”‘’「」"
_TRAILING_PUNCTUATION = ".!。！"


def normalize_text(text: str) -> str:
    """折叠空白并忽略大小写"""
    return re.sub(r"\s+", " ", text).strip().casefold()


def normalize_answer(answer: str) -> str:
    """去掉模型在标记值外面常见的包裹字符"""
    answer = answer.strip()
    previous = None
    while previous != answer:
        previous = answer
        answer = answer.strip().strip(_WRAPPING_CHARS).rstrip(_TRAILING_PUNCTUATION)
    return normalize_text(answer)


def first_line(answer: str) -> str:
    for line in answer.splitlines():
        if line.strip():
            return line
    return ""


def is_same_language(source_text: str, answer: str, sentinel: str) -> bool:
    expected = normalize_text(sentinel)
    if normalize_answer(answer) == expected or normalize_answer(first_line(answer)) == expected:
        return True
    return normalize_answer(answer) == normalize_answer(source_text)


class TranslationClient:
    def __init__(
        self,
        api_key: str,
        model: str,
        sentinel: str = "SAME",
        *,
        completion_client: CompletionClient | None = None,
        base_url: str = "https://api.groq.com/openai/v1",
        timeout: float = 30.0,
    ):
        self._api_key = api_key
        self._model = model
        self._sentinel = sentinel
        self._system_instruction = TRANSLATION_SYSTEM_PROMPT.format(sentinel=sentinel)
        self._completion_client = completion_client or CompletionClient(
            api_key=api_key, base_url=base_url, timeout=timeout
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "TranslationClient":
        return cls(
            api_key=settings.GROQ_API_KEY.get_secret_value(),
            model=settings.MODEL,
            sentinel=settings.SAME_LANGUAGE_SENTINEL,
            base_url=settings.TRANSLATION_BASE_URL,
            timeout=settings.TRANSLATION_TIMEOUT,
        )

    @property
    def model(self) -> str:
        return self._model

    async def aclose(self) -> None:
        await self._completion_client.aclose()

    async def translate(self, text: str) -> TranslationResult:
        """
        翻译一段文本

        该方法不会抛出异常：任何失败都以 TranslationResult.failed 的形式返回，也不会自动重试。

        Args:
            text: 待翻译的原文

        Returns:
            translated / same / error 三种结果之一
        """
        if not self._api_key:
            logger.error("Translation skipped: GROQ_API_KEY is not configured")
            return TranslationResult.failed("missing translation API credential")

        if not text or not text.strip():
            return TranslationResult.failed("empty input text")

        payload = ChatCompletionPayload.from_instruction(
            model=self._model, system_instruction=self._system_instruction, user_text=text
        )

        try:
            response = await self._completion_client.create(payload)
            answer = (response.content or "").strip()
            if not normalize_answer(answer):
                raise UpstreamFormatError("completion response has no content")
        except TranslationError as err:
            logger.error(f"Translation failed ({type(err).__name__}): {err}")
            return TranslationResult.failed(str(err))
        except Exception as err:
            logger.exception(f"Unexpected translation failure: {err}")
            return TranslationResult.failed(f"unexpected error: {err!r}")

        if is_same_language(text, answer, self._sentinel):
            logger.debug(f"English detected → no translation needed: {preview(text)}")
            return TranslationResult.same()

        return TranslationResult.translated(answer)
