# -*- coding: utf-8 -*-
"""
@Time    : 2025/7/7 05:40
@Desc    : OpenAI 兼容的 chat completions 客户端
"""
import asyncio

import httpx
from httpx import AsyncClient
from loguru import logger

from errors import TransportError, UpstreamFormatError
from translator.models import ChatCompletionPayload, ChatCompletionResponse


class CompletionClient:
    def __init__(self, api_key: str, base_url: str, timeout: float = 30.0):
        headers = {"Authorization": f"Bearer {api_key}"}
        self._timeout = timeout
        self._client = AsyncClient(base_url=base_url, headers=headers, timeout=timeout)

    async def __aenter__(self) -> "CompletionClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def create(self, payload: ChatCompletionPayload) -> ChatCompletionResponse:
        """
        发起一次 chat completion 请求

        不做任何重试，重试策略由调用方决定。

        Raises:
            TransportError: 连接失败、超时或非 2xx 响应
            UpstreamFormatError: 响应体不是合法的 chat completion 结构
        """
        try:
            # httpx 的 timeout 只限制单个阶段，整体耗时另设上限
            async with asyncio.timeout(self._timeout):
                response = await self._client.post(
                    "/chat/completions", json=payload.dumps_params()
                )
            response.raise_for_status()
        except TimeoutError as err:
            raise TransportError(f"translation request timed out after {self._timeout}s") from err
        except httpx.TimeoutException as err:
            raise TransportError(f"translation request timed out: {err!r}") from err
        except httpx.HTTPStatusError as err:
            status_code = err.response.status_code
            raise TransportError(
                f"translation endpoint answered {status_code}", status_code=status_code
            ) from err
        except httpx.HTTPError as err:
            raise TransportError(f"translation endpoint unreachable: {err!r}") from err

        try:
            result = ChatCompletionResponse(**response.json())
        except (ValueError, TypeError) as err:
            raise UpstreamFormatError(f"malformed completion response: {err}") from err

        logger.debug(f"completion finished: model={result.model} choices={len(result.choices)}")
        return result
