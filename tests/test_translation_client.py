# -*- coding: utf-8 -*-
"""
@Desc    : Tests for the translation client and its same-language detection strategy
"""
import asyncio
import json
from collections.abc import AsyncGenerator
from unittest.mock import patch

import httpx
import pytest
import pytest_asyncio
import respx
from httpx import Response

from models import TranslationStatus
from translator import CompletionClient, TranslationClient, is_same_language

BASE_URL = "https://translation.test/openai/v1"
COMPLETIONS_URL = f"{BASE_URL}/chat/completions"


def completion(content):
    return {
        "id": "chatcmpl-1",
        "model": "llama-3.3-70b-versatile",
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}
        ],
    }


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[TranslationClient, None]:
    translation_client = TranslationClient(
        api_key="test-key", model="llama-3.3-70b-versatile", base_url=BASE_URL, timeout=5.0
    )
    yield translation_client
    await translation_client.aclose()


class TestTranslate:
    @pytest.mark.asyncio
    @respx.mock
    async def test_translated_text(self, client):
        route = respx.post(COMPLETIONS_URL).mock(
            return_value=Response(200, json=completion("Hello friends"))
        )

        result = await client.translate("Hola amigos")

        assert result.status == TranslationStatus.TRANSLATED
        assert result.text == "Hello friends"
        assert result.success is True
        assert result.same_language is False
        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_request_shape(self, client):
        route = respx.post(COMPLETIONS_URL).mock(
            return_value=Response(200, json=completion("Hello"))
        )

        await client.translate("Hola")

        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer test-key"
        body = json.loads(request.content)
        assert body["model"] == "llama-3.3-70b-versatile"
        assert [message["role"] for message in body["messages"]] == ["system", "user"]
        assert "SAME" in body["messages"][0]["content"]
        assert body["messages"][1]["content"] == "Hola"

    @pytest.mark.asyncio
    @respx.mock
    async def test_sentinel_means_same_language(self, client):
        respx.post(COMPLETIONS_URL).mock(return_value=Response(200, json=completion("SAME")))

        result = await client.translate("Hello there")

        assert result.status == TranslationStatus.SAME
        assert result.same_language is True
        assert result.text is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_timeout_is_an_error_without_retry(self, client):
        route = respx.post(COMPLETIONS_URL).mock(side_effect=httpx.ReadTimeout("timed out"))

        result = await client.translate("Hola amigos")

        assert result.status == TranslationStatus.ERROR
        assert "timed out" in result.error
        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_server_error_is_an_error_without_retry(self, client):
        route = respx.post(COMPLETIONS_URL).mock(return_value=Response(500, json={"error": "boom"}))

        result = await client.translate("Hola amigos")

        assert result.status == TranslationStatus.ERROR
        assert "500" in result.error
        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_connection_error(self, client):
        respx.post(COMPLETIONS_URL).mock(side_effect=httpx.ConnectError("refused"))

        result = await client.translate("Hola amigos")

        assert result.status == TranslationStatus.ERROR

    @pytest.mark.asyncio
    @respx.mock
    @pytest.mark.parametrize(
        "body",
        [
            {"choices": []},
            completion(""),
            completion("   "),
            completion(None),
            completion('""'),
            {"unexpected": "shape"},
        ],
    )
    async def test_empty_or_malformed_response_is_an_error(self, client, body):
        respx.post(COMPLETIONS_URL).mock(return_value=Response(200, json=body))

        result = await client.translate("Hola amigos")

        assert result.status == TranslationStatus.ERROR
        assert result.text is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_json_response_is_an_error(self, client):
        respx.post(COMPLETIONS_URL).mock(return_value=Response(200, text="<html>oops</html>"))

        result = await client.translate("Hola amigos")

        assert result.status == TranslationStatus.ERROR

    @pytest.mark.asyncio
    @respx.mock
    async def test_missing_credential_never_calls_upstream(self):
        route = respx.post(COMPLETIONS_URL).mock(return_value=Response(200, json=completion("Hi")))
        translation_client = TranslationClient(api_key="", model="m", base_url=BASE_URL)

        try:
            result = await translation_client.translate("Hola")
        finally:
            await translation_client.aclose()

        assert result.status == TranslationStatus.ERROR
        assert route.call_count == 0

    @pytest.mark.asyncio
    @respx.mock
    async def test_sentinel_with_trailing_commentary_is_same_language(self, client):
        respx.post(COMPLETIONS_URL).mock(
            return_value=Response(200, json=completion("SAME\n\n(The text is already in English.)"))
        )

        result = await client.translate("Hello there")

        assert result.status == TranslationStatus.SAME
        assert result.text is None

    @pytest.mark.asyncio
    async def test_slow_response_is_bounded_by_the_overall_timeout(self):
        completion_client = CompletionClient(api_key="test-key", base_url=BASE_URL, timeout=0.05)
        translation_client = TranslationClient(
            api_key="test-key", model="m", completion_client=completion_client
        )

        async def trickle(*args, **kwargs):
            await asyncio.sleep(5)

        try:
            with patch.object(completion_client._client, "post", side_effect=trickle) as post:
                result = await asyncio.wait_for(translation_client.translate("Hola"), timeout=2)
        finally:
            await translation_client.aclose()

        assert result.status == TranslationStatus.ERROR
        assert "timed out" in result.error
        post.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_blank_input_is_an_error(self, client):
        result = await client.translate("   ")

        assert result.status == TranslationStatus.ERROR


class TestSameLanguageDetection:
    @pytest.mark.parametrize(
        "answer",
        ["SAME", "same", " SAME\n", "SAME.", "'SAME'", '"SAME"', "`SAME`", "Same!", "“SAME”"],
    )
    def test_sentinel_variants(self, answer):
        assert is_same_language("Hello there", answer, "SAME") is True

    @pytest.mark.parametrize(
        "source, answer",
        [
            ("Hello there", "Hello there"),
            ("Hello   there", "hello there"),
            ("Good morning, team", "Good morning, team."),
        ],
    )
    def test_verbatim_echo_is_same_language(self, source, answer):
        assert is_same_language(source, answer, "SAME") is True

    @pytest.mark.parametrize(
        "source, answer",
        [
            ("Igualmente", "Same here"),
            ("Lo mismo", "The same"),
            ("Hola amigos", "Hello friends"),
            ("París", "Paris"),
            ("SAME SAME", "SAME SAME but different"),
        ],
    )
    def test_translations_are_not_same_language(self, source, answer):
        assert is_same_language(source, answer, "SAME") is False

    @pytest.mark.parametrize(
        "answer",
        [
            "SAME\n\n(The text is already in English.)",
            "SAME.\nThe message is written in English.",
            "\n  `SAME`  \nNo translation needed.",
        ],
    )
    def test_sentinel_on_the_first_line_is_same_language(self, answer):
        assert is_same_language("Hello there", answer, "SAME") is True

    @pytest.mark.parametrize(
        "answer",
        [
            "Same here.\nSee you tomorrow.",
            "The same thing happened yesterday.\nSAME",
        ],
    )
    def test_sentinel_outside_the_first_line_is_a_translation(self, answer):
        assert is_same_language("Igualmente, hasta mañana", answer, "SAME") is False

    def test_custom_sentinel(self):
        assert is_same_language("Hi", "<<ENGLISH>>", "<<ENGLISH>>") is True
        assert is_same_language("Hola", "SAME", "<<ENGLISH>>") is False
