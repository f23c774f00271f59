# -*- coding: utf-8 -*-
"""
@Time    : 2025/7/7 05:40
@Desc    : 群聊翻译机器人入口：任意语言 → 英语
"""
import asyncio
import json
import signal
import sys
from contextlib import suppress

from loguru import logger

from errors import ConfigError, FatalSessionError
from mybot.credential_store import CredentialStore
from mybot.handlers.message_handler import MessagePipeline
from mybot.orchestrator import Orchestrator
from mybot.services.reply_policy import ReplyPolicy
from mybot.session_manager import SessionManager
from settings import LOG_DIR, Settings, load_settings
from translator import TranslationClient
from utils import init_log


def build_orchestrator(settings: Settings, translator: TranslationClient) -> Orchestrator:
    credential_store = CredentialStore(settings.AUTH_STATE_PATH)
    session_manager = SessionManager.from_settings(settings, credential_store)
    pipeline = MessagePipeline(
        translator=translator,
        reply_policy=ReplyPolicy.from_settings(settings),
        send_text=session_manager.send_text,
    )
    return Orchestrator(
        session_manager=session_manager,
        pipeline=pipeline,
        credential_store=credential_store,
        reconnect_base_delay=settings.RECONNECT_BASE_DELAY,
        reconnect_max_delay=settings.RECONNECT_MAX_DELAY,
        shutdown_grace_period=settings.SHUTDOWN_GRACE_PERIOD,
    )


async def run(settings: Settings) -> None:
    translator = TranslationClient.from_settings(settings)
    orchestrator = build_orchestrator(settings, translator)

    # Setting up a graceful shutdown
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with suppress(NotImplementedError):
            loop.add_signal_handler(sig, orchestrator.request_stop)

    try:
        await orchestrator.run()
    finally:
        await translator.aclose()


def main() -> None:
    """Start the bot."""
    init_log(
        runtime=LOG_DIR.joinpath("runtime.log"),
        error=LOG_DIR.joinpath("error.log"),
        serialize=LOG_DIR.joinpath("serialize.log"),
    )
    logger.info("🚀 Starting translation relay bot...")

    try:
        settings = load_settings()
    except ConfigError as err:
        logger.critical(f"❌ {err}")
        sys.exit(1)

    s = json.dumps(settings.model_dump(mode="json"), indent=2, ensure_ascii=False)
    logger.success(f"Loading settings: {s}")

    try:
        asyncio.run(run(settings))
    except FatalSessionError as err:
        logger.critical(f"❌ Session cannot be resumed: {err}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Stopped by keyboard interrupt")


if __name__ == "__main__":
    main()
