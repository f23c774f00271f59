from pathlib import Path
from typing import Any
from urllib.request import getproxies

import dotenv
from loguru import logger
from pydantic import SecretStr, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from errors import ConfigError

dotenv.load_dotenv()


PROJECT_DIR = Path(__file__).parent
LOG_DIR = PROJECT_DIR.joinpath("logs")
DATA_DIR = PROJECT_DIR.joinpath("data")

DEFAULT_MODEL = "llama-3.3-70b-versatile"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True, extra="ignore")

    TELEGRAM_BOT_API_TOKEN: SecretStr = Field(
        default="", description="通过 https://t.me/BotFather 获取机器人的 API_TOKEN"
    )

    GROQ_API_KEY: SecretStr = Field(
        default="", description="翻译服务的 API_KEY，以 Bearer 方式发送。缺失时进程拒绝启动。"
    )

    MODEL: str = Field(
        default=DEFAULT_MODEL,
        description="翻译使用的模型。未配置或为空时回退到默认模型。",
    )

    TRANSLATION_BASE_URL: str = Field(
        default="https://api.groq.com/openai/v1",
        description="OpenAI 兼容的 chat completions 接口地址（不含 /chat/completions）",
    )

    TRANSLATION_TIMEOUT: float = Field(
        default=30.0, description="单次翻译请求的超时时间（秒），上游卡死时不会阻塞事件管线"
    )

    SAME_LANGUAGE_SENTINEL: str = Field(
        default="SAME", description="模型判断原文已是英语时返回的标记值"
    )

    REPLY_PREFIX: str = Field(
        default="🌐 Translated to English:", description="翻译回复的固定前缀"
    )

    QUOTE_ORIGINAL_MESSAGE: bool = Field(
        default=False, description="是否以引用原消息的方式发送翻译结果"
    )

    HTTP_REQUEST_TIMEOUT: float = Field(
        default=75.0, description="HTTP 请求超时时间（秒），用于 Telegram API 调用。"
    )

    POLLING_TIMEOUT: int = Field(default=30, description="getUpdates 长轮询的等待时间（秒）")

    AUTH_STATE_PATH: Path = Field(
        default=DATA_DIR.joinpath("auth_info", "session.json"),
        description="会话凭据的持久化文件，启动时读取，凭据变化时写入",
    )

    RECONNECT_BASE_DELAY: float = Field(default=1.0, description="断线重连的初始退避时间（秒）")

    RECONNECT_MAX_DELAY: float = Field(default=60.0, description="断线重连的最大退避时间（秒）")

    SHUTDOWN_GRACE_PERIOD: float = Field(
        default=10.0, description="退出时等待进行中的翻译任务完成的最长时间（秒）"
    )

    @field_validator("MODEL", mode="before")
    @classmethod
    def _fallback_model(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_MODEL
        return value.strip() if isinstance(value, str) else value

    def model_post_init(self, context: Any, /) -> None:
        if self.RECONNECT_MAX_DELAY < self.RECONNECT_BASE_DELAY:
            logger.warning("RECONNECT_MAX_DELAY 小于 RECONNECT_BASE_DELAY，已自动对齐")
            self.RECONNECT_MAX_DELAY = self.RECONNECT_BASE_DELAY

        if self.MODEL == DEFAULT_MODEL:
            logger.debug(f"使用默认翻译模型: {DEFAULT_MODEL}")

    def ensure_required(self) -> None:
        """Raise ConfigError when a credential the process cannot run without is missing."""
        if not self.GROQ_API_KEY.get_secret_value().strip():
            raise ConfigError("GROQ_API_KEY", "Add GROQ_API_KEY to the environment or .env")
        if not self.TELEGRAM_BOT_API_TOKEN.get_secret_value().strip():
            raise ConfigError(
                "TELEGRAM_BOT_API_TOKEN", "Add TELEGRAM_BOT_API_TOKEN to the environment or .env"
            )

    @property
    def proxy_url(self) -> str | None:
        return getproxies().get("http")


def load_settings(**overrides: Any) -> Settings:
    """Build the settings once at startup and refuse to continue without credentials."""
    settings = Settings(**overrides)
    settings.ensure_required()
    return settings
