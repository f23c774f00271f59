# -*- coding: utf-8 -*-
"""
@Desc    : 错误分类：只有配置错误和致命会话错误会终止进程
"""


class RelayError(Exception):
    """Base class for every error raised by the relay bot."""


class ConfigError(RelayError):
    """A required configuration value is missing. Fatal at startup."""

    def __init__(self, key: str, hint: str = ""):
        self.key = key
        self.hint = hint
        super().__init__(f"Missing required configuration: {key}" + (f" ({hint})" if hint else ""))


class TranslationError(RelayError):
    """The translation call failed; recovered locally as NoReply."""


class TransportError(TranslationError):
    """The translation endpoint is unreachable, timed out or answered non-2xx."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class UpstreamFormatError(TranslationError):
    """The translation endpoint answered with a malformed or empty body."""


class SessionError(RelayError):
    """The messaging session dropped; recovered by reconnecting."""

    def __init__(self, reason, message: str = "", retry_after: float | None = None):
        self.reason = reason
        self.retry_after = retry_after
        super().__init__(message or f"Session closed: {reason}")


class FatalSessionError(SessionError):
    """The session cannot be resumed without operator action."""


class CredentialsCorruptedError(FatalSessionError):
    """The persisted credential blob cannot be read back."""


class CredentialsRejectedError(FatalSessionError):
    """The messaging network rejected the configured credential."""
