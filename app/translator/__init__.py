from .completion_client import CompletionClient
from .translation_tool import TranslationClient, is_same_language

__all__ = ["CompletionClient", "TranslationClient", "is_same_language"]
