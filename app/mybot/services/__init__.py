from . import message_extractor, message_adapter
from .reply_policy import ReplyPolicy

__all__ = ["message_extractor", "message_adapter", "ReplyPolicy"]
