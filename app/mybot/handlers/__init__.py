# -*- coding: utf-8 -*-

from .message_handler import MessagePipeline, skip_reason

__all__ = ["MessagePipeline", "skip_reason"]
