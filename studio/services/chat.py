"""
Multi-turn studio assistant chat.

One SDK chat object is held for the whole conversation so the model sees
earlier turns. Every send goes through with_retry.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List

from studio.services.errors import StudioError
from studio.services.retry import with_retry

logger = logging.getLogger("chat")

EMPTY_REPLY = "I couldn't generate a response."

ROLE_USER = "user"
ROLE_MODEL = "model"


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class ChatMessage:
    role: str
    content: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    timestamp: int = field(default_factory=_now_ms)


class ChatSession:
    """Wraps a google-genai ``Chat``; ``messages`` is the visible transcript."""

    def __init__(self, chat, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.chat = chat
        self.sleep = sleep
        self.messages: List[ChatMessage] = []

    async def send(self, text: str) -> ChatMessage:
        text = text.strip()
        if not text:
            raise ValueError("Message is empty")

        self.messages.append(ChatMessage(ROLE_USER, text))

        async def _send():
            return await asyncio.to_thread(self.chat.send_message, text)

        try:
            response = await with_retry(_send, sleep=self.sleep, label="chat")
        except StudioError as e:
            logger.error(f"❌ Chat turn failed ({e.kind.value}): {e.message}")
            raise

        reply = ChatMessage(ROLE_MODEL, getattr(response, "text", None) or EMPTY_REPLY)
        self.messages.append(reply)
        return reply

    def clear(self):
        self.messages = []

