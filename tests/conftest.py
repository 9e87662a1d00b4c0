"""Configuration for pytest.

This file contains fixtures and configurations used by pytest.
"""
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from conversation_playback.models import (
    Conversation,
    ConversationMetadata,
    ConversationSettings,
    Message,
    MessageContent,
    MessageTiming,
    MessageType,
    SenderType,
)

BASE_TIME = datetime(2025, 1, 15, 10, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session", autouse=True)
def configure_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@pytest.fixture(scope="session")
def scenarios_dir() -> Path:
    """Return the path to the example scenarios directory."""
    return Path(__file__).parent.parent / "examples" / "scenarios"


def _make_message(
    id: str,
    text: str = "Hello",
    sender: SenderType = SenderType.USER,
    delay: float = 0.05,
    typing: float = 0.1,
    type: MessageType = MessageType.TEXT,
    content: MessageContent | None = None,
    index: int = 0,
) -> Message:
    return Message(
        id=id,
        type=type,
        sender=sender,
        content=content or MessageContent(text=text),
        timing=MessageTiming(
            queue_at=BASE_TIME + timedelta(seconds=2 * index),
            delay_before_typing=timedelta(seconds=delay),
            typing_duration=timedelta(seconds=typing),
        ),
        created_at=BASE_TIME,
    )


def _make_conversation(*messages: Message, id: str = "conv_test", speed: float = 1.0) -> Conversation:
    return Conversation(
        metadata=ConversationMetadata(id=id, title="Test conversation", created_at=BASE_TIME, updated_at=BASE_TIME),
        messages=messages,
        settings=ConversationSettings(playback_speed=speed),
    )


@pytest.fixture
def make_message() -> Callable[..., Message]:
    """Return a builder for text messages with short timings (in seconds)."""
    return _make_message


@pytest.fixture
def make_conversation() -> Callable[..., Conversation]:
    """Return a builder for an idle conversation holding the given messages."""
    return _make_conversation


@pytest.fixture
def sample_conversation() -> Conversation:
    """A short user/business exchange with 50ms delays and 100ms typing."""
    return _make_conversation(
        _make_message("msg_1", "Hi, do you have a table for two?", index=0),
        _make_message("msg_2", "Sure, what time?", sender=SenderType.BUSINESS, index=1),
        _make_message("msg_3", "8pm please", index=2),
    )
