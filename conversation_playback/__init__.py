"""Conversation Playback - A library for replaying scripted chat conversations with realistic timing."""

# Public API exports
from .errors import (
    DuplicateMessageId,
    InvalidIndex,
    InvalidSpeed,
    InvalidTransition,
    PlaybackError,
    PlaybackValidationError,
    ProcessingValidationError,
)
from .factory import ConversationFactory, text_message
from .loader import load_conversation, load_scenario, load_scenarios
from .models.conversation import Conversation, ConversationSettings, ConversationStatus
from .models.events import EventType, PlaybackEvent
from .models.message import Message, MessageStatus, MessageType, update_status
from .models.roles import SenderType
from .models.scenario import MessageTemplate, Scenario, ScenarioMetadata
from .models.snapshot import PlaybackSnapshot
from .playback.config import EngineConfig, TimingConfig
from .playback.engine import ConversationEngine
from .util.structure import conversation_from_json, conversation_to_json, message_from_json, message_to_json

__version__ = "0.1.0"

__all__ = [
    # Models
    "Conversation",
    "ConversationSettings",
    "ConversationStatus",
    "Message",
    "MessageStatus",
    "MessageType",
    "SenderType",
    "MessageTemplate",
    "Scenario",
    "ScenarioMetadata",
    "EventType",
    "PlaybackEvent",
    "PlaybackSnapshot",
    "update_status",
    # Engine
    "ConversationEngine",
    "EngineConfig",
    "TimingConfig",
    # Building and loading
    "ConversationFactory",
    "text_message",
    "load_conversation",
    "load_scenario",
    "load_scenarios",
    "conversation_from_json",
    "conversation_to_json",
    "message_from_json",
    "message_to_json",
    # Errors
    "PlaybackError",
    "PlaybackValidationError",
    "InvalidTransition",
    "InvalidIndex",
    "InvalidSpeed",
    "DuplicateMessageId",
    "ProcessingValidationError",
]
