"""Models package for conversation playback."""

# Core domain models
from .roles import SenderType
from .message import (
    ContactContent,
    FlowContent,
    InteractiveContent,
    InteractiveKind,
    LocationContent,
    MediaContent,
    Message,
    MessageContent,
    MessageStatus,
    MessageTiming,
    MessageType,
    TemplateContent,
    is_valid_status_transition,
    update_status,
)
from .conversation import (
    Conversation,
    ConversationMetadata,
    ConversationProgress,
    ConversationSettings,
    ConversationStatus,
)

# Authoring
from .scenario import MessageTemplate, Scenario, ScenarioMetadata

# Engine output
from .events import (
    ConversationCompletedEvent,
    ConversationErrorEvent,
    ConversationPausedEvent,
    ConversationProgressEvent,
    ConversationStartedEvent,
    DebugEvent,
    DebugLevel,
    EventType,
    FlowTriggeredEvent,
    MessageSentEvent,
    MessageTypingStartedEvent,
    PlaybackEvent,
    SpeedChangedEvent,
)
from .snapshot import PlaybackSnapshot, ProgressSnapshot

__all__ = [
    # Core domain models
    "SenderType",
    "ContactContent",
    "FlowContent",
    "InteractiveContent",
    "InteractiveKind",
    "LocationContent",
    "MediaContent",
    "Message",
    "MessageContent",
    "MessageStatus",
    "MessageTiming",
    "MessageType",
    "TemplateContent",
    "is_valid_status_transition",
    "update_status",
    "Conversation",
    "ConversationMetadata",
    "ConversationProgress",
    "ConversationSettings",
    "ConversationStatus",
    # Authoring
    "MessageTemplate",
    "Scenario",
    "ScenarioMetadata",
    # Engine output
    "ConversationCompletedEvent",
    "ConversationErrorEvent",
    "ConversationPausedEvent",
    "ConversationProgressEvent",
    "ConversationStartedEvent",
    "DebugEvent",
    "DebugLevel",
    "EventType",
    "FlowTriggeredEvent",
    "MessageSentEvent",
    "MessageTypingStartedEvent",
    "PlaybackEvent",
    "SpeedChangedEvent",
    "PlaybackSnapshot",
    "ProgressSnapshot",
]
