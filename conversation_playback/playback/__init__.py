"""Playback: timing, single-message processing and the conversation engine."""

from .config import EngineConfig, TimingConfig
from .engine import ConversationEngine
from .processing import MessageProcessingContext, process_message
from .timing import MessageTimingPlan, calculate_message_timing, calculate_optimized_timing, calculate_timing

__all__ = [
    "ConversationEngine",
    "EngineConfig",
    "TimingConfig",
    "MessageProcessingContext",
    "process_message",
    "MessageTimingPlan",
    "calculate_message_timing",
    "calculate_optimized_timing",
    "calculate_timing",
]
