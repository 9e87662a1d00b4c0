#!/usr/bin/env python3
"""
Play a scripted conversation in the terminal.

Loads a scenario from JSON, builds a conversation from it and plays it with the
conversation engine, printing each message as it is sent.

Note on logging vs. print:
- logger.info/debug/error: Used for internal process information and debugging
- print(): Used for pretty user-facing output

Usage:
    python examples/play_scenario.py
"""

import asyncio
import logging
from pathlib import Path

from conversation_playback import ConversationEngine, ConversationFactory, EngineConfig, load_scenario
from conversation_playback.models.events import (
    ConversationCompletedEvent,
    ConversationErrorEvent,
    FlowTriggeredEvent,
    MessageSentEvent,
    MessageTypingStartedEvent,
    PlaybackEvent,
)

# Get module logger
logger = logging.getLogger(__name__)

DEFAULT_SCENARIO = Path(__file__).parent / "scenarios" / "restaurant_reservation.json"


def print_event(event: PlaybackEvent) -> None:
    match event:
        case MessageTypingStartedEvent(message=message):
            print(f"  ({message.sender.value} is typing...)")
        case MessageSentEvent(message=message):
            print(message)
        case FlowTriggeredEvent(flow_id=flow_id):
            print(f"  >> flow {flow_id} opened")
        case ConversationErrorEvent(error=error):
            print(f"!! playback failed: {error}")


async def play(scenario_path: Path, speed: float, fast: bool) -> None:
    scenario = load_scenario(scenario_path)
    conversation = ConversationFactory().create_conversation(scenario)
    print(f"{scenario.metadata.title} ({len(conversation)} messages)\n")

    config = EngineConfig.fast() if fast else EngineConfig()
    async with ConversationEngine(config) as engine:
        engine.load_conversation(conversation)
        engine.set_speed(speed)
        async with engine.subscribe() as events:
            engine.play()
            async for event in events:
                print_event(event)
                if isinstance(event, (ConversationCompletedEvent, ConversationErrorEvent)):
                    break

        progress = engine.state.progress
        logger.info(f"Finished at {progress.completion_percentage:.0f}% after {progress.elapsed}")


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(play(DEFAULT_SCENARIO, speed=2.0, fast=False))


if __name__ == "__main__":
    main()
