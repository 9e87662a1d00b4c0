"""The conversation engine: plays a conversation message by message on the running event loop."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Callable, Coroutine
from datetime import datetime, timezone
from typing import Any

from attrs import define, field
from frozendict import frozendict

from ..errors import InvalidIndex, InvalidSpeed, PlaybackError
from ..models.conversation import Conversation
from ..models.events import (
    ConversationCompletedEvent,
    ConversationErrorEvent,
    ConversationPausedEvent,
    ConversationProgressEvent,
    ConversationStartedEvent,
    DebugEvent,
    DebugLevel,
    EventPredicate,
    FlowTriggeredEvent,
    MessageSentEvent,
    MessageTypingStartedEvent,
    PlaybackEvent,
    SpeedChangedEvent,
)
from ..models.message import Message
from ..models.roles import SenderType
from ..models.snapshot import PlaybackSnapshot
from ..util.broadcast import BroadcastChannel, Predicate, Subscription
from .config import EngineConfig
from .processing import MessageProcessingContext, process_message

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _no_typing() -> frozendict[SenderType, bool]:
    return frozendict({sender: False for sender in SenderType})


@define
class ConversationEngine:
    """Drives one conversation through its messages, emitting events and state snapshots.

    All methods must be called on the thread running the event loop; `play` and the
    other control methods are synchronous and return immediately, while the actual
    waits happen in tasks owned by the engine. At most one message is in flight at a
    time.

    Pausing is cooperative: a message that is waiting when `pause` is called notices
    it when its current wait ends, so a pause can take up to one (scaled) typing
    duration to take effect. Resuming before that keeps the waiting message going.
    `reset`, `load_conversation`, `stop` and `destroy` cancel the waits immediately.

    Invalid arguments (`jump_to`, `set_speed`) raise synchronously and leave the
    engine unchanged. Failures while a message is played are not raised; they put
    the conversation in the error state and emit a `conversation.error` event.

    Consumers either iterate a subscription (`subscribe`, `subscribe_state`) or
    register a synchronous callback (`add_listener`, `add_state_listener`).
    Neither replays events published before they were registered; `state` always
    returns the latest snapshot.
    """

    config: EngineConfig = field(factory=EngineConfig)

    _conversation: Conversation | None = field(init=False, default=None)
    _speed: float = field(init=False, default=1.0)
    _typing: frozendict[SenderType, bool] = field(init=False, factory=_no_typing)
    _state: PlaybackSnapshot = field(init=False, factory=PlaybackSnapshot)
    _events: BroadcastChannel[PlaybackEvent] = field(init=False, factory=lambda: BroadcastChannel('events'))
    _states: BroadcastChannel[PlaybackSnapshot] = field(init=False, factory=lambda: BroadcastChannel('states'))

    # Incremented whenever running tasks must stop acting: load, reset, restart, stop.
    _epoch: int = field(init=False, default=0)
    _jumped: bool = field(init=False, default=False)
    _playback_task: asyncio.Task[None] | None = field(init=False, default=None)
    _progress_task: asyncio.Task[None] | None = field(init=False, default=None)
    _restart_task: asyncio.Task[None] | None = field(init=False, default=None)
    _cancelled_tasks: list[asyncio.Task[None]] = field(init=False, factory=list)
    _stopped: bool = field(init=False, default=False)
    _destroyed: bool = field(init=False, default=False)

    # Queries

    @property
    def state(self) -> PlaybackSnapshot:
        """The latest snapshot."""
        return self._state

    @property
    def conversation(self) -> Conversation | None:
        return self._conversation

    @property
    def playback_speed(self) -> float:
        return self._speed

    @property
    def is_stopped(self) -> bool:
        return self._stopped

    # Subscriptions

    def subscribe(self, predicate: EventPredicate | None = None) -> Subscription[PlaybackEvent]:
        """Subscribe to events published from now on. Must be called with the event loop running."""
        return self._events.subscribe(predicate)

    def add_listener(self, callback: Callable[[PlaybackEvent], None],
                     predicate: EventPredicate | None = None) -> Callable[[], None]:
        return self._events.add_listener(callback, predicate)

    def subscribe_state(self, predicate: Predicate[PlaybackSnapshot] | None = None) -> Subscription[PlaybackSnapshot]:
        return self._states.subscribe(predicate)

    def add_state_listener(self, callback: Callable[[PlaybackSnapshot], None],
                           predicate: Predicate[PlaybackSnapshot] | None = None) -> Callable[[], None]:
        return self._states.add_listener(callback, predicate)

    # Controls

    def load_conversation(self, conversation: Conversation | None) -> None:
        """Replace the current conversation, rewound to its first message.

        Anything that is not a Conversation is ignored and the current conversation is kept.
        """
        if self._stopped:
            _logger.debug('Engine stopped, ignoring load_conversation')
            return
        if not isinstance(conversation, Conversation):
            _logger.warning(f'Ignoring load of {type(conversation).__name__}, expected a Conversation')
            return

        self._cancel_tasks()
        self._epoch += 1
        self._conversation = conversation.reset()
        self._speed = conversation.settings.playback_speed
        self._typing = _no_typing()
        _logger.info(f'Loaded conversation {conversation.id} with {len(conversation)} messages')
        self._emit(DebugEvent(conversation.id, level=DebugLevel.INFO, message='Conversation loaded',
                              payload={'message_count': len(conversation)}))
        self._publish_state()

    def play(self) -> None:
        """Start or resume playback. A completed conversation starts over from the first message."""
        conversation = self._conversation
        if self._stopped or conversation is None:
            _logger.debug('Nothing to play')
            return
        if conversation.is_playing or conversation.has_error:
            _logger.debug(f'Ignoring play of conversation {conversation.id} in status {conversation.status.value}')
            return

        self._cancel(self._restart_task)
        self._restart_task = None
        if conversation.is_completed:
            # The finished task may still be unwinding; it no longer acts after the epoch changes
            self._epoch += 1
            self._playback_task = None
            self._typing = _no_typing()
            conversation = conversation.reset()

        self._conversation = conversation.play(_utcnow())
        self._emit(ConversationStartedEvent(conversation.id))
        self._publish_state()
        self._start_progress()
        if self._playback_task is None or self._playback_task.done():
            self._jumped = False
            self._playback_task = self._spawn(self._run_playback(self._epoch))

    def pause(self) -> None:
        conversation = self._conversation
        if self._stopped or conversation is None or not conversation.is_playing:
            _logger.debug('Ignoring pause, not playing')
            return
        self._conversation = conversation.pause(_utcnow())
        self._cancel(self._progress_task)
        self._progress_task = None
        self._emit(ConversationPausedEvent(conversation.id))
        self._publish_state()

    def reset(self) -> None:
        """Stop playback and rewind to the first message."""
        conversation = self._conversation
        if self._stopped or conversation is None:
            return
        self._cancel_tasks()
        self._epoch += 1
        self._conversation = conversation.reset()
        self._typing = _no_typing()
        self._emit(DebugEvent(conversation.id, level=DebugLevel.INFO, message='Conversation reset'))
        self._publish_state()

    def jump_to(self, index: int) -> None:
        """Move the cursor to `index` without starting or stopping playback.

        If a message is being played, it is finished first and playback then continues at `index`.

        Raises:
            InvalidIndex: if no message has this index.
        """
        if self._stopped:
            return
        conversation = self._conversation
        if conversation is None:
            raise InvalidIndex(index, 0)
        self._conversation = conversation.jump_to(index)
        if self._playback_task is not None and not self._playback_task.done():
            self._jumped = True
        self._publish_state()

    def set_speed(self, speed: float) -> None:
        """Change the playback speed for timings computed from now on.

        Raises:
            InvalidSpeed: if speed is outside [config.min_speed, config.max_speed].
        """
        if self._stopped:
            return
        if not math.isfinite(speed) or not self.config.min_speed <= speed <= self.config.max_speed:
            raise InvalidSpeed(speed, f'between {self.config.min_speed}x and {self.config.max_speed}x')

        conversation = self._conversation
        # Validated against the settings before any engine state changes
        updated = conversation.update_settings(playback_speed=speed) if conversation is not None else None
        previous, self._speed = self._speed, speed
        if updated is not None:
            self._conversation = updated
            self._emit(SpeedChangedEvent(updated.id, speed=speed, previous_speed=previous))
        self._publish_state()

    def stop(self) -> None:
        """Cancel all waits and pause; afterwards every control call does nothing."""
        if self._stopped:
            return
        self._cancel_tasks()
        self._epoch += 1
        conversation = self._conversation
        self._typing = _no_typing()
        if conversation is not None and conversation.is_playing:
            self._conversation = conversation.pause(_utcnow())
            self._emit(ConversationPausedEvent(conversation.id))
        self._publish_state()
        self._stopped = True
        _logger.debug('Engine stopped')

    def destroy(self) -> None:
        """Stop and close all subscriptions. Subscribers can drain what was already published."""
        if self._destroyed:
            return
        self.stop()
        self._destroyed = True
        self._events.close()
        self._states.close()

    async def aclose(self) -> None:
        """Destroy the engine and wait for its cancelled tasks to finish."""
        self.destroy()
        tasks = [task for task in self._cancelled_tasks if task is not asyncio.current_task()]
        self._cancelled_tasks.clear()
        if tasks:
            await asyncio.wait(tasks)

    async def __aenter__(self) -> ConversationEngine:
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.aclose()

    # Internals

    def _loaded(self) -> Conversation:
        conversation = self._conversation
        if conversation is None:
            raise PlaybackError('No conversation loaded')
        return conversation

    def _is_playing(self, epoch: int) -> bool:
        return (
            not self._stopped
            and self._epoch == epoch
            and self._conversation is not None
            and self._conversation.is_playing
        )

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        return asyncio.create_task(coro)

    def _cancel(self, task: asyncio.Task[None] | None) -> None:
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        self._cancelled_tasks.append(task)

    def _cancel_tasks(self) -> None:
        for task in (self._playback_task, self._progress_task, self._restart_task):
            self._cancel(task)
        self._playback_task = self._progress_task = self._restart_task = None
        self._cancelled_tasks[:] = [task for task in self._cancelled_tasks if not task.done()]

    def _start_progress(self) -> None:
        self._cancel(self._progress_task)
        self._progress_task = self._spawn(self._run_progress(self._epoch))

    def _emit(self, event: PlaybackEvent) -> None:
        conversation = self._conversation
        if self.config.enable_debug or (conversation is not None and conversation.settings.debug_mode):
            _logger.debug(f'{event.type.value}: {event}')
        self._events.publish(event)

    def _publish_state(self) -> None:
        self._state = PlaybackSnapshot.of(self._conversation, self._typing, self._speed)
        self._states.publish(self._state)

    def _set_typing(self, sender: SenderType, typing: bool) -> None:
        self._typing = self._typing.set(sender, typing)

    async def _run_progress(self, epoch: int) -> None:
        interval = self.config.effective_progress_interval.total_seconds()
        while True:
            await asyncio.sleep(interval)
            conversation = self._conversation
            if conversation is None or not self._is_playing(epoch):
                return
            self._emit(ConversationProgressEvent(conversation.id, progress=conversation.progress(_utcnow())))
            self._publish_state()

    async def _run_playback(self, epoch: int) -> None:
        try:
            while self._is_playing(epoch):
                conversation = self._loaded()
                if conversation.is_empty:
                    self._complete(epoch)
                    return

                self._jumped = False
                index = conversation.current_index
                context = MessageProcessingContext(
                    conversation=conversation,
                    message=conversation.messages[index],
                    index=index,
                    playback_speed=self._speed,
                    config=self.config.timing,
                    is_playing=lambda: self._is_playing(epoch),
                )
                sent = False
                async for event in process_message(context):
                    self._handle_event(event)
                    sent = sent or isinstance(event, MessageSentEvent)

                if not sent:
                    # Paused or superseded while waiting
                    if self._epoch == epoch:
                        self._typing = _no_typing()
                        self._publish_state()
                    return

                conversation = self._loaded()
                if not self._jumped:
                    conversation = conversation.advance_to_next()
                    self._conversation = conversation
                if conversation.is_completed:
                    self._complete(epoch)
                    return
                self._publish_state()
                await asyncio.sleep(0)
        except Exception as e:
            _logger.exception(f'Playback of message {self._state.current_message_index} failed')
            if self._epoch == epoch:
                self._fail(e)

    def _handle_event(self, event: PlaybackEvent) -> None:
        match event:
            case MessageTypingStartedEvent(message=message):
                self._set_typing(message.sender, True)
                self._emit(event)
                self._publish_state()
            case MessageSentEvent(message=message):
                self._conversation = self._loaded().replace_message(message)
                self._set_typing(message.sender, False)
                self._emit(event)
                if message.is_flow_trigger:
                    self._emit_flow_trigger(message)
                self._publish_state()
            case _:
                self._emit(event)

    def _emit_flow_trigger(self, message: Message) -> None:
        flow = message.content.flow
        self._emit(FlowTriggeredEvent(
            self._loaded().id,
            message=message,
            flow_id=flow.flow_id if flow else None,
            flow_token=flow.flow_token if flow else None,
            flow_data=flow.flow_data if flow else frozendict(),
        ))

    def _complete(self, epoch: int) -> None:
        conversation = self._loaded()
        if not conversation.is_completed:
            conversation = conversation.advance_to_next()
            self._conversation = conversation
        self._cancel(self._progress_task)
        self._progress_task = None
        self._typing = _no_typing()
        _logger.info(f'Conversation {conversation.id} completed')
        self._emit(ConversationCompletedEvent(conversation.id))
        self._publish_state()
        if self.config.restart_delay is not None:
            self._restart_task = self._spawn(self._restart_after(self.config.restart_delay.total_seconds(), epoch))

    async def _restart_after(self, delay: float, epoch: int) -> None:
        await asyncio.sleep(delay)
        conversation = self._conversation
        if self._epoch == epoch and not self._stopped and conversation is not None and conversation.is_completed:
            _logger.info(f'Restarting conversation {conversation.id}')
            self.play()

    def _fail(self, error: Exception) -> None:
        conversation = self._conversation
        if conversation is None:
            return
        self._conversation = conversation.set_error(error)
        self._cancel(self._progress_task)
        self._cancel(self._restart_task)
        self._progress_task = self._restart_task = None
        self._typing = _no_typing()
        self._emit(ConversationErrorEvent(conversation.id, error=str(error)))
        self._publish_state()
