"""Message models for scripted conversation playback."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

import attrs
from attrs import field
from frozendict import frozendict

from ..errors import InvalidTransition
from ..util.attrutil import frozendict_converter, frozendict_tuple_converter
from .roles import SenderType


class MessageType(str, Enum):
    """Kind of payload a message carries."""

    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    DOCUMENT = "document"
    STICKER = "sticker"
    LOCATION = "location"
    CONTACT = "contact"
    INTERACTIVE = "interactive"
    TEMPLATE = "template"
    FLOW = "flow"


class MessageStatus(str, Enum):
    """Delivery status of a message."""

    SENDING = "sending"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"


class InteractiveKind(str, Enum):
    BUTTON = "button"
    LIST = "list"
    FLOW = "flow"


MEDIA_TYPES = frozenset({
    MessageType.IMAGE,
    MessageType.AUDIO,
    MessageType.VIDEO,
    MessageType.DOCUMENT,
    MessageType.STICKER,
})

# Allowed delivery-status transitions; failed may only go back to sending (retry).
STATUS_TRANSITIONS: frozendict[MessageStatus, frozenset[MessageStatus]] = frozendict({
    MessageStatus.SENDING: frozenset({MessageStatus.SENT, MessageStatus.FAILED}),
    MessageStatus.SENT: frozenset({MessageStatus.DELIVERED, MessageStatus.FAILED}),
    MessageStatus.DELIVERED: frozenset({MessageStatus.READ}),
    MessageStatus.READ: frozenset(),
    MessageStatus.FAILED: frozenset({MessageStatus.SENDING}),
})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _non_negative(instance: Any, attribute: attrs.Attribute, value: timedelta) -> None:
    if value < timedelta(0):
        raise ValueError(f"{attribute.name} must not be negative, got {value}")


def _non_empty(instance: Any, attribute: attrs.Attribute, value: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{attribute.name} must be a non-empty string")


@attrs.frozen
class MediaContent:
    url: str
    caption: str | None = None
    filename: str | None = None
    mime_type: str | None = None


@attrs.frozen
class InteractiveContent:
    """Buttons, lists, or a flow launcher attached to a message body."""

    type: InteractiveKind
    body: str
    footer: str | None = None
    action: frozendict[str, Any] = field(factory=frozendict, converter=frozendict_converter)


@attrs.frozen
class TemplateContent:
    name: str
    language: str
    components: tuple[frozendict[str, Any], ...] = field(default=(), converter=frozendict_tuple_converter)


@attrs.frozen
class FlowContent:
    """Reference to an embedded multi-step form."""

    flow_id: str
    flow_token: str
    flow_data: frozendict[str, Any] = field(factory=frozendict, converter=frozendict_converter)


@attrs.frozen
class LocationContent:
    latitude: float
    longitude: float
    name: str | None = None
    address: str | None = None


@attrs.frozen
class ContactContent:
    name: str
    phone_number: str | None = None


@attrs.frozen
class MessageContent:
    """Variant payload of a message; which part is set depends on the message type."""

    text: str | None = None
    media: MediaContent | None = None
    interactive: InteractiveContent | None = None
    template: TemplateContent | None = None
    flow: FlowContent | None = None
    location: LocationContent | None = None
    contact: ContactContent | None = None

    @property
    def is_empty(self) -> bool:
        return all(
            value is None or value == ""
            for value in (self.text, self.media, self.interactive, self.template,
                          self.flow, self.location, self.contact)
        )


@attrs.frozen
class MessageTiming:
    """Authored timing of a message plus the instants at which its status changed."""

    queue_at: datetime
    delay_before_typing: timedelta = field(validator=_non_negative)
    typing_duration: timedelta = field(validator=_non_negative)
    sent_at: datetime | None = None
    delivered_at: datetime | None = None
    read_at: datetime | None = None

    @property
    def total_animation_time(self) -> timedelta:
        return self.delay_before_typing + self.typing_duration


@attrs.frozen
class Message:
    """One unit of a scripted exchange.

    Messages are immutable; status changes produce a new Message through
    `update_status`, which enforces the delivery-status graph.
    """

    id: str = field(validator=_non_empty)
    type: MessageType = field(validator=attrs.validators.instance_of(MessageType))
    sender: SenderType = field(validator=attrs.validators.instance_of(SenderType))
    content: MessageContent
    timing: MessageTiming
    status: MessageStatus = field(default=MessageStatus.SENDING,
                                  validator=attrs.validators.instance_of(MessageStatus))
    created_at: datetime = field(factory=_utcnow)

    @property
    def is_flow_trigger(self) -> bool:
        """Whether sending this message opens an embedded flow."""
        return self.type == MessageType.FLOW or (
            self.type == MessageType.INTERACTIVE
            and self.content.interactive is not None
            and self.content.interactive.type == InteractiveKind.FLOW
        )

    @property
    def has_media(self) -> bool:
        return self.type in MEDIA_TYPES and self.content.media is not None

    @property
    def is_interactive(self) -> bool:
        return self.type == MessageType.INTERACTIVE and self.content.interactive is not None

    @property
    def is_template(self) -> bool:
        return self.type == MessageType.TEMPLATE and self.content.template is not None

    @property
    def media_url(self) -> str | None:
        media = self.content.media
        if self.type in MEDIA_TYPES and media is not None:
            return media.url or None
        return None

    @property
    def text(self) -> str:
        """Readable text of the message: the body, caption or interactive body, else empty."""
        content = self.content
        if self.type == MessageType.TEXT:
            return content.text or ""
        if self.type in MEDIA_TYPES and content.media is not None:
            return content.media.caption or ""
        if self.type == MessageType.INTERACTIVE and content.interactive is not None:
            return content.interactive.body
        return ""

    @property
    def display_text(self) -> str:
        """Short text shown for the message in a chat list."""
        content = self.content
        match self.type:
            case MessageType.TEXT:
                return content.text or ""
            case MessageType.IMAGE:
                return (content.media.caption if content.media else None) or "📷 Image"
            case MessageType.AUDIO:
                return "🎵 Audio message"
            case MessageType.VIDEO:
                return (content.media.caption if content.media else None) or "🎥 Video"
            case MessageType.DOCUMENT:
                return f"📄 {(content.media.filename if content.media else None) or 'Document'}"
            case MessageType.STICKER:
                return "😀 Sticker"
            case MessageType.LOCATION:
                return "📍 Location"
            case MessageType.CONTACT:
                return "👤 Contact"
            case MessageType.INTERACTIVE:
                return content.interactive.body if content.interactive else "Interactive message"
            case MessageType.TEMPLATE:
                return f"Template: {content.template.name if content.template else ''}"
            case MessageType.FLOW:
                return "WhatsApp Flow"
        return "Message"

    @property
    def total_animation_time(self) -> timedelta:
        return self.timing.total_animation_time

    def with_timing(self, **changes: Any) -> Message:
        """Return new message with the given timing fields replaced."""
        return attrs.evolve(self, timing=attrs.evolve(self.timing, **changes))

    def with_content(self, **changes: Any) -> Message:
        """Return new message with the given content fields replaced."""
        return attrs.evolve(self, content=attrs.evolve(self.content, **changes))

    def rewound(self) -> Message:
        """Return a copy ready to be played again: sending, with no delivery stamps.

        This recreates the scripted message rather than moving along the status graph.
        """
        return attrs.evolve(
            self,
            status=MessageStatus.SENDING,
            timing=attrs.evolve(self.timing, sent_at=None, delivered_at=None, read_at=None),
        )

    def __str__(self) -> str:
        return f"[{self.sender.upper()}] {self.display_text}"


def is_valid_status_transition(from_status: MessageStatus, to_status: MessageStatus) -> bool:
    return to_status in STATUS_TRANSITIONS[from_status]


_STATUS_STAMPS = {
    MessageStatus.SENT: "sent_at",
    MessageStatus.DELIVERED: "delivered_at",
    MessageStatus.READ: "read_at",
}


def update_status(message: Message, target: MessageStatus, at: datetime | None = None) -> Message:
    """Return a copy of the message with status `target`.

    When `at` is given, the matching timing stamp (sent_at, delivered_at, read_at) is set too.

    Raises:
        InvalidTransition: if the delivery-status graph does not allow the move.
    """
    if not is_valid_status_transition(message.status, target):
        raise InvalidTransition(message.status, target)

    timing = message.timing
    stamp = _STATUS_STAMPS.get(target)
    if at is not None and stamp is not None:
        timing = attrs.evolve(timing, **{stamp: at})
    return attrs.evolve(message, status=target, timing=timing)


def filter_by_type(messages: Iterable[Message], type: MessageType) -> tuple[Message, ...]:
    return tuple(msg for msg in messages if msg.type == type)


def filter_by_sender(messages: Iterable[Message], sender: SenderType) -> tuple[Message, ...]:
    return tuple(msg for msg in messages if msg.sender == sender)


def filter_by_status(messages: Iterable[Message], status: MessageStatus) -> tuple[Message, ...]:
    return tuple(msg for msg in messages if msg.status == status)


def group_by_sender(messages: Iterable[Message]) -> dict[SenderType, tuple[Message, ...]]:
    messages = tuple(messages)
    return {sender: filter_by_sender(messages, sender) for sender in SenderType}
