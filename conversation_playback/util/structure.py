from datetime import timedelta
from typing import Any, TypeVar, get_args, get_origin

import cattrs
from cattrs.preconf.json import make_converter
from frozendict import frozendict

from ..errors import PlaybackValidationError
from ..models.conversation import Conversation
from ..models.message import Message

# This converter instance should be used to un/structure all classes from this library.
# Datetimes are ISO-8601 strings, enums their values, timedeltas seconds.

converter = make_converter()

@converter.register_unstructure_hook
def _unstructure_timedelta(td: timedelta) -> float:
    return td.total_seconds()

@converter.register_structure_hook
def _structure_timedelta(d: float, _) -> timedelta:
    return timedelta(seconds=d)


def _is_frozendict(t: Any) -> bool:
    return t is frozendict or get_origin(t) is frozendict

@converter.register_structure_hook_factory(_is_frozendict)
def _frozendict_structure_factory(t: Any, conv: cattrs.Converter) -> Any:
    args = get_args(t)
    dict_type = dict[args[0], args[1]] if args else dict[str, Any] # type: ignore[valid-type]
    def structure(value: Any, _: Any) -> frozendict:
        return frozendict(conv.structure(value, dict_type))
    return structure

converter.register_unstructure_hook_func(
    _is_frozendict, lambda d: {converter.unstructure(k): converter.unstructure(v) for k, v in d.items()}
)


T = TypeVar('T')


def _loads(data: str | bytes, cl: type[T]) -> T:
    try:
        return converter.loads(data, cl)
    except PlaybackValidationError:
        raise
    except cattrs.BaseValidationError as e:
        raise PlaybackValidationError(f"Invalid {cl.__name__} data: {e}") from e
    except ValueError as e:
        # Malformed JSON
        raise PlaybackValidationError(f"Invalid {cl.__name__} JSON: {e}") from e


def conversation_to_json(conversation: Conversation) -> str:
    return converter.dumps(conversation)

def conversation_from_json(data: str | bytes) -> Conversation:
    """Parse a conversation, re-running its construction checks.

    Raises:
        PlaybackValidationError: on malformed JSON, missing fields, unknown enum values,
            duplicate message ids or an out-of-range index.
    """
    return _loads(data, Conversation)

def message_to_json(message: Message) -> str:
    return converter.dumps(message)

def message_from_json(data: str | bytes) -> Message:
    return _loads(data, Message)
