from collections.abc import Iterable, Mapping
from typing import Any

from frozendict import frozendict


def frozendict_converter(input: Mapping) -> frozendict:
    """Use this function as the converter= argument to attrs.field.

    Using converter=frozendict fails because mypy (wrongly) doesn't understand that
    frozendict can take a dict as input.
    """
    return frozendict(input)


def frozendict_tuple_converter(input: Iterable[Mapping[str, Any]]) -> tuple[frozendict, ...]:
    """Converter for fields holding a sequence of free-form JSON objects."""
    return tuple(frozendict(item) for item in input)
