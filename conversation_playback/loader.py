"""Loading scenarios and conversations from JSON files."""

import json
import logging
from pathlib import Path
from typing import Any, TypeVar

import cattrs

from .errors import PlaybackValidationError
from .models.conversation import Conversation
from .models.scenario import Scenario
from .util.structure import converter

_logger = logging.getLogger(__name__)


def _read_json(source: Path) -> Any:
    try:
        with open(source, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {source}: {e}") from e


T = TypeVar('T')


def _structure(raw: Any, cl: type[T], source: Path) -> T:
    try:
        return converter.structure(raw, cl)
    except PlaybackValidationError:
        raise
    except (cattrs.BaseValidationError, ValueError) as e:
        raise PlaybackValidationError(f"Invalid {cl.__name__} in {source}: {e}") from e


def load_scenarios(source: Path) -> list[Scenario]:
    """Load scenarios from a JSON file holding either one scenario object or a list of them.

    Raises:
        ValueError: If the JSON is invalid
        PlaybackValidationError: If a scenario is malformed
    """
    data = _read_json(source)
    items = data if isinstance(data, list) else [data]
    scenarios = [_structure(item, Scenario, source) for item in items]
    _logger.info(f"Loaded {len(scenarios)} scenarios from {source}")
    return scenarios


def load_scenario(source: Path) -> Scenario:
    """Load the single scenario in a JSON file."""
    scenarios = load_scenarios(source)
    if len(scenarios) != 1:
        raise PlaybackValidationError(f"Expected one scenario in {source}, found {len(scenarios)}")
    return scenarios[0]


def load_conversation(source: Path) -> Conversation:
    """Load a conversation previously saved with `conversation_to_json`."""
    return _structure(_read_json(source), Conversation, source)
