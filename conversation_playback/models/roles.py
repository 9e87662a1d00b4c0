"""Sender roles for scripted conversations."""

from __future__ import annotations

from enum import Enum


class SenderType(str, Enum):
    """Which side of the chat a message comes from."""
    
    USER = "user"
    BUSINESS = "business"
