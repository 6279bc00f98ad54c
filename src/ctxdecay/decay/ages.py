from __future__ import annotations

from typing import Sequence

from ..session.models import Message


def compute_turn_ages(messages: Sequence[Message]) -> dict[int, int]:
    """Map each message index to its turn age (0 = current turn).

    Turns are bounded by user messages, counted backward from the end. A user
    message at index 0 opens the conversation and does not close a turn.
    """
    ages: dict[int, int] = {}
    age = 0
    for i in range(len(messages) - 1, -1, -1):
        ages[i] = age
        if messages[i].role == "user" and i > 0:
            age += 1
    return ages
