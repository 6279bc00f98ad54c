"""Tests for turn age computation."""

from ctxdecay.decay.ages import compute_turn_ages
from ctxdecay.session.models import Message


def msg(role):
    return Message(role=role, content="x")


def test_empty_sequence():
    assert compute_turn_ages([]) == {}


def test_newest_message_is_age_zero():
    ages = compute_turn_ages([msg("user"), msg("assistant")])

    assert ages == {0: 0, 1: 0}


def test_user_messages_close_turns():
    roles = ["user", "assistant", "user", "assistant", "toolResult", "user", "assistant"]

    ages = compute_turn_ages([msg(r) for r in roles])

    assert [ages[i] for i in range(len(roles))] == [2, 2, 1, 1, 1, 0, 0]


def test_first_user_message_does_not_open_extra_turn():
    ages = compute_turn_ages([msg("user")])

    assert ages == {0: 0}


def test_leading_system_message_belongs_to_oldest_turn():
    roles = ["system", "user", "assistant", "user"]

    ages = compute_turn_ages([msg(r) for r in roles])

    # The user at index 1 is not at position 0, so it closes a turn too.
    assert [ages[i] for i in range(len(roles))] == [2, 1, 1, 0]


def test_age_increments_only_at_user_boundaries():
    roles = ["user", "assistant", "toolResult", "assistant", "user", "user", "assistant"]
    messages = [msg(r) for r in roles]

    ages = compute_turn_ages(messages)

    expected = 0
    for i in range(len(messages) - 1, -1, -1):
        assert ages[i] == expected
        if messages[i].role == "user" and i > 0:
            expected += 1
