from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from ..session.models import Message

logger = logging.getLogger(__name__)


@dataclass
class RepairReport:
    messages: list[Message]
    dropped_orphans: int = 0
    dropped_duplicates: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.dropped_orphans or self.dropped_duplicates)


class PairingRepairer(Protocol):
    def __call__(self, messages: list[Message]) -> RepairReport: ...


def repair_tool_use_result_pairing(messages: list[Message]) -> RepairReport:
    """Drop tool results that no longer follow their tool_use block.

    Meant to run after the front of a transcript was cut away: a toolResult
    whose invoking assistant message is gone (or that answers a call already
    answered) would be rejected by providers.
    """
    called: set[str] = set()
    answered: set[str] = set()
    out: list[Message] = []
    orphans = 0
    duplicates = 0

    for m in messages:
        if m.role == "assistant":
            called.update(m.tool_use_ids())
        elif m.role == "toolResult":
            cid = m.tool_call_id
            if not cid or cid not in called:
                orphans += 1
                logger.debug("Dropping orphaned tool result %s", cid)
                continue
            if cid in answered:
                duplicates += 1
                logger.debug("Dropping duplicate tool result %s", cid)
                continue
            answered.add(cid)
        out.append(m)

    if not orphans and not duplicates:
        return RepairReport(messages=messages)
    return RepairReport(messages=out, dropped_orphans=orphans, dropped_duplicates=duplicates)
