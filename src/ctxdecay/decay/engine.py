from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Mapping

from ..session.models import Message, TextBlock
from .ages import compute_turn_ages
from .policy import DecayConfig
from .repair import PairingRepairer, RepairReport, repair_tool_use_result_pairing
from .summary_store import SummaryEntry

logger = logging.getLogger(__name__)

SUMMARY_PREFIX = "[Summarized] "


def summarized_text(entry: SummaryEntry) -> str:
    return SUMMARY_PREFIX + entry.summary


def stripped_text(threshold: int) -> str:
    return f"[Tool result removed: aged past {threshold} turns]"


@dataclass
class DecayResult:
    # Same list object as the input when nothing changed.
    messages: list[Message]
    changed: bool = False
    truncated: bool = False
    thinking_stripped: int = 0
    summarized: int = 0
    tool_results_stripped: int = 0
    dropped_by_cap: int = 0
    repair: RepairReport | None = None


def apply_context_decay(
    messages: list[Message],
    config: DecayConfig,
    summary_store: Mapping[int, SummaryEntry],
    *,
    repairer: PairingRepairer = repair_tool_use_result_pairing,
) -> DecayResult:
    """Apply graduated decay to a transcript.

    Order:
    1. strip thinking blocks from old assistant messages
    2. swap old tool results for their cached summary
    3. replace tool results past the strip threshold with a placeholder
    4. keep only the newest ``max_context_messages`` messages
    5. repair tool_use/toolResult pairing, only if step 4 dropped anything

    Input messages are never mutated.
    """
    result = DecayResult(messages=messages)
    if not messages or not config.any_enabled:
        return result

    strip_thinking = config.strip_thinking
    summarize = config.summarize
    strip_results = config.strip_tool_results
    cap = config.cap

    if config.misconfigured_summarize:
        logger.warning(
            "summarize threshold (%d) >= strip threshold (%d): cached summaries will never be used",
            summarize,
            strip_results,
        )

    ages = compute_turn_ages(messages)
    out: list[Message] = []

    for idx, msg in enumerate(messages):
        age = ages[idx]
        current = msg

        if strip_thinking is not None and current.role == "assistant" and age >= strip_thinking:
            if isinstance(current.content, list):
                # Match on the tag so partial thinking blocks (OtherBlock) go too.
                kept = [b for b in current.content if b.type != "thinking"]
                if len(kept) != len(current.content):
                    current = dataclasses.replace(current, content=kept)
                    result.thinking_stripped += 1

        if current.role == "toolResult":
            if summarize is not None and age >= summarize and idx in summary_store:
                # Stripping wins once the message is old enough for both.
                if not (strip_results is not None and age >= strip_results):
                    entry = summary_store[idx]
                    current = dataclasses.replace(current, content=[TextBlock(text=summarized_text(entry))])
                    result.summarized += 1
                    logger.debug("Summarized tool result %d (age %d)", idx, age)

            if strip_results is not None and age >= strip_results:
                current = dataclasses.replace(current, content=[TextBlock(text=stripped_text(strip_results))])
                result.tool_results_stripped += 1
                logger.debug("Stripped tool result %d (age %d)", idx, age)

        out.append(current)

    result.changed = bool(result.thinking_stripped or result.summarized or result.tool_results_stripped)

    if cap is not None and len(out) > cap:
        result.dropped_by_cap = len(out) - cap
        out = out[-cap:]
        result.truncated = True
        result.changed = True

    if not result.changed:
        return result

    if result.truncated:
        result.repair = repairer(out)
        out = result.repair.messages

    result.messages = out
    logger.info(
        "Context decay: %d thinking stripped, %d summarized, %d tool results stripped, %d dropped by cap",
        result.thinking_stripped,
        result.summarized,
        result.tool_results_stripped,
        result.dropped_by_cap,
    )
    return result


def find_summary_candidates(
    messages: list[Message],
    config: DecayConfig,
    summary_store: Mapping[int, SummaryEntry],
) -> list[int]:
    """Indices of tool results old enough to be summarized but with no cached summary.

    Results already past the strip threshold are left out since a summary
    would never be shown for them.
    """
    summarize = config.summarize
    if summarize is None or not messages:
        return []
    strip_results = config.strip_tool_results
    ages = compute_turn_ages(messages)
    out: list[int] = []
    for idx, msg in enumerate(messages):
        if msg.role != "toolResult" or idx in summary_store:
            continue
        age = ages[idx]
        if age < summarize:
            continue
        if strip_results is not None and age >= strip_results:
            continue
        out.append(idx)
    return out
