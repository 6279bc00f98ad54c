"""Graduated context decay for agent session transcripts."""

from .decay.ages import compute_turn_ages
from .decay.engine import DecayResult, apply_context_decay, find_summary_candidates
from .decay.policy import DecayConfig
from .decay.repair import PairingRepairer, RepairReport, repair_tool_use_result_pairing
from .decay.summary_store import (
    SummaryEntry,
    SummaryStore,
    clear_summary_store,
    load_summary_store,
    load_summary_store_async,
    save_summary_store,
    summary_store_path,
)
from .session.models import Message, OtherBlock, TextBlock, ThinkingBlock, ToolUseBlock

__version__ = "0.1.0"

__all__ = [
    "DecayConfig",
    "DecayResult",
    "Message",
    "OtherBlock",
    "PairingRepairer",
    "RepairReport",
    "SummaryEntry",
    "SummaryStore",
    "TextBlock",
    "ThinkingBlock",
    "ToolUseBlock",
    "apply_context_decay",
    "clear_summary_store",
    "compute_turn_ages",
    "find_summary_candidates",
    "load_summary_store",
    "load_summary_store_async",
    "repair_tool_use_result_pairing",
    "save_summary_store",
    "summary_store_path",
]
