from __future__ import annotations

from dataclasses import dataclass
from typing import Any


def is_enabled(value: int | None) -> bool:
    # 0 and None both mean "off", never "always trigger".
    return value is not None and value >= 1


def _threshold(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or value < 0:
        return None
    return value


_KEYS = {
    "strip_thinking_after_turns": "stripThinkingAfterTurns",
    "summarize_tool_results_after_turns": "summarizeToolResultsAfterTurns",
    "strip_tool_results_after_turns": "stripToolResultsAfterTurns",
    "max_context_messages": "maxContextMessages",
}


@dataclass(frozen=True)
class DecayConfig:
    """Thresholds for graduated context decay.

    Each threshold is independent. A threshold is enabled only when set and >= 1.
    """

    # Remove thinking blocks from assistant messages at least this many turns old.
    strip_thinking_after_turns: int | None = None

    # Swap tool results for their cached summary once this old.
    summarize_tool_results_after_turns: int | None = None

    # Replace tool results with a removal placeholder once this old.
    strip_tool_results_after_turns: int | None = None

    # Keep only the newest N messages.
    max_context_messages: int | None = None

    @staticmethod
    def from_obj(obj: Any) -> "DecayConfig":
        if not isinstance(obj, dict):
            return DecayConfig()
        values: dict[str, int | None] = {}
        for attr, camel in _KEYS.items():
            raw = obj.get(camel, obj.get(attr))
            values[attr] = _threshold(raw)
        return DecayConfig(**values)

    def to_obj(self) -> dict[str, int]:
        out: dict[str, int] = {}
        for attr, camel in _KEYS.items():
            v = getattr(self, attr)
            if v is not None:
                out[camel] = v
        return out

    def merged(self, **overrides: int | None) -> "DecayConfig":
        """Return a copy where every non-None override replaces the stored value."""
        values = {attr: getattr(self, attr) for attr in _KEYS}
        for k, v in overrides.items():
            if k not in _KEYS:
                raise TypeError(f"Unknown decay threshold: {k}")
            if v is not None:
                values[k] = _threshold(v)
        return DecayConfig(**values)

    @property
    def strip_thinking(self) -> int | None:
        v = self.strip_thinking_after_turns
        return v if is_enabled(v) else None

    @property
    def summarize(self) -> int | None:
        v = self.summarize_tool_results_after_turns
        return v if is_enabled(v) else None

    @property
    def strip_tool_results(self) -> int | None:
        v = self.strip_tool_results_after_turns
        return v if is_enabled(v) else None

    @property
    def cap(self) -> int | None:
        v = self.max_context_messages
        return v if is_enabled(v) else None

    @property
    def any_enabled(self) -> bool:
        return any(v is not None for v in (self.strip_thinking, self.summarize, self.strip_tool_results, self.cap))

    @property
    def misconfigured_summarize(self) -> bool:
        """Summaries can never show when stripping starts at or before them."""
        s, t = self.summarize, self.strip_tool_results
        return s is not None and t is not None and s >= t
