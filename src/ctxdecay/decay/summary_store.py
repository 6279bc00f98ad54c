"""Persisted cache of tool-result summaries, keyed by message position.

The file lives next to the session transcript (``session.jsonl`` ->
``session.summaries.json``). Keys are the index a tool result had in the full,
untruncated transcript when it was summarized; nothing here detects index drift.

Loading is best-effort and never raises. Saving and clearing propagate
filesystem errors to the caller.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)

SUMMARY_SUFFIX = ".summaries.json"


def estimate_tokens(text: str) -> int:
    """Rough token estimate: ~1.3 tokens per whitespace separated word."""
    words = len(text.split())
    if words == 0:
        return 0
    return max(1, int(words * 1.3))


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


@dataclass(frozen=True)
class SummaryEntry:
    summary: str
    original_token_estimate: int
    summary_token_estimate: int
    # ISO-8601 text, stored exactly as written.
    summarized_at: str
    model: str

    @staticmethod
    def create(summary: str, original_text: str, model: str) -> "SummaryEntry":
        now = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        return SummaryEntry(
            summary=summary,
            original_token_estimate=estimate_tokens(original_text),
            summary_token_estimate=estimate_tokens(summary),
            summarized_at=now,
            model=model,
        )

    @staticmethod
    def from_obj(obj: Any) -> "SummaryEntry | None":
        if not isinstance(obj, dict):
            return None
        summary = obj.get("summary")
        orig = obj.get("originalTokenEstimate")
        summ = obj.get("summaryTokenEstimate")
        at = obj.get("summarizedAt")
        model = obj.get("model")
        if not isinstance(summary, str) or not isinstance(at, str) or not isinstance(model, str):
            return None
        if not _is_int(orig) or not _is_int(summ):
            return None
        return SummaryEntry(
            summary=summary,
            original_token_estimate=orig,
            summary_token_estimate=summ,
            summarized_at=at,
            model=model,
        )

    def to_obj(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "originalTokenEstimate": self.original_token_estimate,
            "summaryTokenEstimate": self.summary_token_estimate,
            "summarizedAt": self.summarized_at,
            "model": self.model,
        }


# Original (untruncated) message index -> cached summary.
SummaryStore = Dict[int, SummaryEntry]


def summary_store_path(session_path: str | Path) -> Path:
    p = Path(session_path)
    name = p.name
    if name.endswith(".jsonl"):
        name = name[: -len(".jsonl")]
    return p.with_name(name + SUMMARY_SUFFIX)


def _is_position(key: str) -> bool:
    # Bounded length keeps int() clear of the interpreter's digit limit.
    if not (key.isascii() and key.isdigit()) or len(key) > 18:
        return False
    # Canonical form only, so "3" and "03" cannot both map to index 3.
    return key == "0" or not key.startswith("0")


def _parse_store(raw: str, path: Path) -> SummaryStore:
    try:
        obj = json.loads(raw)
    except (ValueError, RecursionError):
        logger.debug("Summary store %s is not valid JSON; ignoring it", path)
        return {}
    if not isinstance(obj, dict):
        logger.debug("Summary store %s is not a JSON object; ignoring it", path)
        return {}

    store: SummaryStore = {}
    for key, value in obj.items():
        if not isinstance(key, str) or not _is_position(key):
            logger.debug("Skipping summary with non-positional key %r in %s", key, path)
            continue
        entry = SummaryEntry.from_obj(value)
        if entry is None:
            logger.debug("Skipping malformed summary %s in %s", key, path)
            continue
        store[int(key)] = entry
    return store


def load_summary_store(session_path: str | Path) -> SummaryStore:
    """Blocking load. Returns an empty store on any read or parse failure."""
    path = summary_store_path(session_path)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Could not read summary store %s: %s", path, e)
        return {}
    return _parse_store(raw, path)


async def load_summary_store_async(session_path: str | Path) -> SummaryStore:
    """Non-blocking variant of :func:`load_summary_store`; same fallback rules."""
    return await asyncio.to_thread(load_summary_store, session_path)


def save_summary_store(session_path: str | Path, store: SummaryStore) -> Path:
    """Overwrite the summary file with exactly ``store``.

    Missing parent directories are created. The file is written to a temporary
    sibling first and renamed into place. OSErrors propagate.
    """
    path = summary_store_path(session_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {str(idx): store[idx].to_obj() for idx in sorted(store)}
    text = json.dumps(payload, ensure_ascii=False, indent=2) + "\n"

    fd, tmp = tempfile.mkstemp(prefix=path.name + ".", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise
    logger.debug("Saved %d summaries to %s", len(store), path)
    return path


def clear_summary_store(session_path: str | Path) -> None:
    path = summary_store_path(session_path)
    try:
        path.unlink()
    except FileNotFoundError:
        return
    logger.debug("Removed summary store %s", path)
