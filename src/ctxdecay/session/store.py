from __future__ import annotations

import json
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from platformdirs import user_data_dir

from .models import Message

APP_NAME = "ctxdecay"


def sessions_dir() -> Path:
    root = Path(user_data_dir(APP_NAME))
    d = root / "sessions"
    d.mkdir(parents=True, exist_ok=True)
    return d


def _read_messages(path: Path) -> list[Message]:
    msgs: list[Message] = []
    if not path.exists():
        return msgs
    for line in path.read_text(encoding="utf-8", errors="replace").splitlines():
        if not line.strip():
            continue
        try:
            obj = json.loads(line)
        except ValueError:
            # Best-effort: a process killed mid-write leaves a partial last line.
            continue
        msg = Message.from_obj(obj)
        if msg is not None:
            msgs.append(msg)
    return msgs


@dataclass
class SessionStore:
    """A JSONL session transcript, one message per line.

    The transcript path is also the anchor for sibling files such as the
    summary store (see ``ctxdecay.decay.summary_store.summary_store_path``).
    """

    session_id: str
    path: Path
    messages: list[Message]

    @staticmethod
    def open(session_id: str | None = None, directory: Path | None = None) -> "SessionStore":
        sid = session_id or uuid.uuid4().hex[:12]
        return SessionStore.from_path((directory or sessions_dir()) / f"{sid}.jsonl")

    @staticmethod
    def from_path(path: Path) -> "SessionStore":
        path = Path(path)
        sid = path.name[: -len(".jsonl")] if path.name.endswith(".jsonl") else path.name
        return SessionStore(session_id=sid, path=path, messages=_read_messages(path))

    def append(self, msg: Message) -> None:
        self.messages.append(msg)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(msg.to_obj(), ensure_ascii=False) + "\n")
            f.flush()
            try:
                os.fsync(f.fileno())
            except OSError:
                # Some filesystems do not support fsync.
                pass

    def extend(self, msgs: Iterable[Message]) -> None:
        for m in msgs:
            self.append(m)
