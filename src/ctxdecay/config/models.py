from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..decay.policy import DecayConfig


@dataclass
class Settings:
    """Settings loaded from JSON/YAML config files.

    Only the ``context_decay`` section is interpreted; other keys are ignored so
    the file can be shared with the agent that owns the sessions.
    """

    decay: DecayConfig = field(default_factory=DecayConfig)
    sessions_dir: Path | None = None

    loaded_from: Path | None = None

    @staticmethod
    def from_obj(obj: Any) -> "Settings":
        cfg = Settings()
        if not isinstance(obj, dict):
            return cfg
        section = obj.get("context_decay", obj.get("contextDecay"))
        cfg.decay = DecayConfig.from_obj(section)
        sd = obj.get("sessions_dir")
        if isinstance(sd, str) and sd.strip():
            cfg.sessions_dir = Path(sd.strip()).expanduser()
        return cfg
