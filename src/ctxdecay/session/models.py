from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union

Role = Literal["system", "user", "assistant", "toolResult"]

ROLES = {"system", "user", "assistant", "toolResult"}


@dataclass(frozen=True)
class TextBlock:
    text: str
    extra: dict[str, Any] = field(default_factory=dict)

    type = "text"

    def to_obj(self) -> dict[str, Any]:
        return {**self.extra, "type": self.type, "text": self.text}


@dataclass(frozen=True)
class ThinkingBlock:
    thinking: str
    signature: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    type = "thinking"

    def to_obj(self) -> dict[str, Any]:
        d: dict[str, Any] = {**self.extra, "type": self.type, "thinking": self.thinking}
        if self.signature is not None:
            d["signature"] = self.signature
        return d


@dataclass(frozen=True)
class ToolUseBlock:
    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    type = "tool_use"

    def to_obj(self) -> dict[str, Any]:
        return {**self.extra, "type": self.type, "id": self.id, "name": self.name, "input": self.input}


@dataclass(frozen=True)
class OtherBlock:
    """Any block tag the decay engine does not act on (images, provider specific parts...)."""

    type: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_obj(self) -> dict[str, Any]:
        return {**self.data, "type": self.type}


ContentBlock = Union[TextBlock, ThinkingBlock, ToolUseBlock, OtherBlock]


def block_from_obj(obj: Any) -> ContentBlock | None:
    if not isinstance(obj, dict):
        return None
    tag = obj.get("type")
    rest = {k: v for k, v in obj.items() if k != "type"}
    if tag == "text" and isinstance(obj.get("text"), str):
        rest.pop("text")
        return TextBlock(text=obj["text"], extra=rest)
    if tag == "thinking" and isinstance(obj.get("thinking"), str):
        rest.pop("thinking")
        sig = rest.pop("signature", None)
        return ThinkingBlock(thinking=obj["thinking"], signature=sig if isinstance(sig, str) else None, extra=rest)
    if tag == "tool_use" and isinstance(obj.get("id"), str) and isinstance(obj.get("name"), str):
        rest.pop("id")
        rest.pop("name")
        inp = rest.pop("input", None)
        return ToolUseBlock(id=obj["id"], name=obj["name"], input=inp if isinstance(inp, dict) else {}, extra=rest)
    if isinstance(tag, str):
        return OtherBlock(type=tag, data=rest)
    return None


@dataclass
class Message:
    role: Role
    # str for plain text, a block list, or None for partial/streamed records
    content: str | list[ContentBlock] | None
    # toolResult-only: correlates the result with the invoking tool_use block
    tool_call_id: str | None = None
    tool_name: str | None = None
    is_error: bool = False
    # Everything else a transcript line carries (timestamp, usage, provider...)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def has_block_content(self) -> bool:
        return isinstance(self.content, list)

    def tool_use_ids(self) -> list[str]:
        if not isinstance(self.content, list):
            return []
        return [b.id for b in self.content if isinstance(b, ToolUseBlock)]

    def text(self) -> str:
        if isinstance(self.content, str):
            return self.content
        if isinstance(self.content, list):
            return "\n".join(b.text for b in self.content if isinstance(b, TextBlock))
        return ""

    @staticmethod
    def from_obj(obj: Any) -> "Message | None":
        if not isinstance(obj, dict):
            return None
        role = obj.get("role")
        if role not in ROLES:
            return None

        raw = obj.get("content")
        content: str | list[ContentBlock] | None
        if isinstance(raw, str):
            content = raw
        elif isinstance(raw, list):
            content = [b for b in (block_from_obj(it) for it in raw) if b is not None]
        else:
            content = None

        tcid = obj.get("toolCallId", obj.get("tool_call_id"))
        tname = obj.get("toolName", obj.get("tool_name"))
        is_err = obj.get("isError", obj.get("is_error", False))

        known = {"role", "content", "toolCallId", "tool_call_id", "toolName", "tool_name", "isError", "is_error"}
        return Message(
            role=role,
            content=content,
            tool_call_id=tcid if isinstance(tcid, str) else None,
            tool_name=tname if isinstance(tname, str) else None,
            is_error=bool(is_err),
            extra={k: v for k, v in obj.items() if k not in known},
        )

    def to_obj(self) -> dict[str, Any]:
        d: dict[str, Any] = dict(self.extra)
        d["role"] = self.role
        if isinstance(self.content, list):
            d["content"] = [b.to_obj() for b in self.content]
        else:
            d["content"] = self.content
        if self.role == "toolResult":
            if self.tool_call_id is not None:
                d["toolCallId"] = self.tool_call_id
            if self.tool_name is not None:
                d["toolName"] = self.tool_name
            d["isError"] = self.is_error
        return d
