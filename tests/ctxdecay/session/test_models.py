"""Tests for transcript message parsing."""

from ctxdecay.session.models import Message, OtherBlock, TextBlock, ThinkingBlock, ToolUseBlock, block_from_obj


class TestBlocks:
    def test_known_tags(self):
        assert block_from_obj({"type": "text", "text": "hi"}) == TextBlock(text="hi")
        assert block_from_obj({"type": "thinking", "thinking": "hmm", "signature": "sig"}) == ThinkingBlock(
            thinking="hmm", signature="sig"
        )
        assert block_from_obj({"type": "tool_use", "id": "c1", "name": "read", "input": {"p": 1}}) == ToolUseBlock(
            id="c1", name="read", input={"p": 1}
        )

    def test_unknown_tag_passes_through(self):
        obj = {"type": "image", "source": {"data": "..."}}

        block = block_from_obj(obj)

        assert block == OtherBlock(type="image", data={"source": {"data": "..."}})
        assert block.to_obj() == obj

    def test_known_tag_with_wrong_shape_becomes_other(self):
        assert isinstance(block_from_obj({"type": "text", "text": 3}), OtherBlock)

    def test_untagged_values_are_dropped(self):
        assert block_from_obj("text") is None
        assert block_from_obj({"text": "no tag"}) is None

    def test_extra_keys_round_trip(self):
        obj = {"type": "text", "text": "hi", "cache_control": {"type": "ephemeral"}}

        assert block_from_obj(obj).to_obj() == obj


class TestMessage:
    def test_tool_result_round_trip(self):
        obj = {
            "role": "toolResult",
            "toolCallId": "call_1",
            "toolName": "read_file",
            "content": [{"type": "text", "text": "data"}],
            "isError": False,
            "timestamp": 1700000000000,
        }

        msg = Message.from_obj(obj)

        assert msg.tool_call_id == "call_1"
        assert msg.tool_name == "read_file"
        assert msg.extra == {"timestamp": 1700000000000}
        assert msg.to_obj() == obj

    def test_snake_case_keys_are_accepted(self):
        msg = Message.from_obj({"role": "toolResult", "tool_call_id": "c", "content": "x"})

        assert msg.tool_call_id == "c"

    def test_unknown_role_is_rejected(self):
        assert Message.from_obj({"role": "tool", "content": "x"}) is None
        assert Message.from_obj(["user"]) is None

    def test_missing_content_is_none(self):
        msg = Message.from_obj({"role": "assistant"})

        assert msg.content is None
        assert msg.text() == ""
        assert msg.tool_use_ids() == []

    def test_helpers(self):
        msg = Message(
            role="assistant",
            content=[ThinkingBlock(thinking="t"), TextBlock(text="a"), ToolUseBlock(id="c1", name="x"), TextBlock(text="b")],
        )

        assert msg.has_block_content
        assert msg.text() == "a\nb"
        assert msg.tool_use_ids() == ["c1"]
