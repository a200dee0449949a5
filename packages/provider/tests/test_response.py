"""响应归一化单元测试 -- PlainText | Structured -> ProviderReply"""

import pytest
from pydantic import TypeAdapter, ValidationError
from vistachat.provider.models import ModelCallResult
from vistachat.provider.response import (
    Choice,
    PlainText,
    RawProviderResponse,
    Structured,
    normalize_response,
    split_embedded_tags,
)


class TestNormalizeResponse:
    """两种响应形态"""

    def test_plain_text(self):
        reply = normalize_response(PlainText(text="A dog.\n\nTAGS: dog, park"))
        assert reply.text == "A dog."
        assert reply.embedded_tags == ["dog", "park"]

    def test_structured_lowest_index(self):
        response = Structured(
            choices=[Choice(index=1, text="second"), Choice(index=0, text="first")]
        )
        assert normalize_response(response).text == "first"

    def test_structured_empty(self):
        reply = normalize_response(Structured(choices=[]))
        assert reply.text == ""
        assert reply.embedded_tags == []

    def test_discriminated_union(self):
        adapter = TypeAdapter(RawProviderResponse)
        assert isinstance(adapter.validate_python({"kind": "plain_text", "text": "x"}), PlainText)
        assert isinstance(adapter.validate_python({"kind": "structured"}), Structured)
        with pytest.raises(ValidationError):
            adapter.validate_python({"kind": "stream", "text": "x"})

    def test_call_result_round_trip(self):
        result = ModelCallResult(response=PlainText(text="hello"), duration_ms=5)
        restored = ModelCallResult.model_validate_json(result.model_dump_json())
        assert isinstance(restored.response, PlainText)
        assert restored.content == "hello"


class TestSplitEmbeddedTags:
    """TAGS 行拆分"""

    def test_no_marker(self):
        reply = split_embedded_tags("  Just a description.  ")
        assert reply.text == "Just a description."
        assert reply.embedded_tags == []

    def test_bold_marker(self):
        reply = split_embedded_tags("A cat.\n\n**TAGS:** cat, sofa, cozy")
        assert reply.text == "A cat."
        assert reply.embedded_tags == ["cat", "sofa", "cozy"]

    def test_last_marker_wins(self):
        reply = split_embedded_tags("Label reads TAGS: sale\n\nTAGS: shop, sign")
        assert reply.embedded_tags == ["shop", "sign"]
        assert reply.text == "Label reads TAGS: sale"

    def test_only_first_tag_line(self):
        reply = split_embedded_tags("Body\nTAGS: a, b\nTrailing note")
        assert reply.embedded_tags == ["a", "b"]
        assert reply.text == "Body\n\nTrailing note"

    def test_text_after_tag_line_kept(self):
        reply = split_embedded_tags(
            "A red car.\n\nTAGS: car, red\n\nLet me know if you need more!"
        )
        assert reply.embedded_tags == ["car", "red"]
        assert reply.text == "A red car.\n\nLet me know if you need more!"

    def test_marker_at_start_with_trailing_text(self):
        reply = split_embedded_tags("TAGS: a\nOnly note")
        assert reply.text == "Only note"

    def test_empty_tag_line(self):
        reply = split_embedded_tags("Body\nTAGS:")
        assert reply.text == "Body"
        assert reply.embedded_tags == []
