from __future__ import annotations

import pytest

from core.patches.models import InsertAfterPatch, ReplaceBetweenPatch, ReplaceExactPatch
from core.patches.parsing import extract_json_object, parse_patches


def test_parse_patches_accepts_all_variants_in_order() -> None:
    parsed = parse_patches(
        [
            {"type": "replace_exact", "old_text": "a", "new_text": "b"},
            {"type": "insert_after", "after_anchor": "x", "insert_text": "y"},
            {"type": "replace_between", "start_anchor": "s", "end_anchor": "e", "new_text": "n"},
            {"type": "delete_between", "start_anchor": "s", "end_anchor": "e", "keep_anchors": False},
        ]
    )

    assert parsed.rejected == []
    assert [patch.type for patch in parsed.patches] == [
        "replace_exact",
        "insert_after",
        "replace_between",
        "delete_between",
    ]
    assert isinstance(parsed.patches[2], ReplaceBetweenPatch)
    assert parsed.patches[2].keep_anchors is True
    assert parsed.patches[3].keep_anchors is False


def test_parse_patches_rejects_malformed_items_and_keeps_the_rest() -> None:
    parsed = parse_patches(
        [
            "not an object",
            {"type": "rewrite_everything", "text": "x"},
            {"type": "insert_after", "insert_text": "missing anchor"},
            {"type": "replace_exact", "old_text": "ok", "new_text": "fine"},
        ]
    )

    assert [item.patch_index for item in parsed.rejected] == [0, 1, 2]
    assert "must be an object" in parsed.rejected[0].reason
    assert parsed.patches == [ReplaceExactPatch(old_text="ok", new_text="fine")]


def test_parse_patches_tolerates_null_optional_fields_and_extra_keys() -> None:
    parsed = parse_patches(
        [
            {
                "type": " Insert_After ",
                "after_anchor": "x",
                "insert_text": None,
                "keep_anchors": None,
                "confidence": 0.9,
            }
        ]
    )

    assert parsed.patches == [InsertAfterPatch(after_anchor="x", insert_text="")]


def test_parse_patches_requires_a_list() -> None:
    with pytest.raises(TypeError):
        parse_patches(None)


def test_extract_json_object_handles_fenced_and_wrapped_output() -> None:
    fenced = 'Here you go:\n```json\n{"patches": []}\n```'
    wrapped = 'Sure! {"patches": [{"type": "replace_exact"}], "summary": "s"} Done.'

    assert extract_json_object('{"patches": []}') == {"patches": []}
    assert extract_json_object(fenced) == {"patches": []}
    assert extract_json_object(wrapped) == {
        "patches": [{"type": "replace_exact"}],
        "summary": "s",
    }


def test_extract_json_object_returns_none_without_object() -> None:
    assert extract_json_object("") is None
    assert extract_json_object("[1, 2]") is None
    assert extract_json_object("no json here") is None
