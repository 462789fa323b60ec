import json

import pytest

from src.shared.errors import RepairFailure, RepairFailureReason
from src.shared.json_repair import extract_and_repair_json, parse_structured, repair_json


class TestRepairJson:
    def test_closes_truncated_object_and_array(self):
        repaired = repair_json('{"category": "game", "tags": ["rpg", "fantasy"')

        assert json.loads(repaired) == {"category": "game", "tags": ["rpg", "fantasy"]}

    def test_closes_nested_structures_in_stack_order(self):
        repaired = repair_json('[{"title": "A", "differences": ["x"')

        assert json.loads(repaired) == [{"title": "A", "differences": ["x"]}]

    def test_closes_unterminated_string(self):
        repaired = repair_json('{"category": "gam')

        assert json.loads(repaired) == {"category": "gam"}

    def test_removes_trailing_commas(self):
        repaired = repair_json('{"tags": ["a", "b",], }')

        assert json.loads(repaired) == {"tags": ["a", "b"]}

    def test_drops_key_without_value(self):
        repaired = repair_json('{"category": "tool", "tags":')

        assert json.loads(repaired) == {"category": "tool"}

    def test_inserts_missing_commas_between_values(self):
        repaired = repair_json('[{"title": "A"} {"title": "B"}]')

        assert json.loads(repaired) == [{"title": "A"}, {"title": "B"}]

    def test_keys_are_not_treated_as_adjacent_values(self):
        repaired = repair_json('{"differences": ["one" "two"]}')

        assert json.loads(repaired) == {"differences": ["one", "two"]}

    def test_brackets_inside_strings_are_ignored(self):
        repaired = repair_json('{"title": "Use [brackets] and {braces}"')

        assert json.loads(repaired) == {"title": "Use [brackets] and {braces}"}


class TestExtractAndRepairJson:
    def test_extracts_from_markdown_code_fence(self):
        content = 'Sure!\n```json\n{"category": "saas", "tags": ["b2b"]}\n```\nHope that helps.'

        assert json.loads(extract_and_repair_json(content)) == {"category": "saas", "tags": ["b2b"]}

    def test_skips_leading_prose_and_trailing_commentary(self):
        content = 'Here is the JSON: {"category": "ux", "tags": []} Let me know if you need more.'

        assert json.loads(extract_and_repair_json(content)) == {"category": "ux", "tags": []}

    def test_prepends_brace_for_prompt_primed_output(self):
        content = '\n  "category": "game",\n  "tags": ["rpg"]\n'

        assert json.loads(extract_and_repair_json(content)) == {"category": "game", "tags": ["rpg"]}

    def test_wraps_single_object_when_array_expected(self):
        content = '{"title": "Solo", "description": "Only one"}'

        assert json.loads(extract_and_repair_json(content, expect_array=True)) == [
            {"title": "Solo", "description": "Only one"}
        ]

    def test_repairs_truncated_array(self):
        content = '[\n  {"title": "A", "description": "first", "differences": ["x"]},\n  {"title": "B", "descr'

        value = json.loads(extract_and_repair_json(content, expect_array=True))

        assert value[0]["title"] == "A"
        assert value[1]["title"] == "B"


class TestParseStructured:
    @pytest.mark.parametrize("content", ["", "   \n", None])
    def test_empty_content(self, content):
        result = parse_structured(content)

        assert not result.ok
        assert result.failure == RepairFailureReason.EMPTY

    def test_plain_text_is_invalid_json(self):
        result = parse_structured("Not JSON")

        assert not result.ok
        assert result.failure == RepairFailureReason.INVALID_JSON

    def test_wrong_shape(self):
        result = parse_structured('["a", "b"]')

        assert result.failure == RepairFailureReason.WRONG_SHAPE

    def test_unwrap_raises_typed_failure(self):
        result = parse_structured("Not JSON")

        with pytest.raises(RepairFailure) as exc_info:
            result.unwrap("Not JSON")

        assert exc_info.value.reason == RepairFailureReason.INVALID_JSON
        assert exc_info.value.raw == "Not JSON"

    def test_successful_parse(self):
        result = parse_structured('{"category": "tool", "tags": ["cli"]}')

        assert result.ok
        assert result.unwrap() == {"category": "tool", "tags": ["cli"]}
