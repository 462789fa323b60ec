from src.shared import prompts


class TestPrompts:
    def test_classification_prompt_primes_json_object(self):
        prompt = prompts.classification("A roguelike about bees")

        assert '"A roguelike about bees"' in prompt
        assert prompt.endswith("Response:\n{")

    def test_classification_prompt_without_open_brace(self):
        assert prompts.classification("idea", open_brace=False).endswith("Response:")

    def test_mutations_prompt_defaults(self):
        prompt = prompts.mutations("A todo app")

        assert f"generate {prompts.DEFAULT_MUTATION_COUNT} creative variations" in prompt
        assert "Category: general" in prompt
        assert "Tags: none" in prompt
        assert "Focus area" not in prompt

    def test_mutations_prompt_with_options(self):
        prompt = prompts.mutations("A todo app", category="saas", tags=["b2b", "ai"], count=3, focus="pricing")

        assert "generate 3 creative variations" in prompt
        assert "Tags: b2b, ai" in prompt
        assert prompt.endswith("Focus area: pricing")

    def test_expansion_prompt_detail_level(self):
        assert "Detail level: comprehensive" in prompts.expansion("idea", detail_level="comprehensive")
        assert f"Detail level: {prompts.DEFAULT_DETAIL_LEVEL}" in prompts.expansion("idea")

    def test_reorganization_prompt_lists_structure(self):
        prompt = prompts.reorganization("idea", target_structure=["Problem", "Solution"], preserve_sections=["Notes"])

        assert "- Problem\n- Solution" in prompt
        assert "- Notes" in prompt
