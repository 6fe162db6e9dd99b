"""Unit tests for prompt builders."""

from plum.api.prompts import build_recipe_prompt


PANTRY = [{"name": "Rice", "quantity": 2, "unit": "cups"}]


class TestBuildRecipePrompt:
    def test_string_allergies_are_not_split_into_letters(self):
        prompt = build_recipe_prompt(PANTRY, {"allergies": "nuts"}, {}, [], 2)
        assert "Allergies=nuts," in prompt

    def test_list_allergies_are_joined(self):
        prompt = build_recipe_prompt(PANTRY, {"allergies": ["nuts", "shellfish"]}, {}, [], 2)
        assert "Allergies=nuts, shellfish," in prompt

    def test_missing_allergies_default_to_none(self):
        prompt = build_recipe_prompt(PANTRY, {}, {}, [], 2)
        assert "Allergies=None," in prompt
