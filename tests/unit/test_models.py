"""Unit tests for data models."""

import pytest

from plum.data.models import GenerationContext, PantryItem, Recipe, UserPreferences


class TestPantryItem:
    """Test PantryItem validation and serialization."""

    def test_rejects_unknown_unit(self):
        with pytest.raises(ValueError, match="Invalid unit"):
            PantryItem(name="Milk", quantity=1, unit="gallon")

    def test_rejects_unknown_category(self):
        with pytest.raises(ValueError, match="Invalid category"):
            PantryItem(name="Milk", quantity=1, unit="L", category="Drinks")

    def test_request_dict_has_only_name_quantity_unit(self):
        item = PantryItem(name="Milk", quantity="2", unit="L", category="Dairy", expiry_date="2026-10-25")
        assert item.to_request_dict() == {"name": "Milk", "quantity": "2", "unit": "L"}

    def test_from_dict_keeps_id_and_expiry(self):
        item = PantryItem.from_dict({"id": "p1", "name": "Eggs", "quantity": 6, "expiryDate": "2026-11-01"})
        assert item.id == "p1"
        assert item.unit == "pcs"
        assert item.category == "General"
        assert item.to_dict()["expiryDate"] == "2026-11-01"


class TestUserPreferences:
    """Test validation and merge-update."""

    def test_merge_accepts_wire_and_attribute_names(self):
        prefs = UserPreferences()
        updated = prefs.merge({"householdSize": 4, "cooking_skill": "Advanced"})

        assert updated.household_size == 4
        assert updated.cooking_skill == "Advanced"
        assert prefs.household_size == 2

    def test_merge_rejects_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown preference"):
            UserPreferences().merge({"favoriteColor": "plum"})

    def test_household_size_must_be_positive(self):
        with pytest.raises(ValueError):
            UserPreferences().merge({"householdSize": 0})

    def test_round_trip_through_wire_dict(self):
        prefs = UserPreferences(allergies=["nuts"], favorite_cuisines=["Thai"], max_calories_per_meal=600)
        assert UserPreferences.from_dict(prefs.to_dict()) == prefs


class TestGenerationContext:
    def test_to_dict_omits_unset_optionals(self):
        assert GenerationContext().to_dict() == {
            "mealType": "Dinner",
            "timeAvailable": "30 mins",
            "prioritizeExpiring": False,
        }

    def test_to_dict_includes_set_optionals(self):
        data = GenerationContext(cuisine="Thai", hero_ingredient="Tofu", servings=3).to_dict()
        assert data["cuisine"] == "Thai"
        assert data["heroIngredient"] == "Tofu"
        assert data["servings"] == 3


class TestRecipe:
    """Test Recipe wire conversion."""

    def test_null_ingredient_name_becomes_empty(self, recipe_dict):
        data = recipe_dict("Curry", [True])
        data["ingredients"][0]["name"] = None
        assert Recipe.from_dict(data).ingredients[0].name == ""

    def test_from_dict_assigns_fresh_id_and_zero_score(self, recipe_dict):
        recipe = Recipe.from_dict(recipe_dict("Curry", [True, False], matchScore=88))
        assert recipe.id
        assert recipe.match_score == 0
        assert recipe.available_count == 1

    def test_to_dict_uses_camel_case(self, recipe_dict):
        data = Recipe.from_dict(recipe_dict("Curry", [True]), recipe_id="r1").to_dict()
        assert data["id"] == "r1"
        assert data["imagePrompt"] == "Curry on a white plate"
        assert data["ingredients"][0]["isAvailableInPantry"] is True
        assert data["nutrition"]["servingWeight"] == "350g"
        assert "generatedImage" not in data
