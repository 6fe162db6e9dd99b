"""
Pytest configuration and shared fixtures.

Fixtures are reusable test setup that can be injected into tests.
"""

import shutil
import tempfile

import pytest

from plum.data.database import LocalStore
from plum.data.models import GenerationContext, Ingredient, PantryItem, Recipe, UserPreferences


class FakeClock:
    """Manually advanced clock. Returns whatever `now` is set to."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, amount: float):
        self.now += amount


@pytest.fixture
def temp_db_dir():
    """
    Create a temporary database directory for testing.

    This fixture is automatically cleaned up after each test.
    """
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(temp_db_dir, clock):
    """
    Create a fresh LocalStore for each test.

    Usage in tests:
        def test_something(store):
            store.set_cached_answer(...)
    """
    return LocalStore(db_dir=temp_db_dir, clock=clock)


@pytest.fixture
def sample_pantry():
    """Small pantry with one expiring item."""
    return [
        PantryItem(name="Chicken", quantity=500, unit="g", category="Meat"),
        PantryItem(name="Rice", quantity=1, unit="kg", category="Grains"),
        PantryItem(name="Spinach", quantity=200, unit="g", category="Produce", expiry_date="2026-10-20"),
    ]


@pytest.fixture
def sample_preferences():
    return UserPreferences(diet="Omnivore", allergies=["peanuts"], household_size=2)


@pytest.fixture
def sample_context():
    return GenerationContext(meal_type="Dinner", time_available="30 mins")


def make_recipe_dict(title, available_flags, uses_expiring=False, **overrides):
    """Wire-format recipe with one ingredient per availability flag."""
    data = {
        "title": title,
        "description": f"{title}, but witty",
        "imagePrompt": f"{title} on a white plate",
        "totalTimeMinutes": 30,
        "difficulty": "Easy",
        "caloriesApprox": 500,
        "usesExpiringIngredients": uses_expiring,
        "ingredients": [
            {"name": f"ingredient {i}", "amount": "100 g", "isAvailableInPantry": flag}
            for i, flag in enumerate(available_flags)
        ],
        "instructions": ["Prep", "Cook", "Serve"],
        "tags": ["Quick"],
        "macros": [{"name": "Protein", "value": 30}],
        "nutrition": {"fiber": "3g", "sugar": "2g", "sodium": "400mg", "servingWeight": "350g"},
    }
    data.update(overrides)
    return data


def make_recipe(title, available_flags, uses_expiring=False, match_score=0):
    return Recipe(
        id=title.lower().replace(" ", "-"),
        title=title,
        description="",
        ingredients=[
            Ingredient(name=f"ingredient {i}", amount="1 pcs", is_available_in_pantry=flag)
            for i, flag in enumerate(available_flags)
        ],
        instructions=[],
        uses_expiring_ingredients=uses_expiring,
        match_score=match_score,
    )


@pytest.fixture
def recipe_dict():
    """Factory for wire-format recipes: recipe_dict("Title", [True, False])."""
    return make_recipe_dict


@pytest.fixture
def recipe():
    """Factory for Recipe objects: recipe("Title", [True, False], uses_expiring=True)."""
    return make_recipe
