"""
Data models for the Plum recipe pipeline.

These models define the core entities shared by the client and the edge
services:
- PantryItem: an inventory entry with a closed unit/category vocabulary
- UserPreferences: per-user settings, updated through a single merge
- GenerationContext: transient per-request generation options
- Recipe / Ingredient: AI-generated recipes after client post-processing

Python attributes are snake_case; the JSON wire format is camelCase, so every
model provides to_dict()/from_dict() for the conversion.
"""

import uuid
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Union

UNITS = ["pcs", "g", "kg", "ml", "L", "oz", "lb", "cups", "tbsp", "tsp"]

PANTRY_CATEGORIES = [
    "Produce",
    "Dairy",
    "Meat",
    "Grains",
    "Bakery",
    "Spices",
    "Beverages",
    "Frozen",
    "Snacks",
    "General",
]

CUISINES = [
    "Italian", "Spanish", "Mexican", "Chinese", "Indian", "Thai", "Japanese",
    "Mediterranean", "American", "French", "Korean", "Vietnamese", "Greek",
]


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class Diet(str, Enum):
    OMNIVORE = "Omnivore"
    VEGETARIAN = "Vegetarian"
    VEGAN = "Vegan"
    PESCATARIAN = "Pescatarian"
    PALEO = "Paleo"
    KETO = "Keto"


COOKING_SKILLS = ["Beginner", "Intermediate", "Advanced"]
MEASUREMENT_UNITS = ["Metric", "Imperial"]
NUTRITIONAL_GOALS = ["Balanced", "High Protein", "Low Carb", "Low Fat"]


def generate_id() -> str:
    """Generate a unique identifier for client-side entities."""
    return uuid.uuid4().hex


@dataclass
class PantryItem:
    """An item in the user's pantry.

    Unit and category are closed enumerations; anything outside UNITS or
    PANTRY_CATEGORIES is rejected at construction time.
    """
    name: str
    quantity: Union[float, str]
    unit: str = "pcs"
    category: str = "General"
    expiry_date: Optional[str] = None  # ISO date, e.g. "2026-10-21"
    id: str = field(default_factory=generate_id)

    def __post_init__(self):
        if self.unit not in UNITS:
            raise ValueError(f"Invalid unit '{self.unit}'. Must be one of: {', '.join(UNITS)}")
        if self.category not in PANTRY_CATEGORIES:
            raise ValueError(
                f"Invalid category '{self.category}'. Must be one of: {', '.join(PANTRY_CATEGORIES)}"
            )

    def to_request_dict(self) -> Dict[str, Any]:
        """Payload sent to recipe generation: bookkeeping fields are excluded."""
        return {"name": self.name, "quantity": self.quantity, "unit": self.unit}

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "quantity": self.quantity,
            "unit": self.unit,
            "category": self.category,
        }
        if self.expiry_date:
            data["expiryDate"] = self.expiry_date
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PantryItem":
        kwargs = dict(
            name=data["name"],
            quantity=data.get("quantity", 1),
            unit=data.get("unit") or "pcs",
            category=data.get("category") or "General",
            expiry_date=data.get("expiryDate"),
        )
        if data.get("id"):
            kwargs["id"] = data["id"]
        return cls(**kwargs)


# Wire names for UserPreferences fields
_PREFERENCE_KEYS = {
    "diet": "diet",
    "allergies": "allergies",
    "appliances": "appliances",
    "favorite_cuisines": "favoriteCuisines",
    "cooking_skill": "cookingSkill",
    "nutritional_goal": "nutritionalGoal",
    "max_calories_per_meal": "maxCaloriesPerMeal",
    "household_size": "householdSize",
    "disliked_ingredients": "dislikedIngredients",
    "measurement_unit": "measurementUnit",
    "is_pro": "isPro",
}


@dataclass(frozen=True)
class UserPreferences:
    """User preferences owned by the session.

    Instances are immutable; use merge() to produce an updated copy.
    """
    diet: str = Diet.OMNIVORE.value
    allergies: List[str] = field(default_factory=list)
    appliances: List[str] = field(default_factory=list)
    favorite_cuisines: List[str] = field(default_factory=list)
    cooking_skill: str = "Intermediate"
    nutritional_goal: str = "Balanced"
    max_calories_per_meal: Optional[int] = None
    household_size: int = 2
    disliked_ingredients: List[str] = field(default_factory=list)
    measurement_unit: str = "Metric"
    is_pro: bool = False

    def __post_init__(self):
        if self.household_size < 1:
            raise ValueError("household_size must be at least 1")
        if self.cooking_skill not in COOKING_SKILLS:
            raise ValueError(f"Invalid cooking skill '{self.cooking_skill}'")
        if self.measurement_unit not in MEASUREMENT_UNITS:
            raise ValueError(f"Invalid measurement unit '{self.measurement_unit}'")

    def merge(self, updates: Dict[str, Any]) -> "UserPreferences":
        """Return a copy with the given fields replaced.

        Accepts either attribute names or their camelCase wire names.

        Raises:
            ValueError: If a key is not a known preference or a value is invalid
        """
        wire_to_attr = {wire: attr for attr, wire in _PREFERENCE_KEYS.items()}
        changes = {}
        for key, value in updates.items():
            attr = key if key in _PREFERENCE_KEYS else wire_to_attr.get(key)
            if attr is None:
                raise ValueError(f"Unknown preference '{key}'")
            changes[attr] = value
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            data[_PREFERENCE_KEYS[f.name]] = list(value) if isinstance(value, list) else value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserPreferences":
        return cls().merge({k: v for k, v in data.items() if k in _PREFERENCE_KEYS.values()})


@dataclass
class GenerationContext:
    """Per-request generation options. Never persisted."""
    meal_type: str = "Dinner"
    time_available: str = "30 mins"
    cuisine: Optional[str] = None
    hero_ingredient: Optional[str] = None
    prioritize_expiring: bool = False
    servings: Optional[int] = None
    home_style: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "mealType": self.meal_type,
            "timeAvailable": self.time_available,
            "prioritizeExpiring": self.prioritize_expiring,
        }
        if self.cuisine is not None:
            data["cuisine"] = self.cuisine
        if self.hero_ingredient is not None:
            data["heroIngredient"] = self.hero_ingredient
        if self.servings is not None:
            data["servings"] = self.servings
        if self.home_style is not None:
            data["homeStyle"] = self.home_style
        return data


@dataclass
class Ingredient:
    """A recipe ingredient. Amount keeps the pantry's unit verbatim."""
    name: str
    amount: str
    is_available_in_pantry: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "amount": self.amount,
            "isAvailableInPantry": self.is_available_in_pantry,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Ingredient":
        return cls(
            name=str(data.get("name") or ""),
            amount=str(data.get("amount", "")),
            is_available_in_pantry=bool(data.get("isAvailableInPantry", False)),
        )


@dataclass
class Macro:
    name: str
    value: float


@dataclass
class Nutrition:
    fiber: Optional[str] = None
    sugar: Optional[str] = None
    sodium: Optional[str] = None
    serving_weight: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fiber": self.fiber,
            "sugar": self.sugar,
            "sodium": self.sodium,
            "servingWeight": self.serving_weight,
        }


@dataclass
class Recipe:
    """A generated recipe.

    The id is assigned client-side and match_score is always recomputed
    locally; neither is taken from the generation service.
    """
    id: str
    title: str
    description: str
    ingredients: List[Ingredient]
    instructions: List[str]
    image_prompt: Optional[str] = None  # Visual description for image generation
    total_time_minutes: int = 0
    difficulty: str = Difficulty.MEDIUM.value
    calories_approx: int = 0
    uses_expiring_ingredients: bool = False
    tags: List[str] = field(default_factory=list)
    macros: List[Macro] = field(default_factory=list)
    nutrition: Optional[Nutrition] = None
    match_score: int = 0  # 0-100
    generated_image: Optional[str] = None  # data URL

    @property
    def available_count(self) -> int:
        return sum(1 for ing in self.ingredients if ing.is_available_in_pantry)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "imagePrompt": self.image_prompt,
            "totalTimeMinutes": self.total_time_minutes,
            "difficulty": self.difficulty,
            "caloriesApprox": self.calories_approx,
            "usesExpiringIngredients": self.uses_expiring_ingredients,
            "ingredients": [ing.to_dict() for ing in self.ingredients],
            "instructions": self.instructions,
            "tags": self.tags,
            "macros": [{"name": m.name, "value": m.value} for m in self.macros],
            "matchScore": self.match_score,
        }
        if self.nutrition:
            data["nutrition"] = self.nutrition.to_dict()
        if self.generated_image:
            data["generatedImage"] = self.generated_image
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], recipe_id: Optional[str] = None) -> "Recipe":
        """Create a Recipe from a wire dict.

        Args:
            data: Recipe JSON as returned by the generation service
            recipe_id: Identifier to assign; a fresh one is generated if omitted
        """
        nutrition = data.get("nutrition")
        return cls(
            id=recipe_id or generate_id(),
            title=data.get("title", ""),
            description=data.get("description", ""),
            ingredients=[Ingredient.from_dict(i) for i in data.get("ingredients") or []],
            instructions=list(data.get("instructions") or []),
            image_prompt=data.get("imagePrompt"),
            total_time_minutes=int(data.get("totalTimeMinutes") or 0),
            difficulty=data.get("difficulty") or Difficulty.MEDIUM.value,
            calories_approx=int(data.get("caloriesApprox") or 0),
            uses_expiring_ingredients=bool(data.get("usesExpiringIngredients", False)),
            tags=list(data.get("tags") or []),
            macros=[
                Macro(name=m.get("name", ""), value=m.get("value", 0))
                for m in data.get("macros") or []
            ],
            nutrition=Nutrition(
                fiber=nutrition.get("fiber"),
                sugar=nutrition.get("sugar"),
                sodium=nutrition.get("sodium"),
                serving_weight=nutrition.get("servingWeight"),
            ) if nutrition else None,
            match_score=0,
            generated_image=data.get("generatedImage"),
        )
