"""
Request/response models and provider output schemas for the edge services.

- Pydantic request models: loose shapes, handlers add the business checks
- Pydantic output models: validate and trim what the model returned
- Provider schemas: dicts passed to Gemini as the response schema
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from plum.data.models import PANTRY_CATEGORIES, UNITS, Difficulty

DIFFICULTIES = [d.value for d in Difficulty]


# --- Requests ---

class GenerateRecipesRequest(BaseModel):
    """Request body for generate-recipes."""
    model_config = ConfigDict(extra="ignore")

    pantry: Optional[List[Any]] = None
    preferences: Optional[Dict[str, Any]] = None
    context: Optional[Dict[str, Any]] = None
    existingTitles: Optional[List[Any]] = None
    count: Any = 5


class ParsePantryRequest(BaseModel):
    """Request body for parse-pantry."""
    model_config = ConfigDict(extra="ignore")

    type: Optional[str] = None
    data: Optional[Any] = None


class AskStepRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    step: Optional[str] = None
    question: Optional[str] = None


class ThumbnailRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None


# --- Provider output ---

class IngredientOut(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    amount: str
    isAvailableInPantry: bool = False

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_to_str(cls, value):
        return str(value) if value is not None else ""


class MacroOut(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    value: float = 0


class NutritionOut(BaseModel):
    model_config = ConfigDict(extra="ignore")

    fiber: Optional[str] = None
    sugar: Optional[str] = None
    sodium: Optional[str] = None
    servingWeight: Optional[str] = None


class RecipeOut(BaseModel):
    """One generated recipe, as returned to the client."""
    model_config = ConfigDict(extra="ignore")

    title: str
    description: str
    imagePrompt: str = ""
    totalTimeMinutes: float
    difficulty: str
    caloriesApprox: float
    usesExpiringIngredients: bool = False
    ingredients: List[IngredientOut]
    instructions: List[str]
    tags: List[str]
    macros: List[MacroOut] = []
    nutrition: Optional[NutritionOut] = None

    @field_validator("difficulty")
    @classmethod
    def _check_difficulty(cls, value: str) -> str:
        if value not in DIFFICULTIES:
            raise ValueError(f"difficulty must be one of {DIFFICULTIES}")
        return value


class RecipeBatch(BaseModel):
    model_config = ConfigDict(extra="ignore")

    recipes: List[RecipeOut]


class PantryItemOut(BaseModel):
    """One identified pantry item."""
    model_config = ConfigDict(extra="ignore")

    name: str
    quantity: str
    unit: str
    category: str
    expiryDate: Optional[str] = None

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity_to_str(cls, value):
        return str(value) if value is not None else "1"

    @field_validator("unit")
    @classmethod
    def _check_unit(cls, value: str) -> str:
        if value not in UNITS:
            raise ValueError(f"unit must be one of {UNITS}")
        return value

    @field_validator("category")
    @classmethod
    def _check_category(cls, value: str) -> str:
        if value not in PANTRY_CATEGORIES:
            raise ValueError(f"category must be one of {PANTRY_CATEGORIES}")
        return value


class PantryScan(BaseModel):
    model_config = ConfigDict(extra="ignore")

    items: List[PantryItemOut] = []


# --- Gemini response schemas ---

def recipe_response_schema(recipe_count: int) -> Dict[str, Any]:
    """Schema for a batch of exactly recipe_count recipes."""
    return {
        "type": "OBJECT",
        "properties": {
            "recipes": {
                "type": "ARRAY",
                "min_items": recipe_count,
                "max_items": recipe_count,
                "items": {
                    "type": "OBJECT",
                    "properties": {
                        "title": {"type": "STRING"},
                        "description": {"type": "STRING"},
                        "imagePrompt": {"type": "STRING"},
                        "totalTimeMinutes": {"type": "NUMBER"},
                        "difficulty": {"type": "STRING", "enum": DIFFICULTIES},
                        "caloriesApprox": {"type": "NUMBER"},
                        "usesExpiringIngredients": {"type": "BOOLEAN"},
                        "ingredients": {
                            "type": "ARRAY",
                            "items": {
                                "type": "OBJECT",
                                "properties": {
                                    "name": {"type": "STRING"},
                                    "amount": {"type": "STRING"},
                                    "isAvailableInPantry": {"type": "BOOLEAN"},
                                },
                                "required": ["name", "amount", "isAvailableInPantry"],
                            },
                        },
                        "instructions": {"type": "ARRAY", "items": {"type": "STRING"}},
                        "tags": {"type": "ARRAY", "items": {"type": "STRING"}},
                        "macros": {
                            "type": "ARRAY",
                            "items": {
                                "type": "OBJECT",
                                "properties": {
                                    "name": {"type": "STRING"},
                                    "value": {"type": "NUMBER"},
                                },
                            },
                        },
                        "nutrition": {
                            "type": "OBJECT",
                            "properties": {
                                "fiber": {"type": "STRING"},
                                "sugar": {"type": "STRING"},
                                "sodium": {"type": "STRING"},
                                "servingWeight": {"type": "STRING"},
                            },
                        },
                    },
                    "required": [
                        "title", "description", "imagePrompt", "totalTimeMinutes",
                        "difficulty", "caloriesApprox", "ingredients", "instructions", "tags",
                    ],
                },
            }
        },
        "required": ["recipes"],
    }


PANTRY_SCAN_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "items": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "name": {"type": "STRING"},
                    "quantity": {"type": "STRING"},
                    "unit": {"type": "STRING", "enum": UNITS},
                    "category": {"type": "STRING", "enum": PANTRY_CATEGORIES},
                    "expiryDate": {"type": "STRING"},
                },
                "required": ["name", "quantity", "unit", "category"],
            },
        }
    },
}
