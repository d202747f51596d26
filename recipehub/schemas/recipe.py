"""
RecipeHub Backend — Recipe Request/Response Schemas
=====================================================

What:  Pydantic models for the recipe and comment API contract.
How:   Request models parse multipart form values (JSON-encoded ingredients,
       comma-separated or JSON method steps) into typed fields; response
       models serialize ORM rows with camelCase keys.
Who:   RecipeService / CommentService validate input with these models;
       routes use the response models.

Field naming:
    The wire format is camelCase (cookingTime, methodSteps, imageUrl, ...).
    Every model sets `populate_by_name`, so snake_case works in Python code.
"""

import json
from datetime import datetime
from typing import Any, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from recipehub.exceptions import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ══════════════════════════════════════════════════════════════════════════
# Embedded documents
# ══════════════════════════════════════════════════════════════════════════


class Ingredient(CamelModel):
    name: str = Field(min_length=1, description="Ingredient name")
    quantity: str = Field(min_length=1, description="Free-text amount, e.g. '200 g'")

    @field_validator("name", "quantity", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v


class Comment(CamelModel):
    comment: str = Field(description="Comment text")
    rating: int = Field(ge=1, le=5, description="Rating from 1 to 5")


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


def _parse_json_list(v: Any) -> Any:
    """Form fields arrive as strings; decode JSON arrays, leave other values to validation."""
    if isinstance(v, str):
        if not v.strip():
            return None
        try:
            return json.loads(v)
        except json.JSONDecodeError:
            raise ValueError("must be a JSON array")
    return v


def _parse_steps(v: Any) -> Any:
    """
    Accepts a JSON array or a comma-separated string.

    "Boil water, Add pasta" → ["Boil water", "Add pasta"]
    """
    if isinstance(v, str):
        stripped = v.strip()
        if not stripped:
            return None
        if stripped.startswith("["):
            try:
                return json.loads(stripped)
            except json.JSONDecodeError:
                raise ValueError("must be a JSON array or comma-separated text")
        return [item.strip() for item in stripped.split(",") if item.strip()]
    return v


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


class RecipeCreate(CamelModel):
    """
    Fields for POST /recipes.

    Required: name, cuisine, cookingTime (> 0), ingredients (list of
    {name, quantity}). Everything else defaults to empty.
    """

    name: str = Field(min_length=1, max_length=255)
    cuisine: str = Field(min_length=1, max_length=120)
    cooking_time: int = Field(gt=0, description="Cooking time in minutes")
    ingredients: List[Ingredient]
    method_steps: List[str] = Field(default_factory=list)
    nutritional_info: str = ""
    youtube_link: str = Field(default="", max_length=500)

    @field_validator("name", "cuisine", mode="before")
    @classmethod
    def strip_required_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("cooking_time", mode="before")
    @classmethod
    def blank_cooking_time(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("ingredients", mode="before")
    @classmethod
    def decode_ingredients(cls, v: Any) -> Any:
        return _parse_json_list(v)

    @field_validator("method_steps", mode="before")
    @classmethod
    def decode_steps(cls, v: Any) -> Any:
        parsed = _parse_steps(v)
        return [] if parsed is None else parsed

    @field_validator("nutritional_info", "youtube_link", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class RecipeUpdate(CamelModel):
    """
    Fields for PUT /recipes/{id}. All optional.

    RecipeService applies only the fields that are present and truthy, so
    cookingTime=0 or an empty string cannot clear a stored value.
    """

    name: Optional[str] = Field(default=None, max_length=255)
    cuisine: Optional[str] = Field(default=None, max_length=120)
    cooking_time: Optional[int] = Field(default=None, ge=0)
    ingredients: Optional[List[Ingredient]] = None
    method_steps: Optional[List[str]] = None
    nutritional_info: Optional[str] = None
    youtube_link: Optional[str] = Field(default=None, max_length=500)

    # Whitespace-only text strips to "", which the truthy filter then skips.
    @field_validator("name", "cuisine", mode="before")
    @classmethod
    def strip_required_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("cooking_time", mode="before")
    @classmethod
    def blank_cooking_time(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("ingredients", mode="before")
    @classmethod
    def decode_ingredients(cls, v: Any) -> Any:
        return _parse_json_list(v)

    @field_validator("method_steps", mode="before")
    @classmethod
    def decode_steps(cls, v: Any) -> Any:
        return _parse_steps(v)


class CommentCreate(CamelModel):
    """Body of POST /recipes/{id}/comment. Content rules live in CommentService."""

    comment: Optional[str] = None
    rating: Optional[int] = None


def validate_fields(model: Type[ModelT], data: Mapping[str, Any]) -> ModelT:
    """
    Validate raw request fields against a request model.

    Converts Pydantic's error list into the application's ValidationError so
    the client gets a 400 naming the first offending field.
    """
    try:
        return model.model_validate(dict(data))
    except PydanticValidationError as e:
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        first = errors[0]
        raise ValidationError(
            message=f"Invalid value for '{first['field']}': {first['message']}",
            field=first["field"],
            context={"errors": errors},
        )


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class RecipeResponse(CamelModel):
    """Full recipe document as returned by every recipe endpoint."""

    id: int
    name: str
    cuisine: str
    cooking_time: int
    ingredients: List[Ingredient]
    method_steps: List[str]
    nutritional_info: str = ""
    youtube_link: str = ""
    image_url: str = ""
    comments: List[Comment]
    rating: float = Field(description="Mean comment rating, one decimal; 0 when no comments")
    created_by: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CommentResult(CamelModel):
    message: str
    recipe: RecipeResponse
