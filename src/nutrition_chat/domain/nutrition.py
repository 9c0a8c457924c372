"""Models for extracted nutrition data and image analysis results."""

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

_WIRE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    coerce_numbers_to_str=True,
    extra="ignore",
)


class NutritionData(BaseModel):
    """Nutrition facts as read from a label or estimated for a dish.

    Amounts are opaque "amount with unit" strings such as ``"10g"``; only
    calories and servings per container are numeric.
    """

    model_config = _WIRE_CONFIG

    serving_size: str | None = None
    servings_per_container: int | float | None = None
    calories: int | float | None = None
    total_fat: str | None = None
    saturated_fat: str | None = None
    trans_fat: str | None = None
    cholesterol: str | None = None
    sodium: str | None = None
    total_carbohydrates: str | None = None
    dietary_fiber: str | None = None
    total_sugars: str | None = None
    added_sugars: str | None = None
    protein: str | None = None
    vitamin_d: str | None = None
    calcium: str | None = None
    iron: str | None = None
    potassium: str | None = None
    vitamins: dict[str, str] | None = None
    minerals: dict[str, str] | None = None

    def to_wire(self) -> dict[str, object]:
        """Return the camelCase payload with absent fields omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ImageAnalysisResult(BaseModel):
    """Structured result of a vision analysis call."""

    model_config = _WIRE_CONFIG

    is_nutrition_label: bool
    ocr_text: str = ""
    nutrition_data: NutritionData | None = None
    food_recognition: str = ""

    @field_validator("ocr_text", "food_recognition", mode="before")
    @classmethod
    def _null_text_as_empty(cls, value: object) -> object:
        return "" if value is None else value

    def to_wire(self) -> dict[str, object]:
        """Return the camelCase payload sent to clients."""
        payload = self.model_dump(by_alias=True, exclude={"nutrition_data"})
        payload["nutritionData"] = (
            self.nutrition_data.to_wire() if self.nutrition_data else None
        )
        return payload
