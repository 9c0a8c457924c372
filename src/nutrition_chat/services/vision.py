"""Nutrition label and food dish analysis using a vision model."""

import logging
from dataclasses import dataclass, field

from pydantic import ValidationError as PydanticValidationError

from nutrition_chat.domain.nutrition import ImageAnalysisResult
from nutrition_chat.errors import UpstreamEmptyError, UpstreamFormatError
from nutrition_chat.services.completions import CompletionClient
from nutrition_chat.services.parsing import BraceSpanParser, ResponseParser

logger = logging.getLogger(__name__)

VISION_MAX_TOKENS = 2000
VISION_TEMPERATURE = 0.2

VISION_PROMPT = """
Analyze this image carefully.

If this is a nutrition facts label:
1. Extract ALL visible text from the label (OCR)
2. Identify and extract nutrition information in this JSON format:
{
  "servingSize": "amount with unit",
  "servingsPerContainer": number,
  "calories": number,
  "totalFat": "amount with unit",
  "saturatedFat": "amount with unit",
  "transFat": "amount with unit",
  "cholesterol": "amount with unit",
  "sodium": "amount with unit",
  "totalCarbohydrates": "amount with unit",
  "dietaryFiber": "amount with unit",
  "totalSugars": "amount with unit",
  "addedSugars": "amount with unit",
  "protein": "amount with unit",
  "vitaminD": "amount with unit",
  "calcium": "amount with unit",
  "iron": "amount with unit",
  "potassium": "amount with unit"
}

If this is a food dish without a nutrition label:
1. Identify the food/dish by name
2. Provide estimated nutritional information based on typical values for this food
3. Note that these are estimates

Return ONLY a JSON response (no markdown, no code blocks) with this exact structure:
{
  "isNutritionLabel": true or false,
  "ocrText": "all extracted text if nutrition label, empty string otherwise",
  "nutritionData": {nutrition object or null},
  "foodRecognition": "description of the food/dish"
}
"""


@dataclass
class VisionService:
    """Service that prepares vision prompts and validates results."""

    client: CompletionClient
    model: str
    parser: ResponseParser = field(default_factory=BraceSpanParser)

    async def analyze(self, image_base64: str) -> ImageAnalysisResult:
        """Analyze a base64-encoded JPEG and return the structured result."""
        logger.info("Analyzing nutrition image", extra={"model": self.model})
        content = await self.client.complete(
            model=self.model,
            messages=build_vision_messages(image_base64),
            max_tokens=VISION_MAX_TOKENS,
            temperature=VISION_TEMPERATURE,
        )
        if not content:
            raise UpstreamEmptyError("No content in OpenAI response")

        raw = self.parser.parse(content)
        try:
            result = ImageAnalysisResult.model_validate(raw)
        except PydanticValidationError as exc:
            raise UpstreamFormatError(
                "OpenAI response did not match the expected analysis shape"
            ) from exc
        _warn_on_inconsistent_result(result)
        return result


def build_vision_messages(image_base64: str) -> list[dict[str, object]]:
    """Build the single multimodal user turn for an analysis request."""
    return [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": VISION_PROMPT},
                {
                    "type": "image_url",
                    "image_url": {
                        "url": f"data:image/jpeg;base64,{image_base64}",
                        "detail": "high",
                    },
                },
            ],
        }
    ]


def _warn_on_inconsistent_result(result: ImageAnalysisResult) -> None:
    """Log results that break the expected label/estimate conventions."""
    if result.ocr_text and not result.is_nutrition_label:
        logger.warning("Model returned OCR text for a non-label image")
    if result.is_nutrition_label and result.nutrition_data is None:
        logger.warning("Model recognized a label but returned no nutrition data")
