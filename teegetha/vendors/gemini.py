"""
Gemini adapter: group photo analysis and image stylization.

Talks to the google-genai SDK and translates its errors into
VendorAuthorizationError (re-authenticate) or VendorTransientError (retry).
"""

from typing import List, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from PIL import Image, ImageDraw
from loguru import logger
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from teegetha.errors import ConfigurationError, VendorAuthorizationError, VendorTransientError, is_authorization_failure
from teegetha.geometry import encode_data_url, image_to_bytes, read_image_bytes
from teegetha.models import DetectedPerson


ANALYSIS_PROMPT = (
    "Analyze this image. Detect all distinct human faces/people. For each person, provide a "
    "bounding box (ymin, xmin, ymax, xmax on a 0-1000 scale) and a brief visual description "
    "(e.g. 'Smiling man with beard')."
)


class AnalysisResponse(BaseModel):
    people: List[DetectedPerson] = Field(default_factory=list)


def stylize_prompt(description: str, style_prompt: str) -> str:
    return (
        f'Create a t-shirt graphic design based on this person: "{description}". '
        f"The style must be: {style_prompt}. Maintain the person's key facial features, hair, "
        "and expression but adapt them to the style. Return a square PNG with a completely "
        "transparent background around the character (no solid white box, no borders), "
        "suitable to be overlaid on a colored shirt. High quality."
    )


def family_preview_prompt(label: str) -> str:
    return (
        "Take the family in the first photo and keep their faces, expressions, body poses, and "
        "background as close as possible to the original. Put each visible person in a "
        "short-sleeve t-shirt that uses the second image as a front chest print. Make it look "
        f'like a real photo of the same family now wearing their matching "{label}" shirts. '
        "Do not add or remove people."
    )


def _image_part(image: str, mime_type: str = 'image/jpeg') -> types.Part:
    data = read_image_bytes(image)
    return types.Part.from_bytes(data=data, mime_type=mime_type)


def _translate_error(error: Exception, action: str) -> Exception:
    if is_authorization_failure(error):
        return VendorAuthorizationError('gemini', f"{action} failed: {error}")
    return VendorTransientError('gemini', f"{action} failed: {error}")


class GeminiVisionClient:
    """Photo analysis and stylization backed by Gemini models."""

    def __init__(self, api_key: str, analysis_model: str = "gemini-2.5-flash",
                 image_model: str = "gemini-3-pro-image-preview", client: Optional[genai.Client] = None):
        if not api_key and client is None:
            raise ConfigurationError(
                "Missing Gemini API key. Set GEMINI_API_KEY in .env.",
                suggestions=["Set GEMINI_API_KEY or enable TEST_MODE for offline runs"]
            )
        self.analysis_model = analysis_model
        self.image_model = image_model
        self.client = client or genai.Client(api_key=api_key)

    def analyze_group_photo(self, image: str) -> List[DetectedPerson]:
        """Detect people in a photo; an empty list means nobody was found."""
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=AnalysisResponse,
        )
        try:
            response = self.client.models.generate_content(
                model=self.analysis_model,
                contents=[_image_part(image), ANALYSIS_PROMPT],
                config=config,
            )
        except genai_errors.APIError as e:
            logger.error(f"Analysis failed: {e}")
            raise _translate_error(e, "Photo analysis")

        text = response.text
        if not text:
            return []
        try:
            result = AnalysisResponse.model_validate_json(text)
        except PydanticValidationError as e:
            raise VendorTransientError('gemini', f"Malformed analysis response: {e}")

        logger.info(f"Photo analysis detected {len(result.people)} people")
        return result.people

    def _first_image(self, response, action: str) -> str:
        for candidate in response.candidates or []:
            if candidate.content is None or candidate.content.parts is None:
                continue
            for part in candidate.content.parts:
                if part.inline_data and part.inline_data.data:
                    return encode_data_url(part.inline_data.data, 'image/png')
        raise VendorTransientError('gemini', f"No image generated for {action}")

    def generate_stylized(self, reference_image: Optional[str], description: str, style_prompt: str) -> str:
        """Generate one stylized artwork; returns a PNG data URL."""
        contents = [stylize_prompt(description, style_prompt)]
        if reference_image:
            contents.insert(0, _image_part(reference_image))

        config = types.GenerateContentConfig(
            response_modalities=["IMAGE"],
            image_config=types.ImageConfig(aspect_ratio="1:1", image_size="1K"),
        )
        try:
            response = self.client.models.generate_content(
                model=self.image_model, contents=contents, config=config,
            )
        except genai_errors.APIError as e:
            logger.error(f"Generation failed: {e}")
            raise _translate_error(e, "Image generation")
        return self._first_image(response, "stylized design")

    def generate_family_preview(self, group_photo: str, front_design: str, label: str) -> str:
        """Render the family wearing the front design."""
        contents = [
            _image_part(group_photo, 'image/jpeg'),
            _image_part(front_design, 'image/png'),
            family_preview_prompt(label),
        ]
        config = types.GenerateContentConfig(
            response_modalities=["IMAGE"],
            image_config=types.ImageConfig(aspect_ratio="16:9", image_size="1K"),
        )
        try:
            response = self.client.models.generate_content(
                model=self.image_model, contents=contents, config=config,
            )
        except genai_errors.APIError as e:
            logger.error(f"Family shirt preview generation failed: {e}")
            raise _translate_error(e, "Family preview")
        return self._first_image(response, "family shirt preview")


TEST_MEMBER_DESCRIPTIONS = (
    'Smiling family member with glasses',
    'Happy sibling wearing a blue shirt',
    'Grandparent with a warm smile',
    'Energetic cousin with curly hair',
)


def checkerboard_design(size: int = 256, cell: int = 32) -> str:
    """Placeholder artwork: a colored disc on a light/dark checkerboard."""
    image = Image.new('RGB', (size, size), (240, 240, 240))
    draw = ImageDraw.Draw(image)
    for row in range(0, size, cell):
        for col in range(0, size, cell):
            if (row // cell + col // cell) % 2:
                draw.rectangle([col, row, col + cell - 1, row + cell - 1], fill=(20, 20, 20))
    inset = size // 4
    draw.ellipse([inset, inset, size - inset, size - inset], fill=(79, 70, 229))
    return encode_data_url(image_to_bytes(image, 'PNG'), 'image/png')


class StubVisionClient:
    """Offline stand-in used when TEST_MODE is on; makes no network calls."""

    def __init__(self, design_image: Optional[str] = None):
        self.design_image = design_image

    def analyze_group_photo(self, image: str) -> List[DetectedPerson]:
        return [DetectedPerson(description=d, box_2d=[0, 0, 1000, 1000]) for d in TEST_MEMBER_DESCRIPTIONS]

    def generate_stylized(self, reference_image: Optional[str], description: str, style_prompt: str) -> str:
        return self.design_image or checkerboard_design()

    def generate_family_preview(self, group_photo: str, front_design: str, label: str) -> str:
        return group_photo
