"""
Gemini service implementation for reloop.
Generates ideas synchronously using Google's Gemini models.
"""

from typing import List, Sequence
from google import genai

from reloop.errors import ExternalServiceError
from reloop.models.submission import GeneratedIdea, WasteInput
from reloop.services.ai_service import (
    AIService,
    DEFAULT_TEMPERATURE,
    REANALYSIS_TEMPERATURE,
    build_user_prompt,
    load_system_prompt,
    parse_ideas,
)
from reloop.utils.logger import logger


class GeminiService(AIService):
    """Gemini idea generator."""

    def __init__(self, google_api_key: str, model: str):
        """
        Initialize the Gemini service.

        Args:
            google_api_key: Google AI API key
            model: Gemini model to use
        """
        self.google_api_key = google_api_key
        self.model = model
        self.gemini_client = genai.Client(api_key=google_api_key)

    def generate_ideas(
        self,
        waste: WasteInput,
        exclusions: Sequence[dict] = (),
        count: int = 3,
    ) -> List[GeneratedIdea]:
        logger.info(f"Generating {count} ideas with Gemini for {waste.material}")

        full_prompt = f"""
        {load_system_prompt(count)}

        {build_user_prompt(waste, exclusions)}
        """

        # Configure the request
        config = {
            "temperature": REANALYSIS_TEMPERATURE if exclusions else DEFAULT_TEMPERATURE,
            "response_mime_type": "application/json",
        }

        try:
            response = self.gemini_client.models.generate_content(
                model=self.model,
                contents=full_prompt,
                config=config
            )
        except Exception as e:
            logger.error(f"Error calling Gemini: {e}")
            raise ExternalServiceError(f"Failed to generate product ideas: {e}") from e

        ideas = parse_ideas(response.text)
        logger.info(f"Generated {len(ideas)} ideas")
        return ideas
