"""
OpenAI service implementation for reloop.
Works against any OpenAI-compatible chat completions endpoint (OpenAI, Groq, ...).
"""

from typing import List, Optional, Sequence
from openai import OpenAI

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


class OpenAIService(AIService):
    """OpenAI-compatible idea generator."""

    def __init__(self, api_key: str, model: str, base_url: Optional[str] = None, max_tokens: int = 2500):
        """
        Initialize the OpenAI service.

        Args:
            api_key: API key for the endpoint
            model: Chat model to use
            base_url: Optional OpenAI-compatible endpoint, e.g. Groq
            max_tokens: Upper bound on the completion length
        """
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.client = OpenAI(api_key=api_key, base_url=base_url)

    def generate_ideas(
        self,
        waste: WasteInput,
        exclusions: Sequence[dict] = (),
        count: int = 3,
    ) -> List[GeneratedIdea]:
        logger.info(f"Generating {count} ideas with {self.model} for {waste.material} ({len(exclusions)} excluded)")
        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                temperature=REANALYSIS_TEMPERATURE if exclusions else DEFAULT_TEMPERATURE,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": load_system_prompt(count)},
                    {"role": "user", "content": build_user_prompt(waste, exclusions)},
                ],
            )
        except Exception as e:
            logger.error(f"Error calling idea generator: {e}")
            raise ExternalServiceError(f"Failed to generate product ideas: {e}") from e

        if not completion.choices:
            raise ExternalServiceError("Idea generator returned no choices")
        ideas = parse_ideas(completion.choices[0].message.content)
        logger.info(f"Generated {len(ideas)} ideas")
        return ideas
