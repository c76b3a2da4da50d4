"""
Abstract base class for idea generators used in reloop.
This provides a common interface for different AI models.
"""

import json
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence

from reloop.errors import ExternalServiceError
from reloop.models.submission import GeneratedIdea, IdeaResponse, WasteInput

PROMPT_FILE = Path(__file__).parent.parent / "prompts" / "idea_generator.txt"
FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")

DEFAULT_TEMPERATURE = 0.7
REANALYSIS_TEMPERATURE = 0.9


def load_system_prompt(count: int) -> str:
    with open(PROMPT_FILE, 'r') as prompt_file:
        return prompt_file.read().format(count=count)


def build_user_prompt(waste: WasteInput, exclusions: Sequence[dict] = ()) -> str:
    """Describe the waste stream and, for re-analysis, the ideas to avoid."""
    lines = [
        "Given the following industrial waste:",
        f"- Material: {waste.material}",
        f"- Quantity: {waste.quantity}",
        f"- Properties: {', '.join(waste.properties) or 'not specified'}",
        f"- Industry: {waste.industry}",
    ]
    if exclusions:
        previous_names = ", ".join(f'"{idea["name"]}"' for idea in exclusions)
        lines += [
            "",
            f"IMPORTANT: You have previously generated these ideas: {previous_names}.",
            "DO NOT repeat these exact ideas or very similar concepts. "
            "Generate completely NEW and DIFFERENT product ideas.",
        ]
    lines += ["", "Response (JSON):"]
    return "\n".join(lines)


def parse_ideas(text: Optional[str]) -> List[GeneratedIdea]:
    """
    Parse a model response into ideas.

    Accepts a JSON object with an ``output`` list, a bare JSON list, or either
    of those wrapped in a markdown code fence.

    Raises:
        ExternalServiceError: if the response cannot be parsed
    """
    if not text:
        raise ExternalServiceError("Idea generator returned an empty response")
    fenced = FENCED_JSON.search(text)
    payload = fenced.group(1) if fenced else text.strip()
    try:
        data = json.loads(payload)
        if isinstance(data, list):
            data = {"output": data}
        return IdeaResponse(**data).output
    except (ValueError, TypeError) as e:
        raise ExternalServiceError(f"Failed to parse AI response: {e}") from e


class AIService(ABC):
    """Abstract base class for idea generators."""

    @abstractmethod
    def generate_ideas(
        self,
        waste: WasteInput,
        exclusions: Sequence[dict] = (),
        count: int = 3,
    ) -> List[GeneratedIdea]:
        """
        Generate upcycled product ideas for a waste stream.

        Args:
            waste: The waste stream to generate ideas for
            exclusions: Previously generated ideas (name and description) to avoid
            count: Number of ideas to ask for

        Returns:
            List of generated ideas

        Raises:
            ExternalServiceError: if the model call or response parsing fails
        """
        pass
