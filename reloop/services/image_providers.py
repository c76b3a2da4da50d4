"""
Image providers used to illustrate generated ideas.

Each provider either returns an image reference, returns None when it has
nothing to offer, or raises. A provider that lacks its credentials reports
itself as not configured and is skipped by the chain.
"""

import base64
from abc import ABC, abstractmethod
from typing import Optional

import requests

from reloop.models.submission import GeneratedIdea
from reloop.utils.logger import logger

HUGGINGFACE_URL = "https://api-inference.huggingface.co/models/{model}"
CRAIYON_URL = "https://api.craiyon.com/v3"
UNSPLASH_URL = "https://api.unsplash.com/photos/random"

NEGATIVE_PROMPT = "blurry, low quality, distorted, ugly, bad anatomy, watermark, text, logo"


class ModelLoadingError(Exception):
    """The provider is warming up its model; a later retry may succeed."""


def to_data_url(image_bytes: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"


def product_prompt(idea: GeneratedIdea) -> str:
    visual = idea.visualDescription or idea.description
    return (
        f"Professional product photography of {idea.name}. {visual}. "
        "Clean modern product shot, well-lit, white background, photorealistic, high quality, "
        "eco-friendly sustainable product from upcycled waste, studio lighting."
    )


class ImageProvider(ABC):
    """Abstract base class for image providers."""

    name = "provider"

    def is_configured(self) -> bool:
        return True

    @abstractmethod
    def generate(self, idea: GeneratedIdea) -> Optional[str]:
        """
        Produce an image reference for the idea.

        Returns:
            A URL or data URL, or None if the provider produced nothing

        Raises:
            ModelLoadingError: if the provider asks the caller to wait and retry
        """
        pass


class HuggingFaceProvider(ImageProvider):
    """Text-to-image through the Hugging Face inference API."""

    name = "huggingface"

    def __init__(self, api_key: Optional[str], model: str, timeout: int = 90):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def generate(self, idea: GeneratedIdea) -> Optional[str]:
        response = requests.post(
            HUGGINGFACE_URL.format(model=self.model),
            json={
                "inputs": product_prompt(idea),
                "parameters": {
                    "negative_prompt": NEGATIVE_PROMPT,
                    "num_inference_steps": 30,
                    "guidance_scale": 7.5,
                },
            },
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
        )
        if response.status_code == 503:
            raise ModelLoadingError(f"Hugging Face model {self.model} is loading")
        response.raise_for_status()
        if not response.content:
            return None
        return to_data_url(response.content)


class CraiyonProvider(ImageProvider):
    """Craiyon text-to-image. Needs no credentials, but is slow."""

    name = "craiyon"

    def __init__(self, timeout: int = 120):
        self.timeout = timeout

    def generate(self, idea: GeneratedIdea) -> Optional[str]:
        response = requests.post(
            CRAIYON_URL,
            json={
                "prompt": f"Professional product photo of {idea.name}, "
                          f"{idea.visualDescription or idea.description}, clean background, high quality",
                "token": None,
                "model": "art",
                "negative_prompt": "blurry, low quality, distorted",
            },
            timeout=self.timeout,
        )
        if response.status_code == 503:
            raise ModelLoadingError("Craiyon is busy")
        response.raise_for_status()
        images = response.json().get("images") or []
        if not images:
            return None
        return f"data:image/png;base64,{images[0]}"


class UnsplashProvider(ImageProvider):
    """Stock photo search on Unsplash, used when generation is unavailable."""

    name = "unsplash"

    def __init__(self, access_key: Optional[str], timeout: int = 10):
        self.access_key = access_key
        self.timeout = timeout

    def is_configured(self) -> bool:
        return bool(self.access_key)

    def generate(self, idea: GeneratedIdea) -> Optional[str]:
        response = requests.get(
            UNSPLASH_URL,
            params={
                "query": idea.imageKeywords or idea.name.lower(),
                "orientation": "landscape",
                "client_id": self.access_key,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        urls = response.json().get("urls") or {}
        url = urls.get("regular")
        if url:
            logger.debug(f"Unsplash returned a stock photo for {idea.name}")
        return url or None
