"""
Image provider chain: resolves an image reference for every generated idea.
"""

import time
from typing import Callable, List, Optional, Sequence

from reloop.models.submission import GeneratedIdea
from reloop.services.image_providers import (
    CraiyonProvider,
    HuggingFaceProvider,
    ImageProvider,
    ModelLoadingError,
    UnsplashProvider,
)
from reloop.utils.logger import logger
from reloop.utils.utils import placeholder_image_url


def build_providers(cfg) -> List[ImageProvider]:
    """Instantiate the providers named in the configuration, in order."""
    registry = {
        "huggingface": lambda: HuggingFaceProvider(cfg.huggingface_api_key, cfg.huggingface_model),
        "craiyon": lambda: CraiyonProvider(),
        "unsplash": lambda: UnsplashProvider(cfg.unsplash_access_key),
    }
    providers = []
    for name in cfg.image_providers:
        factory = registry.get(name)
        if factory is None:
            logger.warning(f"Unknown image provider in configuration: {name}")
            continue
        providers.append(factory())
    return providers


class ImageService:
    """Tries providers in priority order and never fails the caller."""

    def __init__(
        self,
        providers: Sequence[ImageProvider],
        max_retries: int = 2,
        retry_delay: float = 1.0,
        model_loading_wait: float = 20.0,
        inter_idea_delay: float = 3.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the image service.

        Args:
            providers: Providers in priority order
            max_retries: Attempts per provider
            retry_delay: Seconds between attempts on the same provider
            model_loading_wait: Seconds to wait once when a provider reports its model is loading
            inter_idea_delay: Seconds between two ideas, to respect rate limits
            sleep: Sleep function, injectable for tests
        """
        self.providers = list(providers)
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.model_loading_wait = model_loading_wait
        self.inter_idea_delay = inter_idea_delay
        self.sleep = sleep

    @classmethod
    def from_config(cls, cfg, sleep: Callable[[float], None] = time.sleep) -> "ImageService":
        return cls(
            providers=build_providers(cfg),
            max_retries=cfg.image_max_retries,
            retry_delay=cfg.image_retry_delay,
            model_loading_wait=cfg.image_model_loading_wait,
            inter_idea_delay=cfg.image_inter_idea_delay,
            sleep=sleep,
        )

    def _try_provider(self, provider: ImageProvider, idea: GeneratedIdea) -> Optional[str]:
        attempts_left = self.max_retries
        waited_for_model = False
        while attempts_left > 0:
            attempts_left -= 1
            try:
                image = provider.generate(idea)
                if image:
                    return image
                logger.info(f"{provider.name} returned no image for {idea.name}")
            except ModelLoadingError as e:
                if not waited_for_model:
                    waited_for_model = True
                    logger.info(f"{e}; waiting {self.model_loading_wait}s before one more try")
                    self.sleep(self.model_loading_wait)
                    attempts_left += 1
                    continue
                logger.warning(f"{provider.name} still loading after extended wait")
            except Exception as e:
                logger.error(f"{provider.name} failed for {idea.name}: {e}")
            if attempts_left > 0:
                self.sleep(self.retry_delay)
        return None

    def resolve(self, idea: GeneratedIdea) -> str:
        """
        Return an image reference for the idea.

        Never raises: falls back to a placeholder derived from the idea name.
        """
        logger.info(f"Resolving image for: {idea.name}")
        for provider in self.providers:
            try:
                if not provider.is_configured():
                    logger.debug(f"{provider.name} not configured, skipping")
                    continue
                image = self._try_provider(provider, idea)
            except Exception as e:
                logger.error(f"Unexpected error in image provider {provider.name}: {e}")
                continue
            if image:
                logger.info(f"{provider.name} succeeded for {idea.name}")
                return image
        logger.info(f"All image providers failed for {idea.name}, using placeholder")
        return placeholder_image_url(idea.name)

    def resolve_all(self, ideas: Sequence[GeneratedIdea]) -> List[str]:
        images = []
        for i, idea in enumerate(ideas):
            if i > 0 and self.inter_idea_delay > 0:
                self.sleep(self.inter_idea_delay)
            images.append(self.resolve(idea))
        logger.info(f"Image resolution complete for {len(images)} ideas")
        return images
