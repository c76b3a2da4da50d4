"""
Tests for the image provider chain and the HTTP providers.
"""

import pytest
from unittest.mock import MagicMock, patch

from reloop.models.submission import GeneratedIdea
from reloop.services.image_providers import (
    CraiyonProvider,
    HuggingFaceProvider,
    ImageProvider,
    ModelLoadingError,
    UnsplashProvider,
)
from reloop.services.image_service import ImageService, build_providers


@pytest.fixture
def sample_idea():
    """Fixture providing a generated idea."""
    return GeneratedIdea(
        name="EcoBrick Panels",
        description="Wall panels pressed from shredded textile offcuts.",
        targetMarket="Interior designers",
        visualDescription="Grey felt-like wall panel with a visible fibre texture",
        imageKeywords=["wall", "panel", "felt"],
    )


@pytest.fixture
def sleep():
    """Fixture providing a recorded, non-blocking sleep."""
    return MagicMock()


def make_provider(name, results=None, configured=True):
    """Build a provider mock whose generate() yields the given results in turn."""
    provider = MagicMock(spec=ImageProvider)
    provider.name = name
    provider.is_configured.return_value = configured
    provider.generate.side_effect = results or [None]
    return provider


class TestImageService:
    """Tests for ImageService.resolve and resolve_all."""

    def test_first_successful_provider_wins(self, sample_idea, sleep):
        first = make_provider("first", ["https://img/first.png"])
        second = make_provider("second", ["https://img/second.png"])
        service = ImageService([first, second], sleep=sleep)

        assert service.resolve(sample_idea) == "https://img/first.png"
        second.generate.assert_not_called()

    def test_unconfigured_provider_is_skipped(self, sample_idea, sleep):
        missing = make_provider("missing", configured=False)
        stock = make_provider("stock", ["https://img/stock.jpg"])
        service = ImageService([missing, stock], sleep=sleep)

        assert service.resolve(sample_idea) == "https://img/stock.jpg"
        missing.generate.assert_not_called()

    def test_retries_then_falls_through(self, sample_idea, sleep):
        flaky = make_provider("flaky", [Exception("boom"), Exception("boom again")])
        stock = make_provider("stock", ["https://img/stock.jpg"])
        service = ImageService([flaky, stock], max_retries=2, retry_delay=1.5, sleep=sleep)

        assert service.resolve(sample_idea) == "https://img/stock.jpg"
        assert flaky.generate.call_count == 2
        sleep.assert_called_once_with(1.5)

    def test_model_loading_gets_one_extended_wait(self, sample_idea, sleep):
        loading = make_provider("loading", [ModelLoadingError("warming up"), "data:image/png;base64,AAA"])
        service = ImageService([loading], max_retries=1, model_loading_wait=20, sleep=sleep)

        assert service.resolve(sample_idea) == "data:image/png;base64,AAA"
        sleep.assert_called_once_with(20)

    def test_model_loading_wait_happens_only_once(self, sample_idea, sleep):
        loading = make_provider("loading", [ModelLoadingError("warming up"), ModelLoadingError("still warming")])
        service = ImageService([loading], max_retries=1, model_loading_wait=20, sleep=sleep)

        result = service.resolve(sample_idea)

        assert result.startswith("https://picsum.photos/seed/")
        assert loading.generate.call_count == 2
        sleep.assert_called_once_with(20)

    def test_all_providers_failing_returns_placeholder(self, sample_idea, sleep):
        broken = make_provider("broken", [Exception("down")] * 4)
        empty = make_provider("empty", [None, None])
        service = ImageService([broken, empty], sleep=sleep)

        assert service.resolve(sample_idea) == "https://picsum.photos/seed/EcoBrick%20Panels/800/600"

    def test_never_raises_when_is_configured_fails(self, sample_idea, sleep):
        provider = make_provider("weird")
        provider.is_configured.side_effect = RuntimeError("bad config")
        service = ImageService([provider], sleep=sleep)

        assert service.resolve(sample_idea)

    def test_no_providers_returns_placeholder(self, sample_idea, sleep):
        assert ImageService([], sleep=sleep).resolve(sample_idea).startswith("https://picsum.photos/")

    def test_resolve_all_waits_between_ideas(self, sample_idea, sleep):
        provider = make_provider("stock", ["a", "b", "c"])
        service = ImageService([provider], inter_idea_delay=3, sleep=sleep)

        images = service.resolve_all([sample_idea, sample_idea, sample_idea])

        assert images == ["a", "b", "c"]
        assert sleep.call_count == 2
        sleep.assert_called_with(3)


class TestBuildProviders:
    """Tests for building the provider chain from configuration."""

    def test_order_follows_configuration(self):
        cfg = MagicMock()
        cfg.image_providers = ["unsplash", "unknown", "huggingface"]

        providers = build_providers(cfg)

        assert [provider.name for provider in providers] == ["unsplash", "huggingface"]

    def test_missing_credentials_mark_provider_unconfigured(self):
        cfg = MagicMock()
        cfg.image_providers = ["huggingface", "craiyon", "unsplash"]
        cfg.huggingface_api_key = None
        cfg.unsplash_access_key = ""

        configured = [provider.name for provider in build_providers(cfg) if provider.is_configured()]

        assert configured == ["craiyon"]


class TestProviders:
    """Tests for the HTTP providers."""

    @patch('reloop.services.image_providers.requests')
    def test_huggingface_returns_data_url(self, mock_requests, sample_idea):
        mock_requests.post.return_value.status_code = 200
        mock_requests.post.return_value.content = b"png-bytes"

        result = HuggingFaceProvider("hf_key", "stabilityai/sdxl").generate(sample_idea)

        assert result == "data:image/png;base64,cG5nLWJ5dGVz"
        _, kwargs = mock_requests.post.call_args
        assert kwargs["headers"]["Authorization"] == "Bearer hf_key"
        assert "EcoBrick Panels" in kwargs["json"]["inputs"]

    @patch('reloop.services.image_providers.requests')
    def test_huggingface_503_means_model_loading(self, mock_requests, sample_idea):
        mock_requests.post.return_value.status_code = 503

        with pytest.raises(ModelLoadingError):
            HuggingFaceProvider("hf_key", "stabilityai/sdxl").generate(sample_idea)

    @patch('reloop.services.image_providers.requests')
    def test_craiyon_returns_first_image(self, mock_requests, sample_idea):
        mock_requests.post.return_value.status_code = 200
        mock_requests.post.return_value.json.return_value = {"images": ["QUJD", "REVG"]}

        assert CraiyonProvider().generate(sample_idea) == "data:image/png;base64,QUJD"

    @patch('reloop.services.image_providers.requests')
    def test_craiyon_without_images_returns_none(self, mock_requests, sample_idea):
        mock_requests.post.return_value.status_code = 200
        mock_requests.post.return_value.json.return_value = {"images": []}

        assert CraiyonProvider().generate(sample_idea) is None

    @patch('reloop.services.image_providers.requests')
    def test_unsplash_searches_by_keywords(self, mock_requests, sample_idea):
        mock_requests.get.return_value.json.return_value = {"urls": {"regular": "https://unsplash/photo.jpg"}}

        result = UnsplashProvider("access").generate(sample_idea)

        assert result == "https://unsplash/photo.jpg"
        _, kwargs = mock_requests.get.call_args
        assert kwargs["params"]["query"] == "wall, panel, felt"
        assert kwargs["params"]["client_id"] == "access"
