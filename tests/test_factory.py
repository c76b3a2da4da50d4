"""
Tests for the application factory.
"""

from unittest.mock import MagicMock, patch

import pytest

from reloop.factory import create_ai_service, create_application, create_database
from reloop.jobs import InlineJobRunner
from reloop.models.submission import GeneratedIdea
from reloop.models.user import User
from reloop.stores.memory import InMemoryDatabase


class TestFactory:
    """Tests for the factory functions."""

    def test_memory_database(self):
        assert isinstance(create_database("memory"), InMemoryDatabase)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_database("sqlite")

    def test_unknown_model_type(self):
        with pytest.raises(ValueError):
            create_ai_service("llama")

    @patch("reloop.factory.OpenAIService")
    def test_openai_service_uses_config(self, mock_service):
        create_ai_service("openai")

        mock_service.assert_called_once()

    @patch("reloop.factory.GeminiService")
    def test_gemini_service_uses_config(self, mock_service):
        create_ai_service("gemini")

        mock_service.assert_called_once()

    @patch("reloop.factory.OpenAIService")
    def test_application_wires_shared_stores(self, mock_service):
        with create_application(backend="memory", model_type="openai") as application:
            application.users.create(User(_id="u1", name="A", email="a@example.com"))

            assert application.moderation.users is application.users
            assert application.pipeline.submissions is application.submissions
            assert application.users.get("u1").email == "a@example.com"

    @patch("reloop.factory.OpenAIService")
    def test_end_to_end_submission(self, mock_service):
        """A submission processed inline completes with enriched ideas."""
        mock_service.return_value.generate_ideas.return_value = [
            GeneratedIdea(name="Joinery Stool", description="A stool."),
        ]

        with create_application(backend="memory", model_type="openai") as application:
            application.pipeline.job_runner = InlineJobRunner()
            application.pipeline.image_service = MagicMock()
            application.pipeline.image_service.resolve_all.return_value = ["https://img/stool.png"]

            result = application.pipeline.submit("owner-1", {
                "material": "Wood offcuts",
                "quantity": "2 tons/month",
                "industry": "Joinery",
            })
            status = application.pipeline.get_status(result["submissionId"], "owner-1")
            submission = application.pipeline.get_submission(result["submissionId"], "owner-1")

        assert status["status"] == "completed"
        assert status["ideasCount"] == 1
        assert submission.productIdeas[0].imageUrl == "https://img/stool.png"
        assert 0 < submission.productIdeas[0].feasibilityScore <= 95
