"""
Factory for creating service instances, the pipeline and the moderation engine.
"""

from dataclasses import dataclass
from typing import Any

from reloop.jobs import BackgroundJobRunner
from reloop.moderation import ModerationEngine
from reloop.pipeline import SubmissionPipeline
from reloop.services.ai_service import AIService
from reloop.services.gemini_service import GeminiService
from reloop.services.image_service import ImageService
from reloop.services.impact_service import ImpactService
from reloop.services.notification_service import NotificationService
from reloop.services.openai_service import OpenAIService
from reloop.stores.memory import InMemoryDatabase
from reloop.stores.products import ProductStore
from reloop.stores.reports import ReportStore
from reloop.stores.submissions import SubmissionStore
from reloop.stores.users import UserStore
from reloop.utils.config import config
from reloop.utils.logger import logger
from reloop.utils.mongodb_client import MongoDBClient


@dataclass
class Application:
    database: Any
    submissions: SubmissionStore
    products: ProductStore
    users: UserStore
    reports: ReportStore
    pipeline: SubmissionPipeline
    moderation: ModerationEngine
    job_runner: BackgroundJobRunner

    def close(self, wait: bool = True):
        self.job_runner.shutdown(wait=wait)
        self.database.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def create_database(backend: str):
    """
    Open the document database for the configured backend.

    Args:
        backend: "mongodb" or "memory"
    """
    if backend == "memory":
        return InMemoryDatabase()
    if backend == "mongodb":
        return MongoDBClient()
    raise ValueError(f"Unsupported store backend: {backend}")


def create_ai_service(model_type: str) -> AIService:
    """
    Create the idea generator for the given provider.

    Args:
        model_type: Type of model to use ("openai" or "gemini")
    """
    if model_type == "openai":
        return OpenAIService(config.openai_api_key, config.openai_model, base_url=config.openai_base_url)
    if model_type == "gemini":
        return GeminiService(config.google_ai_api_key, config.google_ai_model)
    raise ValueError(f"Unsupported model type: {model_type}")


def create_application(backend: str = None, model_type: str = None) -> Application:
    database = create_database(backend or config.store_backend)
    submissions = SubmissionStore(database.collection("submissions"))
    products = ProductStore(database.collection("products"))
    users = UserStore(database.collection("users"))
    reports = ReportStore(database.collection("reports"))

    job_runner = BackgroundJobRunner(max_workers=config.pipeline_workers)
    pipeline = SubmissionPipeline(
        ai_service=create_ai_service(model_type or config.idea_provider),
        image_service=ImageService.from_config(config),
        impact_service=ImpactService(),
        submissions=submissions,
        job_runner=job_runner,
        ideas_per_submission=config.ideas_per_submission,
    )
    moderation = ModerationEngine(
        submissions=submissions,
        products=products,
        users=users,
        reports=reports,
        notifications=NotificationService(config.admin_email, config.notification_webhook_url),
    )
    logger.debug(f"Application created with {backend or config.store_backend} store")
    return Application(
        database=database,
        submissions=submissions,
        products=products,
        users=users,
        reports=reports,
        pipeline=pipeline,
        moderation=moderation,
        job_runner=job_runner,
    )
