"""
Submission processing pipeline: waste input -> generated, illustrated and
scored ideas, produced in the background and observed by polling.
"""

import math
import time
from typing import Callable, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from reloop.errors import (
    DuplicateDocumentError,
    DuplicateSubmissionError,
    ExternalServiceError,
    NotFoundError,
    PreconditionError,
    SubmissionInProgressError,
    ValidationError,
)
from reloop.models.submission import GeneratedIdea, Idea, Submission, SubmissionStatus, WasteInput
from reloop.services.ai_service import AIService
from reloop.services.image_service import ImageService
from reloop.services.impact_service import ImpactService
from reloop.stores.submissions import SubmissionStore
from reloop.utils.logger import logger

NO_NOVEL_IDEAS_MESSAGE = "No novel ideas: every generated idea was too similar to a previous one"


def parse_waste_input(payload: dict) -> WasteInput:
    """Validate raw submission input. Raises ValidationError on bad input."""
    try:
        return WasteInput(**(payload or {}))
    except PydanticValidationError as e:
        fields = {".".join(str(part) for part in error["loc"]): error["msg"] for error in e.errors()}
        raise ValidationError("Please provide material, quantity, and industry", fields=fields) from e
    except TypeError as e:
        raise ValidationError(f"Invalid submission payload: {e}") from e


def is_similar_name(name: str, excluded: str) -> bool:
    name, excluded = name.strip().lower(), excluded.strip().lower()
    if not name or not excluded:
        return False
    return name in excluded or excluded in name


def filter_novel_ideas(ideas: Sequence[GeneratedIdea], exclusions: Sequence[dict]) -> List[GeneratedIdea]:
    """Drop ideas whose name overlaps, case-insensitively, with an excluded idea name."""
    excluded_names = [idea.get("name", "") for idea in exclusions]
    novel = []
    for idea in ideas:
        if any(is_similar_name(idea.name, excluded) for excluded in excluded_names):
            logger.info(f"Dropping idea too similar to a previous one: {idea.name}")
            continue
        novel.append(idea)
    return novel


class SubmissionPipeline:
    """Orchestrates ingestion, generation, enrichment and persistence of submissions."""

    def __init__(
        self,
        ai_service: AIService,
        image_service: ImageService,
        impact_service: ImpactService,
        submissions: SubmissionStore,
        job_runner,
        ideas_per_submission: int = 3,
    ):
        """
        Initialize the submission pipeline.

        Args:
            ai_service: Idea generator
            image_service: Image provider chain
            impact_service: Impact metric calculator
            submissions: Submission store
            job_runner: Runner for detached background jobs
            ideas_per_submission: Number of ideas to ask the generator for
        """
        self.ai_service = ai_service
        self.image_service = image_service
        self.impact_service = impact_service
        self.submissions = submissions
        self.job_runner = job_runner
        self.ideas_per_submission = ideas_per_submission
        self._listeners: List[Callable[[Submission], None]] = []

    # Admission

    def _check_admission(self, owner_id: str):
        existing = self.submissions.find_processing(owner_id)
        if existing:
            raise SubmissionInProgressError(
                "You have a submission currently being processed. Please wait for it to complete.",
                conflict_id=existing.id,
            )

    def _start(self, owner_id: str, waste: WasteInput, **extra) -> Submission:
        submission = Submission.start(owner_id, waste, **extra)
        try:
            self.submissions.create(submission)
        except DuplicateDocumentError:
            # Lost a race with a concurrent submit for the same owner
            existing = self.submissions.find_processing(owner_id)
            raise SubmissionInProgressError(
                "You have a submission currently being processed. Please wait for it to complete.",
                conflict_id=existing.id if existing else None,
            )
        logger.info(f"Created submission {submission.id} for owner {owner_id}")
        return submission

    def submit(self, owner_id: str, payload: dict) -> dict:
        """
        Accept a waste submission and queue idea generation.

        Raises:
            ValidationError: if the input is malformed
            SubmissionInProgressError: if the owner already has a submission processing
            DuplicateSubmissionError: if an identical submission already completed
        """
        waste = parse_waste_input(payload)
        self._check_admission(owner_id)

        duplicate = self.submissions.find_completed_duplicate(owner_id, waste)
        if duplicate:
            raise DuplicateSubmissionError(
                "You already analyzed this exact waste data. View the existing results or re-analyze them.",
                conflict_id=duplicate.id,
                existingSubmission={
                    "material": duplicate.material,
                    "quantity": duplicate.quantity,
                    "status": duplicate.status.value,
                    "createdAt": duplicate.createdAt,
                },
            )

        submission = self._start(owner_id, waste)
        self.job_runner.dispatch(self.process_submission, submission.id)
        return {
            "message": "Processing your waste data. This may take 30-60 seconds...",
            "submissionId": submission.id,
            "status": submission.status.value,
        }

    def collect_exclusions(self, owner_id: str, waste: WasteInput) -> List[dict]:
        """Names and descriptions of every idea already generated for identical waste data."""
        exclusions = []
        for previous in self.submissions.list_completed(owner_id, waste):
            for idea in previous.productIdeas:
                exclusions.append({"name": idea.name, "description": idea.description})
        return exclusions

    def reanalyze(self, submission_id: str, owner_id: str) -> dict:
        """
        Generate new ideas for the waste data of an earlier submission, avoiding
        every idea already generated for the same data.
        """
        original = self.submissions.get(submission_id, owner_id)
        if not original:
            raise NotFoundError("Original submission not found", submission_id=submission_id)
        self._check_admission(owner_id)

        waste = original.waste_input
        exclusions = self.collect_exclusions(owner_id, waste)
        logger.info(f"Excluding {len(exclusions)} previous ideas from regeneration")

        submission = self._start(owner_id, waste, excludedCount=len(exclusions), reanalysisOf=original.id)
        self.job_runner.dispatch(self.process_submission, submission.id, exclusions)
        return {
            "message": "Generating NEW ideas. This may take 30-60 seconds...",
            "submissionId": submission.id,
            "status": submission.status.value,
            "excludedCount": len(exclusions),
        }

    # Background processing

    def generate(self, waste: WasteInput, exclusions: Sequence[dict] = ()) -> List[Idea]:
        """Run generation, novelty filtering, image resolution and impact scoring."""
        generated = self.ai_service.generate_ideas(waste, exclusions, self.ideas_per_submission)
        logger.info(f"Generated {len(generated)} product ideas")

        if exclusions:
            generated = filter_novel_ideas(generated, exclusions)
            if not generated:
                raise ExternalServiceError(NO_NOVEL_IDEAS_MESSAGE)
        if not generated:
            raise ExternalServiceError("Idea generator returned no ideas")

        images = self.image_service.resolve_all(generated)
        return [
            Idea.enrich(idea, image, self.impact_service.calculate(waste.material, waste.quantity, idea.name))
            for idea, image in zip(generated, images)
        ]

    def process_submission(self, submission_id: str, exclusions: Sequence[dict] = ()) -> Optional[Submission]:
        """
        Background job body. Always leaves the submission completed or failed.
        """
        submission = self.submissions.get(submission_id)
        if not submission:
            logger.warning(f"Submission {submission_id} vanished before processing")
            return None
        if submission.status != SubmissionStatus.PROCESSING:
            logger.warning(f"Submission {submission_id} is already {submission.status.value}")
            return submission

        logger.info(f"Starting AI processing for submission {submission_id}")
        try:
            submission.complete(self.generate(submission.waste_input, exclusions))
            logger.info(f"Submission {submission_id} completed with {len(submission.productIdeas)} ideas")
        except Exception as e:
            logger.error(f"AI processing error for submission {submission_id}: {e}")
            submission.fail(str(e) or e.__class__.__name__)

        try:
            saved = self.submissions.save_outcome(submission)
        except Exception as e:
            logger.error(f"Could not save outcome of submission {submission_id}: {e}")
            submission, saved = self._record_save_failure(submission, e)

        if not saved:
            logger.warning(f"Submission {submission_id} was modified or deleted while processing")
        else:
            self._publish(submission)
        return submission

    def _record_save_failure(self, submission: Submission, error: Exception):
        """Best-effort write of a failed outcome so the owner is not left with a stuck job."""
        failed = submission.model_copy(update={"status": SubmissionStatus.PROCESSING, "productIdeas": []})
        failed.fail(f"Could not save results: {error}")
        try:
            return failed, self.submissions.save_outcome(failed)
        except Exception as e:
            logger.error(f"Could not mark submission {submission.id} as failed: {e}")
            return failed, False

    # Completion channel

    def subscribe(self, listener: Callable[[Submission], None]):
        """Register a callback invoked with every submission that reaches a terminal state."""
        self._listeners.append(listener)

    def _publish(self, submission: Submission):
        for listener in list(self._listeners):
            try:
                listener(submission)
            except Exception as e:
                logger.error(f"Submission listener failed for {submission.id}: {e}")

    # Reads

    def get_status(self, submission_id: str, owner_id: str) -> dict:
        submission = self.submissions.get(submission_id, owner_id)
        if not submission:
            raise NotFoundError("Submission not found", submission_id=submission_id)
        return submission.status_summary()

    def get_submission(self, submission_id: str, owner_id: str) -> Submission:
        submission = self.submissions.get(submission_id, owner_id)
        if not submission:
            raise NotFoundError("Submission not found", submission_id=submission_id)
        return submission

    def get_history(self, owner_id: str, page: int = 1, limit: int = 20) -> dict:
        page, limit = max(1, page), max(1, limit)
        total = self.submissions.count_for_owner(owner_id)
        submissions = self.submissions.list_for_owner(owner_id, skip=(page - 1) * limit, limit=limit)
        return {
            "count": len(submissions),
            "total": total,
            "page": page,
            "totalPages": math.ceil(total / limit),
            "submissions": submissions,
        }

    def delete_submission(self, submission_id: str, owner_id: str):
        submission = self.get_submission(submission_id, owner_id)
        if submission.status == SubmissionStatus.PROCESSING:
            raise PreconditionError(
                "Cannot delete a submission while it is being processed",
                required=[SubmissionStatus.COMPLETED, SubmissionStatus.FAILED],
                actual=submission.status,
            )
        if not self.submissions.delete(submission_id, owner_id):
            raise NotFoundError("Submission not found", submission_id=submission_id)
        logger.info(f"Deleted submission {submission_id}")

    def get_stats(self, owner_id: str) -> dict:
        completed = self.submissions.list_completed(owner_id)
        ideas = [idea for submission in completed for idea in submission.productIdeas]
        industries = []
        for submission in completed:
            if submission.industry not in industries:
                industries.append(submission.industry)
        return {
            "totalSubmissions": len(completed),
            "totalIdeas": len(ideas),
            "totalCO2Saved": sum(idea.co2Saved for idea in ideas),
            "totalWaterSaved": sum(idea.waterSaved for idea in ideas),
            "avgProfitMargin": round(sum(idea.profitMargin for idea in ideas) / len(ideas)) if ideas else 0,
            "industries": industries,
        }

    def wait_for_completion(
        self,
        submission_id: str,
        owner_id: str,
        attempts: int = 30,
        interval: float = 2.0,
        timeout: Optional[float] = 90.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> dict:
        """
        Client-side polling with a bounded number of attempts and a timeout.

        Returns the last status seen; it is still ``processing`` if the job did
        not finish in time.
        """
        deadline = clock() + timeout if timeout is not None else None
        status = self.get_status(submission_id, owner_id)
        for _ in range(max(0, attempts - 1)):
            if status["status"] != SubmissionStatus.PROCESSING.value:
                break
            if deadline is not None and clock() >= deadline:
                logger.warning(f"Timed out waiting for submission {submission_id}")
                break
            sleep(interval)
            status = self.get_status(submission_id, owner_id)
        return status
