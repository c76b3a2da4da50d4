"""
Tests for the background job runners.
"""

from unittest.mock import patch

import pytest

from reloop.jobs import BackgroundJobRunner, InlineJobRunner


@pytest.fixture
def runner():
    """Fixture providing a thread pool runner that is shut down afterwards."""
    runner = BackgroundJobRunner(max_workers=2)
    yield runner
    runner.shutdown(wait=True)


class TestBackgroundJobRunner:
    """Tests for BackgroundJobRunner."""

    def test_dispatch_runs_job(self, runner):
        future = runner.dispatch(lambda a, b=0: a + b, 2, b=3)

        assert future.result(timeout=5) == 5

    def test_crash_is_logged(self, runner):
        def crash():
            raise RuntimeError("boom")

        with patch("reloop.jobs.logger") as mock_logger:
            future = runner.dispatch(crash)
            with pytest.raises(RuntimeError):
                future.result(timeout=5)
            runner.shutdown(wait=True)

        mock_logger.error.assert_called_once()
        assert "boom" in mock_logger.error.call_args[0][0]


class TestInlineJobRunner:
    """Tests for InlineJobRunner."""

    def test_runs_in_calling_thread(self):
        calls = []

        future = InlineJobRunner().dispatch(calls.append, "job")

        assert calls == ["job"]
        assert future.done()

    def test_exception_is_kept_on_future(self):
        def crash():
            raise ValueError("bad")

        future = InlineJobRunner().dispatch(crash)

        assert isinstance(future.exception(), ValueError)
