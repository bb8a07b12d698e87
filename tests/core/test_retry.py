"""Tests for with_conflict_retry."""

import pytest
from uuid import uuid4

from core.exceptions import Conflict, NotFound
from core.retry import with_conflict_retry


class _Flaky:
    """Raises Conflict for the first `failures` calls."""

    def __init__(self, failures, conflict_retries=1):
        self.failures = failures
        self.conflict_retries = conflict_retries
        self.calls = 0

    @with_conflict_retry
    def write(self, value):
        self.calls += 1
        if self.calls <= self.failures:
            raise Conflict("tasks", uuid4())
        return value


class TestConflictRetry:

    def test_no_conflict_runs_once(self):
        svc = _Flaky(failures=0)
        assert svc.write("ok") == "ok"
        assert svc.calls == 1

    def test_single_conflict_retried(self):
        svc = _Flaky(failures=1)
        assert svc.write("ok") == "ok"
        assert svc.calls == 2

    def test_gives_up_after_configured_retries(self):
        svc = _Flaky(failures=5, conflict_retries=2)
        with pytest.raises(Conflict):
            svc.write("ok")
        assert svc.calls == 3

    def test_zero_retries(self):
        svc = _Flaky(failures=1, conflict_retries=0)
        with pytest.raises(Conflict):
            svc.write("ok")
        assert svc.calls == 1

    def test_other_errors_not_retried(self):
        class _Missing:
            calls = 0

            @with_conflict_retry
            def read(self):
                self.calls += 1
                raise NotFound("task", uuid4())

        svc = _Missing()
        with pytest.raises(NotFound):
            svc.read()
        assert svc.calls == 1

    def test_retry_is_logged(self, caplog):
        with caplog.at_level("WARNING", logger="core.retry"):
            _Flaky(failures=1).write("ok")
        assert "retrying" in caplog.text

    def test_preserves_name(self):
        assert _Flaky.write.__name__ == "write"
