import pytest
import requests

from core.services.retry_policy import NO_RETRY, RetryPolicy


class Flaky:
    def __init__(self, failures, exc=requests.ConnectionError):
        self.failures = failures
        self.exc = exc
        self.calls = 0

    def __call__(self, value):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc(f"failure {self.calls}")
        return value


class TestRetryPolicy:
    def test_backoff_grows_exponentially(self):
        waits = []
        policy = RetryPolicy(attempts=3, backoff=0.5, multiplier=2.0, sleep=waits.append)
        fn = Flaky(failures=2)
        assert policy.call(fn, "ok") == "ok"
        assert fn.calls == 3
        assert waits == [0.5, 1.0]

    def test_last_error_is_reraised(self):
        policy = RetryPolicy(attempts=2, backoff=0, sleep=lambda s: None)
        fn = Flaky(failures=5)
        with pytest.raises(requests.ConnectionError, match="failure 2"):
            policy.call(fn, "ok")
        assert fn.calls == 2

    def test_only_listed_errors_are_retried(self):
        policy = RetryPolicy(attempts=3, retry_on=(requests.RequestException,), sleep=lambda s: None)
        fn = Flaky(failures=1, exc=ValueError)
        with pytest.raises(ValueError):
            policy.call(fn, "ok")
        assert fn.calls == 1

    def test_no_retry(self):
        fn = Flaky(failures=1)
        with pytest.raises(requests.ConnectionError):
            NO_RETRY.call(fn, "ok")
        assert fn.calls == 1

    def test_retries_are_logged(self, caplog):
        policy = RetryPolicy(attempts=2, backoff=0, sleep=lambda s: None)
        with caplog.at_level("WARNING", logger="core.services.retry_policy"):
            policy.call(Flaky(failures=1), "ok")
        assert any("Retrying" in r.getMessage() for r in caplog.records)
