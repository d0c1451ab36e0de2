import threading
import unittest
from unittest import mock

from core.errors import OperationCancelledError
from core.retry import backoff_delay, retry_call


class Flaky:
    def __init__(self, failures, exc=ConnectionError("reset")):
        self.failures = failures
        self.exc = exc
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc
        return "ok"


class RetryTests(unittest.TestCase):
    def test_backoff_grows_and_caps(self) -> None:
        for attempt, cap in ((1, 0.5), (2, 1.0), (3, 2.0), (10, 5.0)):
            delay = backoff_delay(attempt, 0.5)
            self.assertGreaterEqual(delay, cap / 2)
            self.assertLessEqual(delay, cap)

    @mock.patch("core.retry.time.sleep")
    def test_retries_until_success(self, sleep) -> None:
        fn = Flaky(2)
        self.assertEqual(retry_call(fn, retries=2, base=0.1, exceptions=(ConnectionError,)), "ok")
        self.assertEqual(fn.calls, 3)
        self.assertEqual(sleep.call_count, 2)

    @mock.patch("core.retry.time.sleep")
    def test_reraises_after_budget(self, sleep) -> None:
        fn = Flaky(5)
        with self.assertRaises(ConnectionError):
            retry_call(fn, retries=1, base=0.1, exceptions=(ConnectionError,))
        self.assertEqual(fn.calls, 2)

    def test_other_exceptions_not_retried(self) -> None:
        fn = Flaky(1, exc=KeyError("x"))
        with self.assertRaises(KeyError):
            retry_call(fn, retries=3, base=0, exceptions=(ConnectionError,))
        self.assertEqual(fn.calls, 1)

    def test_cancel_stops_backoff(self) -> None:
        cancel = threading.Event()
        fn = Flaky(1)

        def fail_and_cancel():
            cancel.set()
            return fn()

        with self.assertRaises(OperationCancelledError):
            retry_call(
                fail_and_cancel, retries=3, base=10, exceptions=(ConnectionError,), cancel=cancel
            )
        self.assertEqual(fn.calls, 1)


if __name__ == "__main__":
    unittest.main()
