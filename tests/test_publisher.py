import pytest

from reconciler.errors import PublishExhaustionError
from reconciler.reconcile.publisher import StatusPublisher
from reconciler.reconcile.types import PublishTarget


class _FlakyTransport:
    def __init__(self, failures: int):
        self.failures = failures
        self.calls = []

    async def __call__(self, target: PublishTarget) -> None:
        self.calls.append(target)
        if len(self.calls) <= self.failures:
            raise RuntimeError(f"boom {len(self.calls)}")


class _RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _target(check: str = "frontend-tests") -> PublishTarget:
    return PublishTarget(
        owner="org",
        repo="repo",
        sha="a" * 40,
        check_name=check,
        reason="Skipped: no files match w1.yml path filters (frontend/**)",
    )


@pytest.mark.asyncio
async def test_succeeds_on_first_attempt_without_waiting():
    transport = _FlakyTransport(failures=0)
    sleep = _RecordingSleep()
    publisher = StatusPublisher(transport, sleep=sleep)

    outcome = await publisher.publish_success(_target())

    assert outcome.attempts == 1
    assert outcome.target == _target()
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_retries_with_exponential_backoff():
    transport = _FlakyTransport(failures=2)
    sleep = _RecordingSleep()
    publisher = StatusPublisher(transport, sleep=sleep)

    outcome = await publisher.publish_success(_target())

    assert outcome.attempts == 3
    assert len(transport.calls) == 3
    assert sleep.delays == [1, 2]


@pytest.mark.asyncio
async def test_backoff_unit_is_configurable():
    transport = _FlakyTransport(failures=2)
    sleep = _RecordingSleep()
    publisher = StatusPublisher(transport, backoff_seconds=0.5, sleep=sleep)

    await publisher.publish_success(_target())

    assert sleep.delays == [0.5, 1.0]


@pytest.mark.asyncio
async def test_exhaustion_reports_last_error():
    transport = _FlakyTransport(failures=100)
    sleep = _RecordingSleep()
    publisher = StatusPublisher(transport, sleep=sleep)

    with pytest.raises(PublishExhaustionError) as excinfo:
        await publisher.publish_success(_target("backend-tests"))

    assert len(transport.calls) == 3
    assert sleep.delays == [1, 2]
    assert excinfo.value.check_name == "backend-tests"
    assert excinfo.value.attempts == 3
    assert str(excinfo.value.last_error) == "boom 3"
    assert "backend-tests" in str(excinfo.value)
    assert "boom 3" in str(excinfo.value)


@pytest.mark.asyncio
async def test_republishing_is_harmless():
    transport = _FlakyTransport(failures=0)
    publisher = StatusPublisher(transport, sleep=_RecordingSleep())

    first = await publisher.publish_success(_target())
    second = await publisher.publish_success(_target())

    assert first == second
    assert transport.calls == [_target(), _target()]


def test_requires_at_least_one_attempt():
    with pytest.raises(ValueError):
        StatusPublisher(_FlakyTransport(failures=0), max_attempts=0)
