"""Tests for the bounded polling helper."""
from telehealth.utils.retry import FAILURE, PENDING, SUCCESS, Outcome, poll_until_terminal


def scripted(*outcomes):
    remaining = list(outcomes)

    def fetch():
        return remaining.pop(0)
    return fetch


class TestPollUntilTerminal:
    """Fixed-delay, capped polling."""

    def test_stops_on_first_terminal(self):
        sleeps = []
        fetch = scripted(Outcome.pending('ACTIVE'), Outcome.pending('ACTIVE'), Outcome.success('PAID'))

        outcome, attempts = poll_until_terminal(fetch, attempts=8, delay=2, sleep=sleeps.append)

        assert outcome.state == SUCCESS
        assert outcome.raw_status == 'PAID'
        assert attempts == 3
        assert sleeps == [2, 2]

    def test_exhausted_attempts_stay_pending(self):
        sleeps = []
        fetch = scripted(*[Outcome.pending()] * 4)

        outcome, attempts = poll_until_terminal(fetch, attempts=4, delay=1, sleep=sleeps.append)

        assert outcome.state == PENDING
        assert attempts == 4
        assert len(sleeps) == 3

    def test_failure_is_terminal(self):
        outcome, attempts = poll_until_terminal(scripted(Outcome.failure('FAILED')), attempts=5, delay=0)

        assert outcome.state == FAILURE
        assert attempts == 1

    def test_at_least_one_attempt(self):
        outcome, attempts = poll_until_terminal(scripted(Outcome.pending()), attempts=0, delay=0)

        assert attempts == 1
        assert not outcome.is_terminal
