import pytest

from expense_agent.agent.override import (
    ATTEMPTS_EXHAUSTED_MESSAGE,
    CODE_EXPIRED_MESSAGE,
    INVALID_CODE_MESSAGE,
    OverrideError,
    OverrideSession,
    OverrideState,
    generate_override_code,
)


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_generated_codes_are_four_digits():
    for _ in range(200):
        code = generate_override_code()
        assert len(code) == 4
        assert 1000 <= int(code) <= 9999


def test_issue_moves_to_code_sent():
    session = OverrideSession()
    session.issue("4821")

    assert session.state == OverrideState.CODE_SENT
    assert session.awaiting_code
    assert not session.is_active


def test_partial_input_is_not_compared():
    session = OverrideSession()
    session.issue("4821")

    assert session.enter("48") is False
    assert session.submitted_code == "48"
    assert session.last_error is None
    assert session.attempts == 0


def test_matching_code_approves():
    session = OverrideSession()
    session.issue("4821")

    assert session.enter("4821") is True
    assert session.state == OverrideState.APPROVED
    assert session.is_active


def test_wrong_code_clears_input_and_allows_retry():
    session = OverrideSession()
    session.issue("4821")

    assert session.enter("1111") is False
    assert session.submitted_code == ""
    assert session.last_error == INVALID_CODE_MESSAGE
    assert session.state == OverrideState.CODE_SENT

    assert session.enter("4821") is True


def test_enter_without_request_is_refused():
    with pytest.raises(OverrideError):
        OverrideSession().enter("1234")


def test_issue_rejects_malformed_code():
    with pytest.raises(OverrideError):
        OverrideSession().issue("12a4")


def test_attempt_cap_drops_code():
    session = OverrideSession(max_attempts=2)
    session.issue("4821")

    session.enter("0000")
    session.enter("0001")

    assert session.state == OverrideState.NO_REQUEST
    assert session.generated_code is None
    assert session.last_error == ATTEMPTS_EXHAUSTED_MESSAGE


def test_expired_code_is_rejected():
    clock = FakeClock()
    session = OverrideSession(code_ttl=60, clock=clock)
    session.issue("4821")

    clock.now += 61
    assert session.enter("4821") is False
    assert session.state == OverrideState.NO_REQUEST
    assert session.last_error == CODE_EXPIRED_MESSAGE


def test_reset_clears_everything():
    session = OverrideSession()
    session.issue("4821")
    session.enter("4821")
    session.reset()

    assert session.state == OverrideState.NO_REQUEST
    assert session.generated_code is None
    assert session.submitted_code == ""
