from hirelane.core.lifecycle import parse_identifier
from hirelane.db.repositories import escape_like
from hirelane.types import APPLICATION_STATES, is_application_state, is_transition_allowed


def test_state_enumeration_is_ordered_and_closed() -> None:
    assert APPLICATION_STATES == ("Submitted", "InReview", "Shortlisted", "Rejected", "Hired")
    assert is_application_state("Hired")
    assert not is_application_state("Withdrawn")
    assert not is_application_state("hired")
    assert not is_application_state(None)


def test_transition_table_follows_pipeline() -> None:
    assert is_transition_allowed("Submitted", "InReview")
    assert is_transition_allowed("InReview", "Shortlisted")
    assert is_transition_allowed("Shortlisted", "Hired")
    assert is_transition_allowed("Shortlisted", "Rejected")
    assert is_transition_allowed("Hired", "Hired")
    assert not is_transition_allowed("Hired", "Submitted")
    assert not is_transition_allowed("Rejected", "InReview")
    assert not is_transition_allowed("Submitted", "Hired")
    assert not is_transition_allowed("Submitted", "Rejected")
    assert not is_transition_allowed("Submitted", "Shortlisted")
    assert not is_transition_allowed("InReview", "Rejected")


def test_parse_identifier_accepts_only_positive_integers() -> None:
    assert parse_identifier("42") == 42
    assert parse_identifier(" 7 ") == 7
    assert parse_identifier("0") is None
    assert parse_identifier("-3") is None
    assert parse_identifier("abc") is None
    assert parse_identifier("507f1f77bcf86cd799439011") is None
    assert parse_identifier("٣") is None


def test_escape_like_neutralises_wildcards() -> None:
    assert escape_like("50%_off\\") == "50\\%\\_off\\\\"
    assert escape_like("a.*b(c)") == "a.*b(c)"
