from __future__ import annotations

import threading

import pytest

from hirelane.config import Settings
from hirelane.core.cv_profiles import CvProfileService
from hirelane.core.errors import ConflictError, InvalidArgumentError, InvalidStateError, NotFoundError
from hirelane.core.lifecycle import ApplicationLifecycleService
from hirelane.db.repositories import Repository
from hirelane.db.session import SessionLocal
from hirelane.types import AdminListFilters, CvPayload


@pytest.fixture
def db():
    with SessionLocal() as session:
        yield session


def _candidate(db, email: str, *, name: str = "Ana", surname: str = "Diaz") -> int:
    return Repository(db).create_user(name=name, surname=surname, email=email).id


def _posting(db, title: str = "Backend Engineer", *, status: str = "open") -> int:
    return Repository(db).create_job_posting(title=title, status=status, area="Engineering").id


def test_submit_without_cv_snapshots_account_identity(db) -> None:
    candidate_id = _candidate(db, "ana@x.com")
    posting_id = _posting(db)

    created = ApplicationLifecycleService(db).submit(
        candidate_id=candidate_id, job_posting_id=posting_id, message="  Hola  "
    )

    assert created["state"] == "Submitted"
    assert created["message"] == "Hola"
    assert created["cv_record_id"] is None
    assert created["cv_snapshot_version"] == 1
    assert created["cv_snapshot"]["name"] == "Ana"
    assert created["cv_snapshot"]["email"] == "ana@x.com"
    assert created["cv_snapshot"]["document"] is None


def test_submit_rejects_missing_and_closed_postings(db) -> None:
    candidate_id = _candidate(db, "ana@x.com")
    paused_id = _posting(db, status="paused")
    service = ApplicationLifecycleService(db)

    with pytest.raises(NotFoundError):
        service.submit(candidate_id=candidate_id, job_posting_id=9999)
    with pytest.raises(InvalidStateError):
        service.submit(candidate_id=candidate_id, job_posting_id=paused_id)
    with pytest.raises(NotFoundError):
        service.submit(candidate_id=9999, job_posting_id=_posting(db, "Other"))

    assert service.list_mine(candidate_id) == []


def test_second_submit_for_same_posting_conflicts(db) -> None:
    candidate_id = _candidate(db, "ana@x.com")
    posting_id = _posting(db)
    service = ApplicationLifecycleService(db)

    service.submit(candidate_id=candidate_id, job_posting_id=posting_id, message="first")
    with pytest.raises(ConflictError):
        service.submit(candidate_id=candidate_id, job_posting_id=posting_id, message="second")

    mine = service.list_mine(candidate_id)
    assert len(mine) == 1
    assert mine[0]["message"] == "first"


def test_concurrent_submits_create_exactly_one_application(db) -> None:
    candidate_id = _candidate(db, "ana@x.com")
    posting_id = _posting(db)
    barrier = threading.Barrier(2)
    outcomes: list[str] = []
    lock = threading.Lock()

    def submit() -> None:
        with SessionLocal() as session:
            service = ApplicationLifecycleService(session)
            barrier.wait()
            try:
                service.submit(candidate_id=candidate_id, job_posting_id=posting_id)
                outcome = "created"
            except ConflictError:
                outcome = "conflict"
        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=submit) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["conflict", "created"]
    assert len(ApplicationLifecycleService(db).list_mine(candidate_id)) == 1


def test_snapshot_survives_later_cv_edits(db) -> None:
    candidate_id = _candidate(db, "ana@x.com")
    posting_id = _posting(db)
    profiles = CvProfileService(db, storage=None)
    profiles.save_cv(
        candidate_id,
        CvPayload(name="Ana", surname="", email="", summary="Python developer", links={"github": "ana-gh"}),
    )

    created = ApplicationLifecycleService(db).submit(candidate_id=candidate_id, job_posting_id=posting_id)
    profiles.save_cv(candidate_id, CvPayload(name="Ana Maria", summary="Go developer"))

    stored = ApplicationLifecycleService(db).list_mine(candidate_id)[0]
    assert stored["cv_record_id"] == created["cv_record_id"]
    assert stored["cv_snapshot"] == created["cv_snapshot"]
    assert stored["cv_snapshot"]["name"] == "Ana"
    assert stored["cv_snapshot"]["surname"] == "Diaz"
    assert stored["cv_snapshot"]["email"] == "ana@x.com"
    assert stored["cv_snapshot"]["summary"] == "Python developer"
    assert stored["cv_snapshot"]["links"]["github"] == "ana-gh"


def test_transition_accepts_any_known_state_by_default(db) -> None:
    candidate_id = _candidate(db, "ana@x.com")
    application = ApplicationLifecycleService(db).submit(candidate_id=candidate_id, job_posting_id=_posting(db))
    service = ApplicationLifecycleService(db)

    hired = service.transition(application["id"], "Hired")
    assert hired["state"] == "Hired"
    assert hired["cv_snapshot"] == application["cv_snapshot"]

    back = service.transition(application["id"], "Submitted")
    assert back["state"] == "Submitted"


def test_transition_rejects_unknown_state_without_touching_row(db) -> None:
    candidate_id = _candidate(db, "ana@x.com")
    service = ApplicationLifecycleService(db)
    application = service.submit(candidate_id=candidate_id, job_posting_id=_posting(db))

    for bad in ("Withdrawn", "hired", "", "Hired "):
        with pytest.raises(InvalidArgumentError):
            service.transition(application["id"], bad)

    assert service.list_mine(candidate_id)[0]["state"] == "Submitted"

    with pytest.raises(NotFoundError):
        service.transition(9999, "InReview")


def test_enforced_transitions_follow_pipeline(db) -> None:
    candidate_id = _candidate(db, "ana@x.com")
    service = ApplicationLifecycleService(db, settings=Settings(enforce_state_transitions=True))
    application = service.submit(candidate_id=candidate_id, job_posting_id=_posting(db))

    with pytest.raises(InvalidStateError):
        service.transition(application["id"], "Hired")

    assert service.transition(application["id"], "InReview")["state"] == "InReview"
    assert service.transition(application["id"], "Shortlisted")["state"] == "Shortlisted"
    assert service.transition(application["id"], "Hired")["state"] == "Hired"
    with pytest.raises(InvalidStateError):
        service.transition(application["id"], "Rejected")


def test_withdraw_is_limited_to_owner(db) -> None:
    owner_id = _candidate(db, "ana@x.com")
    other_id = _candidate(db, "bob@x.com", name="Bob", surname="Lee")
    service = ApplicationLifecycleService(db)
    application = service.submit(candidate_id=owner_id, job_posting_id=_posting(db))

    with pytest.raises(NotFoundError):
        service.withdraw(application_id=application["id"], candidate_id=other_id)
    assert len(service.list_mine(owner_id)) == 1

    service.transition(application["id"], "Hired")
    service.withdraw(application_id=application["id"], candidate_id=owner_id)
    assert service.list_mine(owner_id) == []

    with pytest.raises(NotFoundError):
        service.withdraw(application_id=application["id"], candidate_id=owner_id)


def test_list_mine_is_newest_first_with_posting_summary(db) -> None:
    candidate_id = _candidate(db, "ana@x.com")
    first_posting = _posting(db, "Backend Engineer")
    second_posting = _posting(db, "Data Analyst")
    service = ApplicationLifecycleService(db)
    service.submit(candidate_id=candidate_id, job_posting_id=first_posting)
    service.submit(candidate_id=candidate_id, job_posting_id=second_posting)

    mine = service.list_mine(candidate_id)

    assert [item["job_posting"]["title"] for item in mine] == ["Data Analyst", "Backend Engineer"]
    assert mine[0]["job_posting"]["area"] == "Engineering"
    assert "description" not in mine[0]["job_posting"]


def test_admin_list_filters_combine(db) -> None:
    ana_id = _candidate(db, "ana@x.com")
    bob_id = _candidate(db, "bob@x.com", name="Bob", surname="Lee")
    backend = _posting(db, "Backend Engineer")
    data = _posting(db, "Data Analyst")
    service = ApplicationLifecycleService(db)

    first = service.submit(candidate_id=ana_id, job_posting_id=backend, message="50% remote please")
    service.submit(candidate_id=ana_id, job_posting_id=data)
    service.submit(candidate_id=bob_id, job_posting_id=backend, message="a.*b")
    service.transition(first["id"], "Shortlisted")

    assert len(service.admin_list()) == 3
    assert [row["id"] for row in service.admin_list(AdminListFilters(state="Shortlisted"))] == [first["id"]]
    assert len(service.admin_list(AdminListFilters(job_posting_id=str(backend)))) == 2
    assert service.admin_list(AdminListFilters(job_posting_id="not-an-id")) == []
    assert len(service.admin_list(AdminListFilters(q="ANA"))) == 2
    assert len(service.admin_list(AdminListFilters(q="ana", job_posting_id=str(backend)))) == 1
    assert service.admin_list(AdminListFilters(q="Ana", state="Rejected")) == []

    assert [row["id"] for row in service.admin_list(AdminListFilters(q="%"))] == [first["id"]]
    assert len(service.admin_list(AdminListFilters(q="a.*b"))) == 1
    assert service.admin_list(AdminListFilters(q="a.b")) == []
    assert len(service.admin_list(AdminListFilters(q="(["))) == 0

    with pytest.raises(InvalidArgumentError):
        service.admin_list(AdminListFilters(state="Withdrawn"))


def test_admin_list_joins_candidate_and_current_cv(db) -> None:
    candidate_id = _candidate(db, "ana@x.com")
    posting_id = _posting(db)
    cv = CvProfileService(db, storage=None).save_cv(candidate_id, CvPayload(name="Ana"))
    ApplicationLifecycleService(db).submit(candidate_id=candidate_id, job_posting_id=posting_id)

    row = ApplicationLifecycleService(db).admin_list()[0]

    assert row["candidate"]["email"] == "ana@x.com"
    assert row["candidate"]["cv_id"] == cv.id
    assert row["job_posting"]["title"] == "Backend Engineer"
    assert row["job_posting"]["description"] == ""


def test_admin_list_pages_and_caps_limit(db) -> None:
    posting_id = _posting(db)
    service = ApplicationLifecycleService(db, settings=Settings(admin_list_max_limit=2))
    for index in range(4):
        service.submit(candidate_id=_candidate(db, f"user{index}@x.com"), job_posting_id=posting_id)

    assert len(service.admin_list(AdminListFilters(limit=10))) == 2
    assert len(service.admin_list(AdminListFilters(limit=2, offset=3))) == 1
    assert len(service.admin_list()) == 4
