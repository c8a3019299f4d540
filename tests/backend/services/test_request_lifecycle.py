import random
from datetime import datetime, timedelta

import pytest

from backend.core.errors import AuthFailure, IllegalTransition, NotFound, ValidationError
from backend.models.request import RequestCategory, RequestStatus, StudentRequest
from backend.services.request_lifecycle import RequestLifecycle, partition_by_status


def _submit(lifecycle, student, category=RequestCategory.CAPSTONE, body='Need supervisor approval', semester='Fall2025'):
    outcome = lifecycle.submit(student.userid, category, body, semester)
    assert isinstance(outcome, StudentRequest)
    return outcome


def test_submit_creates_pending_request_with_frozen_estimate(lifecycle, student) -> None:
    request = _submit(lifecycle, student)

    assert request.status == RequestStatus.PENDING
    assert request.category == RequestCategory.CAPSTONE
    assert request.submitted_at == datetime(2026, 1, 5, 9, 0)
    assert request.estimated_completion == datetime(2026, 1, 5, 9, 20)
    assert request.username == student.name
    assert request.email == student.email


def test_submit_accepts_category_names(lifecycle, student) -> None:
    request = lifecycle.submit(student.userid, 'CourseRegistration', 'Add CS101 section', None)

    assert request.category == RequestCategory.COURSE_REGISTRATION
    assert request.semester is None


def test_submissions_queue_behind_same_category_only(lifecycle, student, clock) -> None:
    first = _submit(lifecycle, student)
    clock.now = datetime(2026, 1, 5, 9, 5)
    second = _submit(lifecycle, student)
    other = _submit(lifecycle, student, category=RequestCategory.COMPLAINT)

    assert first.estimated_completion == datetime(2026, 1, 5, 9, 20)
    assert second.estimated_completion == datetime(2026, 1, 5, 9, 40)
    assert other.estimated_completion == datetime(2026, 1, 5, 9, 25)


def test_estimate_is_not_recomputed_when_queue_moves(lifecycle, student, staff) -> None:
    first = _submit(lifecycle, student)
    second = _submit(lifecycle, student)
    frozen = second.estimated_completion

    lifecycle.act(first.id, RequestStatus.RESOLVED, 'done', staff.userid)

    assert lifecycle.get(second.id).estimated_completion == frozen


@pytest.mark.parametrize('category', ['Housing', 'capstone', '', 'Other1', None])
def test_submit_rejects_unknown_category(lifecycle, student, request_store, category) -> None:
    outcome = lifecycle.submit(student.userid, category, 'Some details', 'Fall2025')

    assert outcome == ValidationError('Unknown request category')
    assert request_store.get_all_requests() == []


def test_submit_rejects_blank_body_and_unknown_owner(lifecycle, student) -> None:
    assert lifecycle.submit(student.userid, 'Other', '   ', None) == ValidationError('Request details are required')
    assert lifecycle.submit('69999999', 'Other', 'Hello', None) == ValidationError('Unknown student')


def test_owner_can_cancel_pending_request(lifecycle, student) -> None:
    request = _submit(lifecycle, student)

    cancelled = lifecycle.cancel(request.id, student.userid)

    assert cancelled.status == RequestStatus.CANCELLED


def test_cancel_checks_ownership(lifecycle, student, other_student) -> None:
    request = _submit(lifecycle, student)

    outcome = lifecycle.cancel(request.id, other_student.userid)

    assert isinstance(outcome, AuthFailure)
    assert lifecycle.get(request.id).status == RequestStatus.PENDING


def test_cancel_missing_request(lifecycle, student) -> None:
    assert lifecycle.cancel(999, student.userid) == NotFound()


def test_cancel_after_cancel_is_illegal(lifecycle, student) -> None:
    request = _submit(lifecycle, student)
    lifecycle.cancel(request.id, student.userid)

    assert lifecycle.cancel(request.id, student.userid) == IllegalTransition(request.id, 'Cancelled')


def test_staff_resolve_sets_status_note_actor_and_notifies(lifecycle, student, staff, notifier) -> None:
    request = _submit(lifecycle, student)

    resolved = lifecycle.act(request.id, RequestStatus.RESOLVED, '  Approved by chair ', staff.userid)

    assert resolved.status == RequestStatus.RESOLVED
    assert resolved.note == 'Approved by chair'
    assert resolved.acted_by == staff.userid
    assert notifier.sent[-1][0] == student.email
    assert notifier.sent[-1][1] == 'Request Actioned'


def test_staff_can_reject_with_string_action(lifecycle, student, staff) -> None:
    request = _submit(lifecycle, student)

    rejected = lifecycle.act(request.id, 'Rejected', None, staff.userid)

    assert rejected.status == RequestStatus.REJECTED
    assert rejected.note is None


def test_act_on_resolved_request_leaves_it_untouched(lifecycle, student, staff, notifier) -> None:
    request = _submit(lifecycle, student)
    lifecycle.act(request.id, RequestStatus.RESOLVED, 'first', staff.userid)
    before = lifecycle.get(request.id)
    snapshot = (before.status, before.note, before.estimated_completion, before.acted_by)
    sent_before = len(notifier.sent)

    outcome = lifecycle.act(request.id, RequestStatus.REJECTED, 'second', staff.userid)

    assert outcome == IllegalTransition(request.id, 'Resolved')
    after = lifecycle.get(request.id)
    assert (after.status, after.note, after.estimated_completion, after.acted_by) == snapshot
    assert len(notifier.sent) == sent_before


def test_act_on_cancelled_request_is_illegal(lifecycle, student, staff) -> None:
    request = _submit(lifecycle, student)
    lifecycle.cancel(request.id, student.userid)

    assert lifecycle.act(request.id, RequestStatus.RESOLVED, None, staff.userid) == IllegalTransition(request.id, 'Cancelled')


def test_act_requires_staff_role(lifecycle, student) -> None:
    request = _submit(lifecycle, student)

    outcome = lifecycle.act(request.id, RequestStatus.RESOLVED, None, student.userid)

    assert isinstance(outcome, AuthFailure)
    assert lifecycle.get(request.id).status == RequestStatus.PENDING


@pytest.mark.parametrize('action', [RequestStatus.PENDING, RequestStatus.CANCELLED, 'Approved'])
def test_act_only_accepts_resolve_or_reject(lifecycle, student, staff, action) -> None:
    request = _submit(lifecycle, student)

    assert lifecycle.act(request.id, action, None, staff.userid) == ValidationError('Action must be Resolved or Rejected')


def test_act_on_missing_request(lifecycle, staff) -> None:
    assert lifecycle.act(404, RequestStatus.RESOLVED, None, staff.userid) == NotFound()


def test_notification_failure_does_not_undo_state_change(request_store, credentials, estimator, clock, student, staff) -> None:
    class BrokenNotifier:
        def send(self, to, subject, message):
            raise ConnectionError('smtp down')

    lifecycle = RequestLifecycle(request_store, credentials, estimator, BrokenNotifier(), clock=clock)
    request = _submit(lifecycle, student)

    resolved = lifecycle.act(request.id, RequestStatus.RESOLVED, 'ok', staff.userid)

    assert resolved.status == RequestStatus.RESOLVED
    assert lifecycle.get(request.id).status == RequestStatus.RESOLVED


def test_annotate_sets_note_once(lifecycle, student, staff) -> None:
    request = _submit(lifecycle, student)

    annotated = lifecycle.annotate(request.id, 'Waiting on registrar')

    assert annotated.note == 'Waiting on registrar'
    assert annotated.status == RequestStatus.PENDING
    assert isinstance(lifecycle.annotate(request.id, 'Another note'), IllegalTransition)
    assert lifecycle.get(request.id).note == 'Waiting on registrar'


def test_annotate_rejects_blank_and_cancelled(lifecycle, student) -> None:
    request = _submit(lifecycle, student)
    assert lifecycle.annotate(request.id, '  ') == ValidationError('Note is required')

    lifecycle.cancel(request.id, student.userid)

    assert lifecycle.annotate(request.id, 'late note') == IllegalTransition(request.id, 'Cancelled')
    assert lifecycle.annotate(12345, 'note') == NotFound()


def test_pending_partition_by_category_has_no_overlap_or_omission(lifecycle, student, staff, clock) -> None:
    categories = [
        RequestCategory.CAPSTONE,
        RequestCategory.COMPLAINT,
        RequestCategory.CAPSTONE,
        RequestCategory.OTHER,
        RequestCategory.COURSE_REGISTRATION,
        RequestCategory.CAPSTONE,
    ]
    created = []
    for offset, category in enumerate(categories):
        clock.now = datetime(2026, 1, 5, 9, 0) + timedelta(minutes=offset)
        created.append(_submit(lifecycle, student, category=category))
    lifecycle.act(created[0].id, RequestStatus.RESOLVED, None, staff.userid)
    lifecycle.cancel(created[1].id, student.userid)

    all_pending = lifecycle.list_all_pending()
    partition = lifecycle.pending_by_category()

    partitioned_ids = [request.id for requests in partition.values() for request in requests]
    assert sorted(partitioned_ids) == sorted(request.id for request in all_pending)
    assert len(partitioned_ids) == len(set(partitioned_ids))
    for category, requests in partition.items():
        assert all(request.category == category for request in requests)
    assert lifecycle.pending_counts_by_category() == {
        RequestCategory.COURSE_REGISTRATION: 1,
        RequestCategory.CAPSTONE: 2,
        RequestCategory.COMPLAINT: 0,
        RequestCategory.OTHER: 1,
    }


def test_list_filters(lifecycle, student, other_student) -> None:
    mine = _submit(lifecycle, student)
    theirs = _submit(lifecycle, other_student, category=RequestCategory.OTHER)

    assert [request.id for request in lifecycle.list_by_user(student.userid)] == [mine.id]
    assert [request.id for request in lifecycle.list_by_category('Other')] == [theirs.id]
    assert lifecycle.list_by_category('Nope') == ValidationError('Unknown request category')
    assert [request.id for request in lifecycle.list_pending_in_category(RequestCategory.CAPSTONE)] == [mine.id]


def test_pick_random_pending_handles_empty_set(lifecycle) -> None:
    assert lifecycle.pick_random_pending() is None


def test_pick_random_pending_only_returns_pending(request_store, credentials, estimator, notifier, clock, student) -> None:
    lifecycle = RequestLifecycle(request_store, credentials, estimator, notifier, clock=clock, rng=random.Random(7))
    kept = _submit(lifecycle, student)
    dropped = _submit(lifecycle, student)
    lifecycle.cancel(dropped.id, student.userid)

    picks = {lifecycle.pick_random_pending().id for _ in range(10)}

    assert picks == {kept.id}


def test_partition_by_status_with_semester_filter(lifecycle, student, staff) -> None:
    fall_pending = _submit(lifecycle, student, semester='Fall2025')
    fall_done = _submit(lifecycle, student, semester='Fall2025')
    spring_cancelled = _submit(lifecycle, student, semester='Spring2026')
    lifecycle.act(fall_done.id, RequestStatus.REJECTED, None, staff.userid)
    lifecycle.cancel(spring_cancelled.id, student.userid)
    requests = lifecycle.list_by_user(student.userid)

    everything = partition_by_status(requests, semester='allSemesters')
    fall = partition_by_status(requests, semester='Fall2025')

    assert [r.id for r in everything.pending] == [fall_pending.id]
    assert [r.id for r in everything.actioned] == [fall_done.id]
    assert [r.id for r in everything.cancelled] == [spring_cancelled.id]
    assert fall.cancelled == []
    assert len(fall.pending) + len(fall.actioned) == 2


@pytest.mark.parametrize(
    ('status', 'terminal'),
    [
        (RequestStatus.PENDING, False),
        (RequestStatus.RESOLVED, True),
        (RequestStatus.REJECTED, True),
        (RequestStatus.CANCELLED, True),
    ],
)
def test_only_pending_is_non_terminal(status, terminal) -> None:
    assert status.is_terminal is terminal
