import pytest

from mockexam.models.catalog import Section
from mockexam.models.exam_session import AnswerKey, CompletionReason, ExamSession
from mockexam.utils.exceptions import (
    EmptyCatalogError,
    InvalidStateError,
    OutOfRangeError,
)
from mockexam.utils.state_machine import ExamState


def make_session(*durations, question_count=3):
    sections = [
        Section(
            id=f"s{i}",
            title=f"Section {i}",
            duration_seconds=duration,
            question_count=question_count,
        )
        for i, duration in enumerate(durations)
    ]
    return ExamSession(sections)


def test_new_session_waits_with_full_time(ielts_sections):
    session = ExamSession(ielts_sections)

    assert session.status is ExamState.NOT_STARTED
    assert session.total_remaining_seconds == 1800 + 3600 + 3600 + 900
    assert session.current_section_index == 0
    assert session.current_question_number == 1


def test_empty_section_list_is_rejected():
    with pytest.raises(EmptyCatalogError):
        ExamSession([])


def test_start_runs_first_section(ielts_sections):
    session = ExamSession(ielts_sections)
    session.start()

    assert session.status is ExamState.RUNNING
    assert session.section_remaining_seconds == 1800


def test_start_twice_fails(ielts_sections):
    session = ExamSession(ielts_sections)
    session.start()

    with pytest.raises(InvalidStateError):
        session.start()


@pytest.mark.parametrize("operation", ["tick", "advance_section"])
def test_operations_before_start_fail(ielts_sections, operation):
    session = ExamSession(ielts_sections)

    with pytest.raises(InvalidStateError):
        getattr(session, operation)()


def test_navigation_and_answers_before_start_fail(ielts_sections):
    session = ExamSession(ielts_sections)

    with pytest.raises(InvalidStateError):
        session.go_to_question(2)
    with pytest.raises(InvalidStateError):
        session.record_answer(("listening", 1), "B")


def test_tick_decrements_both_timers(ielts_sections):
    session = ExamSession(ielts_sections)
    session.start()
    session.tick()

    assert session.total_remaining_seconds == 9899
    assert session.section_remaining_seconds == 1799
    assert session.elapsed_seconds == 1


def test_total_time_never_increases_and_stays_non_negative():
    session = make_session(3, 2, 4)
    session.start()
    previous = session.total_remaining_seconds

    while session.status is ExamState.RUNNING:
        session.tick()
        assert 0 <= session.total_remaining_seconds <= previous
        previous = session.total_remaining_seconds

    assert session.total_remaining_seconds == 0
    assert session.completion_reason is CompletionReason.TIME_EXPIRED


def test_section_timer_expiry_moves_to_next_section(ielts_sections):
    session = ExamSession(ielts_sections)
    session.start()
    session.go_to_question(12)

    for _ in range(1800):
        session.tick()

    assert session.current_section_index == 1
    assert session.section_remaining_seconds == 3600
    assert session.current_question_number == 1
    assert session.status is ExamState.RUNNING


def test_single_one_second_section_completes_after_one_tick():
    session = make_session(1)
    session.start()
    session.tick()

    assert session.status is ExamState.COMPLETED
    assert session.completion_reason is CompletionReason.TIME_EXPIRED


def test_total_time_wins_when_both_timers_run_out_together():
    session = make_session(2, 3)
    session.start()
    session.tick()
    session.tick()
    assert session.current_section_index == 1

    for _ in range(3):
        session.tick()

    assert session.status is ExamState.COMPLETED
    assert session.completion_reason is CompletionReason.TIME_EXPIRED
    assert session.current_section_index == 1


def test_advance_section_moves_forward_only(ielts_sections):
    session = ExamSession(ielts_sections)
    session.start()
    indices = [session.current_section_index]

    for _ in range(3):
        session.advance_section()
        indices.append(session.current_section_index)

    assert indices == [0, 1, 2, 3]
    assert session.section_remaining_seconds == 900


def test_advance_from_last_section_completes(ielts_sections):
    session = ExamSession(ielts_sections)
    session.start()
    for _ in range(4):
        session.advance_section()

    assert session.status is ExamState.COMPLETED
    assert session.completion_reason is CompletionReason.SECTIONS_EXHAUSTED
    assert session.current_section_index == 3


def test_go_to_question_bounds(ielts_sections):
    session = ExamSession(ielts_sections)
    session.start()

    with pytest.raises(OutOfRangeError):
        session.go_to_question(41)
    with pytest.raises(OutOfRangeError):
        session.go_to_question(0)

    session.go_to_question(40)
    assert session.current_question_number == 40
    assert session.current_section_index == 0


def test_recorded_answer_reads_back_last_write(ielts_sections):
    session = ExamSession(ielts_sections)
    session.start()

    session.record_answer(AnswerKey("listening", 3), "A")
    assert session.answer_for(("listening", 3)) == "A"

    session.record_answer(("listening", 3), "C")
    assert session.answer_for(AnswerKey("listening", 3)) == "C"
    assert len(session.answers) == 1


def test_answered_count_in_reading(ielts_sections):
    session = ExamSession(ielts_sections)
    session.start()
    session.advance_section()

    session.record_answer(("reading", 1), "True")
    session.record_answer(("reading", 5), "Not Given")

    assert session.answered_count() == 2


def test_answered_count_ignores_sections_not_reached(ielts_sections):
    session = ExamSession(ielts_sections)
    session.start()

    session.record_answer(("listening", 1), "A")
    session.record_answer(("writing", 1), "An early draft")

    assert session.answered_count() == 1

    session.advance_section()
    session.advance_section()
    assert session.answered_count() == 2


def test_complete_twice_equals_complete_once(ielts_sections):
    session = ExamSession(ielts_sections)
    session.start()
    session.tick()
    session.record_answer(("listening", 1), "B")

    session.complete()
    first = session.snapshot()
    session.complete(CompletionReason.TIME_EXPIRED)

    assert session.snapshot() == first
    assert session.completion_reason is CompletionReason.SUBMITTED


def test_completed_session_is_frozen(ielts_sections):
    session = ExamSession(ielts_sections)
    session.start()
    session.complete()

    with pytest.raises(InvalidStateError):
        session.tick()
    with pytest.raises(InvalidStateError):
        session.record_answer(("listening", 1), "A")
    with pytest.raises(InvalidStateError):
        session.go_to_question(2)
    with pytest.raises(InvalidStateError):
        session.advance_section()


def test_complete_before_start_abandons_attempt(ielts_sections):
    session = ExamSession(ielts_sections)
    session.complete()

    assert session.status is ExamState.COMPLETED
    assert session.section_time_spent == {}
    with pytest.raises(InvalidStateError):
        session.start()


def test_section_time_spent_is_recorded_on_leave():
    session = make_session(10, 10)
    session.start()
    for _ in range(4):
        session.tick()
    session.advance_section()
    session.tick()
    session.complete()

    assert session.section_time_spent == {"s0": 4, "s1": 1}


def test_snapshot_reports_state(ielts_sections):
    session = ExamSession(ielts_sections, catalog_code="ielts-academic")
    session.start()
    session.record_answer(("listening", 2), "D")

    snapshot = session.snapshot()

    assert snapshot.status is ExamState.RUNNING
    assert snapshot.catalog_code == "ielts-academic"
    assert snapshot.created_at == session.created_at
    assert snapshot.current_section_id == "listening"
    assert snapshot.total_remaining_display == "02:45:00"
    assert snapshot.section_remaining_display == "00:30:00"
    assert snapshot.answered_count == 1
    assert snapshot.answers[0].question_number == 2
    assert snapshot.answers[0].value == "D"
