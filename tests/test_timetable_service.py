import pytest

from conftest import TODAY, assert_hard_constraints
from school_timetable.models.models import DayOfWeek, ScheduleMetadata
from school_timetable.models.repository import TimetableRepository
from school_timetable.services.optimizer import ALL_CLEAR, ANALYSIS_FAILED
from school_timetable.services.timetable_service import (
    CLASS_NOT_FOUND, GENERATION_ERROR, MISSING_ROSTERS, NO_SCHOOL, NO_SCOPE, NOTHING_PLACED,
    VALIDATION_ERROR, TimetableService,
)
from school_timetable.services.versioning import current_week_range

WEEK = current_week_range(TODAY)


@pytest.fixture
def service(repository):
    return TimetableService(repository, seed=11, today=TODAY)


@pytest.fixture
def small_school(builder):
    school = builder.school()
    math = builder.subject(school, "Mathematics", "MATH")
    teacher = builder.teacher(school, "Anita", [math])
    school_class = builder.school_class(school, "6", "A")
    builder.assign(school_class, math, 3)
    return school, school_class, teacher, math


def test_generate_for_one_class(service, small_school):
    _, school_class, teacher, math = small_school

    result = service.generate_timetable(class_id=school_class.id)

    assert result.success
    assert result.message == "Timetable generated successfully with 3 entries."
    assert result.entries_created == 3
    assert result.version == "v0.1"

    entries = service.get_timetable(class_id=school_class.id)
    assert len(entries) == 3
    assert len({e.day for e in entries}) == 3
    assert {(e.teacher_id, e.subject_id) for e in entries} == {(teacher.id, math.id)}
    [version] = service.list_versions(school_class.id)
    assert version.is_active
    assert {e.version_id for e in entries} == {version.id}


def test_regeneration_replaces_active_entries(service, repository, small_school):
    _, school_class, _, _ = small_school

    service.generate_timetable(class_id=school_class.id)
    second = service.generate_timetable(class_id=school_class.id)

    assert second.version == "v0.2"
    versions = service.list_versions(school_class.id)
    assert [(v.version, v.is_active) for v in versions] == [("v0.1", False), ("v0.2", True)]
    assert {e.version_id for e in service.get_timetable(class_id=school_class.id)} == {versions[1].id}
    old_entries = service.get_timetable(version_id=versions[0].id)
    assert len(old_entries) == 3
    assert not any(e.is_active for e in old_entries)
    assert repository.count_active_versions(school_class.id, *WEEK) == 1


def test_nothing_placed_keeps_the_version(builder, service):
    school = builder.school()
    math = builder.subject(school, "Mathematics")
    english = builder.subject(school, "English")
    builder.teacher(school, "Ravi", [english])
    school_class = builder.school_class(school)
    builder.assign(school_class, math, 4)

    result = service.generate_timetable(class_id=school_class.id)

    assert not result.success
    assert result.message == NOTHING_PLACED
    assert result.entries_created == 0
    assert [v.version for v in service.list_versions(school_class.id)] == ["v0.1"]
    assert service.get_timetable(class_id=school_class.id) == []


def test_unknown_class(service):
    result = service.generate_timetable(class_id=404)

    assert (result.success, result.message) == (False, CLASS_NOT_FOUND)


def test_no_class_or_school(service):
    result = service.generate_timetable()

    assert (result.success, result.message) == (False, NO_SCOPE)


def test_class_without_school(builder, service):
    school_class = builder.school_class(None)

    result = service.generate_timetable(class_id=school_class.id)

    assert (result.success, result.message) == (False, NO_SCHOOL)
    assert service.list_versions(school_class.id) == []


def test_missing_teachers(builder, service):
    school = builder.school()
    math = builder.subject(school, "Mathematics")
    school_class = builder.school_class(school)
    builder.assign(school_class, math, 2)

    result = service.generate_timetable(class_id=school_class.id)

    assert (result.success, result.message) == (False, MISSING_ROSTERS)
    assert service.list_versions(school_class.id) == []


def test_school_without_classes(builder, service):
    school = builder.school()
    math = builder.subject(school, "Mathematics")
    builder.teacher(school, "Anita", [math])

    result = service.generate_timetable(school_id=school.id)

    assert (result.success, result.message) == (False, MISSING_ROSTERS)


def test_generate_whole_school(builder, service):
    school = builder.school()
    math = builder.subject(school, "Mathematics")
    english = builder.subject(school, "English")
    teachers = [
        builder.teacher(school, "Anita", [math]),
        builder.teacher(school, "Ravi", [math]),
        builder.teacher(school, "Meera", [english]),
        builder.teacher(school, "John", [english], availability={"friday": ["08:00-08:45"]}),
    ]
    classes = [builder.school_class(school, "6", section) for section in "ABC"]
    for school_class in classes:
        builder.assign(school_class, math, 4)
        builder.assign(school_class, english, 3)

    result = service.generate_timetable(school_id=school.id)

    assert result.success
    assert result.entries_created == 21
    entries = service.get_timetable(school_id=school.id)
    assert_hard_constraints(entries)
    assert {e.teacher_id for e in entries} <= {t.id for t in teachers}
    for entry in entries:
        if entry.teacher_id == teachers[3].id and entry.day == DayOfWeek.FRIDAY:
            assert entry.start_time == "08:00"
    assert service.validate_timetable(school.id).is_valid
    for school_class in classes:
        assert len(service.list_versions(school_class.id)) == 1


def test_school_structure_is_respected(builder, service):
    school = builder.school()
    math = builder.subject(school, "Mathematics")
    builder.teacher(school, "Anita", [math])
    school_class = builder.school_class(school)
    builder.assign(school_class, math, 3)
    builder.structure(school, ["saturday"], [
        {"period": 1, "start_time": "09:00", "end_time": "09:40"},
        {"period": 2, "start_time": "09:40", "end_time": "10:00", "is_break": True},
        {"period": 3, "start_time": "10:00", "end_time": "10:40"},
    ])

    result = service.generate_timetable(class_id=school_class.id)

    assert result.entries_created == 2
    entries = service.get_timetable(class_id=school_class.id)
    assert sorted((e.day, e.period, e.start_time) for e in entries) == [
        (DayOfWeek.SATURDAY, 1, "09:00"), (DayOfWeek.SATURDAY, 3, "10:00"),
    ]
    assert not service.validate_timetable(school.id).is_valid


def test_generation_run_is_recorded(db, service, small_school):
    school, school_class, _, _ = small_school

    service.generate_timetable(class_id=school_class.id)

    [run] = db.query(ScheduleMetadata).all()
    assert run.school_id == school.id
    assert run.class_id == school_class.id
    assert run.generation_seed == 11
    assert run.success
    assert run.entries_created == 3
    assert run.shortfall_count == 0


def test_shortfalls_are_noted_on_the_run(db, builder, service):
    school = builder.school()
    math = builder.subject(school, "Mathematics")
    builder.teacher(school, "Anita", [math])
    school_class = builder.school_class(school)
    builder.assign(school_class, math, 12)

    result = service.generate_timetable(class_id=school_class.id)

    assert result.success
    assert result.entries_created == 10
    [run] = db.query(ScheduleMetadata).all()
    assert run.shortfall_count == 1
    assert "10/12" in run.notes


def test_same_seed_same_timetable(repository, small_school):
    _, school_class, _, _ = small_school

    TimetableService(repository, seed=5, today=TODAY).generate_timetable(class_id=school_class.id)
    first = [(e.day, e.period) for e in repository.get_timetable_for_class(school_class.id)]
    TimetableService(repository, seed=5, today=TODAY).generate_timetable(class_id=school_class.id)
    second = [(e.day, e.period) for e in repository.get_timetable_for_class(school_class.id)]

    assert first == second


def test_detailed_timetable(service, small_school):
    _, school_class, _, _ = small_school
    service.generate_timetable(class_id=school_class.id)

    detailed = service.get_detailed_timetable(class_id=school_class.id)

    assert len(detailed) == 3
    assert {(d.teacher_name, d.subject_name, d.subject_code, d.class_label) for d in detailed} == {
        ("Anita", "Mathematics", "MATH", "6-A")
    }


def test_activate_previous_version(service, small_school):
    _, school_class, _, _ = small_school
    service.generate_timetable(class_id=school_class.id)
    service.generate_timetable(class_id=school_class.id)
    first = service.list_versions(school_class.id)[0]

    service.activate_version(first.id, school_class.id)

    assert [v.is_active for v in service.list_versions(school_class.id)] == [True, False]


def test_validate_and_suggest_on_fresh_timetable(service, small_school):
    school, school_class, _, _ = small_school
    service.generate_timetable(class_id=school_class.id)

    validation = service.validate_timetable(school.id)

    assert validation.is_valid
    assert validation.conflicts == []
    assert service.suggest_optimizations(school.id) in ([ALL_CLEAR], [
        "Consider moving some subjects to morning hours for better student engagement."
    ])


class BrokenRepository:
    def __getattr__(self, name):
        if name == "rollback":
            return lambda: None
        error = RuntimeError(f"database down in {name}")

        def fail(*args, **kwargs):
            raise error
        return fail


def test_errors_become_failure_results():
    service = TimetableService(BrokenRepository(), seed=1, today=TODAY)

    assert service.generate_timetable(class_id=1).message == GENERATION_ERROR
    validation = service.validate_timetable()
    assert (validation.is_valid, validation.conflicts) == (False, [VALIDATION_ERROR])
    assert service.suggest_optimizations() == [ANALYSIS_FAILED]


def test_classes_generated_one_at_a_time_share_no_teacher_slot(builder, service):
    school = builder.school()
    math = builder.subject(school, "Mathematics")
    builder.teacher(school, "Anita", [math])
    class_a = builder.school_class(school, "6", "A")
    class_b = builder.school_class(school, "6", "B")
    builder.assign(class_a, math, 10)
    builder.assign(class_b, math, 10)

    assert service.generate_timetable(class_id=class_a.id).entries_created == 10
    assert service.generate_timetable(class_id=class_b.id).entries_created == 10
    assert service.generate_timetable(class_id=class_a.id).entries_created == 10

    entries = service.get_timetable(school_id=school.id)
    assert len(entries) == 20
    assert len({(e.teacher_id, e.day, e.period) for e in entries}) == 20
    validation = service.validate_timetable(school.id)
    assert (validation.is_valid, validation.conflicts) == (True, [])


class FailingEntriesRepository(TimetableRepository):
    def bulk_create_timetable_entries(self, entries):
        raise RuntimeError("disk full")


def test_failed_run_leaves_no_new_versions(builder, db, service):
    school = builder.school()
    math = builder.subject(school, "Mathematics")
    builder.teacher(school, "Anita", [math])
    classes = [builder.school_class(school, "6", section) for section in "AB"]
    for school_class in classes:
        builder.assign(school_class, math, 3)
    service.generate_timetable(school_id=school.id)

    failing = TimetableService(FailingEntriesRepository(db), seed=3, today=TODAY)
    result = failing.generate_timetable(school_id=school.id)

    assert (result.success, result.message) == (False, GENERATION_ERROR)
    for school_class in classes:
        assert [(v.version, v.is_active) for v in service.list_versions(school_class.id)] == [("v0.1", True)]
        entries = service.get_timetable(class_id=school_class.id)
        assert len(entries) == 3
        assert {e.version_id for e in entries} == {service.list_versions(school_class.id)[0].id}
    assert db.query(ScheduleMetadata).count() == 1


def test_detailed_timetable_names_teachers_who_have_left(builder, db, service, small_school):
    _, school_class, teacher, _ = small_school
    service.generate_timetable(class_id=school_class.id)
    [version] = service.list_versions(school_class.id)
    teacher.is_active = False
    db.commit()

    detailed = service.get_detailed_timetable(version_id=version.id)

    assert {d.teacher_name for d in detailed} == {"Anita"}


def test_malformed_seed_setting_is_ignored(monkeypatch, repository, small_school):
    _, school_class, _, _ = small_school
    monkeypatch.setenv("SCHEDULER_SEED", "not-a-number")

    service = TimetableService(repository, today=TODAY)
    result = service.generate_timetable(class_id=school_class.id)

    assert service.seed is None
    assert result.success
