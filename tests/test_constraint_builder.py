from school_timetable.services.constraint_builder import ScheduleConstraint, build_constraints


def test_one_constraint_per_assignment(builder, repository):
    school = builder.school()
    math = builder.subject(school, "Mathematics")
    english = builder.subject(school, "English")
    teacher = builder.teacher(school, "Anita", [math])
    class_a = builder.school_class(school, "6", "A")
    class_b = builder.school_class(school, "6", "B")
    builder.assign(class_a, math, 5, teacher=teacher)
    builder.assign(class_a, english, 4)
    builder.assign(class_b, math, 3)

    constraints = build_constraints(repository, [class_a, class_b])

    assert constraints == [
        ScheduleConstraint(class_a.id, math.id, 5, frozenset({teacher.id})),
        ScheduleConstraint(class_a.id, english.id, 4, frozenset()),
        ScheduleConstraint(class_b.id, math.id, 3, frozenset()),
    ]


def test_nothing_is_filtered(builder, repository):
    school = builder.school()
    math = builder.subject(school, "Mathematics")
    school_class = builder.school_class(school)
    builder.assign(school_class, math, 0)
    builder.assign(school_class, 9999, 2)

    constraints = build_constraints(repository, [school_class])

    assert [(c.subject_id, c.periods_needed) for c in constraints] == [(math.id, 0), (9999, 2)]


def test_no_classes_no_constraints(repository):
    assert build_constraints(repository, []) == []
