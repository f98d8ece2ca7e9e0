"""
Seed data script to populate the database with a sample school.
Run this before generating a timetable.
"""

from school_timetable.config import configure_logging
from school_timetable.models.database import SessionLocal, init_db
from school_timetable.models.models import (
    ClassSubjectAssignment, School, SchoolClass, Subject, Teacher, TimetableStructure
)
from school_timetable.schemas.schemas import TimetableStructureConfig


STRUCTURE = TimetableStructureConfig(
    working_days=["monday", "tuesday", "wednesday", "thursday", "friday"],
    time_slots=[
        {"period": 1, "start_time": "08:00", "end_time": "08:45"},
        {"period": 2, "start_time": "08:45", "end_time": "09:30"},
        {"period": 3, "start_time": "09:30", "end_time": "10:15"},
        {"period": 4, "start_time": "10:15", "end_time": "11:00"},
        {"period": 0, "start_time": "11:00", "end_time": "11:15", "is_break": True},
        {"period": 5, "start_time": "11:15", "end_time": "12:00"},
        {"period": 6, "start_time": "12:00", "end_time": "12:45"},
        {"period": 7, "start_time": "12:45", "end_time": "13:30"},
        {"period": 8, "start_time": "13:30", "end_time": "14:15"},
    ],
)


def seed_database():
    """Populate database with sample data."""

    # Initialize tables
    init_db()

    db = SessionLocal()

    try:
        # Check if data already exists
        if db.query(School).count() > 0:
            print("Database already seeded. Skipping...")
            return

        school = School(name="Greenfield Public School")
        db.add(school)
        db.flush()

        db.add(TimetableStructure(
            school_id=school.id,
            periods_per_day=8,
            **STRUCTURE.model_dump(mode="json"),
        ))

        # Create Subjects
        subjects_data = [
            ("MATH", "Mathematics", 6),
            ("ENG", "English", 5),
            ("SCI", "Science", 5),
            ("SST", "Social Studies", 4),
            ("HIN", "Hindi", 4),
            ("CS", "Computer Science", 2),
        ]

        subjects = {}
        for code, name, per_week in subjects_data:
            subject = Subject(school_id=school.id, code=code, name=name, periods_per_week=per_week)
            db.add(subject)
            subjects[code] = subject

        db.flush()

        # Create Teachers
        teachers_data = [
            ("Anita Rao", ["MATH"], {}),
            ("Kabir Mehta", ["MATH", "SCI"], {}),
            ("Leela Thomas", ["ENG"], {}),
            ("Farhan Ali", ["SCI"], {"friday": ["08:00-08:45", "08:45-09:30", "09:30-10:15"]}),
            ("Meera Iyer", ["SST", "HIN"], {}),
            ("Rohan Das", ["HIN", "ENG"], {}),
            ("Sara Joseph", ["CS", "MATH"], {"monday": ["11:15-12:00", "12:00-12:45"]}),
        ]

        teachers = {}
        for name, codes, availability in teachers_data:
            teacher = Teacher(
                school_id=school.id,
                name=name,
                subjects=[subjects[code].id for code in codes],
                availability=availability,
            )
            db.add(teacher)
            teachers[name] = teacher

        db.flush()

        # Create Classes with their weekly subject load
        for grade, section in [("6", "A"), ("6", "B"), ("7", "A")]:
            school_class = SchoolClass(school_id=school.id, grade=grade, section=section, student_count=35)
            db.add(school_class)
            db.flush()

            for code, subject in subjects.items():
                assigned = teachers["Leela Thomas"] if code == "ENG" and section == "A" else None
                db.add(ClassSubjectAssignment(
                    class_id=school_class.id,
                    subject_id=subject.id,
                    weekly_frequency=subject.periods_per_week,
                    assigned_teacher_id=assigned.id if assigned else None,
                ))

        # Commit all changes
        db.commit()
        print("Database seeded successfully!")
        print(f"  - school id {school.id}: {school.name}")
        print(f"  - {db.query(SchoolClass).count()} classes created")
        print(f"  - {db.query(Teacher).count()} teachers created")
        print(f"  - {db.query(Subject).count()} subjects created")
        print(f"  - {db.query(ClassSubjectAssignment).count()} class-subject assignments created")

    except Exception as e:
        db.rollback()
        print(f"Error seeding database: {str(e)}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    configure_logging()
    seed_database()
