"""
Run the student/certificate demo scenario against the configured database.

Creates a student with one certificate, reads it back, lists students
page by page, deletes the student and shows that its certificates went
with it.

Usage:
    python scripts/seed_demo.py [--page-size N] [--echo-sql]
"""

import argparse
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from roster.core.config import Settings
from roster.core.database import StorageHandle
from roster.core.logging_config import setup_logging
from roster.models import Certificate, Student
from roster.repositories import CertificateRepository, StudentRepository


def run_demo(storage: StorageHandle, page_size: int = 5) -> None:
    """
    Run the demo scenario, printing each step.

    Args:
        storage: Storage handle to run against
        page_size: Page size used when listing students
    """
    students = StudentRepository(storage)
    certificates = CertificateRepository(storage)

    student = Student(name="Alice Johnson", college="XYZ University", phone="555-0100")
    student.add_certificate(Certificate(code="CERT001", link="https://example.com/cert001"))
    students.save(student)
    print(f"Saved student {student.id} with {len(student.certificates)} certificate(s)")

    loaded = students.get_by_id(student.id)
    print(f"Loaded: {loaded.to_dict()}")
    for certificate in loaded.certificates:
        print(f"  certificate: {certificate.to_dict()}")

    loaded.phone = "555-0199"
    students.update(loaded)
    print(f"Updated phone: {students.get_by_id(student.id).phone}")

    for page_number in range(students.page_count(page_size)):
        page = students.get_page(page_number, page_size)
        print(f"Page {page_number}: {[s.name for s in page]}")

    print(f"Students at XYZ University: {len(students.find_by_college('XYZ University'))}")

    students.delete(student.id)
    remaining = certificates.get_certificates_of_student(student.id)
    print(f"Certificates left for student {student.id}: {len(remaining)}")
    print(f"Student {student.id} after delete: {students.get_by_id(student.id)}")


def main():
    parser = argparse.ArgumentParser(description="Run the roster demo scenario")
    parser.add_argument("--page-size", type=int, default=5, help="Students per page")
    parser.add_argument("--echo-sql", action="store_true", help="Log emitted SQL")
    args = parser.parse_args()

    config = Settings(echo_sql=True) if args.echo_sql else Settings()
    setup_logging(level=config.log_level, json_format=config.log_json, echo_sql=config.echo_sql)

    storage = StorageHandle(config)
    try:
        run_demo(storage, page_size=args.page_size)
    finally:
        storage.dispose()


if __name__ == "__main__":
    main()
