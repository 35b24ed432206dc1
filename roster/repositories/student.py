"""
Student repository: CRUD, pagination and queries for the aggregate root.

Also addresses a student's certificates, since certificates are owned
through the student's collection.
"""

import logging
import math
from typing import List, Optional

from sqlalchemy import select

from roster.core.exceptions import InvalidArgument
from roster.core.logging_config import log_with_context
from roster.models.certificate import Certificate
from roster.models.student import Student
from roster.repositories.base import BaseRepository
from roster.repositories.certificate import CertificateRepository

logger = logging.getLogger(__name__)

# Page numbers are zero-based throughout the API
FIRST_PAGE = 0


class StudentRepository(BaseRepository[Student]):
    """
    Repository for Student data access.

    Saving or deleting a student cascades to its certificates, and
    certificates dropped from a student's collection are deleted.

    Attributes:
        storage: Storage handle every unit of work comes from
    """

    model = Student
    entity_name = "student"

    def get_page(self, page_number: int, page_size: int) -> List[Student]:
        """
        Get one page of students ordered by id.

        Args:
            page_number: Zero-based page index
            page_size: Maximum number of students per page (> 0)

        Returns:
            Up to page_size students; empty past the last page

        Raises:
            InvalidArgument: If page_size <= 0 or page_number < 0

        Example:
            >>> [s.id for s in repo.get_page(1, 2)]
            [3, 4]
        """
        offset, limit = page_bounds(page_number, page_size)
        stmt = select(Student).order_by(Student.id).offset(offset).limit(limit)
        with self.storage.unit_of_work("student.get_page", read_only=True) as uow:
            return list(uow.session.execute(stmt).scalars().unique().all())

    def page_count(self, page_size: int) -> int:
        """
        Number of pages needed to list every student.

        Raises:
            InvalidArgument: If page_size <= 0
        """
        page_bounds(FIRST_PAGE, page_size)
        return math.ceil(self.count() / page_size)

    def find_by_name(self, name: str) -> Optional[Student]:
        """
        Find the student with exactly this name.

        Names are unique by convention only; duplicates are reported
        rather than resolved.

        Returns:
            The student, or None if no student has this name

        Raises:
            AmbiguousResult: If several students share the name
        """
        return self._find_unique("name", name)

    def find_by_college(self, college: str) -> List[Student]:
        """Find all students affiliated with a college."""
        return self.find_by("college", college)

    def get_certificates(self, student_id: int) -> List[Certificate]:
        """
        Get the certificates owned by a student.

        Delegates to CertificateRepository.get_certificates_of_student.

        Returns:
            Certificates ordered by id; empty if the student has none or
            does not exist
        """
        return CertificateRepository(self.storage).get_certificates_of_student(student_id)

    def add_certificate(self, student_id: int, certificate: Certificate) -> Optional[Certificate]:
        """
        Attach a new certificate to a stored student.

        Returns:
            The stored certificate, or None if the student does not exist
        """
        self._check_id(student_id)
        if not isinstance(certificate, Certificate):
            raise InvalidArgument(f"Expected a Certificate, got {type(certificate).__name__}")

        with self.storage.unit_of_work("student.add_certificate") as uow:
            student = uow.session.get(Student, student_id)
            if student is None:
                return None
            if certificate.id is not None:
                certificate = uow.session.merge(certificate)
            student.add_certificate(certificate)
            uow.session.flush()

        log_with_context(
            logger, "info", "Certificate attached to student",
            operation="add_certificate", entity="certificate", entity_id=certificate.id,
            student_id=student_id
        )
        return certificate

    def remove_certificate(self, student_id: int, certificate_id: int) -> bool:
        """
        Detach a certificate from a student, deleting it (orphan removal).

        Returns:
            True if the certificate belonged to the student and was removed
        """
        self._check_id(student_id)
        self._check_id(certificate_id)

        with self.storage.unit_of_work("student.remove_certificate") as uow:
            student = uow.session.get(Student, student_id)
            certificate = None
            if student is not None:
                certificate = next(
                    (c for c in student.certificates if c.id == certificate_id), None
                )
            if certificate is not None:
                student.remove_certificate(certificate)

        removed = certificate is not None
        log_with_context(
            logger, "info",
            "Certificate removed from student" if removed else "Certificate not owned by student",
            operation="remove_certificate", entity="certificate", entity_id=certificate_id,
            student_id=student_id
        )
        return removed


def page_bounds(page_number: int, page_size: int) -> tuple:
    """
    Translate a zero-based page request into (offset, limit).

    Raises:
        InvalidArgument: If page_size <= 0 or page_number is before the first page
    """
    if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size <= 0:
        raise InvalidArgument(f"page_size must be a positive integer, got {page_size!r}")
    if isinstance(page_number, bool) or not isinstance(page_number, int) or page_number < FIRST_PAGE:
        raise InvalidArgument(
            f"page_number must be an integer >= {FIRST_PAGE}, got {page_number!r}"
        )
    return (page_number - FIRST_PAGE) * page_size, page_size
