"""
Certificate repository.

Certificates can be stored, read, updated and deleted on their own, but
every stored certificate keeps pointing at exactly one student.
"""

from typing import List, Optional

from sqlalchemy import select

from roster.core.exceptions import InvalidArgument
from roster.models.certificate import Certificate
from roster.repositories.base import BaseRepository


class CertificateRepository(BaseRepository[Certificate]):
    """Repository for Certificate data access."""

    model = Certificate
    entity_name = "certificate"

    def get_certificates_of_student(self, student_id: int) -> List[Certificate]:
        """
        Get all certificates whose owner is student_id.

        Returns:
            Certificates ordered by id; empty if the student has none or
            does not exist
        """
        self._check_id(student_id)
        stmt = (
            select(Certificate)
            .where(Certificate.student_id == student_id)
            .order_by(Certificate.id)
        )
        with self.storage.unit_of_work("certificate.of_student", read_only=True) as uow:
            return list(uow.session.execute(stmt).scalars().unique().all())

    def find_by_code(self, code: str) -> Optional[Certificate]:
        """
        Find the certificate with exactly this code.

        Raises:
            AmbiguousResult: If several certificates share the code
        """
        return self._find_unique("code", code)

    def _prepare_for_write(self, entity: Certificate) -> None:
        if entity.student is None and entity.student_id is None:
            raise InvalidArgument("A certificate must belong to a student")
        # Merge does not follow the back-reference, so the foreign key must be current
        if entity.student is not None and entity.student.id is not None:
            entity.student_id = entity.student.id

    def _delete_entity(self, session, entity: Certificate) -> None:
        # Keep the owner's collection in step before the row goes away
        if entity.student is not None:
            entity.student.remove_certificate(entity)
        session.delete(entity)
