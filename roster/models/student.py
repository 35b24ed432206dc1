"""
Student model: the aggregate root.

A student owns its certificates. Saving, merging and deleting a student
cascades to the certificates in its collection, and a certificate removed
from the collection is deleted from storage (orphan removal).
"""

from sqlalchemy import Boolean, Column, String, Index, true
from sqlalchemy.orm import relationship

from roster.models.base import Base, IdentityMixin, ModelMixin


class Student(Base, IdentityMixin, ModelMixin):
    """
    Student record.

    Attributes:
        id: Storage-assigned integer identity
        name: Display name (unique by convention, not by constraint)
        college: Affiliation label
        phone: Contact string
        is_active: Active flag, True unless set otherwise
        certificates: Certificates owned by this student
    """

    __tablename__ = "students"

    name = Column(
        String(255),
        nullable=True,
        doc="Student display name"
    )

    college = Column(
        String(255),
        nullable=True,
        doc="College or other affiliation"
    )

    phone = Column(
        String(64),
        nullable=True,
        doc="Contact phone number"
    )

    is_active = Column(
        Boolean,
        nullable=False,
        default=True,
        server_default=true(),
        doc="Whether the student record is active"
    )

    # Relationships
    certificates = relationship(
        "Certificate",
        back_populates="student",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Certificate.id",
    )

    # Indexes
    __table_args__ = (
        Index("idx_students_name", "name"),
        Index("idx_students_college", "college"),
    )

    def __init__(self, **kwargs):
        kwargs.setdefault("is_active", True)
        super().__init__(**kwargs)

    def add_certificate(self, certificate) -> None:
        """
        Attach a certificate to this student.

        Both sides are updated: the certificate joins this collection and
        its back-reference points here. A certificate owned by another
        student is moved, not copied.
        """
        previous = certificate.student
        if previous is not None and previous is not self:
            previous.remove_certificate(certificate)
        if certificate not in self.certificates:
            self.certificates.append(certificate)
        certificate.student = self

    def remove_certificate(self, certificate) -> None:
        """
        Detach a certificate from this student.

        Once flushed, the detached certificate is deleted from storage.
        """
        if certificate in self.certificates:
            self.certificates.remove(certificate)
        if certificate.student is self:
            certificate.student = None
