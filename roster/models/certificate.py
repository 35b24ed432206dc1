"""
Certificate model: a dependent record owned by exactly one student.
"""

from sqlalchemy import Column, ForeignKey, Integer, String, Text, Index
from sqlalchemy.orm import relationship

from roster.models.base import Base, IdentityMixin, ModelMixin


class Certificate(Base, IdentityMixin, ModelMixin):
    """
    Certificate earned by a student.

    Attributes:
        id: Storage-assigned integer identity
        code: External-facing certificate code
        link: Reference URL for the certificate
        student_id: Foreign key to Student (required)
        student: Owning student
    """

    __tablename__ = "certificates"

    code = Column(
        String(128),
        nullable=False,
        doc="External-facing certificate code"
    )

    link = Column(
        Text,
        nullable=True,
        doc="Reference URL for the certificate"
    )

    student_id = Column(
        Integer,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        doc="Foreign key to Student"
    )

    # Relationships
    student = relationship(
        "Student",
        back_populates="certificates",
        cascade="save-update",
        lazy="immediate",  # Resolved from the identity map when reached from its student
    )

    __table_args__ = (
        Index("idx_certificates_student", "student_id"),
        Index("idx_certificates_code", "code"),
    )
