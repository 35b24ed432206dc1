"""
Pytest configuration and shared fixtures.

This module provides:
- Environment variable setup for tests
- A fresh in-memory storage handle per test
- Repository fixtures bound to that handle
"""

import os

import pytest


# Set test environment variables BEFORE any imports
# This must happen first to ensure settings load with test values
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SCHEMA_POLICY"] = "create"
os.environ["ECHO_SQL"] = "false"
os.environ["LOG_JSON"] = "true"


@pytest.fixture
def test_settings():
    """
    Provide storage settings for an isolated in-memory database.

    Returns:
        Settings: In-memory SQLite settings with create-if-missing schema
    """
    from roster.core.config import Settings

    return Settings(database_url="sqlite:///:memory:", schema_policy="create")


@pytest.fixture
def storage(test_settings):
    """
    Provide a storage handle backed by its own in-memory database.

    Disposes pooled connections after the test.
    """
    from roster.core.database import StorageHandle

    handle = StorageHandle(test_settings)
    yield handle
    handle.dispose()


@pytest.fixture
def student_repo(storage):
    """Provide a StudentRepository bound to the test storage handle."""
    from roster.repositories import StudentRepository

    return StudentRepository(storage)


@pytest.fixture
def certificate_repo(storage):
    """Provide a CertificateRepository bound to the test storage handle."""
    from roster.repositories import CertificateRepository

    return CertificateRepository(storage)


@pytest.fixture
def make_student():
    """
    Factory for unsaved students with certificates.

    Example:
        student = make_student("Alice Johnson", certificates=[("CERT001", "https://x")])
    """
    from roster.models import Certificate, Student

    def _make(name="Alice Johnson", college="XYZ University", phone="555-0100", certificates=()):
        student = Student(name=name, college=college, phone=phone)
        for code, link in certificates:
            student.add_certificate(Certificate(code=code, link=link))
        return student

    return _make
