"""
End-to-end scenarios across both repositories sharing one storage handle.
"""

import importlib.util
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from roster.core.exceptions import PersistenceFailure
from roster.models import Certificate, Student


def load_demo_module():
    """Import scripts/seed_demo.py without installing it."""
    path = Path(__file__).resolve().parents[2] / "scripts" / "seed_demo.py"
    spec = importlib.util.spec_from_file_location("seed_demo", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestCascades:
    """Tests for persistence cascading from student to certificates."""

    def test_cascade_insert(self, student_repo, certificate_repo, make_student):
        """Test saving a student stores every certificate it owns."""
        saved = student_repo.save(make_student(certificates=[("A", None), ("B", None), ("C", None)]))

        stored = certificate_repo.get_certificates_of_student(saved.id)

        assert [c.code for c in stored] == ["A", "B", "C"]

    def test_cascade_delete(self, student_repo, certificate_repo, make_student):
        """Test deleting a student deletes its certificates and nothing else."""
        gone = student_repo.save(make_student(name="Gone", certificates=[("A", None), ("B", None)]))
        kept = student_repo.save(make_student(name="Kept", certificates=[("C", None)]))

        student_repo.delete(gone.id)

        assert certificate_repo.get_certificates_of_student(gone.id) == []
        assert [c.code for c in certificate_repo.get_all()] == ["C"]
        assert certificate_repo.get_all()[0].student_id == kept.id

    def test_deleted_owner_certificates_not_found_by_id(
        self, student_repo, certificate_repo, make_student
    ):
        """Test a certificate id of a deleted student no longer resolves."""
        saved = student_repo.save(make_student(certificates=[("CERT001", None)]))
        old_cert_id = saved.certificates[0].id

        student_repo.delete(saved.id)

        assert certificate_repo.get_by_id(old_cert_id) is None


class TestAtomicity:
    """Tests for all-or-nothing writes."""

    def test_failed_save_writes_nothing(self, student_repo, certificate_repo):
        """
        Test a save failing on one certificate leaves no partial graph.

        Arrange: Student with one valid and one code-less certificate
        Act: Save the student
        Assert: PersistenceFailure raised, no student or certificate stored
        """
        # Arrange
        student = Student(name="Partial")
        student.add_certificate(Certificate(code="OK"))
        student.add_certificate(Certificate(code=None))

        # Act
        with pytest.raises(PersistenceFailure) as exc_info:
            student_repo.save(student)

        # Assert
        assert exc_info.value.is_transient is False
        assert student_repo.count() == 0
        assert certificate_repo.count() == 0

    def test_storage_usable_after_failure(self, student_repo, make_student):
        """Test a failed unit of work does not poison later ones."""
        bad = Student(name="Bad")
        bad.add_certificate(Certificate(code=None))
        with pytest.raises(PersistenceFailure):
            student_repo.save(bad)

        saved = student_repo.save(make_student())

        assert student_repo.get_by_id(saved.id) is not None


class TestUpdateIdempotence:
    """Tests for repeated merges."""

    def test_repeated_update_converges(self, student_repo, certificate_repo, make_student):
        """Test applying the same update many times stores one consistent graph."""
        saved = student_repo.save(make_student(certificates=[("A", None)]))
        saved.phone = "555-0142"

        for _ in range(3):
            student_repo.update(saved)

        assert student_repo.count() == 1
        assert certificate_repo.count() == 1
        assert student_repo.get_by_id(saved.id).phone == "555-0142"


class TestPagination:
    """Tests for full coverage through pages."""

    @pytest.mark.parametrize("page_size", [1, 3, 7, 10])
    def test_pages_partition_students(self, student_repo, make_student, page_size):
        """Test pages are disjoint and together list every student."""
        expected = [student_repo.save(make_student(name=f"S{i}")).id for i in range(7)]

        seen = []
        for page_number in range(student_repo.page_count(page_size)):
            seen.extend(s.id for s in student_repo.get_page(page_number, page_size))

        assert seen == expected


class TestScenario:
    """The canonical student lifecycle."""

    def test_alice_lifecycle(self, student_repo, certificate_repo):
        """
        Test save, read, update, query and delete of one student.

        Arrange: Alice with certificate CERT001
        Act/Assert: Walk the lifecycle checking storage at each step
        """
        # Arrange
        alice = Student(name="Alice Johnson", college="XYZ University", phone="555-0100")
        alice.add_certificate(Certificate(code="CERT001", link="https://example.com/cert001"))

        # Save
        student_repo.save(alice)
        assert alice.id is not None

        # Read
        loaded = student_repo.get_by_id(alice.id)
        assert loaded.name == "Alice Johnson"
        assert [c.code for c in loaded.certificates] == ["CERT001"]

        # Update
        loaded.phone = "555-0199"
        student_repo.update(loaded)
        assert student_repo.find_by_name("Alice Johnson").phone == "555-0199"

        # Query
        assert [s.id for s in student_repo.find_by_college("XYZ University")] == [alice.id]
        assert certificate_repo.find_by_code("CERT001").student_id == alice.id

        # Delete
        assert student_repo.delete(alice.id) is True
        assert student_repo.get_by_id(alice.id) is None
        assert certificate_repo.get_certificates_of_student(alice.id) == []

    def test_demo_script(self, storage, capsys):
        """Test the demo scenario runs end to end and reports the cascade."""
        demo = load_demo_module()

        demo.run_demo(storage, page_size=2)

        out = capsys.readouterr().out
        assert "Saved student 1 with 1 certificate(s)" in out
        assert "Updated phone: 555-0199" in out
        assert "Page 0: ['Alice Johnson']" in out
        assert "Certificates left for student 1: 0" in out
        assert "Student 1 after delete: None" in out


class TestConcurrentUse:
    """Tests for repositories sharing one handle across threads."""

    @pytest.fixture
    def file_storage(self, tmp_path):
        """Storage handle on a pooled file database."""
        from roster.core.config import Settings
        from roster.core.database import StorageHandle

        handle = StorageHandle(Settings(database_url=f"sqlite:///{tmp_path / 'roster.db'}"))
        yield handle
        handle.dispose()

    def test_parallel_saves_and_reads(self, file_storage):
        """
        Test concurrent repository calls each get their own unit of work.

        Arrange: Two repositories over one handle, four worker threads
        Act: Each worker saves five students with a certificate and reads them back
        Assert: Every student and certificate stored once, all ids distinct
        """
        # Arrange
        from roster.repositories import CertificateRepository, StudentRepository

        students = StudentRepository(file_storage)
        certificates = CertificateRepository(file_storage)

        def worker(worker_id):
            saved_ids = []
            for i in range(5):
                student = Student(name=f"W{worker_id}-{i}")
                student.add_certificate(Certificate(code=f"C{worker_id}-{i}"))
                saved = students.save(student)
                loaded = students.get_by_id(saved.id)
                assert loaded.name == f"W{worker_id}-{i}"
                assert [c.code for c in certificates.get_certificates_of_student(saved.id)] == [
                    f"C{worker_id}-{i}"
                ]
                saved_ids.append(saved.id)
            return saved_ids

        # Act
        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(worker, range(4)))

        # Assert
        all_ids = [student_id for ids in results for student_id in ids]
        assert len(set(all_ids)) == 20
        assert students.count() == 20
        assert certificates.count() == 20
