"""Tests for concurrent use of one engine from several threads.

The HTTP server shares one service across its worker threads, so calls
must be serialized without losing or duplicating writes.
"""
import threading
from typing import List

from foucault.exceptions import DuplicateNameError


def run_threads(count: int, target) -> List[Exception]:
    errors: List[Exception] = []
    lock = threading.Lock()

    def worker(index: int):
        try:
            target(index)
        except Exception as e:
            with lock:
                errors.append(e)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return errors


class TestConcurrentAccess:
    """Tests for concurrent access patterns."""

    def test_concurrent_creates(self, service):
        """Notes created from many threads all land with distinct IDs."""
        ids = []
        errors = run_threads(10, lambda i: ids.append(
            service.create_note(f"Note {i}", f"see [[Note {(i + 1) % 10}]]")
        ))
        assert errors == []
        assert len(set(ids)) == 10
        assert len(service.list_notes()) == 10
        for i in range(10):
            assert [s.name for s in service.backlinks_of(f"Note {i}")] == [f"Note {(i - 1) % 10}"]

    def test_same_name_created_once(self, service):
        """Racing creates of one name yield one note and DuplicateName for the rest."""
        errors = run_threads(8, lambda i: service.create_note("Contested", str(i)))
        assert len(errors) == 7
        assert all(isinstance(e, DuplicateNameError) for e in errors)
        assert [s.name for s in service.list_notes()] == ["Contested"]

    def test_concurrent_updates_keep_links_consistent(self, service):
        """The final link set matches the final body whichever write wins."""
        note_id = service.create_note("Hub")
        errors = run_threads(6, lambda i: service.update_note(note_id, f"[[Target {i}]]"))
        assert errors == []
        body = service.read_note(note_id).body
        assert service.outgoing_links(note_id) == [body[2:-2]]
