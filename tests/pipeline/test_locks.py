"""Tests for per-dataset locks."""

import threading

from tabload.pipeline import DatasetLocks


class TestDatasetLocks:
    def test_locks_are_released(self):
        locks = DatasetLocks()
        with locks.hold("a"):
            assert len(locks) == 1
        assert len(locks) == 0

    def test_same_dataset_is_exclusive(self):
        locks = DatasetLocks()
        entered = threading.Event()

        def contender():
            with locks.hold("a"):
                entered.set()

        with locks.hold("a"):
            thread = threading.Thread(target=contender)
            thread.start()
            assert not entered.wait(0.2)

        thread.join(timeout=5)
        assert entered.is_set()
        assert len(locks) == 0

    def test_other_datasets_do_not_wait(self):
        locks = DatasetLocks()
        entered = threading.Event()

        def other():
            with locks.hold("b"):
                entered.set()

        with locks.hold("a"):
            thread = threading.Thread(target=other)
            thread.start()
            assert entered.wait(5)
        thread.join(timeout=5)

    def test_release_on_error(self):
        locks = DatasetLocks()
        try:
            with locks.hold("a"):
                raise RuntimeError("stage crashed")
        except RuntimeError:
            pass
        assert len(locks) == 0
