"""Unit tests for the readers-writer lock."""

import threading
import time

import pytest

from ragcore.infrastructure.locks import ReadWriteLock


@pytest.mark.unit
class TestReadWriteLock:
    def test_readers_share_the_lock(self):
        lock = ReadWriteLock()
        inside = threading.Barrier(3, timeout=2)

        def reader():
            with lock.read():
                inside.wait()

        threads = [threading.Thread(target=reader) for _ in range(3)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert not inside.broken

    def test_writer_is_exclusive(self):
        lock = ReadWriteLock()
        events = []

        def writer():
            with lock.write():
                events.append("write-start")
                time.sleep(0.05)
                events.append("write-end")

        def reader():
            time.sleep(0.01)
            with lock.read():
                events.append("read")

        threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert events == ["write-start", "write-end", "read"]
