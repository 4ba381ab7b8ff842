"""
FileWatcher tests.

Exercises the tail thread against real files in a temporary directory:
appends, initial absence, truncation, rotation, partial lines and the
stop/cleanup lifecycle.
"""

import os
import tempfile
import time
import unittest

from logvalidator import (
    FileWatcher,
    ShutdownRaceError,
    WatcherInitError,
    WatcherState,
)

from helpers import Collector, append, wait_for

POLL = 0.02


class WatcherTestCase(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = os.path.join(self._tmp.name, "app.log")

    def watch(self, path=None, **kwargs):
        kwargs.setdefault("poll_interval", POLL)
        watcher = FileWatcher(path or self.path, **kwargs)
        self.addCleanup(self._shutdown, watcher)
        return watcher

    @staticmethod
    def _shutdown(watcher):
        try:
            watcher.stop()
        except ShutdownRaceError:
            pass
        finally:
            watcher.cleanup()

    def touch(self, content=""):
        with open(self.path, "w") as f:
            f.write(content)


class TestConstruction(WatcherTestCase):

    def test_empty_path(self):
        with self.assertRaises(WatcherInitError):
            FileWatcher("")

    def test_directory(self):
        with self.assertRaises(WatcherInitError) as ctx:
            FileWatcher(self._tmp.name)
        self.assertEqual(ctx.exception.path, self._tmp.name)

    def test_bad_poll_interval(self):
        with self.assertRaises(WatcherInitError):
            FileWatcher(self.path, poll_interval=0)

    def test_bad_max_line_bytes(self):
        with self.assertRaises(WatcherInitError):
            FileWatcher(self.path, max_line_bytes=0)

    def test_must_exist(self):
        with self.assertRaises(WatcherInitError):
            FileWatcher(self.path, must_exist=True)

    def test_missing_file_tolerated(self):
        watcher = FileWatcher(self.path)
        self.assertEqual(watcher.state, WatcherState.NOT_STARTED)
        self.assertEqual(watcher.filename, self.path)


class TestTailing(WatcherTestCase):

    def test_appended_lines_in_order(self):
        self.touch("old line\n")
        watcher = self.watch()
        watcher.start()
        self.assertEqual(watcher.state, WatcherState.WATCHING)
        c = Collector(watcher)

        expected = [f"line {i}" for i in range(50)]
        append(self.path, *expected)
        self.assertTrue(wait_for(lambda: len(c.texts()) >= 50))
        self.assertEqual(c.texts(), expected)

    def test_start_from_beginning(self):
        self.touch("first\nsecond\n")
        watcher = self.watch(start_at_end=False)
        watcher.start()
        c = Collector(watcher)
        self.assertTrue(wait_for(lambda: len(c.texts()) >= 2))
        self.assertEqual(c.texts(), ["first", "second"])

    def test_blank_lines_are_delivered(self):
        self.touch()
        watcher = self.watch()
        watcher.start()
        c = Collector(watcher)
        append(self.path, "a", "", "b")
        self.assertTrue(wait_for(lambda: len(c.texts()) >= 3))
        self.assertEqual(c.texts(), ["a", "", "b"])

    def test_partial_line_waits_for_newline(self):
        self.touch()
        watcher = self.watch()
        watcher.start()
        c = Collector(watcher)

        with open(self.path, "a") as f:
            f.write("half a li")
        time.sleep(POLL * 10)
        self.assertEqual(c.texts(), [])

        with open(self.path, "a") as f:
            f.write("ne\n")
        self.assertTrue(wait_for(lambda: c.texts() == ["half a line"]))

    def test_max_line_bytes_splits_long_lines(self):
        self.touch()
        watcher = self.watch(max_line_bytes=4)
        watcher.start()
        c = Collector(watcher)
        append(self.path, "abcdefghij")
        self.assertTrue(wait_for(lambda: len(c.texts()) >= 3))
        self.assertEqual(c.texts(), ["abcd", "efgh", "ij"])

    def test_file_created_later(self):
        watcher = self.watch()
        watcher.start()
        c = Collector(watcher)
        self.assertTrue(wait_for(lambda: watcher.state == WatcherState.REOPENING))

        append(self.path, "created", "later")
        self.assertTrue(wait_for(lambda: len(c.texts()) >= 2))
        self.assertEqual(c.texts(), ["created", "later"])
        self.assertEqual(watcher.state, WatcherState.WATCHING)


class TestRotation(WatcherTestCase):

    def test_truncate_and_rewrite(self):
        self.touch()
        watcher = self.watch()
        watcher.start()
        c = Collector(watcher)

        append(self.path, "before 1", "before 2", "before 3")
        self.assertTrue(wait_for(lambda: len(c.texts()) >= 3))

        with open(self.path, "w") as f:
            f.write("after\n")
        self.assertTrue(wait_for(lambda: len(c.texts()) >= 4))
        time.sleep(POLL * 5)
        self.assertEqual(c.texts(), ["before 1", "before 2", "before 3", "after"])

    def test_rename_and_recreate(self):
        self.touch()
        watcher = self.watch()
        watcher.start()
        c = Collector(watcher)

        append(self.path, "old 1", "old 2")
        self.assertTrue(wait_for(lambda: len(c.texts()) >= 2))

        os.rename(self.path, self.path + ".1")
        append(self.path, "new 1", "new 2")
        self.assertTrue(wait_for(lambda: len(c.texts()) >= 4))
        time.sleep(POLL * 5)
        self.assertEqual(c.texts(), ["old 1", "old 2", "new 1", "new 2"])

    def test_rewrite_past_offset_within_one_poll(self):
        self.touch()
        watcher = self.watch(poll_interval=0.5)
        watcher.start()
        c = Collector(watcher)

        append(self.path, "short 1", "short 2")
        self.assertTrue(wait_for(lambda: len(c.texts()) >= 2))

        with open(self.path, "w") as f:
            f.write("rewritten line number one\nrewritten line two\n")
        self.assertTrue(wait_for(lambda: len(c.texts()) >= 4))
        time.sleep(1.0)
        self.assertEqual(c.texts(), [
            "short 1",
            "short 2",
            "rewritten line number one",
            "rewritten line two",
        ])

    def test_same_size_rewrite_beyond_head(self):
        prefix = "x" * 1100
        self.touch()
        watcher = self.watch(poll_interval=0.2)
        watcher.start()
        c = Collector(watcher)

        append(self.path, prefix, "old")
        self.assertTrue(wait_for(lambda: len(c.texts()) >= 2))
        time.sleep(0.05)

        with open(self.path, "w") as f:
            f.write(prefix + "\nnew\n")
        self.assertTrue(wait_for(lambda: len(c.texts()) >= 4))
        time.sleep(0.5)
        self.assertEqual(c.texts(), [prefix, "old", prefix, "new"])

    def test_delete_then_recreate(self):
        self.touch()
        watcher = self.watch()
        watcher.start()
        c = Collector(watcher)

        append(self.path, "one")
        self.assertTrue(wait_for(lambda: c.texts() == ["one"]))

        os.remove(self.path)
        self.assertTrue(wait_for(lambda: watcher.state == WatcherState.REOPENING))
        append(self.path, "two")
        self.assertTrue(wait_for(lambda: c.texts() == ["one", "two"]))
        self.assertEqual(watcher.state, WatcherState.WATCHING)


class TestLifecycle(WatcherTestCase):

    def test_no_reopen_ends_on_delete(self):
        self.touch()
        watcher = self.watch(reopen=False)
        watcher.start()
        c = Collector(watcher)

        append(self.path, "last words")
        os.remove(self.path)
        self.assertTrue(c.finished())
        self.assertEqual(c.texts(), ["last words"])
        self.assertEqual(watcher.state, WatcherState.STOPPED)
        watcher.stop()

    def test_no_reopen_ignores_replacement(self):
        self.touch()
        watcher = self.watch(reopen=False)
        watcher.start()
        c = Collector(watcher)

        append(self.path, "old")
        self.assertTrue(wait_for(lambda: c.texts() == ["old"]))
        os.rename(self.path, self.path + ".1")
        append(self.path, "new")
        self.assertTrue(c.finished())
        self.assertEqual(c.texts(), ["old"])

    def test_stop_and_cleanup_end_lines(self):
        self.touch()
        watcher = self.watch()
        watcher.start()
        c = Collector(watcher)
        append(self.path, "x")
        self.assertTrue(wait_for(lambda: c.texts() == ["x"]))

        watcher.stop()
        watcher.cleanup()
        self.assertTrue(c.finished())
        self.assertEqual(watcher.state, WatcherState.STOPPED)

    def test_stop_is_idempotent(self):
        self.touch()
        watcher = self.watch()
        watcher.start()
        watcher.stop()
        watcher.stop()
        watcher.cleanup()
        watcher.cleanup()
        self.assertEqual(watcher.state, WatcherState.STOPPED)

    def test_no_restart_after_stop(self):
        self.touch()
        watcher = self.watch()
        watcher.stop()
        watcher.start()
        self.assertEqual(watcher.state, WatcherState.STOPPED)
        watcher.cleanup()
        self.assertEqual(list(watcher.lines()), [])

    def test_stop_while_waiting_for_file_is_a_shutdown_race(self):
        watcher = self.watch()
        watcher.start()
        self.assertTrue(wait_for(lambda: watcher.state == WatcherState.REOPENING))
        with self.assertRaises(ShutdownRaceError) as ctx:
            watcher.stop()
        self.assertIn("failed to detect creation", str(ctx.exception))
        watcher.cleanup()
        self.assertEqual(watcher.state, WatcherState.STOPPED)

    def test_cleanup_without_start(self):
        watcher = self.watch()
        watcher.cleanup()
        self.assertEqual(list(watcher.lines()), [])


if __name__ == "__main__":
    unittest.main()
