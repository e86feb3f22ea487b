import json
import os
import tempfile
import unittest
from unittest.mock import patch

from tts_proxy.snapshot import SnapshotWriter

from fakes import make_failure, make_success

# 2023-11-14T22:13:20Z
FIXED_NOW = 1_700_000_000.0


class TestSnapshotWriter(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.directory = os.path.join(self._tmp.name, "metrics")
        self.writer = SnapshotWriter(self.directory, clock=lambda: FIXED_NOW)

    def tearDown(self):
        self._tmp.cleanup()

    def test_path_is_dated(self):
        self.assertEqual(
            self.writer.path_for_today().name, "metrics-2023-11-14.json"
        )

    def test_creates_directory_and_writes_full_sequence(self):
        records = [make_success(), make_failure()]
        self.assertTrue(self.writer.flush(records))

        with open(self.writer.path_for_today(), encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(data, [r.to_dict() for r in records])

    def test_overwrites_existing_file(self):
        self.writer.flush([make_success()])
        self.writer.flush([make_success(), make_success(), make_failure()])

        with open(self.writer.path_for_today(), encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(len(data), 3)
        # No temp files left behind
        self.assertEqual(os.listdir(self.directory), ["metrics-2023-11-14.json"])

    def test_empty_sequence_is_a_noop(self):
        self.assertFalse(self.writer.flush([]))
        self.assertFalse(os.path.exists(self.directory))

    def test_write_failure_is_logged_not_raised(self):
        with patch("tts_proxy.snapshot.tempfile.mkstemp",
                   side_effect=PermissionError("read-only filesystem")):
            with patch("tts_proxy.snapshot.logger") as mock_logger:
                self.assertFalse(self.writer.flush([make_success()]))
        mock_logger.warning.assert_called_once()
        self.assertFalse(os.path.exists(self.writer.path_for_today()))

    def test_unwritable_directory_is_logged_not_raised(self):
        # A regular file where the directory should be
        blocker = os.path.join(self._tmp.name, "blocked")
        with open(blocker, "w") as f:
            f.write("x")
        writer = SnapshotWriter(os.path.join(blocker, "metrics"), clock=lambda: FIXED_NOW)
        self.assertFalse(writer.flush([make_success()]))


if __name__ == '__main__':
    unittest.main()
