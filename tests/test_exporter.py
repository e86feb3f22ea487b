import csv
import io
import unittest
from datetime import datetime, timezone

from tts_proxy.errors import EmptyExportError
from tts_proxy.exporter import CSV_HEADERS, export_filename, to_csv

from fakes import make_failure, make_success


class TestToCsv(unittest.TestCase):

    def test_empty_sequence_raises(self):
        with self.assertRaises(EmptyExportError) as ctx:
            to_csv([])
        self.assertEqual(ctx.exception.message, "No metrics available")

    def test_header_row(self):
        header = to_csv([make_success()]).split("\n")[0]
        self.assertEqual(
            header,
            "Timestamp,Voice,Text Length (chars),Word Count,Request Format,"
            "OpenAI Duration (ms),Total Duration (ms),Audio Size (bytes),"
            "Status,Error Message,Client IP"
        )

    def test_line_count_and_order(self):
        records = [make_success(start_ms=float(i) * 1000) for i in range(4)]
        records.append(make_failure(start_ms=9000.0))
        lines = to_csv(records).split("\n")
        self.assertEqual(len(lines), len(records) + 1)
        timestamps = [row[0] for row in csv.reader(lines[1:])]
        self.assertEqual(timestamps, [r.timestamp for r in records])

    def test_success_row(self):
        record = make_success(start_ms=1000.0, upstream_ms=119.6, size=37)
        row = next(csv.reader(to_csv([record]).split("\n")[1:]))
        self.assertEqual(row, [
            record.timestamp, "nova", "11", "2", "wav",
            "120", "122", "37", "success", "", "127.0.0.1",
        ])

    def test_failure_row_uses_empty_cells(self):
        record = make_failure(message="rate limited")
        row = next(csv.reader(to_csv([record]).split("\n")[1:]))
        self.assertEqual(row[5], "")
        self.assertEqual(row[7], "")
        self.assertEqual(row[8], "error")
        self.assertEqual(row[9], "rate limited")
        self.assertNotIn("None", row)

    def test_commas_in_messages_are_quoted(self):
        record = make_failure(message="bad voice, try again")
        rows = list(csv.reader(io.StringIO(to_csv([record]))))
        self.assertEqual(len(rows[1]), len(CSV_HEADERS))
        self.assertEqual(rows[1][9], "bad voice, try again")

    def test_multiline_messages_stay_on_one_line(self):
        records = [
            make_failure(message="line1\nline2"),
            make_failure(message="upstream said:\r\nno"),
            make_success(voice="nova\n"),
        ]
        lines = to_csv(records).split("\n")
        self.assertEqual(len(lines), len(records) + 1)
        rows = list(csv.reader(lines[1:]))
        self.assertEqual(rows[0][9], "line1 line2")
        self.assertEqual(rows[1][9], "upstream said: no")
        self.assertEqual(rows[2][1], "nova")

    def test_csv_agrees_with_json(self):
        for record in (make_success(upstream_ms=87.4), make_failure()):
            row = dict(zip(CSV_HEADERS, next(csv.reader(to_csv([record]).split("\n")[1:]))))
            data = record.to_dict()
            self.assertEqual(row["Timestamp"], data["timestamp"])
            self.assertEqual(row["Voice"], data["voice"])
            self.assertEqual(row["Text Length (chars)"], str(data["textLength"]))
            self.assertEqual(row["Word Count"], str(data["wordCount"]))
            self.assertEqual(row["Request Format"], data["requestFormat"])
            self.assertEqual(row["Total Duration (ms)"], str(round(data["totalDuration"])))
            self.assertEqual(row["Status"], data["status"])
            self.assertEqual(row["Client IP"], data["clientAddress"])
            if "upstreamDuration" in data:
                self.assertEqual(row["OpenAI Duration (ms)"], str(round(data["upstreamDuration"])))
            else:
                self.assertEqual(row["OpenAI Duration (ms)"], "")
            self.assertEqual(row["Audio Size (bytes)"], str(data.get("audioByteSize", "")))
            self.assertEqual(row["Error Message"], data.get("errorMessage", ""))


class TestExportFilename(unittest.TestCase):

    def test_colons_replaced(self):
        now = datetime(2025, 1, 31, 9, 15, 0, 123000, tzinfo=timezone.utc)
        self.assertEqual(export_filename(now), "tts-server-metrics-2025-01-31T09-15-00.csv")

    def test_default_is_now(self):
        name = export_filename()
        self.assertTrue(name.startswith("tts-server-metrics-"))
        self.assertTrue(name.endswith(".csv"))
        self.assertNotIn(":", name)


if __name__ == '__main__':
    unittest.main()
