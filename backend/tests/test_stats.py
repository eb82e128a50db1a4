import unittest
from datetime import datetime, timezone

from backend.db import MessageRecord, ReviewRecord
from backend.stats import compute_dashboard, review_summary

NOW = datetime(2024, 3, 10, 15, 30, tzinfo=timezone.utc)


def _at(day, hour=12, recipient="alice"):
    moment = datetime(2024, 3, day, hour, tzinfo=timezone.utc)
    return MessageRecord(content="x", recipient=recipient, timestamp=moment.timestamp())


class DashboardTests(unittest.TestCase):
    def test_empty(self):
        stats = compute_dashboard([], now=NOW)
        self.assertEqual(stats.total_messages, 0)
        self.assertEqual(stats.engagement, "0.00")
        self.assertEqual([d.count for d in stats.daily_messages], [0] * 7)
        self.assertEqual(stats.daily_messages[0].date, "Mar 4")
        self.assertEqual(stats.daily_messages[-1].date, "Mar 10")

    def test_counts_and_window(self):
        messages = [
            _at(10, 9),
            _at(10, 1, recipient="bob"),
            _at(8),
            _at(4, 0, recipient="carol"),
            _at(3, recipient="dave"),  # outside the seven-day window
        ]
        stats = compute_dashboard(messages, now=NOW)
        self.assertEqual(stats.total_messages, 5)
        self.assertEqual(stats.total_recipients, 4)
        self.assertEqual(stats.engagement, "1.25")
        counts = {d.date: d.count for d in stats.daily_messages}
        self.assertEqual(counts["Mar 10"], 2)
        self.assertEqual(counts["Mar 8"], 1)
        self.assertEqual(counts["Mar 4"], 1)
        self.assertEqual(sum(counts.values()), 4)
        self.assertEqual(stats.recent_messages, messages[:5])

    def test_recent_messages_capped(self):
        messages = [_at(10) for _ in range(8)]
        self.assertEqual(len(compute_dashboard(messages, now=NOW).recent_messages), 5)


class ReviewSummaryTests(unittest.TestCase):
    def test_average_rounded(self):
        reviews = [
            ReviewRecord(rating=r, content="", sender_id="u", sender_name="n") for r in (5, 4, 4)
        ]
        self.assertEqual(review_summary(reviews), (4.3, 3))
        self.assertEqual(review_summary([]), (0.0, 0))


if __name__ == "__main__":
    unittest.main()
