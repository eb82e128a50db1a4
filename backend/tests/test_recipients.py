import unittest

from backend.db import InMemoryDbClient, MessageRecord
from backend.recipients import aggregate_recipients, normalize_recipient, page_recipients


class RecipientTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()

    def _add(self, recipient, timestamp):
        self.db.add_message(MessageRecord(content="x", recipient=recipient, timestamp=timestamp))

    def test_normalize(self):
        self.assertEqual(normalize_recipient("  Mom "), "mom")

    def test_aggregate_orders_by_latest_message_then_name(self):
        messages = [
            MessageRecord(content="x", recipient="zoe", timestamp=5.0),
            MessageRecord(content="x", recipient="amy", timestamp=5.0),
            MessageRecord(content="x", recipient="bob", timestamp=9.0),
            MessageRecord(content="x", recipient="amy", timestamp=1.0),
        ]
        recipients = aggregate_recipients(messages)
        self.assertEqual([r.name for r in recipients], ["bob", "amy", "zoe"])
        self.assertEqual(recipients[1].message_count, 2)
        self.assertEqual(recipients[1].last_message_timestamp, 5.0)

    def test_browse_window_limits_considered_messages(self):
        self._add("old", 1.0)
        for i in range(3):
            self._add("new", 10.0 + i)
        page = page_recipients(self.db, window=3)
        self.assertEqual([r.name for r in page.recipients], ["new"])
        self.assertEqual(page.recipients[0].message_count, 3)

    def test_batches_until_exhausted(self):
        for i, name in enumerate("abcde"):
            self._add(name, float(i))
        first = page_recipients(self.db, offset=0, batch_size=2)
        self.assertEqual([r.name for r in first.recipients], ["e", "d"])
        self.assertTrue(first.has_more)

        last = page_recipients(self.db, offset=4, batch_size=2)
        self.assertEqual([r.name for r in last.recipients], ["a"])
        self.assertFalse(last.has_more)

        past_end = page_recipients(self.db, offset=10, batch_size=2)
        self.assertEqual(past_end.recipients, [])
        self.assertFalse(past_end.has_more)

    def test_whitespace_search_pages_like_no_search(self):
        for i, name in enumerate("abc"):
            self._add(name, float(i))
        page = page_recipients(self.db, offset=0, batch_size=2, search_term="   ")
        self.assertEqual([r.name for r in page.recipients], ["c", "b"])
        self.assertEqual(page.total, 3)
        self.assertTrue(page.has_more)

    def test_search_ignores_window_and_returns_everything(self):
        self._add("sam", 1.0)
        for i in range(5):
            self._add("other", 10.0 + i)
        page = page_recipients(self.db, search_term=" SA", window=2, batch_size=1)
        self.assertEqual([r.name for r in page.recipients], ["sam"])
        self.assertEqual(page.total, 1)
        self.assertFalse(page.has_more)


if __name__ == "__main__":
    unittest.main()
