import json
import tempfile
import unittest
from pathlib import Path

from backend.content import SiteContentService, StorageContentStore
from backend.storage import InMemoryStorageClient
from scripts import site_content


class SiteContentScriptTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.service = SiteContentService(StorageContentStore(InMemoryStorageClient()))

    def test_import_then_export(self):
        source = Path(self.tmpdir.name) / "in.json"
        source.write_text('{"homeSubtitle": "Imported"}', encoding="utf-8")
        self.assertEqual(site_content.main(["import", str(source)], service=self.service), 0)

        target = Path(self.tmpdir.name) / "out.json"
        self.assertEqual(site_content.main(["export", str(target)], service=self.service), 0)
        exported = json.loads(target.read_text(encoding="utf-8"))
        self.assertEqual(exported, {"homeSubtitle": "Imported"})

        full = Path(self.tmpdir.name) / "full.json"
        site_content.main(["export", "--with-defaults", str(full)], service=self.service)
        document = json.loads(full.read_text(encoding="utf-8"))
        self.assertEqual(document["homeSubtitle"], "Imported")
        self.assertIn("homeSendButton", document)

    def test_import_rejects_invalid_json(self):
        source = Path(self.tmpdir.name) / "bad.json"
        source.write_text("{nope", encoding="utf-8")
        self.assertEqual(site_content.main(["import", str(source)], service=self.service), 1)


if __name__ == "__main__":
    unittest.main()
