import unittest
from unittest import mock

from botocore.exceptions import ClientError

from backend.storage import CosStorageClient, InMemoryStorageClient


class InMemoryStorageClientTests(unittest.TestCase):
    def test_upload_get_delete(self):
        storage = InMemoryStorageClient()
        storage.upload_bytes("a/b.jpg", b"data", content_type="image/jpeg")
        self.assertEqual(storage.get_bytes("a/b.jpg"), b"data")
        self.assertIn("a/b.jpg", storage.presign_get("a/b.jpg"))

        storage.delete("a/b.jpg")
        with self.assertRaises(FileNotFoundError):
            storage.get_bytes("a/b.jpg")


class CosStorageClientTests(unittest.TestCase):
    def setUp(self):
        patcher = mock.patch("backend.storage.boto3.client")
        self.boto_client = patcher.start().return_value
        self.addCleanup(patcher.stop)
        self.storage = CosStorageClient(
            bucket="bottles",
            region="ap-shanghai",
            endpoint="https://cos.example.com",
            access_key_id="key",
            secret_access_key="secret",
        )

    def test_missing_key_maps_to_file_not_found(self):
        self.boto_client.get_object.side_effect = ClientError(
            {"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject"
        )
        with self.assertRaises(FileNotFoundError):
            self.storage.get_bytes("content/site-content.json")

    def test_other_errors_propagate(self):
        self.boto_client.get_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "no"}}, "GetObject"
        )
        with self.assertRaises(ClientError):
            self.storage.get_bytes("content/site-content.json")

    def test_upload_sets_content_type(self):
        self.storage.upload_bytes("messages/m1/photo.png", b"png", content_type="image/png")
        self.boto_client.put_object.assert_called_once_with(
            Bucket="bottles", Key="messages/m1/photo.png", Body=b"png", ContentType="image/png"
        )


if __name__ == "__main__":
    unittest.main()
