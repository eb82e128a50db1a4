import base64
import io
import unittest
from unittest import mock

from PIL import Image

from backend.images import (
    MAX_PIXELS,
    ImageValidationError,
    decode_data_url,
    process_image,
    store_image,
)
from backend.storage import InMemoryStorageClient

MAX_BYTES = 2 * 1024 * 1024


def _encode(img, fmt):
    out = io.BytesIO()
    img.save(out, format=fmt)
    return out.getvalue()


class ImageTests(unittest.TestCase):
    def test_decode_data_url(self):
        raw = b"\x89PNG fake"
        url = "data:image/png;base64," + base64.b64encode(raw).decode("ascii")
        self.assertEqual(decode_data_url(url), raw)

        with self.assertRaises(ImageValidationError):
            decode_data_url("https://example.com/cat.png")
        with self.assertRaises(ImageValidationError):
            decode_data_url("data:image/png;base64,@@@")

    def test_large_image_is_downscaled_to_jpeg(self):
        data = _encode(Image.new("RGB", (3000, 1500), "white"), "PNG")
        processed = process_image(data, max_bytes=MAX_BYTES, max_dimension=1024)
        self.assertEqual(processed.content_type, "image/jpeg")
        self.assertEqual((processed.width, processed.height), (1024, 512))

    def test_transparency_kept_as_png(self):
        data = _encode(Image.new("RGBA", (50, 80), (0, 0, 0, 0)), "PNG")
        processed = process_image(data, max_bytes=MAX_BYTES, max_dimension=1024)
        self.assertEqual(processed.extension, "png")
        self.assertEqual((processed.width, processed.height), (50, 80))

    def test_rejects_oversized_and_non_images(self):
        with self.assertRaisesRegex(ImageValidationError, "too large"):
            process_image(b"x" * 11, max_bytes=10, max_dimension=1024)
        with self.assertRaisesRegex(ImageValidationError, "Please select an image file."):
            process_image(b"plain text", max_bytes=MAX_BYTES, max_dimension=1024)
        with self.assertRaises(ImageValidationError):
            process_image(b"", max_bytes=MAX_BYTES, max_dimension=1024)

    def test_rejects_huge_pixel_counts_in_small_files(self):
        data = _encode(Image.new("1", (8000, 6000)), "PNG")
        self.assertLess(len(data), MAX_BYTES)
        self.assertGreater(8000 * 6000, MAX_PIXELS)
        with self.assertRaisesRegex(ImageValidationError, "dimensions are too large"):
            process_image(data, max_bytes=MAX_BYTES, max_dimension=1024)

    def test_decompression_bomb_is_a_validation_error(self):
        data = _encode(Image.new("RGB", (100, 100), "white"), "PNG")
        with mock.patch.object(Image, "MAX_IMAGE_PIXELS", 1000):
            with self.assertRaisesRegex(ImageValidationError, "dimensions are too large"):
                process_image(data, max_bytes=MAX_BYTES, max_dimension=1024)

    def test_store_image_uploads_with_extension(self):
        storage = InMemoryStorageClient()
        data = _encode(Image.new("RGB", (10, 10), "red"), "JPEG")
        path = store_image(storage, "users/u1/avatar", data, max_bytes=MAX_BYTES, max_dimension=64)
        self.assertEqual(path, "users/u1/avatar.jpg")
        self.assertEqual(storage.content_types[path], "image/jpeg")


if __name__ == "__main__":
    unittest.main()
