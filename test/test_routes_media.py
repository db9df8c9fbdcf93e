"""
Tests for Media Routes

Tests API endpoints for primary image and gallery uploads.
"""

from io import BytesIO

from PIL import Image


def create_test_image_bytes(width=100, height=100):
    """Helper to create test image bytes"""
    img = Image.new("RGB", (width, height), color="blue")
    img_bytes = BytesIO()
    img.save(img_bytes, format="JPEG")
    img_bytes.seek(0)
    return img_bytes


class TestMediaRoutes:
    def test_upload_image_success(self, client, tmp_path):
        files = {"file": ("cover.jpg", create_test_image_bytes(), "image/jpeg")}

        response = client.post("/api/v1/media/blog_posts/image", files=files)

        assert response.status_code == 201
        url = response.json()["url"]
        assert url.startswith("/media/blog/")
        assert url.endswith("_cover.jpg")
        stored = list((tmp_path / "uploads" / "blog").iterdir())
        assert len(stored) == 1

    def test_upload_image_invalid_type(self, client):
        files = {"file": ("malware.exe", BytesIO(b"fake executable"), "application/x-msdownload")}

        response = client.post("/api/v1/media/articles/image", files=files)

        assert response.status_code == 400
        assert response.json()["error"]["error_code"] == "UPLOAD_INVALID_TYPE"

    def test_upload_image_not_an_image(self, client):
        files = {"file": ("fake.jpg", BytesIO(b"not really a jpeg"), "image/jpeg")}

        response = client.post("/api/v1/media/articles/image", files=files)

        assert response.status_code == 400
        assert response.json()["error"]["error_code"] == "UPLOAD_FAILED"

    def test_upload_gallery_batch(self, client, tmp_path):
        files = [
            ("files", ("one.jpg", create_test_image_bytes(), "image/jpeg")),
            ("files", ("two.jpg", create_test_image_bytes(), "image/jpeg")),
        ]

        response = client.post("/api/v1/media/articles/gallery", files=files)

        assert response.status_code == 201
        urls = response.json()["urls"]
        assert len(urls) == 2
        assert urls[0].endswith("_one.jpg")
        assert urls[1].endswith("_two.jpg")
        assert all(url.startswith("/media/articles/gallery/") for url in urls)

    def test_upload_gallery_invalid_file_stores_nothing(self, client, tmp_path):
        files = [
            ("files", ("one.jpg", create_test_image_bytes(), "image/jpeg")),
            ("files", ("two.exe", BytesIO(b"nope"), "application/x-msdownload")),
        ]

        response = client.post("/api/v1/media/articles/gallery", files=files)

        assert response.status_code == 400
        assert not (tmp_path / "uploads").exists()

    def test_upload_unknown_collection(self, client):
        files = {"file": ("cover.jpg", create_test_image_bytes(), "image/jpeg")}

        response = client.post("/api/v1/media/pages/image", files=files)

        assert response.status_code == 404

    def test_upload_gallery_same_filename_twice(self, client, tmp_path):
        files = [
            ("files", ("photo.jpg", create_test_image_bytes(), "image/jpeg")),
            ("files", ("photo.jpg", create_test_image_bytes(width=50), "image/jpeg")),
        ]

        response = client.post("/api/v1/media/blog_posts/gallery", files=files)

        assert response.status_code == 201
        urls = response.json()["urls"]
        assert len(set(urls)) == 2
        assert len(list((tmp_path / "uploads" / "blog" / "gallery").iterdir())) == 2
