"""Unit tests for the photo store."""
import io

from reservation_core.storage import PhotoStore, is_external


class TestPhotoStore:
    def test_save_and_delete_local_photo(self, tmp_path):
        store = PhotoStore(tmp_path / "uploads")

        reference = store.save(io.BytesIO(b"image-bytes"), "Room Photo.JPG")

        assert reference.endswith(".jpg")
        assert store.path_for(reference).read_bytes() == b"image-bytes"
        assert store.delete(reference) is True
        assert not store.path_for(reference).exists()

    def test_external_urls_are_never_deleted(self, tmp_path):
        store = PhotoStore(tmp_path)

        assert store.delete("https://cdn.example.com/a.png") is False
        assert store.delete("HTTP://cdn.example.com/a.png") is False
        assert store.delete(None) is False

    def test_missing_blob_is_not_fatal(self, tmp_path):
        assert PhotoStore(tmp_path).delete("gone.png") is False

    def test_references_stay_inside_root(self, tmp_path):
        store = PhotoStore(tmp_path / "uploads")

        assert store.path_for("../../etc/passwd") == tmp_path / "uploads" / "passwd"

    def test_public_url(self):
        assert PhotoStore.public_url(None, "http://host/") is None
        assert PhotoStore.public_url("abc.png", "http://host/") == "http://host/uploads/abc.png"
        assert PhotoStore.public_url("https://x/y.png", "http://host/") == "https://x/y.png"
        assert is_external("room.png") is False
