import io
import pytest
from unittest.mock import MagicMock
from minio.error import S3Error

from services.attachments import AttachmentStore, MAX_FILE_SIZE


class MissingObjectError(S3Error):
    """S3Error without the response plumbing."""

    def __init__(self):
        Exception.__init__(self, "NoSuchKey")

    def __str__(self):
        return "NoSuchKey"


def test_validate_image():
    assert AttachmentStore.validate_image("cat.PNG", 100) == (True, None, ".png")
    # Files without an extension are stored as JPEG
    assert AttachmentStore.validate_image("blob", 100) == (True, None, ".jpg")

    ok, error, _ = AttachmentStore.validate_image("notes.pdf", 100)
    assert not ok
    assert "not allowed" in error

    ok, error, _ = AttachmentStore.validate_image("big.png", MAX_FILE_SIZE + 1)
    assert not ok
    assert "10MB" in error


def test_upload_returns_reference(attachment_store, minio_client):
    ref = attachment_store.upload(io.BytesIO(b"img"), "cat.png", 3, "image/png")

    assert ref.endswith(".png")
    minio_client.put_object.assert_called_once()
    kwargs = minio_client.put_object.call_args.kwargs
    assert kwargs["bucket_name"] == "test-attachments"
    assert kwargs["object_name"] == ref
    assert kwargs["length"] == 3
    assert kwargs["content_type"] == "image/png"


def test_upload_creates_bucket_once(attachment_store, minio_client):
    minio_client.bucket_exists.return_value = False

    attachment_store.upload(io.BytesIO(b"a"), "a.png", 1)
    attachment_store.upload(io.BytesIO(b"b"), "b.png", 1)

    minio_client.make_bucket.assert_called_once_with("test-attachments")


def test_upload_rejects_invalid(attachment_store, minio_client):
    with pytest.raises(ValueError):
        attachment_store.upload(io.BytesIO(b"x"), "virus.exe", 1)

    minio_client.put_object.assert_not_called()


def test_download(attachment_store, minio_client):
    response = MagicMock()
    response.read.return_value = b"bytes"
    minio_client.get_object.return_value = response

    assert attachment_store.download("x.png") == b"bytes"
    response.close.assert_called_once()
    response.release_conn.assert_called_once()


def test_download_missing(attachment_store, minio_client):
    minio_client.get_object.side_effect = MissingObjectError()

    assert attachment_store.download("x.png") is None


def test_delete_is_best_effort(attachment_store, minio_client):
    assert attachment_store.delete("x.png") is True

    minio_client.remove_object.side_effect = ConnectionError("down")
    assert attachment_store.delete("x.png") is False


def test_delete_strips_paths(attachment_store, minio_client):
    attachment_store.delete("/uploads/x.png")

    minio_client.remove_object.assert_called_once_with("test-attachments", "x.png")


def test_content_type_for():
    assert AttachmentStore.content_type_for("a.webp") == "image/webp"
    assert AttachmentStore.content_type_for("a.bin") == "application/octet-stream"
