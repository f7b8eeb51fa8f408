"""Tests for bucket/key blob storage backends."""
import io

import pytest
from botocore.exceptions import ClientError

from app.crm.storage import LocalStorage, S3Storage, StorageError, storage_from_config


def test_local_put_get(tmp_path):
    st = LocalStorage(root=tmp_path)
    st.put_bytes("customer-bucket", "profile-images/10/abc", b"helloWorld")

    assert (tmp_path / "customer-bucket" / "profile-images" / "10" / "abc").read_bytes() == b"helloWorld"
    assert st.get_bytes("customer-bucket", "profile-images/10/abc") == b"helloWorld"


def test_local_missing_key_raises_storage_error(tmp_path):
    st = LocalStorage(root=tmp_path)
    with pytest.raises(StorageError) as exc:
        st.get_bytes("customer-bucket", "profile-images/10/nope")
    assert isinstance(exc.value.__cause__, OSError)


def test_local_rejects_parent_traversal(tmp_path):
    st = LocalStorage(root=tmp_path)
    with pytest.raises(StorageError):
        st.put_bytes("customer-bucket", "../escape", b"x")


def test_local_rejects_bucket_traversal(tmp_path):
    st = LocalStorage(root=tmp_path / "root")
    for bucket in ("..", "../other", "a/../..", ""):
        with pytest.raises(StorageError, match="Invalid storage bucket"):
            st.put_bytes(bucket, "profile-images/10/x", b"x")
        with pytest.raises(StorageError, match="Invalid storage bucket"):
            st.get_bytes(bucket, "profile-images/10/x")
    assert not (tmp_path / "other").exists()


class _FakeS3Client:
    def __init__(self):
        self.objects = {}

    def put_object(self, Bucket, Key, Body, **extra):
        self.objects[(Bucket, Key)] = (Body, extra)

    def get_object(self, Bucket, Key):
        if (Bucket, Key) not in self.objects:
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject")
        return {"Body": io.BytesIO(self.objects[(Bucket, Key)][0])}


@pytest.fixture()
def s3(monkeypatch):
    client = _FakeS3Client()
    st = S3Storage(endpoint="", region="eu-west-1", access_key_id="k", secret_access_key="s")
    monkeypatch.setattr(S3Storage, "_client", lambda self: client)
    return st, client


def test_s3_put_get(s3):
    st, client = s3
    st.put_bytes("customer-bucket", "profile-images/10/x", b"img", content_type="image/png")

    assert client.objects[("customer-bucket", "profile-images/10/x")] == (b"img", {"ContentType": "image/png"})
    assert st.get_bytes("customer-bucket", "profile-images/10/x") == b"img"


def test_s3_read_failure_wrapped(s3):
    st, _ = s3
    with pytest.raises(StorageError):
        st.get_bytes("customer-bucket", "missing")


def test_storage_from_config(tmp_path):
    st = storage_from_config({"STORAGE_BACKEND": "local", "STORAGE_ROOT": str(tmp_path)})
    assert isinstance(st, LocalStorage) and st.root == tmp_path

    st = storage_from_config({"STORAGE_BACKEND": "S3", "S3_REGION": "eu-west-1"})
    assert isinstance(st, S3Storage)
