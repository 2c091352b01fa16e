import re

import pytest
from botocore.exceptions import EndpointConnectionError
from botocore.stub import Stubber

from lapcms.core.config import Settings
from lapcms.core.errors import ExternalServiceError
from lapcms.services.storage import ObjectStorage

BUCKET = "lap-cms-uploads"


@pytest.fixture
def storage():
    return ObjectStorage(Settings(UPLOAD_URL="http://minio.test:9000/", UPLOAD_BUCKET=BUCKET))


@pytest.fixture
def stubber(storage):
    with Stubber(storage.s3_client) as stub:
        yield stub
        stub.assert_no_pending_responses()


def unreachable(**kwargs):
    raise EndpointConnectionError(endpoint_url="http://minio.test:9000")


class TestUpload:
    def test_key_is_uuid_with_lowercased_extension(self, storage, stubber):
        stubber.add_response("put_object", {})

        key = storage.upload_file(b"\x89PNG", "Holiday Photo.PNG", "image/png")

        assert re.fullmatch(r"images/[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\.png", key)

    def test_file_without_extension(self, storage, stubber):
        stubber.add_response("put_object", {})

        key = storage.upload_file(b"GIF89a", None, "image/gif")

        assert re.fullmatch(r"images/[0-9a-f-]{36}", key)

    def test_client_error_becomes_upload_failed(self, storage, stubber):
        stubber.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)

        with pytest.raises(ExternalServiceError) as excinfo:
            storage.upload_file(b"data", "a.png", "image/png")

        assert excinfo.value.code == "UPLOAD_FAILED"
        assert excinfo.value.status_code == 500

    def test_connection_error_becomes_upload_failed(self, storage, monkeypatch):
        monkeypatch.setattr(storage.s3_client, "put_object", unreachable)

        with pytest.raises(ExternalServiceError) as excinfo:
            storage.upload_file(b"data", "a.png", "image/png")

        assert excinfo.value.code == "UPLOAD_FAILED"


def test_public_url(storage):
    assert storage.get_public_url("images/abc.png") == "http://minio.test:9000/lap-cms-uploads/images/abc.png"


def test_delete_file(storage, stubber):
    stubber.add_response("delete_object", {}, {"Bucket": BUCKET, "Key": "images/abc.png"})
    assert storage.delete_file("images/abc.png") is True

    stubber.add_client_error("delete_object", service_error_code="NoSuchKey", http_status_code=404)
    assert storage.delete_file("images/abc.png") is False


class TestInitializeBucket:
    def test_existing_bucket_is_left_alone(self, storage, stubber):
        stubber.add_response("head_bucket", {}, {"Bucket": BUCKET})
        storage.initialize_bucket()

    def test_missing_bucket_is_created_with_public_read_policy(self, storage, stubber, monkeypatch):
        stubber.add_client_error("head_bucket", service_error_code="404", http_status_code=404)
        stubber.add_response("create_bucket", {})
        policies = []
        monkeypatch.setattr(storage.s3_client, "put_bucket_policy", lambda **kwargs: policies.append(kwargs))

        storage.initialize_bucket()

        assert policies == [{"Bucket": BUCKET, "Policy": storage.public_read_policy()}]

    def test_forbidden_head_skips_creation(self, storage, stubber):
        stubber.add_client_error("head_bucket", service_error_code="403", http_status_code=403)
        storage.initialize_bucket()

    def test_create_failure_does_not_raise(self, storage, stubber):
        stubber.add_client_error("head_bucket", service_error_code="404", http_status_code=404)
        stubber.add_client_error("create_bucket", service_error_code="BucketAlreadyOwnedByYou", http_status_code=409)

        storage.initialize_bucket()

    def test_unreachable_store_does_not_raise(self, storage, monkeypatch):
        monkeypatch.setattr(storage.s3_client, "head_bucket", unreachable)
        storage.initialize_bucket()


def test_public_read_policy_covers_images_only(storage):
    assert f"arn:aws:s3:::{BUCKET}/images/*" in storage.public_read_policy()
