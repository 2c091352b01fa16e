import json
import logging
import os
import uuid
from typing import Optional

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from lapcms.core.config import Settings
from lapcms.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class ObjectStorage:
    """S3-compatible object store (MinIO in development).

    The boto3 client is only built on first use, so the API can start
    without the storage server being reachable.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.bucket_name = settings.UPLOAD_BUCKET
        self._client = None

    @property
    def s3_client(self):
        if self._client is None:
            self._client = boto3.client(
                's3',
                endpoint_url=self.settings.UPLOAD_URL,
                aws_access_key_id=self.settings.UPLOAD_KEY,
                aws_secret_access_key=self.settings.UPLOAD_SECRET,
                region_name=self.settings.UPLOAD_REGION,
                config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
            )
            logger.info("Object storage configured for %s", self.settings.UPLOAD_URL)
        return self._client

    def upload_file(self, file_content: bytes, file_name: Optional[str], content_type: str, folder: str = "images") -> str:
        """
        Store a file under `<folder>/<uuid><ext>` and return its key.

        Raises ExternalServiceError (UPLOAD_FAILED) when the store rejects it.
        """
        file_extension = os.path.splitext(file_name or "")[1].lower()
        key = f"{folder}/{uuid.uuid4()}{file_extension}"

        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=file_content,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Error uploading %s to object storage: %s", key, e)
            raise ExternalServiceError("Failed to upload image", code="UPLOAD_FAILED") from e

        return key

    def delete_file(self, key: str) -> bool:
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error("Error deleting %s from object storage: %s", key, e)
            return False

    def get_public_url(self, key: str) -> str:
        return f"{self.settings.UPLOAD_URL.rstrip('/')}/{self.bucket_name}/{key}"

    def public_read_policy(self) -> str:
        return json.dumps({
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Principal": {"AWS": ["*"]},
                    "Action": ["s3:GetObject"],
                    "Resource": [f"arn:aws:s3:::{self.bucket_name}/images/*"],
                }
            ],
        })

    def initialize_bucket(self) -> None:
        """Create the bucket with a public-read policy on images/*. Never raises."""
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
            logger.info("Bucket %s already exists", self.bucket_name)
            return
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code")
            if error_code in ("403", "AccessDenied"):
                # Bucket exists but we lack management permissions
                logger.info("Bucket %s exists (no management permissions)", self.bucket_name)
                return
            if error_code not in ("404", "NoSuchBucket"):
                logger.error("Error checking bucket %s: %s", self.bucket_name, e)
                return
        except BotoCoreError as e:
            logger.error("Object storage unreachable, skipping bucket setup: %s", e)
            return

        try:
            self.s3_client.create_bucket(Bucket=self.bucket_name)
            self.s3_client.put_bucket_policy(Bucket=self.bucket_name, Policy=self.public_read_policy())
            logger.info("Bucket %s created with public read policy", self.bucket_name)
        except (ClientError, BotoCoreError) as e:
            logger.error("Error initializing bucket %s: %s", self.bucket_name, e)
