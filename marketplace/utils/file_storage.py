"""
S3 storage for vendor onboarding uploads

Only the resulting public URL is handed to the auth flows.
"""

import asyncio
import logging
import os
import uuid
from typing import Iterable, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile

from marketplace.config import Settings
from marketplace.utils.exceptions import InvalidFormatError, UpstreamFailureError

logger = logging.getLogger(__name__)

LOGO_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.gif')
CERTIFICATE_EXTENSIONS = ('.pdf', '.jpg', '.jpeg', '.png')


class S3FileStorage:
    """Upload files to the configured bucket and return their public URL"""

    def __init__(self, settings: Settings, client=None):
        self.bucket = settings.aws_s3_bucket_name
        self.region = settings.aws_region
        self.public_url = settings.aws_s3_public_url
        self.max_size = settings.max_upload_size_mb * 1024 * 1024
        self.client = client or boto3.client(
            's3',
            region_name=settings.aws_region,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
        )

    def build_url(self, key: str) -> str:
        if self.public_url:
            return f"{self.public_url.rstrip('/')}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    async def upload(
        self,
        upload: UploadFile,
        folder: str,
        allowed_extensions: Iterable[str],
        field_name: Optional[str] = None
    ) -> str:
        """
        Store an uploaded file under folder/ with a random name

        Args:
            upload: Incoming multipart file
            folder: Key prefix inside the bucket
            allowed_extensions: Accepted lowercase extensions including the dot
            field_name: Form field name reported in validation errors

        Returns:
            str: Public URL of the stored object
        """
        field_name = field_name or folder
        extension = os.path.splitext(upload.filename or '')[1].lower()
        if extension not in allowed_extensions:
            raise InvalidFormatError(
                f"Invalid file type for {field_name}. Allowed: {', '.join(allowed_extensions)}",
                fields=[field_name],
                values=[upload.filename]
            )

        content = await upload.read()
        if len(content) > self.max_size:
            raise InvalidFormatError(
                f"File for {field_name} exceeds {self.max_size // (1024 * 1024)}MB",
                fields=[field_name]
            )

        key = f"{folder}/{uuid.uuid4().hex}{extension}"
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=content,
                ContentType=upload.content_type or 'application/octet-stream',
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to upload {field_name} to S3: {e}")
            raise UpstreamFailureError(f"Failed to upload {field_name}")

        logger.info(f"Uploaded {field_name} to s3://{self.bucket}/{key}")
        return self.build_url(key)

    def key_for_url(self, url: str) -> Optional[str]:
        prefix = self.build_url('')
        if not url.startswith(prefix):
            return None
        return url[len(prefix):]

    async def discard(self, url: str) -> bool:
        """
        Delete an object stored by upload(), best effort

        Failures are logged with the orphaned key and reported as False.
        """
        key = self.key_for_url(url)
        if not key:
            logger.warning(f"Not a bucket URL, nothing to delete: {url}")
            return False

        try:
            await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to delete orphaned upload s3://{self.bucket}/{key}: {e}")
            return False

        logger.info(f"Deleted orphaned upload s3://{self.bucket}/{key}")
        return True
