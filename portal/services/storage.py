import re

import aiobotocore.session
from botocore.exceptions import ClientError

from portal.core.config import settings
from portal.core.exceptions import NotFound
from portal.core.logging_config import logger

MISSING_OBJECT_CODES = {"NoSuchKey", "404", "NotFound"}


def sanitize(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", name or "unknown")


class S3Storage:
    """Object storage for applicant files and archive bundles."""

    def __init__(self, bucket: str = None):
        self.bucket = bucket or settings.S3_BUCKET_NAME
        self.session = aiobotocore.session.get_session()

    def _client(self):
        return self.session.create_client(
            "s3",
            endpoint_url=settings.S3_ENDPOINT_URL,
            aws_access_key_id=settings.S3_ACCESS_KEY,
            aws_secret_access_key=settings.S3_SECRET_KEY,
            region_name=settings.S3_REGION
        )

    async def upload_bytes(self, key: str, content: bytes, content_type: str = "application/octet-stream") -> str:
        async with self._client() as s3_client:
            await s3_client.put_object(Bucket=self.bucket, Key=key, Body=content, ContentType=content_type)
        logger.info(f"Uploaded {key} to bucket {self.bucket}")
        return key

    async def download_bytes(self, key: str) -> bytes:
        async with self._client() as s3_client:
            try:
                response = await s3_client.get_object(Bucket=self.bucket, Key=key)
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") in MISSING_OBJECT_CODES:
                    raise NotFound("Object", key)
                raise
            async with response["Body"] as stream:
                return await stream.read()

    async def delete(self, key: str) -> None:
        async with self._client() as s3_client:
            await s3_client.delete_object(Bucket=self.bucket, Key=key)
        logger.info(f"Deleted {key} from bucket {self.bucket}")
