import logging
from typing import Any, Dict, Optional

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import BlobStorageError
from ..settings import Settings, get_settings

logger = logging.getLogger(__name__)


class S3BlobStorage:
    """Private S3 object storage for attachments and generated files."""

    def __init__(
        self,
        bucket_name: str,
        prefix: str = "",
        region_name: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
    ) -> None:
        self.bucket_name = bucket_name
        self.prefix = prefix.rstrip("/") + "/" if prefix else ""
        self._endpoint_url = endpoint_url
        session_kwargs = {
            k: v
            for k, v in dict(
                aws_access_key_id=aws_access_key_id,
                aws_secret_access_key=aws_secret_access_key,
                region_name=region_name,
            ).items()
            if v
        }
        self._session = aioboto3.Session(**session_kwargs)

    def _client(self):
        # Short-lived client per call, used as an async context manager.
        if self._endpoint_url:
            return self._session.client("s3", endpoint_url=self._endpoint_url)
        return self._session.client("s3")

    def _s3_key(self, key: str) -> str:
        return self.prefix + key.replace("\\", "/").lstrip("/")

    async def put_bytes(
        self,
        key: str,
        data: bytes,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        put_kwargs: Dict[str, Any] = {
            "Bucket": self.bucket_name,
            "Key": self._s3_key(key),
            "Body": data,
        }
        if content_type:
            put_kwargs["ContentType"] = content_type
        if metadata:
            put_kwargs["Metadata"] = {str(k): str(v) for k, v in metadata.items()}
        async with self._client() as s3:
            try:
                await s3.put_object(**put_kwargs)
            except (BotoCoreError, ClientError) as e:
                raise BlobStorageError(f"Cannot write {key} to S3: {e}") from e
        logger.debug("Stored %d bytes at %s", len(data), key)

    async def get_bytes(self, key: str) -> bytes:
        async with self._client() as s3:
            try:
                resp = await s3.get_object(Bucket=self.bucket_name, Key=self._s3_key(key))
                return await resp["Body"].read()
            except (BotoCoreError, ClientError) as e:
                raise BlobStorageError(f"Cannot read {key} from S3: {e}") from e

    async def delete(self, key: str) -> None:
        async with self._client() as s3:
            try:
                await s3.delete_object(Bucket=self.bucket_name, Key=self._s3_key(key))
            except (BotoCoreError, ClientError) as e:
                raise BlobStorageError(f"Cannot delete {key} from S3: {e}") from e

    async def presigned_download_url(
        self, key: str, filename: str, expires_in: int = 3600
    ) -> str:
        """Signed GET URL that makes browsers save the object as filename."""
        async with self._client() as s3:
            try:
                return await s3.generate_presigned_url(
                    "get_object",
                    Params={
                        "Bucket": self.bucket_name,
                        "Key": self._s3_key(key),
                        "ResponseContentDisposition": f'attachment; filename="{filename}"',
                    },
                    ExpiresIn=expires_in,
                )
            except (BotoCoreError, ClientError) as e:
                raise BlobStorageError(f"Cannot sign download URL for {key}: {e}") from e


def get_blob_storage(settings: Settings | None = None) -> S3BlobStorage | None:
    """Return S3 storage if a bucket is configured, else None."""
    settings = settings or get_settings()
    if not settings.s3_bucket:
        return None
    return S3BlobStorage(
        bucket_name=settings.s3_bucket,
        prefix=settings.s3_prefix,
        region_name=settings.s3_region,
        endpoint_url=settings.s3_endpoint_url,
        aws_access_key_id=settings.aws_access_key_id,
        aws_secret_access_key=settings.aws_secret_access_key,
    )
