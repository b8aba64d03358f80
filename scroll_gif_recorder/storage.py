import json
import logging
import mimetypes
from pathlib import Path
from urllib.parse import quote

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


class StorageError(Exception):
    pass


class LocalKeyValueStore:
    """Key-value store backed by a directory of files."""

    def __init__(self, storage_dir: str | Path, name: str = "default"):
        self.path = Path(storage_dir) / "key_value_stores" / name

    def _file_path(self, key: str, content_type: str | None = None) -> Path:
        if content_type:
            ext = mimetypes.guess_extension(content_type) or ""
            return self.path / f"{key}{ext}"
        matches = sorted(self.path.glob(f"{key}.*"))
        return matches[0] if matches else self.path / key

    async def set_value(self, key: str, value: bytes, content_type: str) -> Path:
        logger.info(f"Saving {key} to key-value store")
        try:
            self.path.mkdir(parents=True, exist_ok=True)
            file_path = self._file_path(key, content_type)
            file_path.write_bytes(value)
        except OSError as e:
            raise StorageError(f"Failed to save {key}: {e}") from e
        return file_path

    async def get_value(self, key: str) -> bytes | None:
        file_path = self._file_path(key)
        if not file_path.exists():
            return None
        return file_path.read_bytes()

    def get_public_url(self, key: str) -> str:
        return self._file_path(key).resolve().as_uri()

    def get_file_path(self, key: str) -> Path | None:
        """Path of the stored file for ``key``, None when nothing is stored."""
        file_path = self._file_path(key)
        return file_path if file_path.is_file() else None


class S3KeyValueStore:
    def __init__(self, config, client=None):
        self.config = config
        if client is not None:
            self.s3 = client
            return

        session = (
            boto3.Session(profile_name=config.aws_profile)
            if config.aws_profile
            else boto3.Session()
        )

        # Configure client with s3v4 signature and path-style addressing
        boto_config = BotoConfig(
            retries=dict(max_attempts=3),
            signature_version="s3v4",
            s3={"addressing_style": "path"},
        )

        client_args = {
            "service_name": "s3",
            "config": boto_config,
        }

        if config.aws_endpoint_url:
            client_args.update(
                {
                    "endpoint_url": config.aws_endpoint_url,
                    "aws_access_key_id": config.aws_access_key_id,
                    "aws_secret_access_key": config.aws_secret_access_key,
                    "region_name": config.aws_region,
                }
            )

        self.s3 = session.client(**client_args)

    @property
    def bucket(self) -> str:
        if not self.config.aws_bucket_name:
            raise StorageError("aws_bucket_name is not configured")
        return self.config.aws_bucket_name

    async def set_value(self, key: str, value: bytes, content_type: str) -> str:
        """Upload bytes under ``key`` and return the key"""
        logger.info(f"Saving {key} to key-value store")
        size = len(value)
        if size > self.config.max_file_size_mb * 1024 * 1024:
            raise StorageError(
                f"File size exceeds maximum allowed size of {self.config.max_file_size_mb} mb"
            )
        try:
            self.s3.put_object(
                Bucket=self.bucket, Key=key, Body=value, ContentType=content_type
            )
        except ClientError as e:
            raise StorageError(f"Failed to upload {key} to S3: {str(e)}") from e
        return key

    async def get_value(self, key: str) -> bytes | None:
        try:
            response = self.s3.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            if error_code in ["404", "NoSuchKey"]:
                return None
            raise StorageError(f"Failed to get {key} from S3: {str(e)}") from e
        return response["Body"].read()

    def get_public_url(self, key: str) -> str:
        if self.config.aws_presign_urls:
            return self.generate_presigned_url(key)
        if self.config.aws_endpoint_url:
            return f"{self.config.aws_endpoint_url.rstrip('/')}/{self.bucket}/{quote(key)}"
        return f"https://{self.bucket}.s3.amazonaws.com/{quote(key)}"

    def generate_presigned_url(self, key: str, expiration: int = 3600) -> str:
        """Generate a presigned GET url for a stored object."""
        try:
            return self.s3.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expiration,
                HttpMethod="GET",
            )
        except ClientError as e:
            logger.error(f"Error generating presigned URL: {e}")
            raise StorageError(f"Failed to generate presigned URL: {str(e)}") from e


class LocalDataset:
    """Run result records, one numbered json file each."""

    def __init__(self, storage_dir: str | Path, name: str = "default"):
        self.path = Path(storage_dir) / "datasets" / name

    async def push_record(self, record: dict) -> Path:
        self.path.mkdir(parents=True, exist_ok=True)
        index = len(list(self.path.glob("*.json"))) + 1
        file_path = self.path / f"{index:09d}.json"
        file_path.write_text(json.dumps(record, indent=2))
        logger.debug(f"Pushed record to {file_path}")
        return file_path

    def records(self) -> list[dict]:
        return [json.loads(p.read_text()) for p in sorted(self.path.glob("*.json"))]
