import logging
from io import BytesIO
import boto3
from botocore.exceptions import ClientError
from starlette.concurrency import run_in_threadpool
from app.storage.base import StorageInterface
from app.core.config import settings

logger = logging.getLogger(__name__)

class R2Storage(StorageInterface):
    def __init__(self):
        self.client = boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint,
            aws_access_key_id=settings.s3_access_key,
            aws_secret_access_key=settings.s3_secret_key,
            region_name=settings.s3_region,
        )
        self.bucket = settings.s3_bucket

    def generate_url(self, key: str, expires_in: int = 300) -> str:
        return self.client.generate_presigned_url(
            "get_object",
            Params={
                "Bucket": self.bucket,
                "Key": key,
            },
            ExpiresIn=expires_in,
        )

    async def upload(self, key: str, file_bytes: bytes, content_type: str) -> str:
        try:
            # boto3 is blocking
            await run_in_threadpool(
                self.client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=BytesIO(file_bytes),
                ContentType=content_type,
            )
            logger.info(f"R2 uploaded: {key}")
            return key
        except ClientError as e:
            logger.error(f"R2 upload failed: {str(e)}")
            raise

    async def read(self, key: str) -> bytes:
        try:
            response = await run_in_threadpool(
                self.client.get_object, Bucket=self.bucket, Key=key
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                raise FileNotFoundError(key) from e
            logger.error(f"R2 download failed: {str(e)}")
            raise
        return await run_in_threadpool(response["Body"].read)

    async def exists(self, key: str) -> bool:
        try:
            await run_in_threadpool(self.client.head_object, Bucket=self.bucket, Key=key)
            return True
        except ClientError:
            return False
