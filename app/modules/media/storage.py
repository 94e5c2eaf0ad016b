import boto3
from botocore.exceptions import ClientError
from app.config.settings import settings
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class MediaStorage:
    """User media in S3; clients upload directly through presigned PUT URLs"""

    def __init__(self, s3_client=None, bucket_name: Optional[str] = None, public_base_url: Optional[str] = None):
        self.bucket_name = bucket_name or settings.s3_media_bucket
        if s3_client is None:
            if not all([settings.aws_access_key_id, settings.aws_secret_access_key, self.bucket_name]):
                raise ValueError("AWS S3 credentials and media bucket must be configured")
            s3_client = boto3.client(
                's3',
                aws_access_key_id=settings.aws_access_key_id,
                aws_secret_access_key=settings.aws_secret_access_key,
                region_name=settings.aws_region
            )
        self.s3_client = s3_client
        self.public_base_url = (public_base_url or settings.media_public_base_url
                                or f"https://{self.bucket_name}.s3.{settings.aws_region}.amazonaws.com")

    def create_upload_url(self, key: str, content_type: str, expires_in: int = 300) -> str:
        """Presigned PUT URL for one object"""
        try:
            return self.s3_client.generate_presigned_url(
                'put_object',
                Params={'Bucket': self.bucket_name, 'Key': key, 'ContentType': content_type},
                ExpiresIn=expires_in
            )
        except ClientError as e:
            logger.error(f"Failed to presign upload for {key}: {str(e)}")
            raise

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url.rstrip('/')}/{key}"

    def delete_file(self, key: str) -> bool:
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
            return True
        except ClientError as e:
            logger.error(f"Failed to delete file from S3: {str(e)}")
            return False
