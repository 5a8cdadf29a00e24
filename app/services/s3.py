import os
import uuid
from typing import Optional

import boto3
from botocore.exceptions import ClientError

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

PRODUCT_IMAGE_FOLDER = "products"

class S3Service:
    def __init__(self, client=None, bucket_name: Optional[str] = None):
        self.s3_client = client or boto3.client(
            's3',
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
            region_name=settings.AWS_REGION
        )
        if bucket_name:
            self.bucket_name = bucket_name
            self.base_url = f"https://{bucket_name}.s3.{settings.AWS_REGION}.amazonaws.com"
        else:
            self.bucket_name = settings.S3_BUCKET
            self.base_url = settings.S3_BASE_URL

    def upload_product_image(self, file_content: bytes, file_name: str, content_type: str = "image/jpeg") -> Optional[str]:
        """
        Store a product image and return its public URL.

        Keys are ``products/<uuid><ext>`` so re-uploads of the same file name
        never overwrite each other. Returns None if S3 rejects the upload.
        """
        extension = os.path.splitext(file_name)[1]
        s3_key = f"{PRODUCT_IMAGE_FOLDER}/{uuid.uuid4()}{extension}"
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=s3_key,
                Body=file_content,
                ContentType=content_type
            )
        except ClientError as e:
            logger.error("Error uploading %s to S3: %s", file_name, e)
            return None
        return self.get_public_url(s3_key)

    def key_from_url(self, image_url: str) -> Optional[str]:
        prefix = f"{self.base_url}/"
        if not image_url or not image_url.startswith(prefix):
            return None
        return image_url[len(prefix):]

    def delete_product_image(self, image_url: str) -> bool:
        """Remove an image previously returned by upload. Foreign URLs are ignored."""
        s3_key = self.key_from_url(image_url)
        if not s3_key:
            return False
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=s3_key)
            return True
        except ClientError as e:
            logger.error("Error deleting %s from S3: %s", s3_key, e)
            return False

    def get_public_url(self, s3_key: str) -> str:
        return f"{self.base_url}/{s3_key}"

_s3_service: Optional[S3Service] = None

def get_s3_service() -> S3Service:
    global _s3_service
    if _s3_service is None:
        _s3_service = S3Service()
    return _s3_service
