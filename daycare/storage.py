"""
Pet photo storage in Cloudflare R2 (S3-compatible).

Objects are private; the API stores object keys and hands out presigned URLs.
"""

import logging

import boto3
from botocore.config import Config

from .config import R2_ACCESS_KEY_ID, R2_ACCOUNT_ID, R2_BUCKET_NAME, R2_SECRET_ACCESS_KEY

logger = logging.getLogger(__name__)

# Presigned URL expiration time (1 hour)
PRESIGNED_URL_EXPIRATION = 3600


def get_r2_client():
    """Create and return an R2 client."""
    return boto3.client(
        "s3",
        endpoint_url=f"https://{R2_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=R2_ACCESS_KEY_ID,
        aws_secret_access_key=R2_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
    )


def put_object(key: str, body: bytes, content_type: str) -> None:
    get_r2_client().put_object(
        Bucket=R2_BUCKET_NAME,
        Key=key,
        Body=body,
        ContentType=content_type,
    )
    logger.info(f"📤 Stored object {key} ({len(body)} bytes)")


def delete_object(key: str) -> None:
    get_r2_client().delete_object(Bucket=R2_BUCKET_NAME, Key=key)
    logger.info(f"🗑️ Deleted object {key}")


def generate_presigned_url(key: str, expiration: int = PRESIGNED_URL_EXPIRATION) -> str:
    """Generate a presigned URL for viewing a private image inline."""
    return get_r2_client().generate_presigned_url(
        "get_object",
        Params={"Bucket": R2_BUCKET_NAME, "Key": key, "ResponseContentDisposition": "inline"},
        ExpiresIn=expiration,
    )
