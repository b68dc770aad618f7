import boto3
from botocore.exceptions import NoCredentialsError, ClientError
import logging
import mimetypes
import os

logger = logging.getLogger(__name__)


class StorageError(Exception):
    pass


class S3Service:
    def __init__(self, bucket_name, region=None, client=None):
        self.region = region or os.environ.get('AWS_REGION', 'ap-southeast-1')
        self.s3 = client or boto3.client(
            's3',
            aws_access_key_id=os.environ.get('AWS_ACCESS_KEY_ID'),
            aws_secret_access_key=os.environ.get('AWS_SECRET_ACCESS_KEY'),
            region_name=self.region
        )
        self.bucket_name = bucket_name

    @classmethod
    def from_config(cls, config):
        return cls(bucket_name=config.get('S3_BUCKET_NAME'), region=config.get('AWS_REGION'))

    def public_url(self, key):
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{key}"

    def upload_path(self, local_path, key):
        """Upload a file from local scratch storage and return its public URL."""
        content_type = mimetypes.guess_type(local_path)[0] or 'application/octet-stream'
        try:
            self.s3.upload_file(
                local_path,
                self.bucket_name,
                key,
                ExtraArgs={'ContentType': content_type}
            )
        except (NoCredentialsError, ClientError) as e:
            logger.error(f"S3 upload of {key} failed: {str(e)}")
            raise StorageError(f"Failed to upload file: {str(e)}") from e
        logger.info(f"Uploaded {key} to bucket {self.bucket_name}")
        return self.public_url(key)

    def delete_file(self, key):
        try:
            self.s3.delete_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            raise StorageError(f"Failed to delete file: {str(e)}") from e

    def key_from_url(self, url):
        prefix = self.public_url('')
        if url and url.startswith(prefix):
            return url[len(prefix):]
        return None
