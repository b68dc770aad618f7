import logging
import os
import time
import uuid

from werkzeug.utils import secure_filename

from marketplace.services.s3_service import StorageError
from marketplace.utils.errors import UpstreamError, ValidationError

logger = logging.getLogger(__name__)


def validate_image(file, allowed_extensions):
    if file is None or file.filename == '':
        raise ValidationError('No image selected')
    extension = os.path.splitext(file.filename)[1].lower()
    if extension not in allowed_extensions:
        raise ValidationError(f"File type not allowed. Allowed types: {', '.join(sorted(allowed_extensions))}")
    return extension


def upload_image(file, storage, upload_folder, key_prefix, allowed_extensions):
    """
    Save an incoming upload to scratch storage, push it to object storage and
    remove the scratch copy. Returns the public URL.
    """
    extension = validate_image(file, allowed_extensions)
    os.makedirs(upload_folder, exist_ok=True)
    unique_name = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}{extension}"
    local_path = os.path.join(upload_folder, secure_filename(unique_name))
    file.save(local_path)

    try:
        return storage.upload_path(local_path, f"{key_prefix}/{unique_name}")
    except StorageError as e:
        raise UpstreamError('Failed to upload image', {'error': str(e)}) from e
    finally:
        try:
            os.remove(local_path)
        except OSError as e:
            logger.warning(f"Could not remove scratch upload {local_path}: {str(e)}")


def discard_image(url, storage):
    """Best-effort removal of a replaced image from object storage."""
    key = storage.key_from_url(url)
    if not key:
        return
    try:
        storage.delete_file(key)
    except StorageError as e:
        logger.warning(f"Could not delete replaced image {key}: {str(e)}")
