"""
Media uploads.

Multipart files are first staged on local disk, then forwarded to
Cloudinary. The staged copy is removed whatever the outcome.
"""

import logging
import os
import shutil
from typing import Any, Dict, Optional

import cloudinary
import cloudinary.uploader
from bson import ObjectId
from cloudinary.exceptions import Error as CloudinaryError
from fastapi import UploadFile

from config import settings

logger = logging.getLogger(__name__)


def stage_upload(upload: Optional[UploadFile], upload_dir: Optional[str] = None) -> Optional[str]:
    """Copy ``upload`` into the staging directory and return the local path."""
    if upload is None or not upload.filename:
        return None
    upload_dir = upload_dir or settings.upload_dir
    os.makedirs(upload_dir, exist_ok=True)

    ext = os.path.splitext(upload.filename)[1]
    local_path = os.path.join(upload_dir, f"{ObjectId()}{ext}")
    with open(local_path, "wb") as f:
        shutil.copyfileobj(upload.file, f)
    return local_path


def remove_local_file(local_path: str) -> None:
    try:
        os.remove(local_path)
    except FileNotFoundError:
        pass


class MediaStorage:
    """Thin wrapper over the Cloudinary uploader."""

    def __init__(self, cloud_name: Optional[str] = None, api_key: Optional[str] = None,
                 api_secret: Optional[str] = None, timeout: Optional[float] = None):
        self.timeout = timeout or settings.media_timeout_seconds
        cloudinary.config(
            cloud_name=cloud_name or settings.cloudinary_cloud_name,
            api_key=api_key or settings.cloudinary_api_key,
            api_secret=api_secret or settings.cloudinary_api_secret,
            secure=True,
        )

    def upload(self, local_path: Optional[str], resource_type: str = "auto") -> Optional[Dict[str, Any]]:
        """Upload a staged file; returns the host's result or None on failure."""
        if not local_path:
            return None
        try:
            return cloudinary.uploader.upload(local_path, resource_type=resource_type, timeout=self.timeout)
        except (CloudinaryError, OSError) as e:
            logger.warning(f"Media upload failed: {e}")
            return None
        finally:
            remove_local_file(local_path)

    def destroy(self, public_id: Optional[str], resource_type: str = "image") -> Optional[Dict[str, Any]]:
        if not public_id:
            return None
        try:
            return cloudinary.uploader.destroy(public_id, resource_type=resource_type, timeout=self.timeout)
        except (CloudinaryError, OSError) as e:
            logger.warning(f"Media delete failed for {public_id}: {e}")
            return None
