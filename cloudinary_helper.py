"""
Cloudinary Integration Helper
Stores avatars, bill scans and community post images
"""

import cloudinary
import cloudinary.uploader
import os
import logging
from datetime import datetime, timezone

logger = logging.getLogger('relief.cloudinary')

ROOT_FOLDER = 'relief'


def init_cloudinary():
    """Configure Cloudinary from CLOUDINARY_URL or the three CLOUDINARY_* variables."""
    cloudinary_url = os.environ.get('CLOUDINARY_URL')
    cloud_name = os.environ.get('CLOUDINARY_CLOUD_NAME')
    api_key = os.environ.get('CLOUDINARY_API_KEY')
    api_secret = os.environ.get('CLOUDINARY_API_SECRET')

    if cloudinary_url:
        cloudinary.config(cloudinary_url=cloudinary_url)
        logger.info('Cloudinary configured from CLOUDINARY_URL')
        return True
    if cloud_name and api_key and api_secret:
        cloudinary.config(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True)
        logger.info('Cloudinary configured from individual env vars')
        return True
    logger.warning('Cloudinary not configured - image uploads will fail')
    return False


def upload_image(file, folder=ROOT_FOLDER, public_id=None, transformation=None):
    """
    Upload an image to Cloudinary.

    Args:
        file: FileStorage, file-like object or raw bytes
        folder: Cloudinary folder
        public_id: Optional fixed public id (overwrites any existing image)
        transformation: Optional incoming transformation dict

    Returns:
        dict with 'url' and 'public_id' on success, or None on failure
    """
    if not file:
        return None

    options = {
        'folder': folder,
        'resource_type': 'image',
        'overwrite': True,
        'invalidate': True,
    }
    if public_id:
        options['public_id'] = public_id
    if transformation:
        options['transformation'] = transformation

    try:
        result = cloudinary.uploader.upload(file, **options)
    except cloudinary.exceptions.Error as e:
        logger.error(f'Cloudinary upload failed: {e}')
        return None
    except Exception as e:
        logger.error(f'Unexpected error uploading to Cloudinary: {e}')
        return None

    return {
        'url': result.get('secure_url'),
        'public_id': result.get('public_id'),
    }


def upload_avatar(file, user_id):
    """Square, face-cropped avatar. Returns the URL or None."""
    result = upload_image(
        file,
        folder=f'{ROOT_FOLDER}/avatars',
        public_id=f'user_{user_id}',
        transformation={'width': 400, 'height': 400, 'crop': 'fill', 'gravity': 'face',
                        'quality': 'auto', 'fetch_format': 'auto'},
    )
    return result.get('url') if result else None


def upload_bill_image(file, user_id):
    """Bill scan kept for the user's records. Returns the upload dict or None."""
    stamp = datetime.now(timezone.utc).strftime('%Y%m%d%H%M%S')
    return upload_image(
        file,
        folder=f'{ROOT_FOLDER}/bills',
        public_id=f'bill_{user_id}_{stamp}',
        transformation={'width': 1600, 'height': 1600, 'crop': 'limit', 'quality': 'auto:good'},
    )


def upload_post_image(file, user_id):
    """Community post image. Returns the upload dict or None."""
    return upload_image(
        file,
        folder=f'{ROOT_FOLDER}/posts',
        transformation={'width': 1200, 'height': 1200, 'crop': 'limit', 'quality': 'auto:good',
                        'fetch_format': 'auto'},
    )


def delete_image(public_id):
    if not public_id:
        return False
    try:
        result = cloudinary.uploader.destroy(public_id)
        return result.get('result') == 'ok'
    except Exception as e:
        logger.error(f'Failed to delete image {public_id}: {e}')
        return False


THUMBNAIL_SIZE = 80


def avatar_thumbnail(url, size=THUMBNAIL_SIZE):
    """Square face-cropped delivery URL for a stored avatar; other URLs come back unchanged."""
    if not url or 'res.cloudinary.com' not in url or url.count('/upload/') != 1:
        return url
    prefix, path = url.split('/upload/')
    return f'{prefix}/upload/c_thumb,g_face,w_{size},h_{size},f_auto,q_auto/{path}'
