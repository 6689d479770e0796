"""Images — Pillow codec, resize executor and the resizing cache manager."""

from imgcache.images.manager import ImageCacheManager
from imgcache.images.resize import ResizeJob, compute_target_dims, resize_image_file

__all__ = ["ImageCacheManager", "ResizeJob", "compute_target_dims", "resize_image_file"]
