"""
In-memory byte cache for imported and colorized images.

Large pixel buffers are kept here, keyed by id, instead of on the records
that describe them. Colorized images keep two buffers: the base (tinted,
pre-composite) PNG used to re-run adjustments, and the final export.
"""

import logging
import threading
from typing import Dict, Iterable, Optional, Tuple

from SC_Libs.ImageEditingLib.raster_models import AdjustmentParameters

logger = logging.getLogger(__name__)

AdjustmentKey = Tuple[str, int]


class ImageCache:
    """Thread-safe store of image bytes and per-generation adjustments."""

    def __init__(self):
        self._full_images: Dict[str, bytes] = {}
        self._thumbnails: Dict[str, bytes] = {}
        self._colorized: Dict[str, bytes] = {}
        self._base_colorized: Dict[str, bytes] = {}
        self._adjustments: Dict[AdjustmentKey, AdjustmentParameters] = {}
        self._lock = threading.RLock()

    # Imported images

    def cache_imported_image(self, image_id: str, data: bytes, thumbnail: bytes) -> None:
        with self._lock:
            self._full_images[image_id] = data
            self._thumbnails[image_id] = thumbnail

    def get_full_image(self, image_id: str) -> Optional[bytes]:
        return self._full_images.get(image_id)

    def get_thumbnail(self, image_id: str) -> Optional[bytes]:
        return self._thumbnails.get(image_id)

    def remove_imported_image(self, image_id: str) -> None:
        with self._lock:
            self._full_images.pop(image_id, None)
            self._thumbnails.pop(image_id, None)

    # Colorized images

    def cache_colorized_image(self, image_id: str, final_bytes: bytes, base_bytes: bytes) -> None:
        with self._lock:
            self._colorized[image_id] = final_bytes
            self._base_colorized[image_id] = base_bytes
        logger.debug(
            f"Cached colorized {image_id}: final {len(final_bytes)} bytes, base {len(base_bytes)} bytes"
        )

    def update_colorized_image(self, image_id: str, final_bytes: bytes) -> None:
        """Replace the final export while keeping the base buffer."""
        with self._lock:
            if image_id not in self._base_colorized:
                raise KeyError(f"No base buffer cached for {image_id}")
            self._colorized[image_id] = final_bytes

    def get_colorized_image(self, image_id: str) -> Optional[bytes]:
        return self._colorized.get(image_id)

    def get_base_colorized_image(self, image_id: str) -> Optional[bytes]:
        return self._base_colorized.get(image_id)

    def remove_colorized_image(self, image_id: str) -> None:
        with self._lock:
            self._colorized.pop(image_id, None)
            self._base_colorized.pop(image_id, None)

    # Adjustments

    def get_adjustments(self, group_id: str, generation_index: int) -> AdjustmentParameters:
        """Adjustments for a generation; defaults when none were set."""
        return self._adjustments.get((group_id, generation_index), AdjustmentParameters())

    def set_adjustments(self, group_id: str, generation_index: int, params: AdjustmentParameters) -> None:
        with self._lock:
            self._adjustments[(group_id, generation_index)] = params

    def reset_adjustments(self, group_id: str, generation_index: int) -> AdjustmentParameters:
        with self._lock:
            self._adjustments.pop((group_id, generation_index), None)
        return AdjustmentParameters.reset()

    # Groups

    def remove_for_group(self, group_id: str, image_ids: Iterable[str] = ()) -> None:
        """Drop colorized buffers of ``image_ids`` and every adjustment of the group."""
        with self._lock:
            for image_id in image_ids:
                self.remove_colorized_image(image_id)
            for key in [k for k in self._adjustments if k[0] == group_id]:
                del self._adjustments[key]
        logger.debug(f"Removed cached data for group {group_id}")

    # Utility

    def clear_imported_images(self) -> None:
        with self._lock:
            self._full_images.clear()
            self._thumbnails.clear()

    def clear_colorized_images(self) -> None:
        with self._lock:
            self._colorized.clear()
            self._base_colorized.clear()
            self._adjustments.clear()

    def clear_all(self) -> None:
        self.clear_imported_images()
        self.clear_colorized_images()

    def get_memory_stats(self) -> Dict[str, int]:
        """Entry counts and byte totals per buffer kind."""
        with self._lock:
            buckets = {
                "imported": self._full_images,
                "thumbnail": self._thumbnails,
                "colorized": self._colorized,
                "base_colorized": self._base_colorized,
            }
            stats: Dict[str, int] = {}
            total = 0
            for label, bucket in buckets.items():
                size = sum(len(data) for data in bucket.values())
                stats[f"{label}_images"] = len(bucket)
                stats[f"{label}_bytes"] = size
                total += size
            stats["adjustments"] = len(self._adjustments)
            stats["total_bytes"] = total
        return stats
