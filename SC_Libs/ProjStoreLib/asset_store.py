"""
Template and overlay asset storage.

Assets are named ``template_<variant>`` and ``overlay_<variant>`` for the
variants in TEMPLATE_VARIANTS. They can be loaded from a directory of PNG
files or registered directly as bytes.
"""

import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional, Union

from SC_Libs.constants import (
    DEFAULT_ASSET_FILES,
    OVERLAY_ASSET_PREFIX,
    TEMPLATE_ASSET_PREFIX,
    TEMPLATE_VARIANTS,
    VARIANT_BASE,
)
from SC_Libs.errors import AssetMissingError
from SC_Libs.ImageEditingLib.raster_models import RasterImage, describe_raster

logger = logging.getLogger(__name__)


def asset_name(prefix: str, variant: str) -> str:
    """Build an asset name such as 'template_base'."""
    return f"{prefix}_{variant}"


class AssetStore:
    """
    Named template/overlay byte buffers with lazily decoded rasters.

    Example:
        >>> store = AssetStore("assets")
        >>> store.ensure_loaded()
        >>> template = store.get_template("zoom")
    """

    def __init__(
        self,
        asset_dir: Optional[Union[str, Path]] = None,
        file_names: Optional[Dict[str, str]] = None,
    ):
        self.asset_dir = Path(asset_dir) if asset_dir is not None else None
        self.file_names = dict(file_names or DEFAULT_ASSET_FILES)
        self._bytes: Dict[str, bytes] = {}
        self._rasters: Dict[str, RasterImage] = {}
        self._loaded = False
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def register_bytes(self, name: str, data: bytes) -> None:
        """Register (or replace) an asset from raw encoded bytes."""
        with self._lock:
            self._bytes[name] = bytes(data)
            self._rasters.pop(name, None)
        logger.debug(f"Registered asset {name} ({len(data)} bytes)")

    def ensure_loaded(self) -> None:
        """
        Load assets from ``asset_dir`` once.

        Safe to call repeatedly and from several threads; only the first call
        reads the directory. Files that are not present are skipped and
        surface later as AssetMissingError when requested.
        """
        if self._loaded:
            return

        with self._lock:
            if self._loaded:
                return
            if self.asset_dir is not None:
                self._load_directory(self.asset_dir)
            self._loaded = True

    def _load_directory(self, asset_dir: Path) -> None:
        if not asset_dir.is_dir():
            raise AssetMissingError("asset load", f"asset directory not found: {asset_dir}")

        for name, file_name in self.file_names.items():
            if name in self._bytes:
                continue
            path = asset_dir / file_name
            if not path.is_file():
                logger.debug(f"Asset file not present: {path}")
                continue
            self._bytes[name] = path.read_bytes()
            logger.info(f"Loaded asset {name} from {path} ({len(self._bytes[name])} bytes)")

    def names(self) -> List[str]:
        return sorted(self._bytes)

    def available_variants(self) -> List[str]:
        """Variants whose template asset is present."""
        self.ensure_loaded()
        return [
            variant for variant in TEMPLATE_VARIANTS
            if asset_name(TEMPLATE_ASSET_PREFIX, variant) in self._bytes
        ]

    def get_bytes(self, name: str) -> bytes:
        """
        Return the encoded bytes of an asset.

        Raises:
            AssetMissingError: If the asset is not available
        """
        self.ensure_loaded()
        try:
            return self._bytes[name]
        except KeyError:
            raise AssetMissingError("asset lookup", f"asset '{name}' is not loaded") from None

    def get_raster(self, name: str) -> RasterImage:
        """
        Return a decoded copy of an asset.

        Raises:
            AssetMissingError: If the asset is not available
            DecodeError: If the asset bytes cannot be decoded
        """
        data = self.get_bytes(name)
        with self._lock:
            raster = self._rasters.get(name)
            if raster is None:
                raster = RasterImage.from_bytes(data, operation=f"asset decode {name}")
                self._rasters[name] = raster
                logger.debug(f"Decoded asset {name}: {describe_raster(raster)}")
        return raster.copy()

    def get_template(self, variant: str = VARIANT_BASE) -> RasterImage:
        return self.get_raster(asset_name(TEMPLATE_ASSET_PREFIX, variant))

    def get_overlay(self, variant: str = VARIANT_BASE) -> RasterImage:
        return self.get_raster(asset_name(OVERLAY_ASSET_PREFIX, variant))

    def has_overlay(self, variant: str = VARIANT_BASE) -> bool:
        self.ensure_loaded()
        return asset_name(OVERLAY_ASSET_PREFIX, variant) in self._bytes

    @classmethod
    def from_bytes(cls, assets: Dict[str, bytes]) -> "AssetStore":
        """Build a store from already-loaded asset bytes."""
        store = cls()
        for name, data in assets.items():
            store.register_bytes(name, data)
        store.ensure_loaded()
        return store

