"""Storage package: object storage for uploaded images."""

from storage.asset_store import AssetStore, safe_filename, validate_image_file

__all__ = ["AssetStore", "safe_filename", "validate_image_file"]
