"""Asset catalog."""

from facility_builder.registry.assets import AssetRegistry, default_assets

__all__ = ["AssetRegistry", "default_assets"]
