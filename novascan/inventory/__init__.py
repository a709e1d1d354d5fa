"""Nova inventory scanning and classification."""

from .filters import InventoryFilter, match_glob, should_skip_container_for_helm
from .scanner import NovaScanner, decode_inventory

__all__ = [
    "InventoryFilter",
    "NovaScanner",
    "decode_inventory",
    "match_glob",
    "should_skip_container_for_helm",
]
