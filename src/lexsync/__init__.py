"""Format-aware change detection and merge dispatch for linguistic data
repositories."""

__version__ = "0.4.0"
