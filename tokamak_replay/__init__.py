"""Load, inspect and play back recorded tokamak particle simulation runs."""

__version__ = "0.1.0"

__all__ = ["camera", "geometry", "loader", "manifest", "snapshot", "viewer"]