"""Intensity projections of voxel volumes, and PNG, BMP, TGA, HDR and JPEG encoders."""

__version__ = "0.1.0"

__all__ = ["bitmap", "deflate", "hdr", "jpeg", "png", "projection"]