"""
Input Handler Module for the Receipt Extraction System.

This module provides functionality for:
    - Loading receipt images from paths, bytes or PIL images
    - Validating the image encoding and file size
    - Normalizing orientation, color mode and resolution

Supported formats:
    - JPEG, PNG, WebP
"""

from .image_loader import ImageLoader, ImageSource

__all__ = ['ImageLoader', 'ImageSource']
