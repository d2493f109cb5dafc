"""
Image Loader Module.

This module loads receipt images for text recognition:
    - Accepts a file path, raw bytes or an already opened PIL image
    - Validates the encoding (JPEG, PNG, WebP) and the file size limit
    - Corrects orientation from EXIF data
    - Converts to RGB and bounds the resolution

No enhancement is applied: the image is handed to the recognizer as is.
"""

import io
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from config import get_config
from receipt_extraction.utils.exceptions import UnsupportedImageError
from receipt_extraction.utils.helpers import format_file_size
from receipt_extraction.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

ImageSource = Union[str, Path, bytes, bytearray, Image.Image]


class ImageLoader:
    """
    Loader for receipt images (JPEG, PNG, WebP).

    Attributes:
        supported_formats: Accepted PIL format names
        max_file_size: Maximum encoded size in bytes
        max_width: Maximum image width in pixels
        max_height: Maximum image height in pixels
        auto_orient: Whether to apply EXIF orientation

    Example:
        >>> loader = ImageLoader()
        >>> image, metadata = loader.load("receipt.jpg")
        >>> metadata['format']
        'JPEG'
    """

    def __init__(self) -> None:
        """Initialize the image loader with configuration."""
        formats = get_config("input.image.supported_formats", ["JPEG", "PNG", "WEBP"])
        self.supported_formats: List[str] = [fmt.upper() for fmt in formats]
        self.max_file_size = get_config("input.image.max_file_size", 10 * 1024 * 1024)
        self.max_width = get_config("input.image.max_width", 1920)
        self.max_height = get_config("input.image.max_height", 1920)
        self.auto_orient = get_config("input.image.auto_orient", True)

        logger.debug(
            f"ImageLoader initialized (formats={self.supported_formats}, "
            f"max_size={self.max_width}x{self.max_height}, "
            f"max_file={format_file_size(self.max_file_size)})"
        )

    def load(self, source: ImageSource) -> Tuple[Image.Image, Dict[str, Any]]:
        """
        Load and prepare an image for recognition.

        Args:
            source: Path, encoded bytes, or PIL Image.

        Returns:
            Tuple of (RGB PIL Image, metadata dictionary).

        Raises:
            UnsupportedImageError: If the input is unreadable, too large,
                or not a supported encoding.
        """
        if isinstance(source, Image.Image):
            image, size_bytes, name = source, None, "<image>"
        elif isinstance(source, (bytes, bytearray)):
            size_bytes, name = len(source), "<bytes>"
            self._check_file_size(size_bytes, name)
            image = self._open(io.BytesIO(source), name)
        elif isinstance(source, (str, Path)):
            path = Path(source)
            name = path.name
            if not path.is_file():
                raise UnsupportedImageError(
                    path.suffix or "unknown", self.supported_formats, "File not found"
                )
            size_bytes = path.stat().st_size
            self._check_file_size(size_bytes, name)
            image = self._open(path, name)
        else:
            raise UnsupportedImageError(
                type(source).__name__, self.supported_formats, "Unsupported input type"
            )

        self._check_format(image, name)

        metadata = {
            'source': name,
            'format': image.format,
            'file_size_bytes': size_bytes,
            'original_width': image.width,
            'original_height': image.height,
            'original_mode': image.mode
        }

        image = self._prepare(image)
        metadata['processed_width'] = image.width
        metadata['processed_height'] = image.height

        logger.info(
            f"Loaded image {name}: {image.width}x{image.height} "
            f"(original: {metadata['original_width']}x{metadata['original_height']})"
        )
        return image, metadata

    def _open(self, fp, name: str) -> Image.Image:
        try:
            image = Image.open(fp)
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise UnsupportedImageError("unknown", self.supported_formats, f"{name}: {e}")
        return image

    def _check_file_size(self, size_bytes: int, name: str) -> None:
        if size_bytes > self.max_file_size:
            raise UnsupportedImageError(
                "oversized",
                self.supported_formats,
                f"{name} is {format_file_size(size_bytes)}, "
                f"limit is {format_file_size(self.max_file_size)}"
            )

    def _check_format(self, image: Image.Image, name: str) -> None:
        # In-memory images have no encoding to check
        if image.format is None:
            return
        if image.format.upper() not in self.supported_formats:
            logger.warning(f"Rejected {name}: format {image.format}")
            raise UnsupportedImageError(image.format, self.supported_formats)

    def _prepare(self, image: Image.Image) -> Image.Image:
        """
        Apply the loading pipeline.

        Processing steps:
            1. Fix orientation from EXIF
            2. Convert to RGB
            3. Resize if too large
        """
        if self.auto_orient:
            image = ImageOps.exif_transpose(image)

        image = self._convert_to_rgb(image)
        return self._resize_if_needed(image)

    def _convert_to_rgb(self, image: Image.Image) -> Image.Image:
        """
        Convert image to RGB mode.

        Transparent images are flattened onto a white background.
        """
        if image.mode == 'RGB':
            return image

        original_mode = image.mode

        if image.mode in ('RGBA', 'LA', 'P'):
            image = image.convert('RGBA')
            background = Image.new('RGB', image.size, (255, 255, 255))
            background.paste(image, mask=image.split()[3])
            image = background
        else:
            image = image.convert('RGB')

        logger.debug(f"Converted image from {original_mode} to RGB")
        return image

    def _resize_if_needed(self, image: Image.Image) -> Image.Image:
        """
        Resize image if it exceeds maximum dimensions.

        Maintains aspect ratio during resize.
        """
        width, height = image.size

        if width <= self.max_width and height <= self.max_height:
            return image

        ratio = min(self.max_width / width, self.max_height / height)
        new_width = max(1, int(width * ratio))
        new_height = max(1, int(height * ratio))

        image = image.resize((new_width, new_height), Image.Resampling.LANCZOS)

        logger.debug(f"Resized image from {width}x{height} to {new_width}x{new_height}")
        return image
