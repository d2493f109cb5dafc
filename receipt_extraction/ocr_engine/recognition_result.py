"""
Recognition Result Data Classes.

This module defines data structures for text recognition output,
providing a standardized format for text and bounding box information.

Classes:
    OCRWord: Individual word with bounding box
    OCRLine: Line of text containing multiple words
    RecognitionResult: Complete recognition output for an image
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from receipt_extraction.utils.helpers import clamp_unit


@dataclass
class OCRWord:
    """
    Represents a single word/token extracted by the recognizer.

    Attributes:
        text: The recognized text content
        bbox: Bounding box as (x1, y1, x2, y2) in pixels
        confidence: Engine confidence score (0-100)
        word_index: Index of word in the image
        line_key: (block, paragraph, line) numbers assigned by the engine

    Example:
        >>> word = OCRWord(text="TOTAL", bbox=(100, 50, 200, 80), confidence=95.5)
        >>> word.width
        100
    """
    text: str
    bbox: Tuple[int, int, int, int]
    confidence: float = 0.0
    word_index: int = 0
    line_key: Tuple[int, int, int] = (0, 0, 0)

    @property
    def x1(self) -> int:
        """Left coordinate."""
        return self.bbox[0]

    @property
    def y1(self) -> int:
        """Top coordinate."""
        return self.bbox[1]

    @property
    def x2(self) -> int:
        """Right coordinate."""
        return self.bbox[2]

    @property
    def y2(self) -> int:
        """Bottom coordinate."""
        return self.bbox[3]

    @property
    def width(self) -> int:
        return self.x2 - self.x1

    @property
    def height(self) -> int:
        return self.y2 - self.y1

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            'text': self.text,
            'bbox': list(self.bbox),
            'confidence': self.confidence,
            'word_index': self.word_index,
            'line_key': list(self.line_key)
        }

    def __repr__(self) -> str:
        return f"OCRWord('{self.text}', bbox={self.bbox}, conf={self.confidence:.1f})"


@dataclass
class OCRLine:
    """
    Represents a line of text containing multiple words.

    Attributes:
        words: Words in the line, left to right
        bbox: Bounding box encompassing the entire line
        line_index: Index of this line in reading order
    """
    words: List[OCRWord] = field(default_factory=list)
    bbox: Optional[Tuple[int, int, int, int]] = None
    line_index: int = 0

    @property
    def text(self) -> str:
        """Get the full text of the line."""
        return ' '.join(word.text for word in self.words)

    @property
    def average_confidence(self) -> float:
        """Average engine confidence of the words in the line (0-100)."""
        if not self.words:
            return 0.0
        return sum(w.confidence for w in self.words) / len(self.words)

    def compute_bbox(self) -> Tuple[int, int, int, int]:
        """Compute bounding box from words."""
        if not self.words:
            return (0, 0, 0, 0)

        self.bbox = (
            min(w.x1 for w in self.words),
            min(w.y1 for w in self.words),
            max(w.x2 for w in self.words),
            max(w.y2 for w in self.words)
        )
        return self.bbox

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            'text': self.text,
            'bbox': list(self.bbox) if self.bbox else None,
            'line_index': self.line_index,
            'average_confidence': self.average_confidence
        }


@dataclass
class RecognitionResult:
    """
    Complete text recognition result for a single receipt image.

    This is the output of the recognition adapter: the raw text handed
    to the field extractor plus an overall confidence in [0, 1].

    Attributes:
        words: List of all words with bounding boxes
        lines: Words grouped into lines, top to bottom
        image_width: Width of the source image in pixels
        image_height: Height of the source image in pixels
        language: Recognition language used
        engine: Engine name
        processing_time: Time taken for recognition in seconds
        metadata: Additional metadata dictionary

    Example:
        >>> result = session.recognize("receipt.jpg")
        >>> print(result.text)
        >>> print(f"{result.confidence:.0%}")
    """
    words: List[OCRWord] = field(default_factory=list)
    lines: List[OCRLine] = field(default_factory=list)
    image_width: int = 0
    image_height: int = 0
    language: str = "eng"
    engine: str = "unknown"
    processing_time: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        """
        Get the full text content.

        Returns:
            Line texts joined with newlines.
        """
        if self.lines:
            return '\n'.join(line.text for line in self.lines)
        return ' '.join(word.text for word in self.words)

    @property
    def confidence(self) -> float:
        """Overall confidence in [0, 1]: mean word confidence scaled down."""
        if not self.words:
            return 0.0
        mean = sum(w.confidence for w in self.words) / len(self.words)
        return clamp_unit(mean / 100.0)

    @property
    def word_count(self) -> int:
        return len(self.words)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def is_empty(self) -> bool:
        """Check if no text was recognized."""
        return not self.text.strip()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format for serialization."""
        return {
            'text': self.text,
            'confidence': self.confidence,
            'word_count': self.word_count,
            'line_count': self.line_count,
            'image_width': self.image_width,
            'image_height': self.image_height,
            'language': self.language,
            'engine': self.engine,
            'processing_time': self.processing_time,
            'lines': [line.to_dict() for line in self.lines],
            'metadata': self.metadata
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def __repr__(self) -> str:
        return (
            f"RecognitionResult(words={self.word_count}, lines={self.line_count}, "
            f"confidence={self.confidence:.2f})"
        )
