import io
import logging

import pytest
from PIL import Image

from config import ConfigurationManager
from receipt_extraction.utils.logger import APP_LOGGER_NAME

STARBUCKS_LINES = [
    "STARBUCKS COFFEE",
    "Jl. Sudirman No. 1",
    "25/12/2023 14:30",
    "Cappuccino Rp45.000",
    "Total Rp45.000",
]


@pytest.fixture(autouse=True)
def reset_config():
    """Load the default settings.yaml fresh for every test."""
    ConfigurationManager.reset()
    yield
    ConfigurationManager.reset()
    logging.getLogger(APP_LOGGER_NAME).handlers.clear()


@pytest.fixture
def starbucks_lines():
    return list(STARBUCKS_LINES)


@pytest.fixture
def starbucks_text():
    return "\n".join(STARBUCKS_LINES)


@pytest.fixture
def indonesian_text():
    return "\n".join([
        "WARUNG MAKAN SEDERHANA",
        "Jl. Gatot Subroto 45",
        "Tanggal: 2024-01-15 19:05",
        "Nasi Goreng 25.000",
        "Es Teh Manis 5.000",
        "Subtotal 30.000",
        "PPN 10% 3.000",
        "Total Bayar Rp 33.000",
    ])


def encode_image(fmt="PNG", size=(40, 20), mode="RGB", color="white", **save_kwargs):
    """Encode a tiny solid image in the given format."""
    image = Image.new(mode, size, color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt, **save_kwargs)
    return buffer.getvalue()


@pytest.fixture
def png_bytes():
    return encode_image("PNG")


@pytest.fixture
def image_bytes():
    """Factory fixture: ``image_bytes("JPEG", size=(40, 20))``."""
    return encode_image
