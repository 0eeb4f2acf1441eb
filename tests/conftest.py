"""
Pytest fixtures for CropScan tests.
"""
import os
import random
import pytest
from fastapi.testclient import TestClient

# Set test environment variables BEFORE importing app
os.environ['CROPSCAN_IDENTIFY_DELAY'] = '0'
os.environ['CROPSCAN_DETECT_DELAY'] = '0'
os.environ['CROPSCAN_MAX_IMAGE_MB'] = '2'
os.environ['CROPSCAN_STRICT_IDENTIFICATION'] = 'false'
os.environ.pop('CROPSCAN_KB_ROOT', None)
os.environ.pop('KB_ROOT', None)

from cropscan.main import app
from cropscan.api.schemas import ImageRef
from cropscan.services.knowledge_base import get_knowledge_base


@pytest.fixture(scope="function")
def client():
    """FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def knowledge_base():
    """The packaged knowledge base."""
    return get_knowledge_base()


@pytest.fixture
def seeded_rng():
    return random.Random(1234)


@pytest.fixture
def sample_image_bytes():
    """Generate a minimal valid PNG image for testing."""
    from io import BytesIO
    from PIL import Image

    # Create 100x100 green square
    img = Image.new('RGB', (100, 100), color='green')
    buf = BytesIO()
    img.save(buf, format='PNG')
    buf.seek(0)
    return buf.read()


@pytest.fixture
def invalid_image_bytes():
    """Invalid image data for error testing."""
    return b"not a valid image"


@pytest.fixture
def oversized_image_bytes():
    """Generate image larger than MAX_IMAGE_MB for testing."""
    from io import BytesIO
    from PIL import Image

    # Create large image (should exceed 2MB test limit)
    img = Image.new('RGB', (3000, 3000), color='blue')
    buf = BytesIO()
    img.save(buf, format='PNG', compress_level=0)
    buf.seek(0)
    return buf.read()


@pytest.fixture
def make_image_ref(sample_image_bytes):
    """Factory for ImageRef values with a given file name."""
    def _make(file_name: str) -> ImageRef:
        return ImageRef(
            file_name=file_name,
            content_type="image/png",
            data=sample_image_bytes,
            size_bytes=len(sample_image_bytes),
        )
    return _make
