"""Resolve which image file represents a parking lot."""

import logging
from pathlib import Path
from typing import Callable, Optional

logger = logging.getLogger(__name__)

PRODUCTION_PATTERN = "lot-{id}"
PRODUCTION_EXTENSION = ".jpg"

# Test fixtures were named inconsistently, so try these in order
TEST_IMAGE_PATTERNS = (
    "lot-{id}",  # lot-49
    "lot-{lower}",  # lot-b12 for id B12
    "lot-{id}A",  # lot-2A
)
TEST_IMAGE_EXTENSIONS = (".jpg", ".jpeg")


class ImageLocator:
    """
    Maps a location id to an image file.

    Production images follow a single naming convention. In test-fixture
    mode a table of name patterns crossed with extensions is probed and
    the first existing file wins.
    """

    def __init__(
        self,
        images_dir: str | Path,
        test_images_dir: str | Path,
        use_test_images: bool = False,
        exists: Callable[[Path], bool] = Path.is_file,
    ):
        """
        Initialize the locator.

        Args:
            images_dir: Directory holding production lot images
            test_images_dir: Directory holding test fixture images
            use_test_images: Resolve against test fixtures instead of production images
            exists: Existence check used for each candidate path
        """
        self.images_dir = Path(images_dir)
        self.test_images_dir = Path(test_images_dir)
        self.use_test_images = use_test_images
        self._exists = exists

        if use_test_images:
            logger.info(f"Using test images from: {self.test_images_dir}")
            if not self.test_images_dir.is_dir():
                logger.warning(f"Test images directory does not exist: {self.test_images_dir}")

    @property
    def base_dir(self) -> Path:
        return self.test_images_dir if self.use_test_images else self.images_dir

    def candidates(self, location_id: str) -> list[str]:
        """
        List candidate file names for a location, in probe order.

        Args:
            location_id: Location identifier

        Returns:
            File names without directory, duplicates removed
        """
        if not self.use_test_images:
            return [PRODUCTION_PATTERN.format(id=location_id) + PRODUCTION_EXTENSION]

        names = [
            pattern.format(id=location_id, lower=location_id.lower()) + ext
            for pattern in TEST_IMAGE_PATTERNS
            for ext in TEST_IMAGE_EXTENSIONS
        ]
        return list(dict.fromkeys(names))

    def locate(self, location_id: str) -> Optional[Path]:
        """
        Find the image for a location.

        Args:
            location_id: Location identifier

        Returns:
            Path to the first existing candidate, or None if none exist
        """
        for name in self.candidates(location_id):
            path = self.base_dir / name
            if self._exists(path):
                logger.debug(f"Resolved image for {location_id}: {path}")
                return path

        logger.debug(f"No image found for {location_id} in {self.base_dir}")
        return None
