"""Fuzzy comparison of rendered images against golden images.

Conformity is a 0-100 dissimilarity score: 0 means identical pixels. The raw
mean squared error of the two images is pushed through a fourth-root curve,
so that small pixel deltas, which make up most real regressions, already move
the score noticeably.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
import structlog
from PIL import Image

CONFORMITY_EXPONENT = 0.25

# Colour used to mark differing pixels in the diff image
HIGHLIGHT_COLOR = (241, 0, 30)
# How far the reference image is faded towards white behind the highlights
LOWLIGHT_ALPHA = 0.8


@dataclass(frozen=True)
class ConformityResult:
    """Outcome of a single conformity check.

    ``images`` holds what should be stashed for post-mortem inspection when
    the check failed: actual and expected image on a size mismatch, plus the
    diff image when the score was too high.
    """

    passed: bool
    images: tuple[Image.Image, ...] = ()
    message: str = ""
    conformity: Optional[float] = None
    raw_error: Optional[float] = None

    def __bool__(self) -> bool:
        return self.passed


def normalize_conformity(raw_error: float) -> float:
    """Map a raw mean squared error in [0, 1] onto the 0-100 conformity scale."""
    return raw_error**CONFORMITY_EXPONENT * 100


def _as_unit_array(image: Image.Image) -> np.ndarray:
    return np.asarray(image.convert("RGBA"), dtype=np.float64) / 255.0


def _highlight_differences(image: Image.Image, changed: np.ndarray) -> Image.Image:
    """Fade ``image`` towards white and paint the changed pixels."""
    base = image.convert("RGB")
    white = Image.new("RGB", base.size, (255, 255, 255))
    diff_image = Image.blend(base, white, LOWLIGHT_ALPHA)
    mask = Image.fromarray(changed.astype(np.uint8) * 255)
    diff_image.paste(HIGHLIGHT_COLOR, mask=mask)
    return diff_image


def compare(
    image_a: Image.Image, image_b: Image.Image
) -> Optional[tuple[Image.Image, float]]:
    """Compare two images of equal size with the mean squared error metric.

    Returns:
        ``(diff_image, raw_error)`` with ``raw_error`` in [0, 1], or None if
        the images are pixel-identical.
    """
    if image_a.size != image_b.size:
        raise ValueError(
            f"Cannot compare images of different size: {image_a.size} and {image_b.size}"
        )

    squared = (_as_unit_array(image_a) - _as_unit_array(image_b)) ** 2
    raw_error = float(squared.mean())
    if raw_error == 0.0:
        return None

    changed = squared.any(axis=-1)
    return _highlight_differences(image_a, changed), raw_error


def check_conformity(
    actual: Image.Image,
    expected: Image.Image,
    max_conformity: float,
    logger: structlog.BoundLogger | None = None,
) -> ConformityResult:
    """Check that two images differ by no more than ``max_conformity`` (0-100).

    A score equal to ``max_conformity`` still passes.
    """
    if not 0 <= max_conformity <= 100:
        raise ValueError(f"max_conformity must be within 0..100, got {max_conformity}")
    if logger is None:
        logger = structlog.get_logger()

    if actual.width != expected.width or actual.height != expected.height:
        message = (
            "Provided images differ in physical size: image A is "
            f"`{actual.width}x{actual.height}`, image B is "
            f"`{expected.width}x{expected.height}`"
        )
        return ConformityResult(passed=False, images=(actual, expected), message=message)

    comparison = compare(actual, expected)
    if comparison is None:
        return ConformityResult(passed=True, conformity=0.0, raw_error=0.0)

    diff_image, raw_error = comparison
    conformity = normalize_conformity(raw_error)
    logger.debug("Initial conformity", raw_error=raw_error)
    logger.debug("Normalized conformity", conformity=conformity, max_conformity=max_conformity)

    if conformity > max_conformity:
        return ConformityResult(
            passed=False,
            images=(actual, expected, diff_image),
            conformity=conformity,
            raw_error=raw_error,
        )
    return ConformityResult(passed=True, conformity=conformity, raw_error=raw_error)


def check_equality(
    actual: Image.Image,
    expected: Image.Image,
    logger: structlog.BoundLogger | None = None,
) -> ConformityResult:
    """Check that two images are pixel-identical."""
    return check_conformity(actual, expected, 0, logger=logger)
