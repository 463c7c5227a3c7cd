"""Image effects exercised by the golden-image tests."""

import numpy as np
from PIL import Image

# Modes that can take the blended colours back without a palette
IN_PLACE_MODES = {"RGB", "RGBA", "L", "LA"}


class GradientOverlay:
    """Darken the bottom of an image with a vertical colour gradient.

    The covered band starts fully transparent at its top row and reaches full
    opacity on the last row of the image.
    """

    def __init__(self, cover_percent: float = 100, color: tuple[int, int, int] = (0, 0, 0)):
        if not 0 <= cover_percent <= 100:
            raise ValueError(f"cover_percent must be within 0..100, got {cover_percent}")
        self.cover_percent = cover_percent
        self.color = tuple(color)

    def opacity_mask(self, size: tuple[int, int]) -> Image.Image:
        """Return the per-pixel opacity of the gradient as an ``L`` image."""
        width, height = size
        band = round(height * self.cover_percent / 100)

        opacity = np.zeros(height, dtype=np.float64)
        if band == 1:
            opacity[-1] = 1.0
        elif band > 1:
            opacity[height - band :] = np.linspace(0.0, 1.0, band)

        column = np.round(opacity * 255).astype(np.uint8)
        return Image.fromarray(np.repeat(column[:, np.newaxis], width, axis=1))

    def apply(self, image: Image.Image) -> Image.Image:
        """Apply the gradient and return the resulting image.

        Images in ``RGB``, ``RGBA``, ``L`` or ``LA`` mode are changed in place
        and returned. Any other mode, palette images included, cannot hold the
        new colours, so a new ``RGB`` (``RGBA`` when the source has
        transparency) image is returned and ``image`` is left untouched.
        Callers should always use the returned image.
        """
        working = image.convert("RGBA")
        overlay = Image.new("RGBA", image.size, self.color + (255,))
        blended = Image.composite(overlay, working, self.opacity_mask(image.size))
        # Keep the source transparency, only colours are darkened
        blended.putalpha(working.getchannel("A"))

        if image.mode not in IN_PLACE_MODES:
            has_alpha = "A" in image.getbands() or "transparency" in image.info
            return blended if has_alpha else blended.convert("RGB")

        image.paste(blended.convert(image.mode))
        return image
