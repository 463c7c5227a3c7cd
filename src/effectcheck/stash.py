"""Holding area for images of a failed comparison, and dumping them to disk."""

import math
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

from PIL import Image


def dump_images(path: Path, images: Iterable[Any]) -> list[Path]:
    """Write images as ``1.png``, ``2.png``, ... into ``path``.

    Indexes are zero-padded to the width of the largest one, so ten images
    become ``01.png`` to ``10.png``. Entries that are not images are skipped
    but still count towards the numbering.
    """
    images = list(images)
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)

    width = math.ceil(math.log10(len(images) + 1))
    written = []
    for index, image in enumerate(images, 1):
        if not isinstance(image, Image.Image):
            continue
        target = path / f"{index:0{width}d}.png"
        image.save(target, format="PNG")
        written.append(target)

    return written


def clear_dump(path: Path) -> list[Path]:
    """Remove the numbered images of an earlier dump from ``path``.

    Only files named like ``3.png`` or ``07.png`` are removed, anything else
    in the directory is left alone.
    """
    path = Path(path)
    if not path.is_dir():
        return []

    removed = []
    for file_path in sorted(path.glob("*.png")):
        if file_path.is_file() and file_path.stem.isdigit():
            file_path.unlink()
            removed.append(file_path)

    return removed


class ImageStash:
    """Images kept from the last failed check of a single test."""

    def __init__(self) -> None:
        self._images: list[Image.Image] = []

    def stash(self, images: Iterable[Any]) -> None:
        """Replace the stash with the images found in ``images``.

        Anything that is not a PIL image is dropped on purpose: callers hand
        over whatever a check produced, which may include missing diffs.
        """
        self._images = [image for image in images if isinstance(image, Image.Image)]

    def clear(self) -> None:
        self._images = []

    def dump(self, path: Path) -> list[Path]:
        return dump_images(path, self._images)

    def __len__(self) -> int:
        return len(self._images)

    def __bool__(self) -> bool:
        return bool(self._images)

    def __iter__(self) -> Iterator[Image.Image]:
        return iter(self._images)
