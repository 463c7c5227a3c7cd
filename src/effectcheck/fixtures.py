"""Discovery of sample and golden images for effect tests."""

from pathlib import Path

import structlog

from effectcheck.utils import list_images


class FixtureLocator:
    """Finds fixture images below a data root.

    Layout::

        <data_root>/images/samples/                 input fixtures
        <data_root>/images/results/<effect_name>/   golden outputs per effect
    """

    def __init__(self, data_root: Path, logger: structlog.BoundLogger | None = None):
        self.data_root = Path(data_root)
        self.logger = logger if logger is not None else structlog.get_logger()

    @property
    def images_root(self) -> Path:
        return self.data_root / "images"

    @property
    def samples_dir(self) -> Path:
        return self.images_root / "samples"

    def results_dir(self, effect_name: str) -> Path:
        return self.images_root / "results" / effect_name

    def list_sample_images(self) -> list[Path]:
        """Return sample images sorted by path."""
        return list_images(self.samples_dir, logger=self.logger)

    def list_expected_results(self, effect_name: str) -> list[Path]:
        """Return golden images of an effect sorted by path."""
        return list_images(self.results_dir(effect_name), logger=self.logger)

    def pairs(self, effect_name: str) -> list[tuple[Path, Path]]:
        """Pair samples with expected results of an effect.

        Pairing is positional: the Nth sample by sort order goes with the Nth
        expected result, whatever the file names are.
        """
        samples = self.list_sample_images()
        results = self.list_expected_results(effect_name)

        if len(samples) != len(results):
            # zip() below drops the unmatched tail
            self.logger.warning(
                "Sample and result counts differ",
                effect=effect_name,
                samples=len(samples),
                results=len(results),
            )

        return list(zip(samples, results))
