"""Batch check of an effect against all of its golden images."""

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import structlog
from PIL import Image
from rich.console import Console
from rich.table import Table

from effectcheck.conformity import check_conformity
from effectcheck.effects import GradientOverlay
from effectcheck.fixtures import FixtureLocator
from effectcheck.stash import ImageStash
from effectcheck.utils import create_progress_bar


@dataclass
class PairResult:
    """Result from checking a single fixture pair."""

    sample_path: Path
    expected_result_path: Path
    index: int
    passed: bool
    conformity: Optional[float] = None
    message: str = ""
    destination: Optional[Path] = None


class EffectRunner:
    """Applies an effect to every sample and compares it with its golden image."""

    def __init__(
        self,
        logger: structlog.BoundLogger,
        data_dir: Path,
        output_dir: Path | None = None,
        effect_name: str = "gradient",
        effect: GradientOverlay | None = None,
        max_conformity: float = 20,
        json_output: bool = False,
        script_mode: bool = False,
    ):
        """Initialize the runner."""
        self.logger = logger
        self.locator = FixtureLocator(data_dir, logger=logger)
        self.output_dir = output_dir
        self.effect_name = effect_name
        self.effect = effect if effect is not None else GradientOverlay()
        self.max_conformity = max_conformity
        self.json_output = json_output
        self.script_mode = script_mode

        # Statistics
        self.total_pairs = 0
        self.passed = 0
        self.failed = 0
        self.results: list[PairResult] = []

        # For non-script mode
        self.console = Console(stderr=True) if not script_mode else None

    def run(self) -> int:
        """Check all fixture pairs of the effect.

        Returns:
            Exit code: 0 when every pair conforms, 1 otherwise.
        """
        pairs = self.locator.pairs(self.effect_name)
        self.total_pairs = len(pairs)

        if self.total_pairs == 0:
            self.logger.warning(
                "No fixture pairs found",
                effect=self.effect_name,
                data_dir=str(self.locator.data_root),
            )
            return 0

        self.logger.info(
            "Found fixture pairs to check",
            count=self.total_pairs,
            effect=self.effect_name,
            max_conformity=self.max_conformity,
        )

        progress = None
        if not self.json_output:
            progress = create_progress_bar(self.script_mode)

        if progress is None:
            for index, (sample, expected) in enumerate(pairs, 1):
                self._handle_result(self.check_pair(sample, expected, index))
        else:
            with progress:
                task = progress.add_task("Checking images...", total=self.total_pairs)
                for index, (sample, expected) in enumerate(pairs, 1):
                    self._handle_result(self.check_pair(sample, expected, index))
                    progress.update(task, advance=1)

        self._log_summary()

        return 1 if self.failed > 0 else 0

    def pair_output_dir(self, sample_path: Path) -> Path | None:
        """Return the dump directory of a sample, keyed by its full file name."""
        if self.output_dir is None:
            return None
        return self.output_dir / self.effect_name / sample_path.name

    def check_pair(self, sample_path: Path, expected_result_path: Path, index: int) -> PairResult:
        """Apply the effect to one sample and compare it with its golden image."""
        self.logger.debug(
            "Checking pair",
            sample=str(sample_path),
            expected=str(expected_result_path),
        )
        pair_dir = self.pair_output_dir(sample_path)
        if pair_dir is not None and pair_dir.exists():
            self.logger.debug("Dropping stale pair output", path=str(pair_dir))
            shutil.rmtree(pair_dir)

        with Image.open(expected_result_path) as expected, Image.open(sample_path) as sample:
            sample.load()
            image = self.effect.apply(sample)
            result = check_conformity(image, expected, self.max_conformity, logger=self.logger)

            destination = None
            if not result.passed and pair_dir is not None:
                stash = ImageStash()
                stash.stash(result.images)
                stash.dump(pair_dir)
                stash.clear()
                destination = pair_dir

        return PairResult(
            sample_path=sample_path,
            expected_result_path=expected_result_path,
            index=index,
            passed=result.passed,
            conformity=result.conformity,
            message=result.message,
            destination=destination,
        )

    def _handle_result(self, result: PairResult) -> None:
        """Handle a check result."""
        self.results.append(result)

        log_data = {
            "file": str(result.sample_path),
            "expected": str(result.expected_result_path),
            "index": result.index,
            "conformity": result.conformity,
        }
        if result.destination:
            log_data["destination"] = str(result.destination)

        if result.passed:
            self.passed += 1
            self.logger.info("Image conforms", **log_data)
        else:
            self.failed += 1
            if result.message:
                log_data["reason"] = result.message
            self.logger.error("Image does not conform", **log_data)

    def _log_summary(self) -> None:
        """Log a summary of the check results."""
        summary_data = {
            "total_pairs": self.total_pairs,
            "passed": self.passed,
            "failed": self.failed,
        }
        if self.output_dir is not None and self.failed:
            summary_data["output_dir"] = str(self.output_dir)

        self.logger.info("Check complete", **summary_data)

        # For non-script, non-JSON mode, also print a nice summary table
        if not self.script_mode and not self.json_output and self.console:
            table = Table(title="Summary", show_header=False)
            table.add_column("Metric", style="cyan")
            table.add_column("Value", style="green")

            table.add_row("Effect", self.effect_name)
            table.add_row("Total Pairs", str(self.total_pairs))
            table.add_row("Passed", str(self.passed))
            table.add_row("Failed", str(self.failed))
            if self.output_dir is not None and self.failed:
                table.add_row("Dumped to", str(self.output_dir / self.effect_name))

            self.console.print("\n")
            self.console.print(table)
