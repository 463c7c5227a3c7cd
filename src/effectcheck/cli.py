"""Command-line interface for effectcheck."""
import sys
from pathlib import Path

import click
from PIL import Image
from rich.console import Console
from rich.table import Table

from effectcheck.conformity import check_conformity
from effectcheck.effects import GradientOverlay
from effectcheck.fixtures import FixtureLocator
from effectcheck.runner import EffectRunner
from effectcheck.stash import ImageStash, clear_dump
from effectcheck.utils import setup_logging

DEFAULT_DATA_DIR = Path("tests/_data")


@click.group()
@click.option("--json", "output_json", is_flag=True, help="Output in JSON format for scripts")
@click.option("--script", is_flag=True, help="Disable rich UI for script usage")
@click.option("--verbose", "-v", is_flag=True, help="Log raw and normalized conformity values")
@click.pass_context
def cli(ctx: click.Context, output_json: bool, script: bool, verbose: bool):
    """Check image effects against golden images."""
    ctx.ensure_object(dict)
    ctx.obj["logger"] = setup_logging(json_output=output_json, script_mode=script, verbose=verbose)
    ctx.obj["json_output"] = output_json
    ctx.obj["script_mode"] = script


@cli.command()
@click.argument("actual", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("expected", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--max-conformity", type=click.FloatRange(0, 100), default=0, help="Highest accepted conformity score (default: 0)")
@click.option("--output", type=click.Path(file_okay=False, path_type=Path), help="Dump images of a failed check to this directory")
@click.pass_obj
def compare(obj: dict, actual: Path, expected: Path, max_conformity: float, output: Path | None):
    """Compare ACTUAL with the golden image EXPECTED."""
    logger = obj["logger"]

    if output is not None:
        stale = clear_dump(output)
        if stale:
            logger.debug("Removed images of an earlier dump", path=str(output), count=len(stale))

    with Image.open(actual) as actual_image, Image.open(expected) as expected_image:
        result = check_conformity(actual_image, expected_image, max_conformity, logger=logger)

        log_data = {
            "file": str(actual),
            "expected": str(expected),
            "conformity": result.conformity,
            "max_conformity": max_conformity,
        }
        if not result.passed and output is not None:
            stash = ImageStash()
            stash.stash(result.images)
            log_data["dumped"] = [str(path) for path in stash.dump(output)]

    if result.passed:
        logger.info("Image conforms", **log_data)
        sys.exit(0)

    if result.message:
        log_data["reason"] = result.message
    logger.error("Image does not conform", **log_data)
    sys.exit(1)


@cli.command()
@click.argument("effect")
@click.option("--data-dir", type=click.Path(exists=True, file_okay=False, path_type=Path), default=DEFAULT_DATA_DIR, help="Fixture data root (default: tests/_data)")
@click.pass_obj
def pairs(obj: dict, effect: str, data_dir: Path):
    """List sample / golden image pairs of EFFECT."""
    logger = obj["logger"]
    locator = FixtureLocator(data_dir, logger=logger)
    fixture_pairs = locator.pairs(effect)

    if obj["json_output"] or obj["script_mode"]:
        for index, (sample, result) in enumerate(fixture_pairs, 1):
            logger.info("Fixture pair", index=index, file=str(sample), expected=str(result))
        return

    table = Table(title=f"Fixture pairs: {effect}")
    table.add_column("#", style="magenta")
    table.add_column("Sample", style="cyan")
    table.add_column("Expected result", style="green")
    for index, (sample, result) in enumerate(fixture_pairs, 1):
        table.add_row(str(index), sample.name, result.name)
    Console().print(table)


@cli.command()
@click.option("--data-dir", type=click.Path(exists=True, file_okay=False, path_type=Path), default=DEFAULT_DATA_DIR, help="Fixture data root (default: tests/_data)")
@click.option("--output-dir", type=click.Path(file_okay=False, path_type=Path), help="Dump images of failed checks to this directory")
@click.option("--max-conformity", type=click.FloatRange(0, 100), default=20, help="Highest accepted conformity score (default: 20)")
@click.option("--cover-percent", type=click.FloatRange(0, 100), default=100, help="Height share covered by the gradient (default: 100)")
@click.pass_obj
def check(obj: dict, data_dir: Path, output_dir: Path | None, max_conformity: float, cover_percent: float):
    """Apply the gradient effect to all samples and compare with golden images."""
    logger = obj["logger"]

    runner = EffectRunner(
        logger=logger,
        data_dir=data_dir,
        output_dir=output_dir,
        effect_name="gradient",
        effect=GradientOverlay(cover_percent=cover_percent),
        max_conformity=max_conformity,
        json_output=obj["json_output"],
        script_mode=obj["script_mode"],
    )

    try:
        exit_code = runner.run()
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Check interrupted by user")
        sys.exit(130)  # Standard exit code for SIGINT
    except Exception as e:
        logger.error("Unexpected error", error=str(e), exc_info=True)
        sys.exit(1)
