"""pytest plugin wiring golden-image checks into the test lifecycle.

Each test gets its own image stash. When an image assertion fails, the
offending images are stashed and, once pytest reports the failure, written to
``<output dir>/<module path>/<TestClass>/<test name>/N.png``. The output
directory of a test is wiped before the test runs, and the stash is emptied
after every test whatever its outcome.
"""

import shutil
from pathlib import Path

import pytest
import structlog
from PIL import Image

from effectcheck.conformity import check_conformity
from effectcheck.fixtures import FixtureLocator
from effectcheck.stash import ImageStash

DEFAULT_DATA_DIR = "tests/_data"
DEFAULT_OUTPUT_DIR = "tests/_output"

image_stash_key = pytest.StashKey[ImageStash]()

logger = structlog.get_logger(__name__)


def pytest_addoption(parser):
    """Register the data and output directory options."""
    group = parser.getgroup("effectcheck", "golden image checks")
    group.addoption(
        "--image-data-dir",
        dest="image_data_dir",
        default=None,
        help=f"Directory holding images/samples and images/results (default: {DEFAULT_DATA_DIR})",
    )
    group.addoption(
        "--image-output-dir",
        dest="image_output_dir",
        default=None,
        help=f"Directory receiving images of failed checks (default: {DEFAULT_OUTPUT_DIR})",
    )
    parser.addini("image_data_dir", "Directory holding golden image fixtures", default=DEFAULT_DATA_DIR)
    parser.addini("image_output_dir", "Directory receiving images of failed checks", default=DEFAULT_OUTPUT_DIR)


def pytest_configure(config):
    """Register the image_fixtures marker."""
    config.addinivalue_line(
        "markers",
        "image_fixtures(effect_name): parametrize sample_path and expected_result_path "
        "with the fixture pairs of an effect",
    )


def _resolve_dir(config: pytest.Config, name: str) -> Path:
    """Read a directory option, command line first, relative to the rootdir."""
    value = config.getoption(name) or config.getini(name)
    path = Path(value)
    if not path.is_absolute():
        path = config.rootpath / path
    return path


def get_data_dir(config: pytest.Config) -> Path:
    """Return the root of the fixture images."""
    return _resolve_dir(config, "image_data_dir")


def get_output_dir(config: pytest.Config) -> Path:
    """Return the root receiving images of failed checks."""
    return _resolve_dir(config, "image_output_dir")


def get_test_output_dir(item: pytest.Item) -> Path:
    """Return the dump directory of a test, derived from its node id.

    ``tests/effects/test_gradient.py::TestGradient::test_apply[0]`` maps to
    ``<output dir>/tests/effects/test_gradient/TestGradient/test_apply[0]``.
    """
    module_path, *rest = item.nodeid.split("::")
    parts = list(Path(module_path).with_suffix("").parts)
    # Parametrize ids may contain path separators
    parts.extend(part.replace("/", "_").replace("\\", "_") for part in rest)
    return get_output_dir(item.config).joinpath(*parts)


def get_image_stash(item: pytest.Item) -> ImageStash:
    """Return the stash of a test, creating it on first use."""
    if image_stash_key not in item.stash:
        item.stash[image_stash_key] = ImageStash()
    return item.stash[image_stash_key]


def pytest_generate_tests(metafunc):
    """Parametrize tests marked with image_fixtures with their fixture pairs."""
    marker = metafunc.definition.get_closest_marker("image_fixtures")
    if marker is None:
        return

    effect_name = marker.args[0] if marker.args else marker.kwargs["effect_name"]
    locator = FixtureLocator(get_data_dir(metafunc.config), logger=logger)
    pairs = locator.pairs(effect_name)
    metafunc.parametrize(
        ("sample_path", "expected_result_path"),
        pairs,
        ids=[f"{sample.name}-{result.name}" for sample, result in pairs],
    )


@pytest.hookimpl(tryfirst=True)
def pytest_runtest_setup(item):
    """Drop the output directory left by an earlier run of the test."""
    path = get_test_output_dir(item)
    if path.exists():
        logger.debug("Dropping stale test output", path=str(path))
        shutil.rmtree(path)
    get_image_stash(item).clear()


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """Dump the stash of a failed test, then empty it."""
    outcome = yield
    report = outcome.get_result()

    stash = get_image_stash(item)
    if report.failed:
        if stash:
            path = get_test_output_dir(item)
            written = stash.dump(path)
            logger.info("Dumped images of failed check", path=str(path), count=len(written))
            report.sections.append(("effectcheck output", f"Images of the failed check: {path}"))
        stash.clear()
    elif call.when == "teardown":
        stash.clear()


class ImageHelper:
    """Per-test access to fixtures and image assertions."""

    def __init__(self, item: pytest.Item):
        self.item = item
        self.locator = FixtureLocator(get_data_dir(item.config), logger=logger)

    @property
    def stash(self) -> ImageStash:
        """Images of the last failed assertion of this test."""
        return get_image_stash(self.item)

    @property
    def output_dir(self) -> Path:
        """Directory receiving the images if this test fails."""
        return get_test_output_dir(self.item)

    def list_sample_images(self) -> list[Path]:
        return self.locator.list_sample_images()

    def list_expected_results(self, effect_name: str) -> list[Path]:
        return self.locator.list_expected_results(effect_name)

    def pairs(self, effect_name: str) -> list[tuple[Path, Path]]:
        return self.locator.pairs(effect_name)

    def assert_image_conformity(
        self, actual: Image.Image, expected: Image.Image, max_conformity: float
    ) -> None:
        """Fail the test if the images differ by more than ``max_conformity``."""
        result = check_conformity(actual, expected, max_conformity, logger=logger)
        if not result.passed:
            self.stash.stash(result.images)
            pytest.fail(result.message)

    def assert_image_equality(self, actual: Image.Image, expected: Image.Image) -> None:
        self.assert_image_conformity(actual, expected, 0)


@pytest.fixture
def image_helper(request) -> ImageHelper:
    """Fixture and image assertions bound to the current test."""
    return ImageHelper(request.node)
