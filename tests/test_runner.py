from PIL import Image

from effectcheck.effects import GradientOverlay
from effectcheck.runner import EffectRunner


def test_run_all_pairs_conform(image_data_dir, mock_logger):
    runner = EffectRunner(logger=mock_logger, data_dir=image_data_dir, script_mode=True)

    assert runner.run() == 0
    assert runner.total_pairs == 2
    assert runner.passed == 2
    assert runner.failed == 0
    mock_logger.info.assert_any_call("Check complete", total_pairs=2, passed=2, failed=0)


def test_run_dumps_failures(image_data_dir, temp_dir, mock_logger):
    output_dir = temp_dir / "out"
    runner = EffectRunner(
        logger=mock_logger,
        data_dir=image_data_dir,
        output_dir=output_dir,
        effect=GradientOverlay(cover_percent=0),
        script_mode=True,
    )

    assert runner.run() == 1
    assert runner.failed == 2
    for result in runner.results:
        assert not result.passed
        assert result.destination == output_dir / "gradient" / result.sample_path.name
        assert sorted(p.name for p in result.destination.iterdir()) == ["1.png", "2.png", "3.png"]


def test_run_size_mismatch(image_data_dir, mock_logger):
    sample = image_data_dir / "images" / "samples" / "a.png"
    Image.new("RGB", (10, 10)).save(sample)
    runner = EffectRunner(logger=mock_logger, data_dir=image_data_dir, script_mode=True)

    assert runner.run() == 1
    failed = [r for r in runner.results if not r.passed]
    assert [r.sample_path.name for r in failed] == ["a.png"]
    assert "physical size" in failed[0].message


def test_run_without_pairs(temp_dir, mock_logger):
    (temp_dir / "images" / "samples").mkdir(parents=True)
    (temp_dir / "images" / "results" / "gradient").mkdir(parents=True)
    runner = EffectRunner(logger=mock_logger, data_dir=temp_dir, script_mode=True)

    assert runner.run() == 0
    mock_logger.warning.assert_called_once()


def test_rerun_replaces_stale_dumps(image_data_dir, temp_dir, mock_logger):
    """A second run leaves only the images of its own failures."""
    output_dir = temp_dir / "out"
    EffectRunner(
        logger=mock_logger,
        data_dir=image_data_dir,
        output_dir=output_dir,
        effect=GradientOverlay(cover_percent=0),
        script_mode=True,
    ).run()
    Image.new("RGB", (10, 10)).save(image_data_dir / "images" / "samples" / "a.png")

    runner = EffectRunner(logger=mock_logger, data_dir=image_data_dir, output_dir=output_dir, script_mode=True)

    assert runner.run() == 1
    assert sorted(p.name for p in (output_dir / "gradient" / "a.png").iterdir()) == ["1.png", "2.png"]
    assert not (output_dir / "gradient" / "b.jpg").exists()


def test_dumps_keyed_by_file_name(image_data_dir, temp_dir, mock_logger):
    """Samples sharing a stem get separate dump directories."""
    samples = image_data_dir / "images" / "samples"
    results = image_data_dir / "images" / "results" / "gradient"
    (samples / "b.jpg").unlink()
    Image.new("RGB", (64, 48), (1, 2, 3)).save(samples / "a.jpg")
    Image.new("RGB", (64, 48), (255, 255, 255)).save(results / "y.png")
    output_dir = temp_dir / "out"
    runner = EffectRunner(
        logger=mock_logger,
        data_dir=image_data_dir,
        output_dir=output_dir,
        effect=GradientOverlay(cover_percent=0),
        script_mode=True,
    )

    assert runner.run() == 1
    assert sorted(p.name for p in (output_dir / "gradient").iterdir()) == ["a.jpg", "a.png"]
