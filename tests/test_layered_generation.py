import threading
import time

import numpy as np
import pytest

from tilemap_generator.grid import normalize_values
from tilemap_generator.operations import GenerationOperations, LayeredRun, apply_pass
from tilemap_generator.random_sources import CoherentNoiseSource

SMALL_CONFIG = {'grid_width': 16, 'grid_height': 12, 'seed': 1234}
FIRST_SEEDS = [11, 22, 33, 44]
SECOND_SEEDS = [55, 66, 77, 88]
WAIT_SECONDS = 60


def layered_result(seeds, reset=True, base=None):
    """Runs a synchronous layered generation on a fresh grid and returns its values."""
    ops = GenerationOperations(config=SMALL_CONFIG)
    if base is not None:
        ops.grid.publish(base)
    ops.run_layered(reset=reset, seeds=seeds)
    return ops.grid.snapshot()


def test_layered_generation_is_bit_identical_for_same_seeds():
    first = layered_result(FIRST_SEEDS)
    second = layered_result(FIRST_SEEDS)
    assert np.array_equal(first, second)
    assert first.min() >= 0.0 and first.max() <= 1.0


def test_layered_generation_runs_four_blend_passes_then_normalizes():
    base = np.linspace(0.0, 1.0, 16 * 12).reshape((12, 16))

    expected = base.copy()
    source = CoherentNoiseSource(FIRST_SEEDS[0])
    for seed in FIRST_SEEDS:
        source.reseed(seed)
        expected = apply_pass(expected, source, True)
    expected = normalize_values(expected)

    assert np.array_equal(layered_result(FIRST_SEEDS, reset=False, base=base), expected)


def test_reset_flag_controls_blend_base():
    base = np.linspace(0.0, 1.0, 16 * 12).reshape((12, 16))
    with_reset = layered_result(FIRST_SEEDS, reset=True, base=base)
    from_flat = layered_result(FIRST_SEEDS, reset=True)
    without_reset = layered_result(FIRST_SEEDS, reset=False, base=base)

    assert np.array_equal(with_reset, from_flat)
    assert not np.array_equal(with_reset, without_reset)


def test_master_seed_makes_background_generation_reproducible():
    results = []
    for _ in range(2):
        ops = GenerationOperations(config=SMALL_CONFIG)
        run = ops.layered_generate(False)
        assert run.wait(WAIT_SECONDS)
        assert run.published
        results.append(ops.grid.snapshot())
    assert np.array_equal(results[0], results[1])


def test_background_run_publishes_same_result_as_synchronous_run():
    ops = GenerationOperations(config=SMALL_CONFIG)
    run = ops.start_layered(reset=True, seeds=FIRST_SEEDS)

    assert run.wait(WAIT_SECONDS)
    assert run.published and not run.cancelled and run.error is None
    assert not ops.is_generating
    assert np.array_equal(ops.grid.snapshot(), layered_result(FIRST_SEEDS))


def test_on_pass_reports_every_pass():
    reported = []
    ops = GenerationOperations(config=SMALL_CONFIG, on_pass=lambda epoch, index: reported.append((epoch, index)))
    run = ops.run_layered(reset=True, seeds=FIRST_SEEDS)
    assert reported == [(run.epoch, 0), (run.epoch, 1), (run.epoch, 2), (run.epoch, 3)]


def test_wrong_number_of_seeds_is_rejected():
    ops = GenerationOperations(config=SMALL_CONFIG)
    with pytest.raises(ValueError):
        ops.start_layered(reset=True, seeds=[1, 2, 3])


def test_failed_background_run_leaves_grid_untouched():
    def explode(epoch, index):
        raise RuntimeError("pass hook failure")

    ops = GenerationOperations(config=SMALL_CONFIG, on_pass=explode)
    run = ops.start_layered(reset=True, seeds=FIRST_SEEDS)

    assert run.wait(WAIT_SECONDS)
    assert isinstance(run.error, RuntimeError)
    assert not run.published
    assert np.all(ops.grid.snapshot() == 0.5)


def test_superseding_run_discards_cancelled_writes():
    started = threading.Event()
    release = threading.Event()

    def hold_first_run(epoch, index):
        if not started.is_set():
            started.set()
            release.wait(WAIT_SECONDS)

    ops = GenerationOperations(config=SMALL_CONFIG, on_pass=hold_first_run)
    initial = ops.grid.snapshot()
    expected = layered_result(SECOND_SEEDS)

    first = ops.start_layered(reset=True, seeds=FIRST_SEEDS)
    assert started.wait(WAIT_SECONDS)
    second = ops.start_layered(reset=True, seeds=SECOND_SEEDS)
    assert second.epoch > first.epoch

    observed = []
    stop = threading.Event()

    def read_frames():
        while not stop.is_set():
            observed.append(ops.grid.snapshot())
            time.sleep(0.001)

    reader = threading.Thread(target=read_frames, daemon=True)
    reader.start()
    release.set()

    assert second.wait(WAIT_SECONDS)
    assert first.wait(WAIT_SECONDS)
    stop.set()
    reader.join(WAIT_SECONDS)

    assert first.cancelled and not first.published
    assert second.published and not second.cancelled
    final = ops.grid.snapshot()
    assert np.array_equal(final, expected)
    for frame in observed:
        assert np.array_equal(frame, initial) or np.array_equal(frame, expected)


def test_foreground_edit_during_background_run_is_replaced_on_publish():
    started = threading.Event()
    release = threading.Event()

    def hold_first_pass(epoch, index):
        if index == 0:
            started.set()
            release.wait(WAIT_SECONDS)

    ops = GenerationOperations(config=SMALL_CONFIG, on_pass=hold_first_pass)
    run = ops.start_layered(reset=True, seeds=FIRST_SEEDS)
    assert started.wait(WAIT_SECONDS)

    ops.reset()
    ops.randomize_uniform(False)
    edited = ops.grid.snapshot()
    assert not np.all(edited == 0.5)
    assert ops.is_generating

    release.set()
    assert run.wait(WAIT_SECONDS)

    assert run.published and not run.cancelled
    assert np.array_equal(ops.grid.snapshot(), layered_result(FIRST_SEEDS))
    assert not np.array_equal(ops.grid.snapshot(), edited)


def test_layered_run_hands_over_base_once():
    base = np.full((2, 3), 0.8)
    run = LayeredRun(1, reset=False, seeds=FIRST_SEEDS, base=base)

    assert run.take_base((2, 3), 0.5) is base
    assert np.all(run.take_base((2, 3), 0.5) == 0.5)
    assert not run.done

    run.finish()
    assert run.done
    assert run.wait(0)
