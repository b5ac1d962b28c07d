"""
Unit tests for the background analysis controller.
"""

import time
from pathlib import Path

import pytest
from twinfinder.orchestrator import (
    AnalysisController,
    AnalysisPhase,
    AnalysisRun,
    ProgressThrottle,
    current_run,
)
from twinfinder.scanner import HashStrategy

RUN_TIMEOUT = 30


class FakeClock:
    """Manually advanced clock for throttle tests."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class SlowHashStrategy(HashStrategy):
    """Hash strategy that sleeps before every extraction."""

    def __init__(self, delay=0.05):
        super().__init__()
        self.delay = delay

    def extract(self, path):
        time.sleep(self.delay)
        return super().extract(path)


class BrokenSimilarityStrategy(HashStrategy):
    def similarity(self, a, b):
        raise RuntimeError("similarity exploded")


@pytest.fixture
def controller():
    return AnalysisController(max_workers=2, progress_interval=0)


def run_to_completion(controller, roots, threshold=0.9, **kwargs):
    progress, results = [], []
    run = controller.analyze(
        roots,
        threshold,
        on_progress=progress.append,
        on_complete=results.append,
        **kwargs,
    )
    assert run.wait(RUN_TIMEOUT)
    return run, progress, results


class TestProgressThrottle:
    """Test ProgressThrottle class."""

    def test_rate_limited_and_monotonic(self):
        clock = FakeClock()
        values = []
        throttle = ProgressThrottle(values.append, interval=0.1, clock=clock)

        throttle.update(0.1)
        throttle.update(0.2)  # inside the interval
        clock.now = 0.2
        throttle.update(0.3)
        clock.now = 0.4
        throttle.update(0.25)  # lower than last value
        throttle.update(1.0)  # held back until complete()
        throttle.complete()

        assert values == [0.1, 0.3, 1.0]

    def test_complete_emits_once(self):
        values = []
        throttle = ProgressThrottle(values.append, interval=0)
        throttle.complete()
        throttle.complete()
        throttle.update(0.5)
        assert values == [1.0]

    def test_duplicate_values_dropped(self):
        clock = FakeClock()
        values = []
        throttle = ProgressThrottle(values.append, interval=0, clock=clock)
        throttle.update(0.5)
        clock.now = 1.0
        throttle.update(0.5)
        assert values == [0.5]

    def test_cancel_stops_emission(self):
        cancelled = [False]
        values = []
        throttle = ProgressThrottle(values.append, interval=0, should_cancel=lambda: cancelled[0])
        throttle.update(0.1)
        cancelled[0] = True
        throttle.update(0.2)
        throttle.complete()
        assert values == [0.1]
        assert throttle.closed

    def test_close(self):
        values = []
        throttle = ProgressThrottle(values.append, interval=0)
        throttle.close()
        throttle.update(0.3)
        throttle.complete()
        assert values == []

    def test_no_sink(self):
        throttle = ProgressThrottle(None)
        throttle.update(0.5)
        throttle.complete()


class TestAnalysisRun:
    """Test AnalysisRun phase transitions."""

    def test_valid_transitions(self):
        run = AnalysisRun(1)
        for phase in (AnalysisPhase.PLANNING, AnalysisPhase.EXTRACTING,
                      AnalysisPhase.CLUSTERING, AnalysisPhase.DONE):
            run.transition(phase)
        assert run.phase == AnalysisPhase.DONE

    def test_invalid_transition_raises(self):
        run = AnalysisRun(1)
        with pytest.raises(RuntimeError, match="idle -> done"):
            run.transition(AnalysisPhase.DONE)

    def test_done_is_terminal(self):
        run = AnalysisRun(1)
        run.transition(AnalysisPhase.PLANNING)
        run.transition(AnalysisPhase.DONE)
        with pytest.raises(RuntimeError):
            run.transition(AnalysisPhase.PLANNING)


class TestAnalysisController:
    """Test AnalysisController.analyze end to end."""

    def test_finds_cross_folder_duplicates(self, controller, cross_folder_tree):
        run, progress, results = run_to_completion(
            controller, [cross_folder_tree['root']], ignored_folder_name='thumb'
        )
        assert len(results) == 1
        groups = results[0]
        assert len(groups) == 1
        assert groups[0].reference == cross_folder_tree['left_one']
        assert groups[0].paths == [cross_folder_tree['left_one'], cross_folder_tree['right_one']]
        assert run.phase == AnalysisPhase.DONE
        assert run.result == groups

    def test_ignored_folder_not_grouped(self, controller, cross_folder_tree):
        _, _, results = run_to_completion(
            controller, [cross_folder_tree['root']], ignored_folder_name='thumb'
        )
        paths = [path for group in results[0] for path in group.paths]
        assert cross_folder_tree['thumb_one'] not in paths

    def test_top_level_only_keeps_folders_apart(self, controller, cross_folder_tree):
        _, _, results = run_to_completion(
            controller, [cross_folder_tree['root']], top_level_only=True, ignored_folder_name='thumb'
        )
        assert results == [[]]

    def test_progress_contract(self, controller, many_images):
        """Progress never decreases and ends with exactly one 1.0."""
        _, progress, results = run_to_completion(controller, [many_images['folder']])
        assert progress == sorted(progress)
        assert progress[-1] == 1.0
        assert progress.count(1.0) == 1
        assert all(0.0 <= value <= 1.0 for value in progress)
        assert results[0]

    def test_empty_plan_completes(self, controller, temp_dir):
        run, progress, results = run_to_completion(controller, [str(temp_dir)])
        assert results == [[]]
        assert progress == [1.0]
        assert not run.cancelled

    def test_missing_root_completes_empty(self, controller, temp_dir):
        _, _, results = run_to_completion(controller, [str(temp_dir / "missing")])
        assert results == [[]]

    def test_cancelled_from_start(self, controller, many_images):
        run, progress, results = run_to_completion(
            controller, [many_images['folder']], should_cancel=lambda: True
        )
        assert results == [[]]
        assert progress == []
        assert run.cancelled
        assert run.phase == AnalysisPhase.IDLE

    def test_cancel_after_progress_values(self, controller, many_images):
        """No progress is emitted after cancellation has been observed."""
        progress, results = [], []
        run = controller.analyze(
            [many_images['folder']],
            0.9,
            on_progress=progress.append,
            should_cancel=lambda: len(progress) >= 2,
            on_complete=results.append,
        )
        assert run.wait(RUN_TIMEOUT)
        assert results == [[]]
        assert len(progress) == 2
        assert 1.0 not in progress

    def test_new_analysis_cancels_previous(self, many_images):
        controller = AnalysisController(max_workers=1, progress_interval=0)
        first, second = [], []
        first_run = controller.analyze(
            [many_images['folder']], 0.9,
            strategy=SlowHashStrategy(), on_complete=first.append,
        )
        second_run = controller.analyze([many_images['folder']], 0.9, on_complete=second.append)

        assert first_run.finished
        assert first_run.cancelled
        assert first == [[]]

        assert second_run.wait(RUN_TIMEOUT)
        assert len(second) == 1
        assert second[0][0].reference == many_images['paths'][0]
        assert controller.active_run is None

    def test_cancel_method(self, many_images):
        controller = AnalysisController(max_workers=1, progress_interval=0)
        results = []
        run = controller.analyze(
            [many_images['folder']], 0.9,
            strategy=SlowHashStrategy(), on_complete=results.append,
        )
        assert controller.cancel()
        assert run.wait(RUN_TIMEOUT)
        assert run.cancelled
        assert results == [[]]
        assert not controller.cancel()

    def test_unexpected_error_resolves_empty(self, controller, duplicate_pair):
        run, progress, results = run_to_completion(
            controller, [duplicate_pair['folder']], strategy=BrokenSimilarityStrategy()
        )
        assert isinstance(run.error, RuntimeError)
        assert results == [[]]
        assert 1.0 not in progress
        assert run.phase == AnalysisPhase.DONE

    def test_callbacks_see_current_run(self, controller, duplicate_pair):
        seen = []
        run = controller.analyze(
            [duplicate_pair['folder']], 0.9,
            on_complete=lambda groups: seen.append(current_run()),
        )
        assert run.wait(RUN_TIMEOUT)
        assert seen == [run]
        assert current_run() is None

    def test_result_callback_error_does_not_break_run(self, controller, duplicate_pair):
        def explode(groups):
            raise RuntimeError("consumer failed")

        run = controller.analyze([duplicate_pair['folder']], 0.9, on_complete=explode)
        assert run.wait(RUN_TIMEOUT)
        assert run.error is None
        assert len(run.result) == 1

    def test_embedding_strategy(self, controller, duplicate_pair):
        _, _, results = run_to_completion(
            controller, [duplicate_pair['folder']], threshold=0.95, strategy='embedding'
        )
        assert len(results[0]) == 1
        assert results[0][0].matches[0].percent == 1.0

    @pytest.mark.parametrize('roots,threshold,strategy', [
        ([], 0.5, 'hash'),
        (None, 0.5, 'hash'),
        (['/photos'], 1.5, 'hash'),
        (['/photos'], -0.1, 'hash'),
        (['/photos'], float('nan'), 'hash'),
        (['/photos'], 0.5, 'sift'),
    ])
    def test_invalid_parameters(self, controller, roots, threshold, strategy):
        with pytest.raises(ValueError):
            controller.analyze(roots, threshold, strategy=strategy)
        assert controller.active_run is None

    @pytest.mark.parametrize('as_root', [str, Path])
    def test_single_path_instead_of_list_rejected(self, controller, duplicate_pair, as_root):
        """A lone path is rejected rather than split or iterated."""
        with pytest.raises(ValueError, match="list of directories"):
            controller.analyze(as_root(duplicate_pair['folder']), 0.9)
        assert controller.active_run is None

    def test_roots_from_generator(self, controller, duplicate_pair):
        """Roots may be any iterable of paths, including a one-shot generator."""
        roots = (folder for folder in [duplicate_pair['folder']])
        _, _, results = run_to_completion(controller, roots)
        assert len(results[0]) == 1

    def test_repeated_analysis_gives_identical_groups(self, controller, cross_folder_tree):
        """The same inputs produce the same groups in the same order."""
        _, _, first = run_to_completion(
            controller, [cross_folder_tree['root']], ignored_folder_name='thumb'
        )
        _, _, second = run_to_completion(
            controller, [cross_folder_tree['root']], ignored_folder_name='thumb'
        )
        assert first[0]
        assert [g.to_dict() for g in first[0]] == [g.to_dict() for g in second[0]]

    def test_excluded_leaf_folder_left_out(self, controller, cross_folder_tree):
        """Excluding one side of a cross-folder match leaves nothing to group."""
        _, _, results = run_to_completion(
            controller,
            [cross_folder_tree['root']],
            ignored_folder_name='thumb',
            excluded_folders=[cross_folder_tree['right']],
        )
        assert results == [[]]

    def test_excluding_leaf_keeps_other_matches(self, controller, cross_folder_tree):
        _, _, results = run_to_completion(
            controller, [cross_folder_tree['root']], excluded_folders=[Path(cross_folder_tree['root']) / 'thumb']
        )
        assert len(results[0]) == 1
        assert cross_folder_tree['thumb_one'] not in results[0][0].paths

    def test_single_excluded_path_rejected(self, controller, cross_folder_tree):
        with pytest.raises(ValueError, match="Excluded folders"):
            controller.analyze(
                [cross_folder_tree['root']], 0.9, excluded_folders=cross_folder_tree['right']
            )
        assert controller.active_run is None
