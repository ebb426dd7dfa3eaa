"""
Tests for the engine — sequencing, process combinators, installer combinators.
"""

import sys
from concurrent.futures import InvalidStateError

import pytest

from toolsmith.adapters.mock import MockSpawner
from toolsmith.adapters.shell.command import SubprocessSpawner
from toolsmith.core.engine.installers import (
    UnhandledPlatformError,
    always_succeed,
    attempt_steps,
    chain_steps,
    first_successful,
    installer,
    on,
    pipe,
    run_installer,
    spawn_step,
    start,
    when,
)
from toolsmith.core.engine.process import attempt, chain, lazy_spawn, spawn
from toolsmith.core.engine.sequencing import new_future, notify, resolved, run_all, run_first
from toolsmith.core.models.platform import Platform

PY = sys.executable


def recording(log: list, name: str, outcome: bool = True):
    """Installer that records its invocation and resolves to ``outcome``."""

    @installer
    def _step(context) -> bool:
        log.append(name)
        context.sink.stdout(f"{name}\n")
        return outcome

    _step.__name__ = name
    return _step


def exploding(context):
    raise AssertionError("must never be invoked")


# ── Sequencing ───────────────────────────────────────────────────────


class TestSequencing:
    def test_resolved_is_single_resolution(self):
        future = resolved(True)
        with pytest.raises(InvalidStateError):
            future.set_result(False)

    def test_run_all_empty_succeeds(self):
        assert run_all([]).result() is True

    def test_run_first_empty_fails(self):
        assert run_first([]).result() is False

    def test_run_all_stops_at_failure(self):
        calls = []

        def unit(name, ok):
            def _u():
                calls.append(name)
                return resolved(ok)
            return _u

        result = run_all([unit("a", True), unit("b", False), unit("c", True)])
        assert result.result() is False
        assert calls == ["a", "b"]

    def test_exception_while_starting_is_carried(self):
        def boom():
            raise RuntimeError("bad recipe")

        result = run_all([lambda: resolved(True), boom])
        with pytest.raises(RuntimeError, match="bad recipe"):
            result.result()

    def test_long_synchronous_pipe(self, context):
        step = pipe([installer(lambda ctx: True)] * 3000)
        assert run_installer(step, context) is True

    def test_long_synchronous_fallback(self, context):
        step = first_successful([installer(lambda ctx: False)] * 3000)
        assert run_installer(step, context) is False

    def test_failing_on_finish_is_logged(self, caplog):
        def broken(ok):
            raise ValueError("callback bug")

        future = new_future()
        notify(future, broken)
        with caplog.at_level("ERROR", logger="toolsmith.core.engine.sequencing"):
            future.set_result(True)
        assert "on_finish callback" in caplog.text
        assert "callback bug" in caplog.text


# ── Lazy spawn ───────────────────────────────────────────────────────


class TestLazySpawn:
    def test_construction_has_no_side_effect(self, context, spawner):
        job = lazy_spawn(context, "wget", ["-nv", "url"])
        assert spawner.call_count == 0
        assert job.cwd == context.root_dir
        assert job.sink is context.sink

    def test_spawn_runs_once(self, context, spawner):
        job = lazy_spawn(context, "wget", ["-nv", "url"])
        assert job.run().result() is True
        assert spawner.call_log[0].argv == ["wget", "-nv", "url"]
        assert spawner.call_log[0].cwd == context.root_dir

    def test_spawn_helper(self, context, spawner):
        spawner.set_failure("false")
        assert spawn(context, "false").result() is False


# ── attempt ──────────────────────────────────────────────────────────


class TestAttempt:
    def test_first_success_stops(self, context, spawner):
        jobs = [lazy_spawn(context, p) for p in ("wget", "curl", "fetch")]
        assert attempt(jobs).result() is True
        assert spawner.programs == ["wget"]

    def test_falls_back_in_order(self, context, spawner):
        spawner.set_missing("wget")
        jobs = [lazy_spawn(context, p) for p in ("wget", "curl", "fetch")]
        assert attempt(jobs).result() is True
        assert spawner.programs == ["wget", "curl"]

    def test_all_fail_each_tried_once(self, context, spawner):
        for p in ("a", "b", "c"):
            spawner.set_failure(p)
        jobs = [lazy_spawn(context, p) for p in ("a", "b", "c")]
        assert attempt(jobs).result() is False
        assert spawner.programs == ["a", "b", "c"]

    def test_empty_fails(self):
        assert attempt([]).result() is False

    def test_on_finish_called_once(self, context, spawner):
        spawner.set_failure("wget")
        results = []
        attempt([lazy_spawn(context, "wget"), lazy_spawn(context, "curl")], on_finish=results.append)
        assert results == [True]

    def test_never_concurrent(self, make_context):
        deferred = MockSpawner(deferred=True)
        deferred.set_failure("wget")
        ctx = make_context(spawner=deferred)
        result = attempt([lazy_spawn(ctx, "wget"), lazy_spawn(ctx, "curl")])

        assert deferred.programs == ["wget"]
        deferred.release(1)
        assert deferred.programs == ["wget", "curl"]
        assert not result.done()
        deferred.release()
        assert result.result() is True


# ── chain ────────────────────────────────────────────────────────────


class TestChain:
    def test_runs_in_order(self, context, spawner):
        c = chain(context)
        c.run("git", ["clone", "url", "."]).run("git", ["checkout", "v1"])
        assert spawner.call_count == 0
        assert c.spawn().result() is True
        assert [call.args[0] for call in spawner.call_log] == ["clone", "checkout"]

    def test_aborts_on_first_failure(self, context, spawner):
        spawner.set_failure("b")
        c = chain(context)
        for p in ("a", "b", "c"):
            c.run(p)
        assert c.spawn().result() is False
        assert spawner.programs == ["a", "b"]

    def test_empty_chain_succeeds(self, context):
        assert chain(context).spawn().result() is True

    def test_invalid_step_fails_without_running(self, context, spawner, sink):
        c = chain(context)
        c.run("git", ["clone"])
        c.run("", [])
        c.run("git", "checkout")  # args must be a list
        assert len(c.errors) == 2
        assert c.spawn().result() is False
        assert spawner.call_count == 0
        assert "Chain step #2" in sink.stderr_text
        assert "Chain step #3" in sink.stderr_text

    def test_run_after_spawn_raises(self, context):
        c = chain(context)
        c.spawn()
        with pytest.raises(RuntimeError):
            c.run("git")

    def test_spawn_twice_raises(self, context):
        c = chain(context)
        c.spawn()
        with pytest.raises(RuntimeError):
            c.spawn()

    def test_on_finish(self, context, spawner):
        results = []
        chain(context).run("a").spawn(results.append)
        assert results == [True]

    def test_uses_context_cwd(self, context, spawner):
        chain(context).run("a").run("b").spawn().result()
        assert {call.cwd for call in spawner.call_log} == {context.root_dir}


# ── pipe ─────────────────────────────────────────────────────────────


class TestPipe:
    def test_all_succeed_in_order(self, context, sink):
        log = []
        step = pipe(recording(log, "one"), recording(log, "two"), recording(log, "three"))
        assert run_installer(step, context) is True
        assert log == ["one", "two", "three"]
        assert sink.stdout_text == "one\ntwo\nthree\n"

    @pytest.mark.parametrize("k", [0, 1, 2, 3])
    def test_stops_at_first_failure(self, context, k):
        log = []
        steps = [recording(log, f"s{i}", outcome=(i != k)) for i in range(4)]
        assert run_installer(pipe(*steps), context) is False
        assert log == [f"s{i}" for i in range(k + 1)]

    def test_accepts_list(self, context):
        log = []
        assert run_installer(pipe([recording(log, "a"), recording(log, "b")]), context)
        assert log == ["a", "b"]

    def test_empty_pipe_succeeds(self, context):
        assert run_installer(pipe(), context) is True

    def test_rejects_non_callable(self):
        with pytest.raises(TypeError):
            pipe("not an installer")

    def test_next_step_waits_for_previous(self, make_context):
        deferred = MockSpawner(deferred=True)
        ctx = make_context(spawner=deferred)
        result = start(pipe(spawn_step("download"), spawn_step("extract")), ctx)

        assert deferred.programs == ["download"]
        deferred.release(1)
        assert deferred.programs == ["download", "extract"]
        assert not result.done()
        deferred.release()
        assert result.result() is True

    def test_output_ordering_with_real_processes(self, make_context, sink):
        ctx = make_context(spawner=SubprocessSpawner())
        step = pipe(
            spawn_step(PY, ["-c", "import time\nfor i in range(3):\n print('first', i, flush=True); time.sleep(0.05)"]),
            spawn_step(PY, ["-c", "print('second')"]),
        )
        assert run_installer(step, ctx, timeout=60) is True
        assert sink.stdout_text.splitlines() == ["first 0", "first 1", "first 2", "second"]


# ── first_successful ─────────────────────────────────────────────────


class TestFirstSuccessful:
    def test_first_wins(self, context):
        log = []
        step = first_successful(recording(log, "a"), exploding)
        assert run_installer(step, context) is True
        assert log == ["a"]

    def test_falls_back(self, context):
        log = []
        step = first_successful(
            recording(log, "a", False), recording(log, "b"), exploding
        )
        assert run_installer(step, context) is True
        assert log == ["a", "b"]

    def test_all_fail_each_once(self, context):
        log = []
        step = first_successful(*(recording(log, n, False) for n in "abc"))
        assert run_installer(step, context) is False
        assert log == ["a", "b", "c"]

    def test_empty_fails(self, context):
        assert run_installer(first_successful(), context) is False

    def test_only_tried_variants_have_side_effects(self, context, spawner):
        spawner.set_failure("7z")
        step = first_successful(
            pipe(spawn_step("7z"), spawn_step("rm", ["a"])),
            pipe(spawn_step("arc"), spawn_step("rm", ["b"])),
            pipe(spawn_step("wzunzip"), spawn_step("rm", ["c"])),
        )
        assert run_installer(step, context) is True
        assert [c.argv for c in spawner.call_log] == [["7z"], ["arc"], ["rm", "b"]]


# ── always_succeed ───────────────────────────────────────────────────


class TestAlwaysSucceed:
    @pytest.mark.parametrize("outcome", [True, False])
    def test_resolves_success(self, context, outcome):
        log = []
        assert run_installer(always_succeed(recording(log, "cleanup", outcome)), context) is True
        assert log == ["cleanup"]

    def test_side_effects_still_visible(self, context, spawner, sink):
        spawner.set_failure("rm")
        assert run_installer(always_succeed(spawn_step("rm", ["-f", "a.zip"])), context)
        assert spawner.programs == ["rm"]
        assert "rm exited with code 1" in sink.stderr_text

    def test_does_not_abort_pipe(self, context):
        log = []
        step = pipe(
            recording(log, "extract"),
            always_succeed(recording(log, "delete", False)),
            recording(log, "link"),
        )
        assert run_installer(step, context) is True
        assert log == ["extract", "delete", "link"]

    def test_programming_errors_propagate(self, make_context):
        step = always_succeed(when(unix=spawn_step("chmod")))
        with pytest.raises(UnhandledPlatformError):
            run_installer(step, make_context(platform=Platform.WIN))


# ── when / on ────────────────────────────────────────────────────────


class TestPlatformDispatch:
    def test_when_selects_variant(self, make_context):
        log = []
        step = when(unix=recording(log, "unix"), win=recording(log, "win"))
        assert run_installer(step, make_context(platform=Platform.WIN))
        assert run_installer(step, make_context(platform=Platform.DARWIN))
        assert log == ["win", "unix"]

    def test_exact_tag_beats_family(self, make_context):
        log = []
        step = when(unix=recording(log, "unix"), darwin=recording(log, "darwin"))
        run_installer(step, make_context(platform=Platform.DARWIN))
        run_installer(step, make_context(platform=Platform.LINUX))
        assert log == ["darwin", "unix"]

    def test_when_unmatched_is_programming_error(self, make_context):
        step = when(unix=exploding)
        with pytest.raises(UnhandledPlatformError) as exc:
            step(make_context(platform=Platform.WIN))
        assert exc.value.platform is Platform.WIN
        assert exc.value.available == ["unix"]

    def test_when_unmatched_inside_pipe_propagates(self, make_context):
        log = []
        step = pipe(recording(log, "download"), when(unix=exploding), recording(log, "never"))
        with pytest.raises(UnhandledPlatformError):
            run_installer(step, make_context(platform=Platform.WIN))
        assert log == ["download"]

    def test_on_unmatched_succeeds_without_invoking(self, make_context):
        step = on(unix=exploding)
        assert run_installer(step, make_context(platform=Platform.WIN)) is True

    def test_on_matched_reports_variant_outcome(self, make_context):
        log = []
        step = on(unix=recording(log, "chmod", False))
        assert run_installer(step, make_context(platform=Platform.LINUX)) is False
        assert log == ["chmod"]

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="Unknown platform key"):
            when(beos=exploding)

    def test_mapping_argument(self, make_context):
        log = []
        step = when({"win": recording(log, "win")})
        assert run_installer(step, make_context(platform=Platform.WIN))
        assert log == ["win"]

    def test_repr(self):
        assert repr(on(unix=exploding)) == "on(unix=exploding)"


# ── Leaf installers & running ────────────────────────────────────────


class TestLeafInstallers:
    def test_spawn_step(self, context, spawner):
        assert run_installer(spawn_step("tar", ["-xvf", "a.tar"]), context)
        assert spawner.call_log[0].argv == ["tar", "-xvf", "a.tar"]

    def test_chain_steps(self, context, spawner):
        spawner.set_failure("b")
        assert not run_installer(chain_steps([["a"], ["b", "x"], ["c"]]), context)
        assert spawner.programs == ["a", "b"]

    def test_attempt_steps(self, context, spawner):
        spawner.set_missing("wget")
        assert run_installer(attempt_steps([["wget", "u"], ["curl", "u"]]), context)
        assert spawner.programs == ["wget", "curl"]

    def test_start_on_finish_called_once(self, context):
        results = []
        start(pipe(recording([], "a")), context, on_finish=results.append)
        assert results == [True]

    def test_start_carries_exceptions(self, make_context):
        future = start(when(unix=exploding), make_context(platform=Platform.WIN))
        assert isinstance(future.exception(), UnhandledPlatformError)

    def test_context_shared_by_reference(self, context):
        seen = []

        @installer
        def capture(ctx) -> bool:
            seen.append(ctx)
            return True

        run_installer(pipe(capture, always_succeed(capture), first_successful(capture)), context)
        assert all(ctx is context for ctx in seen)
        assert len(seen) == 3
