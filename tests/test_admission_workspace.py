from __future__ import annotations

import asyncio

import pytest

from slideshow_render.admission import JobAdmission
from slideshow_render.errors import RenderBusy
from slideshow_render.workspace import job_workspace


def test_second_job_is_rejected_while_first_runs():
    admission = JobAdmission(slots=1)

    async def scenario():
        async with admission.admit("job-a"):
            assert admission.busy
            with pytest.raises(RenderBusy):
                async with admission.admit("job-b"):
                    pass
        assert not admission.busy
        async with admission.admit("job-b"):
            assert admission.active_jobs == frozenset({"job-b"})

    asyncio.run(scenario())


def test_slot_is_released_when_the_job_fails():
    admission = JobAdmission(slots=1)

    async def scenario():
        with pytest.raises(RuntimeError):
            async with admission.admit("job-a"):
                raise RuntimeError("engine crashed")

    asyncio.run(scenario())
    assert admission.try_acquire("job-b")


def test_try_acquire_and_release():
    admission = JobAdmission(slots=2)

    assert admission.try_acquire("a")
    assert not admission.try_acquire("a")
    assert admission.try_acquire("b")
    assert not admission.try_acquire("c")
    admission.release("a")
    assert admission.try_acquire("c")


def test_admission_needs_a_slot():
    with pytest.raises(ValueError):
        JobAdmission(slots=0)


def test_workspace_is_private_and_removed(tmp_path):
    with job_workspace("job-1", root=str(tmp_path)) as first, job_workspace("job-2", root=str(tmp_path)) as second:
        assert first != second
        assert first.parent == tmp_path
        (first / "scratch.bin").write_bytes(b"x")

    assert not first.exists()
    assert not second.exists()


def test_workspace_is_removed_on_failure(tmp_path):
    with pytest.raises(ValueError):
        with job_workspace("job-1", root=str(tmp_path)) as path:
            (path / "partial.mp4").write_bytes(b"x")
            raise ValueError("render failed")

    assert not path.exists()
