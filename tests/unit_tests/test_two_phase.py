import pytest

from filevault.services.two_phase import PhaseOneFailed, PhaseTwoFailed, TwoPhaseOperation


def _operation(log, fail_prepare=False, fail_commit=False, fail_rollback=False):
    async def prepare():
        log.append("prepare")
        if fail_prepare:
            raise RuntimeError("prepare broke")
        return "handle"

    async def commit(handle):
        log.append(f"commit:{handle}")
        if fail_commit:
            raise RuntimeError("commit broke")
        return "done"

    async def rollback(handle):
        log.append(f"rollback:{handle}")
        if fail_rollback:
            raise RuntimeError("rollback broke")

    return TwoPhaseOperation(name="test", prepare=prepare, commit=commit, rollback=rollback)


async def test__run__success_skips_rollback():
    log = []
    assert await _operation(log).run() == "done"
    assert log == ["prepare", "commit:handle"]


async def test__run__prepare_failure_never_commits():
    log = []
    with pytest.raises(PhaseOneFailed) as exc_info:
        await _operation(log, fail_prepare=True).run()
    assert str(exc_info.value.cause) == "prepare broke"
    assert log == ["prepare"]


async def test__run__commit_failure_rolls_back():
    log = []
    with pytest.raises(PhaseTwoFailed) as exc_info:
        await _operation(log, fail_commit=True).run()
    assert exc_info.value.rolled_back
    assert log == ["prepare", "commit:handle", "rollback:handle"]


async def test__run__rollback_failure_is_reported_once():
    log = []
    with pytest.raises(PhaseTwoFailed) as exc_info:
        await _operation(log, fail_commit=True, fail_rollback=True).run()
    assert not exc_info.value.rolled_back
    assert str(exc_info.value.cause) == "commit broke"
    assert str(exc_info.value.rollback_error) == "rollback broke"
    assert log.count("rollback:handle") == 1
