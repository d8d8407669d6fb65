import asyncio

import pytest

from pixelmind.agent import Deadline, DeadlineExceeded, LoopContext, LoopState
from pixelmind.models import RetryAttempt


def test_happy_path_transitions():
    ctx = LoopContext(tool_name="upscaler")

    for state in (LoopState.EXECUTING, LoopState.CHECKING_RESULT, LoopState.DONE_SUCCESS):
        ctx.move(state)

    assert ctx.state.is_terminal


def test_retry_cycle_and_counters():
    ctx = LoopContext(tool_name="color_knockout")
    assert (ctx.attempt_number, ctx.retries_done) == (1, 0)

    ctx.move(LoopState.DECIDING_RETRY)
    ctx.record_attempt(RetryAttempt(attempt=1, parameters={}, success=False))
    ctx.move(LoopState.ADJUSTING)
    ctx.move(LoopState.VALIDATING)
    ctx.record_attempt(RetryAttempt(attempt=2, parameters={}, success=False))

    assert (ctx.attempt_number, ctx.retries_done) == (3, 1)


@pytest.mark.parametrize(
    "path",
    [
        (LoopState.CHECKING_RESULT,),
        (LoopState.EXECUTING, LoopState.DONE_SUCCESS),
        (LoopState.DONE_FAILURE, LoopState.VALIDATING),
    ],
)
def test_illegal_transitions(path):
    ctx = LoopContext(tool_name="upscaler")

    with pytest.raises(RuntimeError):
        for state in path:
            ctx.move(state)


# --- Deadline ---

@pytest.mark.asyncio
async def test_unbounded_deadline():
    deadline = Deadline.coerce(None)

    assert deadline.remaining is None
    assert not deadline.expired
    assert await deadline.guard(asyncio.sleep(0, result="done")) == "done"


@pytest.mark.asyncio
async def test_deadline_interrupts_slow_work():
    deadline = Deadline(0.05)

    with pytest.raises(DeadlineExceeded):
        await deadline.guard(asyncio.sleep(1))

    assert deadline.expired
    with pytest.raises(DeadlineExceeded):
        await deadline.sleep(0.01)


@pytest.mark.asyncio
async def test_deadline_is_a_timeout_error():
    deadline = Deadline(0)
    assert Deadline.coerce(deadline) is deadline

    with pytest.raises(TimeoutError):
        await deadline.guard(asyncio.sleep(0))
