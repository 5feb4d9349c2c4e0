import pytest

from support_bridge.routing.steps import failed_steps, run_step, run_steps


@pytest.mark.asyncio
async def test_run_steps_never_short_circuits():
    seen = []

    async def ok(name):
        seen.append(name)
        return name

    async def boom():
        seen.append("boom")
        raise RuntimeError("exploded")

    results = await run_steps(
        [
            ("first", lambda: ok("first")),
            ("second", boom),
            ("third", lambda: ok("third")),
        ]
    )

    assert seen == ["first", "boom", "third"]
    assert [r.ok for r in results] == [True, False, True]
    assert results[0].value == "first"
    assert results[1].error == "exploded"
    assert failed_steps(results) == ["second"]


@pytest.mark.asyncio
async def test_run_step_reports_value():
    async def answer():
        return 42

    result = await run_step("answer", answer)

    assert result.ok is True
    assert result.value == 42
    assert result.error is None
