from __future__ import annotations

import pytest
from sqlalchemy import select

from hr_onboarding.models.department_step import DepartmentStepTemplate
from hr_onboarding.services.step_order import (
    StepOrderError,
    delete_step,
    move_step,
    move_step_to,
    open_slot,
    swap_step_numbers,
)


async def _numbers(session, department="Engineering"):
    rows = await session.execute(
        select(DepartmentStepTemplate.title, DepartmentStepTemplate.step_number)
        .where(DepartmentStepTemplate.department == department)
        .order_by(DepartmentStepTemplate.step_number)
    )
    return [(title, number) for title, number in rows.all()]


@pytest.fixture()
async def three_steps(make_template, make_step):
    template = await make_template()
    return [
        await make_step(template, step_number=1, title="A"),
        await make_step(template, step_number=2, title="B"),
        await make_step(template, step_number=3, title="C"),
    ]


async def test_swap_adjacent_steps(db_session, three_steps):
    a, b, c = three_steps
    await swap_step_numbers(db_session, a, b)
    assert (a.step_number, b.step_number, c.step_number) == (2, 1, 3)
    assert await _numbers(db_session) == [("B", 1), ("A", 2), ("C", 3)]


async def test_swap_rejects_non_adjacent_steps(db_session, three_steps):
    a, _, c = three_steps
    with pytest.raises(StepOrderError, match="steps_not_adjacent"):
        await swap_step_numbers(db_session, a, c)
    assert await _numbers(db_session) == [("A", 1), ("B", 2), ("C", 3)]


async def test_swap_rejects_other_department(db_session, make_template, make_step, three_steps):
    template = await make_template("CUSTOM", name="Sales custom")
    sales = await make_step(template, department="Sales", step_number=2, step_type="MANUAL", title="S")
    with pytest.raises(StepOrderError, match="steps_in_different_departments"):
        await swap_step_numbers(db_session, three_steps[0], sales)


@pytest.mark.parametrize("index,direction", [(0, "up"), (2, "down")])
async def test_move_past_the_ends_is_rejected(db_session, three_steps, index, direction):
    with pytest.raises(StepOrderError, match="step_move_out_of_range"):
        await move_step(db_session, three_steps[index], direction)
    assert await _numbers(db_session) == [("A", 1), ("B", 2), ("C", 3)]


async def test_move_down_swaps_with_next(db_session, three_steps):
    neighbour = await move_step(db_session, three_steps[1], "down")
    assert neighbour.title == "C"
    assert await _numbers(db_session) == [("A", 1), ("C", 2), ("B", 3)]


async def test_open_slot_shifts_following_steps(db_session, make_template, make_step, three_steps):
    number = await open_slot(db_session, "Engineering", 2)
    assert number == 2
    assert await _numbers(db_session) == [("A", 1), ("B", 3), ("C", 4)]
    assert await open_slot(db_session, "Engineering", None) == 5
    assert await open_slot(db_session, "Empty", 4) == 1


async def test_move_to_and_delete_keep_numbers_contiguous(db_session, three_steps):
    a, b, c = three_steps
    await move_step_to(db_session, c, 1)
    assert await _numbers(db_session) == [("C", 1), ("A", 2), ("B", 3)]

    await delete_step(db_session, a)
    assert await _numbers(db_session) == [("C", 1), ("B", 2)]


async def test_failed_swap_leaves_both_numbers_unchanged(db_session, three_steps, monkeypatch):
    a, b, _ = three_steps
    await db_session.commit()

    real_flush = db_session.flush
    calls = []

    async def flush_then_fail(*args, **kwargs):
        calls.append(1)
        if len(calls) == 2:
            raise RuntimeError("connection lost")
        await real_flush(*args, **kwargs)

    monkeypatch.setattr(db_session, "flush", flush_then_fail)
    with pytest.raises(RuntimeError):
        await swap_step_numbers(db_session, a, b)
    await db_session.rollback()

    assert await _numbers(db_session) == [("A", 1), ("B", 2), ("C", 3)]
