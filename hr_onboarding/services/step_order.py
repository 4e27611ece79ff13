from __future__ import annotations

from typing import Literal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_onboarding.models.department_step import DepartmentStepTemplate

# Every renumbering below goes row by row with a flush in between so that
# UNIQUE(department, step_number) holds after each individual UPDATE. Nothing
# here commits: the caller's transaction makes the whole change atomic.


class StepOrderError(ValueError):
    pass


def _parking_number(step: DepartmentStepTemplate) -> int:
    return -int(step.step_id)


async def _max_step_number(session: AsyncSession, department: str) -> int:
    stmt = select(func.max(DepartmentStepTemplate.step_number)).where(DepartmentStepTemplate.department == department)
    return int((await session.execute(stmt)).scalar() or 0)


async def _steps_in_range(
    session: AsyncSession,
    department: str,
    *,
    low: int,
    high: int | None,
    descending: bool,
) -> list[DepartmentStepTemplate]:
    stmt = select(DepartmentStepTemplate).where(
        DepartmentStepTemplate.department == department,
        DepartmentStepTemplate.step_number >= low,
    )
    if high is not None:
        stmt = stmt.where(DepartmentStepTemplate.step_number <= high)
    order = DepartmentStepTemplate.step_number.desc() if descending else DepartmentStepTemplate.step_number.asc()
    return list((await session.execute(stmt.order_by(order))).scalars().unique().all())


async def swap_step_numbers(
    session: AsyncSession,
    step_a: DepartmentStepTemplate,
    step_b: DepartmentStepTemplate,
) -> None:
    if step_a.step_id == step_b.step_id:
        raise StepOrderError("cannot_swap_step_with_itself")
    if step_a.department != step_b.department:
        raise StepOrderError("steps_in_different_departments")
    if abs(step_a.step_number - step_b.step_number) != 1:
        raise StepOrderError("steps_not_adjacent")

    number_a, number_b = step_a.step_number, step_b.step_number
    step_a.step_number = _parking_number(step_a)
    await session.flush()
    step_b.step_number = number_a
    await session.flush()
    step_a.step_number = number_b
    await session.flush()


async def move_step(
    session: AsyncSession,
    step: DepartmentStepTemplate,
    direction: Literal["up", "down"],
) -> DepartmentStepTemplate:
    """Swap a step with its neighbour. Returns the neighbour that was swapped."""
    if direction not in ("up", "down"):
        raise StepOrderError("invalid_direction")
    target = step.step_number - 1 if direction == "up" else step.step_number + 1
    neighbour = (
        await session.execute(
            select(DepartmentStepTemplate).where(
                DepartmentStepTemplate.department == step.department,
                DepartmentStepTemplate.step_number == target,
            )
        )
    ).scalars().unique().one_or_none()
    if neighbour is None:
        raise StepOrderError("step_move_out_of_range")
    await swap_step_numbers(session, step, neighbour)
    return neighbour


async def open_slot(session: AsyncSession, department: str, step_number: int | None) -> int:
    """Make room for a new step and return the number it should take.

    ``None`` (or a number past the end) appends. Otherwise every step at or
    after the requested number moves down by one, highest first.
    """
    last = await _max_step_number(session, department)
    if step_number is None or step_number > last:
        return last + 1
    if step_number < 1:
        raise StepOrderError("invalid_step_number")
    for row in await _steps_in_range(session, department, low=step_number, high=None, descending=True):
        row.step_number += 1
        await session.flush()
    return step_number


async def close_gap(session: AsyncSession, department: str, removed_number: int) -> None:
    for row in await _steps_in_range(session, department, low=removed_number + 1, high=None, descending=False):
        row.step_number -= 1
        await session.flush()


async def move_step_to(session: AsyncSession, step: DepartmentStepTemplate, new_number: int) -> None:
    old_number = step.step_number
    if new_number == old_number:
        return
    last = await _max_step_number(session, step.department)
    if new_number < 1 or new_number > last:
        raise StepOrderError("step_move_out_of_range")

    step.step_number = _parking_number(step)
    await session.flush()
    if new_number < old_number:
        rows = await _steps_in_range(session, step.department, low=new_number, high=old_number - 1, descending=True)
        delta = 1
    else:
        rows = await _steps_in_range(session, step.department, low=old_number + 1, high=new_number, descending=False)
        delta = -1
    for row in rows:
        row.step_number += delta
        await session.flush()
    step.step_number = new_number
    await session.flush()


async def delete_step(session: AsyncSession, step: DepartmentStepTemplate) -> None:
    department, number = step.department, step.step_number
    await session.delete(step)
    await session.flush()
    await close_gap(session, department, number)
