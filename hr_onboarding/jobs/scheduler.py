from __future__ import annotations

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from hr_onboarding.core.config import settings
from hr_onboarding.jobs.tasks import run_due_step_completions, run_task_snooze_wakeups


def start_scheduler() -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone=settings.calendar_timezone)
    scheduler.add_job(
        run_due_step_completions,
        IntervalTrigger(minutes=1),
        id="due_step_completions",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(run_task_snooze_wakeups, IntervalTrigger(minutes=15), id="task_snooze_wakeups", replace_existing=True)
    scheduler.start()
    return scheduler
