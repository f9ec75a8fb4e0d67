import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from croniter import croniter

from core.clock import Clock
from services.matrimony_lifecycle import ProfileLifecycle

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    purged: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)


async def run_sweep_once(lifecycle: ProfileLifecycle, now: datetime) -> SweepReport:
    """
    Один проход очистки: удаляет завершённые анкеты, у которых истёк срок.

    Каждая анкета удаляется независимо. Упавшая остаётся в базе
    и будет подобрана следующим запуском.
    """
    report = SweepReport()
    candidates = await lifecycle.store.find_due_for_purge(now)
    logger.info("Found %d matrimony profiles to delete", len(candidates))
    # сбой одной анкеты откатывает сессию и делает остальные объекты устаревшими
    due = [(profile.id, list(profile.media_ids)) for profile in candidates]

    for profile_id, media_ids in due:
        try:
            await lifecycle.purge_by_id(profile_id, media_ids)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to delete matrimony profile %s", profile_id)
            report.failed.append(profile_id)
            continue
        logger.info("Deleted matrimony profile %s from database", profile_id)
        report.purged.append(profile_id)

    logger.info(
        "Matrimony profile cleanup completed: %d purged, %d failed",
        len(report.purged), len(report.failed),
    )
    return report


class CleanupScheduler:
    """
    Фоновая задача asyncio, которая по cron-расписанию запускает очистку.

    sweep получает текущее время и сам открывает сессию к базе, поэтому
    запросы пользователей и очистка не делят ни сессию, ни задачу.
    """

    def __init__(
        self,
        sweep: Callable[[datetime], Awaitable[SweepReport]],
        cron_expression: str = "0 2 * * *",
        clock: Optional[Clock] = None,
    ):
        if not croniter.is_valid(cron_expression):
            raise ValueError(f"Invalid cron expression: {cron_expression!r}")
        self.sweep = sweep
        self.cron_expression = cron_expression
        self.clock = clock or Clock()
        self._task: Optional[asyncio.Task] = None
        self._sleep = asyncio.sleep

    def next_run_after(self, moment: datetime) -> datetime:
        local = moment.astimezone(self.clock.tz)
        return croniter(self.cron_expression, local).get_next(datetime)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> SweepReport:
        return await self.sweep(self.clock.now())

    async def _loop(self) -> None:
        last_run: Optional[datetime] = None
        while True:
            now = self.clock.now()
            # sleep может проснуться чуть раньше срока: не повторяем тот же запуск
            anchor = now if last_run is None or now > last_run else last_run
            next_run = self.next_run_after(anchor)
            last_run = next_run
            delay = next_run.timestamp() - now.timestamp()
            logger.info("Next matrimony cleanup at %s", next_run.isoformat())
            await self._sleep(max(delay, 0))
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001
                # сбой всего прохода не останавливает расписание
                logger.exception("Error in matrimony cleanup job")

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="matrimony-cleanup")
        logger.info("Matrimony cleanup job scheduled: %s", self.cron_expression)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
