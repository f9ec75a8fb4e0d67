from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo


class Clock:
    """
    Источник текущего времени в часовом поясе сообщества.

    Сроки (grace period) считаются в календарных днях по местному времени:
    aware-datetime + timedelta(days=N) в Python сдвигает «настенное» время,
    поэтому через переход на летнее время 14 дней остаются 14 календарными днями,
    а не 14 * 86400 секундами.
    """

    def __init__(self, tz_name: str = "UTC"):
        self.tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        return datetime.now(timezone.utc).astimezone(self.tz)

    def today(self) -> date:
        return self.now().date()

    def add_calendar_days(self, moment: datetime, days: int) -> datetime:
        local = moment.astimezone(self.tz)
        shifted = local + timedelta(days=days)
        # нормализуем смещение после перехода через DST
        return shifted.astimezone(timezone.utc).astimezone(self.tz)
