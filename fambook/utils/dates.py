from datetime import date, datetime, timedelta


def month_window(now: datetime) -> tuple[datetime, datetime]:
    """Returns [first day of this month, first day of next month)."""
    start = datetime(now.year, now.month, 1)
    if now.month == 12:
        end = datetime(now.year + 1, 1, 1)
    else:
        end = datetime(now.year, now.month + 1, 1)
    return start, end


def calculate_age(birth: date, today: date) -> int:
    age = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        age -= 1
    return age


def is_birthday(birth: date, today: date) -> bool:
    return (birth.month, birth.day) == (today.month, today.day)


def add_months(moment: datetime, months: int) -> datetime:
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1

    # Clamp to the last day of the target month
    day = moment.day
    while True:
        try:
            return moment.replace(year=year, month=month, day=day)
        except ValueError:
            day -= 1


def horizon(now: datetime, time_frame: str) -> datetime | None:
    """End of the look-ahead window for upcoming family events."""
    if time_frame == "all":
        return None
    if time_frame == "thisweek":
        return now + timedelta(weeks=1)
    if time_frame == "thisyear":
        return add_months(now, 12)
    return add_months(now, 1)
