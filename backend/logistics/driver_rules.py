"""
Driver hours-of-service simulator for road freight.
Rules:
- 4.5 hours maximum continuous driving, then a 45-minute break
- 9-hour daily driving cap (10 hours with the extended allowance)
- 9 or 11-hour daily rest once the daily cap is reached
- Daily rest replaces the short break when both fall due together
- Nothing is appended after the final stint
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Tuple

logger = logging.getLogger(__name__)

MAX_CONTINUOUS_DRIVING_HOURS = 4.5
SHORT_BREAK_DURATION_HOURS = 0.75      # 45 minutes
STANDARD_DAILY_DRIVING_HOURS = 9.0
EXTENDED_DAILY_DRIVING_HOURS = 10.0
REDUCED_DAILY_REST_HOURS = 9.0
REGULAR_DAILY_REST_HOURS = 11.0

# Internal clock resolution. Every policy value above is a whole number of seconds.
SECONDS_PER_HOUR = 3600

# Driving left over after a stint at or below this is treated as finished.
STOP_TOLERANCE_HOURS = 0.001

# Longest route the simulator accepts, and the most stints it will step through.
MAX_PURE_DRIVING_HOURS = 1000.0
MAX_STINTS = 1000

DRIVING = 'driving'
BREAK = 'break'
REST = 'rest'


class InvalidInput(ValueError):
    """Raised when the simulator is given values it cannot step through."""


@dataclass(frozen=True)
class DriverPolicy:
    max_daily_driving_hours: float = STANDARD_DAILY_DRIVING_HOURS
    daily_rest_duration_hours: float = REGULAR_DAILY_REST_HOURS
    max_continuous_driving_hours: float = MAX_CONTINUOUS_DRIVING_HOURS
    short_break_duration_hours: float = SHORT_BREAK_DURATION_HOURS

    @classmethod
    def for_options(cls, allow_extended_driving: bool = False,
                    daily_rest_duration: float = REGULAR_DAILY_REST_HOURS) -> 'DriverPolicy':
        max_daily = EXTENDED_DAILY_DRIVING_HOURS if allow_extended_driving else STANDARD_DAILY_DRIVING_HOURS
        return cls(max_daily_driving_hours=max_daily, daily_rest_duration_hours=daily_rest_duration)

    @property
    def is_extended_driving(self) -> bool:
        return self.max_daily_driving_hours > STANDARD_DAILY_DRIVING_HOURS

    def validate(self):
        max_daily = _finite('max_daily_driving', self.max_daily_driving_hours)
        rest = _finite('daily_rest_duration', self.daily_rest_duration_hours)
        continuous = _finite('max_continuous_driving', self.max_continuous_driving_hours)
        short_break = _finite('short_break_duration', self.short_break_duration_hours)

        # A cap that rounds to zero seconds would never let the loop advance.
        if max_daily <= 0 or _to_seconds(max_daily) <= 0:
            raise InvalidInput(f'max_daily_driving must be positive, got {max_daily!r}.')
        if continuous <= 0 or _to_seconds(continuous) <= 0:
            raise InvalidInput(f'max_continuous_driving must be positive, got {continuous!r}.')
        if rest < 0:
            raise InvalidInput(f'daily_rest_duration cannot be negative, got {rest!r}.')
        if short_break < 0:
            raise InvalidInput(f'short_break_duration cannot be negative, got {short_break!r}.')


@dataclass(frozen=True)
class ScheduleEntry:
    activity: str           # 'driving', 'break', 'rest'
    start_hour: float       # Hours since departure
    end_hour: float

    @property
    def duration(self) -> float:
        return self.end_hour - self.start_hour


@dataclass(frozen=True)
class LogisticsTime:
    total_duration_hours: float
    driving_time_hours: float
    break_time_hours: float
    rest_time_hours: float
    break_count: int
    rest_count: int
    is_extended_driving: bool
    daily_rest_duration: float
    schedule: Tuple[ScheduleEntry, ...] = ()


def _finite(name: str, value) -> float:
    if isinstance(value, bool):
        raise InvalidInput(f'{name} must be a number, got {value!r}.')
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f'{name} must be a number, got {value!r}.') from exc
    if not math.isfinite(number):
        raise InvalidInput(f'{name} must be finite, got {value!r}.')
    return number


def _to_seconds(hours: float) -> int:
    return int(round(hours * SECONDS_PER_HOUR))


def plan_driving_schedule(pure_driving_hours: float, policy: DriverPolicy) -> LogisticsTime:
    """
    Step through a route's pure driving time under the given policy.

    Each stint runs until the route ends, the continuous-driving ceiling is
    reached, or the daily cap is used up, whichever comes first. A stint that
    exhausts the daily cap is followed by a daily rest; any other stint that
    leaves driving behind it is followed by a short break.
    """
    driving_hours = _finite('pure_driving_hours', pure_driving_hours)
    if driving_hours < 0:
        raise InvalidInput(f'pure_driving_hours cannot be negative, got {pure_driving_hours!r}.')
    if driving_hours > MAX_PURE_DRIVING_HOURS:
        raise InvalidInput(
            f'pure_driving_hours cannot exceed {MAX_PURE_DRIVING_HOURS:g}, got {pure_driving_hours!r}.'
        )
    policy.validate()

    remaining = _to_seconds(driving_hours)
    daily_cap = _to_seconds(policy.max_daily_driving_hours)
    continuous_cap = _to_seconds(policy.max_continuous_driving_hours)
    break_length = _to_seconds(policy.short_break_duration_hours)
    rest_length = _to_seconds(policy.daily_rest_duration_hours)
    tolerance = STOP_TOLERANCE_HOURS * SECONDS_PER_HOUR

    if math.ceil(remaining / min(continuous_cap, daily_cap)) > MAX_STINTS:
        raise InvalidInput(
            f'Policy limits are too small for {driving_hours:g}h of driving '
            f'(more than {MAX_STINTS} stints).'
        )

    schedule: List[ScheduleEntry] = []
    clock = 0
    driven_today = 0
    break_count = 0
    rest_count = 0

    def add_entry(activity: str, duration: int):
        nonlocal clock
        schedule.append(ScheduleEntry(
            activity=activity,
            start_hour=clock / SECONDS_PER_HOUR,
            end_hour=(clock + duration) / SECONDS_PER_HOUR,
        ))
        clock += duration

    while remaining > tolerance:
        stint = min(remaining, continuous_cap, daily_cap - driven_today)
        add_entry(DRIVING, stint)
        driven_today += stint
        remaining -= stint

        if remaining <= tolerance:
            break

        if driven_today >= daily_cap:
            add_entry(REST, rest_length)
            rest_count += 1
            # A fresh day also starts a fresh continuous window.
            driven_today = 0
        elif stint == continuous_cap or driven_today % continuous_cap == 0:
            add_entry(BREAK, break_length)
            break_count += 1

    break_time = break_count * policy.short_break_duration_hours
    rest_time = rest_count * policy.daily_rest_duration_hours

    logger.debug(
        'Planned %.2fh of driving: %d breaks, %d rests, %d schedule entries',
        driving_hours, break_count, rest_count, len(schedule),
    )

    return LogisticsTime(
        total_duration_hours=driving_hours + break_time + rest_time,
        driving_time_hours=driving_hours,
        break_time_hours=break_time,
        rest_time_hours=rest_time,
        break_count=break_count,
        rest_count=rest_count,
        is_extended_driving=policy.is_extended_driving,
        daily_rest_duration=policy.daily_rest_duration_hours,
        schedule=tuple(schedule),
    )


def simulate(
    pure_driving_hours: float,
    max_daily_driving: float = STANDARD_DAILY_DRIVING_HOURS,
    daily_rest_duration: float = REGULAR_DAILY_REST_HOURS,
) -> LogisticsTime:
    policy = DriverPolicy(
        max_daily_driving_hours=max_daily_driving,
        daily_rest_duration_hours=daily_rest_duration,
    )
    return plan_driving_schedule(pure_driving_hours, policy)


def logistics_time_to_dict(result: LogisticsTime) -> dict:
    return {
        'total_duration_hours': round(result.total_duration_hours, 4),
        'driving_time_hours': round(result.driving_time_hours, 4),
        'break_time_hours': round(result.break_time_hours, 4),
        'rest_time_hours': round(result.rest_time_hours, 4),
        'break_count': result.break_count,
        'rest_count': result.rest_count,
        'is_extended_driving': result.is_extended_driving,
        'daily_rest_duration': result.daily_rest_duration,
        'schedule': [
            {
                'activity': entry.activity,
                'start_hour': round(entry.start_hour, 4),
                'end_hour': round(entry.end_hour, 4),
                'duration': round(entry.duration, 4),
            }
            for entry in result.schedule
        ],
    }
