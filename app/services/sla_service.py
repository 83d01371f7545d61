"""
SLA timers. Elapsed time is derived from the stored timestamps whenever a
timer is read; nothing ticks in the background.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytz
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.sla import SLAPolicy, SLATimer
from app.schemas.sla import SLATimerStatus
from app.utils.logger import logger
from app.utils.time import utc_now

TIMER_RESPONSE = "response"
TIMER_RESOLUTION = "resolution"

STATUS_RUNNING = "running"
STATUS_PAUSED = "paused"
STATUS_MET = "met"
STATUS_BREACHED = "breached"

OFF_HOURS_REASON = "Outside business hours"

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def is_within_business_hours(
    when: datetime,
    business_hours: Optional[Dict[str, str]],
    timezone: str = "UTC",
    holidays: Optional[List[str]] = None,
) -> bool:
    """
    Check a naive-UTC moment against a weekly schedule such as
    ``{"monday": "09:00-18:00", "sunday": "closed"}``.

    No schedule means open around the clock. Holidays are ``YYYY-MM-DD``
    strings compared against the UTC date.
    """
    if not business_hours or not isinstance(business_hours, dict):
        return True

    if holidays and when.strftime("%Y-%m-%d") in holidays:
        return False

    try:
        tz = pytz.timezone(timezone or "UTC")
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown SLA timezone '{timezone}', falling back to UTC")
        tz = pytz.utc

    local = pytz.utc.localize(when).astimezone(tz)
    day_schedule = business_hours.get(WEEKDAYS[local.weekday()])
    if not day_schedule or day_schedule == "closed":
        return False

    parts = [p.strip() for p in day_schedule.split("-")]
    if len(parts) != 2 or not all(parts):
        return False

    # Zero-padded HH:MM compares correctly as text
    current = local.strftime("%H:%M")
    return parts[0] <= current <= parts[1]


def get_target_minutes(times: Optional[Dict[str, Any]], priority: Optional[str]) -> Optional[int]:
    if not times or not priority:
        return None
    value = times.get(priority.lower())
    return int(value) if value else None


async def find_applicable_policy(
    db: AsyncSession, department_id: Optional[int] = None, category: Optional[str] = None
) -> Optional[SLAPolicy]:
    """First active policy whose department and category filters match; the default policy otherwise."""
    result = await db.execute(
        select(SLAPolicy)
        .filter(SLAPolicy.is_active == True)
        .order_by(SLAPolicy.is_default.asc(), SLAPolicy.id.asc())
    )
    policies = result.scalars().all()

    for policy in policies:
        department_match = not policy.department_ids or (department_id is not None and department_id in policy.department_ids)
        category_match = not policy.categories or (category is not None and category in policy.categories)
        if department_match and category_match:
            return policy

    return next((p for p in policies if p.is_default), None)


async def start_timers(
    db: AsyncSession,
    ticket_number: str,
    priority: str,
    department_id: Optional[int] = None,
    category: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[SLATimer]:
    policy = await find_applicable_policy(db, department_id, category)
    if not policy:
        logger.debug(f"No applicable SLA policy for ticket {ticket_number}")
        return []

    response_minutes = get_target_minutes(policy.response_times, priority)
    resolution_minutes = get_target_minutes(policy.resolution_times, priority)
    if not response_minutes or not resolution_minutes:
        logger.info(f"SLA policy {policy.id} has no targets for priority '{priority}'")
        return []

    now = now or utc_now()
    status = STATUS_RUNNING
    pause_reason = None
    if policy.use_business_hours and policy.pause_off_hours:
        if not is_within_business_hours(now, policy.business_hours, policy.timezone, policy.holidays):
            status = STATUS_PAUSED
            pause_reason = OFF_HOURS_REASON

    timers = []
    for timer_type, minutes in ((TIMER_RESPONSE, response_minutes), (TIMER_RESOLUTION, resolution_minutes)):
        timer = SLATimer(
            ticket_number=ticket_number,
            policy_id=policy.id,
            timer_type=timer_type,
            status=status,
            target_minutes=minutes,
            initial_priority=priority,
            started_at=now,
            paused_at=now if status == STATUS_PAUSED else None,
            pause_reason=pause_reason,
            total_paused_minutes=0,
        )
        db.add(timer)
        timers.append(timer)

    await db.commit()
    logger.info(f"SLA timers started for ticket {ticket_number} (status: {status})")
    return timers


async def _timers_for(db: AsyncSession, ticket_number: str, statuses: List[str], timer_type: Optional[str] = None) -> List[SLATimer]:
    query = select(SLATimer).filter(SLATimer.ticket_number == ticket_number, SLATimer.status.in_(statuses))
    if timer_type:
        query = query.filter(SLATimer.timer_type == timer_type)
    result = await db.execute(query)
    return result.scalars().all()


async def pause_timer(db: AsyncSession, ticket_number: str, reason: str = "Manual pause", now: Optional[datetime] = None) -> int:
    now = now or utc_now()
    timers = await _timers_for(db, ticket_number, [STATUS_RUNNING])
    for timer in timers:
        timer.status = STATUS_PAUSED
        timer.paused_at = now
        timer.pause_reason = reason
    await db.commit()
    logger.info(f"Paused {len(timers)} SLA timers for ticket {ticket_number}")
    return len(timers)


async def resume_timer(db: AsyncSession, ticket_number: str, now: Optional[datetime] = None) -> int:
    now = now or utc_now()
    timers = await _timers_for(db, ticket_number, [STATUS_PAUSED])
    for timer in timers:
        paused_for = int((now - (timer.paused_at or now)).total_seconds() // 60)
        timer.total_paused_minutes = (timer.total_paused_minutes or 0) + max(0, paused_for)
        timer.status = STATUS_RUNNING
        timer.paused_at = None
        timer.pause_reason = None
    await db.commit()
    logger.info(f"Resumed {len(timers)} SLA timers for ticket {ticket_number}")
    return len(timers)


async def complete_timer(
    db: AsyncSession, ticket_number: str, timer_type: Optional[str] = None, now: Optional[datetime] = None
) -> int:
    """Stop open timers, recording them as met or breached against their target."""
    now = now or utc_now()
    timers = await _timers_for(db, ticket_number, [STATUS_RUNNING, STATUS_PAUSED], timer_type)
    for timer in timers:
        elapsed = elapsed_minutes(timer, now)
        timer.completed_at = now
        if elapsed > timer.target_minutes:
            timer.status = STATUS_BREACHED
            timer.breached_at = now
        else:
            timer.status = STATUS_MET
    await db.commit()
    logger.info(f"Completed {len(timers)} SLA timers for ticket {ticket_number}")
    return len(timers)


def elapsed_minutes(timer: SLATimer, now: Optional[datetime] = None) -> int:
    end = timer.completed_at or now or utc_now()
    elapsed = int((end - timer.started_at).total_seconds() // 60)
    if timer.status == STATUS_PAUSED and timer.paused_at:
        # Time since the pause does not count
        elapsed -= int((end - timer.paused_at).total_seconds() // 60)
    elapsed -= timer.total_paused_minutes or 0
    return max(0, elapsed)


def evaluate_timer(timer: SLATimer, now: Optional[datetime] = None) -> SLATimerStatus:
    elapsed = elapsed_minutes(timer, now)
    target = timer.target_minutes or 0
    remaining = max(0, target - elapsed)
    percentage = min(100.0, (elapsed / target) * 100) if target else 100.0

    if timer.status == STATUS_BREACHED:
        display_status = "breached"
    elif timer.status == STATUS_MET:
        display_status = "met"
    elif timer.status == STATUS_PAUSED:
        display_status = "paused"
    elif percentage >= 100:
        display_status = "breached"
    elif percentage >= settings.SLA_CRITICAL_PERCENT:
        display_status = "critical"
    elif percentage >= settings.SLA_AT_RISK_PERCENT:
        display_status = "at_risk"
    else:
        display_status = "on_track"

    return SLATimerStatus.model_validate({
        **{c.name: getattr(timer, c.name) for c in SLATimer.__table__.columns},
        "elapsed_minutes": elapsed,
        "remaining_minutes": remaining,
        "percentage_elapsed": round(percentage, 2),
        "display_status": display_status,
    })


async def list_timers(
    db: AsyncSession,
    status: Optional[str] = None,
    ticket_number: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[SLATimerStatus]:
    query = select(SLATimer)
    if status:
        query = query.filter(SLATimer.status == status)
    if ticket_number:
        query = query.filter(SLATimer.ticket_number == ticket_number)
    result = await db.execute(query.order_by(SLATimer.started_at.asc(), SLATimer.id.asc()))
    now = now or utc_now()
    enriched = [evaluate_timer(timer, now) for timer in result.scalars().all()]
    # Most urgent first
    enriched.sort(key=lambda t: t.remaining_minutes)
    return enriched
