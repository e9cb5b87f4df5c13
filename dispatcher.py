"""Dispatch cycle for Reminder Dispatcher.

One cycle:
1. Fetch reminders, devices and settings concurrently (any failure aborts)
2. Select reminders whose next_date lies within the window around now
3. Per due reminder: notify every target device, compute the next
   occurrence, write it back (reminders are processed concurrently;
   the deliveries of one reminder always finish before its write)
4. Report the reminders whose write succeeded

Deliveries and writes are attempted once. A failed delivery does not stop
the reminder from advancing; a failed write only drops that reminder
from the report.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from config import settings
from logger_config import setup_logger
from notifier import DeliveryOutcome, Notifier, PushEndpoint
from recurrence import next_occurrence
from schemas import DispatchDetail, DispatchReport, ReminderRecord, Snapshot
from selector import effective_critical, resolve_targets, select_due

logger = setup_logger(__name__, 'cron.log')


class StoreFetchError(RuntimeError):
    """One of the snapshot reads failed; the cycle is aborted."""


@dataclass
class ReminderOutcome:
    """What happened to one due reminder."""
    reminder_id: str
    deliveries: List[DeliveryOutcome] = field(default_factory=list)
    next_date: Optional[str] = None
    updated: bool = False
    error: Optional[str] = None

    @property
    def notified(self) -> List[str]:
        return [d.device_name for d in self.deliveries if d.ok]


async def fetch_snapshot(store) -> Snapshot:
    """Read all three collections; all reads complete before returning.

    Raises:
        StoreFetchError: If any read fails
    """
    try:
        reminders, devices, app_settings = await asyncio.gather(
            store.fetch_reminders(),
            store.fetch_devices(),
            store.fetch_settings(),
        )
    except Exception as e:
        logger.error(f"Snapshot fetch failed: {str(e)}", exc_info=True)
        raise StoreFetchError(str(e) or e.__class__.__name__) from e

    return Snapshot(reminders=reminders or [], devices=devices or [], settings=app_settings)


async def process_reminder(
    reminder: ReminderRecord,
    snapshot: Snapshot,
    store,
    notifier: Notifier,
    endpoints: Dict[str, PushEndpoint] = None
) -> Optional[ReminderOutcome]:
    """Notify, advance and persist one due reminder.

    endpoints maps device id to its resolved push endpoint for this cycle.

    Returns:
        ReminderOutcome, or None when the reminder resolves to no device
        (it is then left untouched)
    """
    targets = resolve_targets(reminder, snapshot.devices)
    if not targets:
        logger.info(f"Reminder {reminder.id} has no matching device (target: {reminder.target_device_id}), skipping")
        return None

    critical = effective_critical(reminder, snapshot.settings)
    body = reminder.notes or notifier.config.DEFAULT_NOTIFICATION_BODY

    logger.info(
        f"Processing reminder {reminder.id}: '{reminder.name}' due {reminder.next_date}, "
        f"{len(targets)} device(s), critical={critical}"
    )

    deliveries = await asyncio.gather(
        *(
            notifier.deliver(device, reminder.name, body, critical, (endpoints or {}).get(device.id))
            for device in targets
        )
    )
    outcome = ReminderOutcome(reminder_id=reminder.id, deliveries=list(deliveries))

    failed = [d.device_name for d in deliveries if not d.ok]
    if failed:
        logger.warning(f"Reminder {reminder.id}: delivery failed for {', '.join(failed)}")

    outcome.next_date = next_occurrence(reminder.next_date, reminder.cycle)

    try:
        found = await store.update_next_date(reminder.id, outcome.next_date)
    except Exception as e:
        outcome.error = str(e) or e.__class__.__name__
        logger.error(f"Failed to update next_date for reminder {reminder.id}: {outcome.error}", exc_info=True)
        return outcome

    if found is False:
        outcome.error = "reminder no longer exists"
        logger.warning(f"Reminder {reminder.id} disappeared before its next_date could be written")
        return outcome

    outcome.updated = True
    logger.info(f"Reminder {reminder.id} advanced to {outcome.next_date}")
    return outcome


async def dispatch_due(
    snapshot: Snapshot,
    store,
    notifier: Notifier,
    now: datetime,
    window: timedelta
) -> List[ReminderOutcome]:
    """Process every due reminder of a snapshot, in snapshot order."""
    due = select_due(snapshot.reminders, now, window)
    if not due:
        logger.info("No reminders due in this cycle")
        return []

    logger.info(f"Found {len(due)} due reminder(s)")
    endpoints = {device.id: notifier.endpoint_for(device) for device in snapshot.devices}
    results = await asyncio.gather(
        *(process_reminder(reminder, snapshot, store, notifier, endpoints) for reminder in due),
        return_exceptions=True
    )

    outcomes = []
    for reminder, result in zip(due, results):
        if isinstance(result, Exception):
            logger.error(f"Unexpected error processing reminder {reminder.id}: {str(result)}", exc_info=result)
        elif result is not None:
            outcomes.append(result)
    return outcomes


def build_report(outcomes: List[ReminderOutcome]) -> DispatchReport:
    """Summary of the reminders that were advanced successfully."""
    details = [
        DispatchDetail(id=o.reminder_id, sent_to=o.notified, next_date=o.next_date)
        for o in outcomes
        if o.updated
    ]
    return DispatchReport(sent=len(details), details=details)


async def run_dispatch_cycle(
    store,
    notifier: Notifier,
    now: datetime = None,
    window: timedelta = None
) -> DispatchReport:
    """Run one complete cycle.

    Args:
        store: Object exposing async fetch_reminders, fetch_devices,
            fetch_settings and update_next_date (see crud.ReminderStore)
        notifier: Push notifier
        now: Evaluation instant, aware (default: current UTC time)
        window: Dispatch window (default: settings.dispatch_window)

    Raises:
        StoreFetchError: If the snapshot could not be read
    """
    now = now or datetime.now(timezone.utc)
    window = window if window is not None else settings.dispatch_window

    logger.info(f"Dispatch cycle started at {now.isoformat()} (window: {window})")
    snapshot = await fetch_snapshot(store)
    outcomes = await dispatch_due(snapshot, store, notifier, now, window)
    report = build_report(outcomes)
    logger.info(f"Dispatch cycle finished: {report.sent} reminder(s) processed")
    return report
