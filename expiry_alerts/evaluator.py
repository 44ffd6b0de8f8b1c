from datetime import date
from typing import Optional

from . import settings
from .schemas import Alert, InventoryItem

WARNING = "Warning"
REMINDER = "Reminder"
URGENT = "Urgent"
EXPIRED = "Expired"


def days_until(expiry: date, today: date) -> int:
    """
    Whole days from today to expiry. Negative once the kit has expired.
    Both sides are calendar dates, so this equals ceil((expiry - today) / 1 day).
    """
    return (expiry - today).days


def classify(days_left: int) -> str:
    """Urgency label for a days-left value. Later checks take precedence."""
    label = WARNING
    if days_left == 15:
        label = REMINDER
    if days_left == 5:
        label = URGENT
    if days_left <= 0:
        label = EXPIRED
    return label


def is_milestone(days_left: int) -> bool:
    # Exact match only: an expired kit is reported once, on the day it expires.
    return days_left in settings.ALERT_MILESTONES


def evaluate(item: InventoryItem, today: date) -> Optional[Alert]:
    """
    Decides whether a single kit warrants a notification today.
    Returns None for kits that are not Available, have no expiry, or are not on a milestone day.
    """
    if item.status != settings.AVAILABLE_STATUS or item.expiry is None:
        return None

    days_left = days_until(item.expiry, today)
    if not is_milestone(days_left):
        return None

    return Alert(
        barcode=item.barcode,
        visit=item.visit,
        study=item.study,
        expiry=item.expiry,
        days_left=days_left,
        label=classify(days_left),
    )
