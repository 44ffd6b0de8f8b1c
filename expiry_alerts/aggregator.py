import logging
from typing import Iterable, Optional

from . import settings
from .schemas import Alert, AlertGroup, StudyContact

logger = logging.getLogger(__name__)


def study_key(study: Optional[str]) -> str:
    """Grouping key for an item's study. Case-sensitive; blank studies share one bucket."""
    return study or settings.UNKNOWN_STUDY


def group_alerts(alerts: Iterable[Alert]) -> dict[str, AlertGroup]:
    """Buckets alerts by study, keeping first-seen order for groups and scan order within them."""
    groups: dict[str, AlertGroup] = {}
    for alert in alerts:
        key = study_key(alert.study)
        if key not in groups:
            groups[key] = AlertGroup(study=key)
        groups[key].alerts.append(alert)
    return groups


def resolve_recipient(study: str, contacts: Iterable[StudyContact]) -> Optional[str]:
    """
    Finds the contact email for a study by case-insensitive name match.
    Every contact is scanned; when several share a name, the last one wins.
    """
    wanted = study.lower()
    matches = [c for c in contacts if c.name.lower() == wanted]
    if not matches:
        return None

    if len({c.email for c in matches}) > 1:
        logger.warning(
            f"⚠️ {len(matches)} contacts match study '{study}'. Using the last one: {matches[-1].email}"
        )
    return matches[-1].email


def aggregate(alerts: Iterable[Alert], contacts: list[StudyContact]) -> dict[str, AlertGroup]:
    """
    Groups today's alerts by study and attaches each group's recipient.
    Groups without a matching contact keep recipient=None; the caller decides to skip them.
    """
    groups = group_alerts(alerts)
    for group in groups.values():
        group.recipient = resolve_recipient(group.study, contacts)
    return groups
