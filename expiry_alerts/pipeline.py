import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date
from typing import Optional, Protocol

from . import data_handler, settings
from .aggregator import aggregate
from .evaluator import evaluate
from .exceptions import SourceReadFailure
from .renderer import render
from .schemas import AlertGroup, DispatchResult, InventoryItem, RunSummary, StudyContact

logger = logging.getLogger(__name__)


class SnapshotReader(Protocol):
    def fetch_inventory(self) -> dict: ...

    def fetch_contacts(self) -> dict: ...


class Dispatcher(Protocol):
    def send(self, recipient: str, subject: str, html: str, study: str = "") -> DispatchResult: ...


class ExpiryAlertPipeline:
    """
    The daily expiry check.
    Follows an Extract -> Transform -> Load pattern:
      extract   - read inventory and contacts snapshots (concurrently)
      transform - evaluate every kit against today's milestones and group by study
      load      - render and send one email per study that has a contact
    Reader and dispatcher are passed in already built; the pipeline owns no clients.
    """

    def __init__(
        self,
        reader: SnapshotReader,
        dispatcher: Dispatcher,
        today: date,
        test_mode: bool = False,
        max_workers: Optional[int] = None,
    ):
        self.reader = reader
        self.dispatcher = dispatcher
        self.today = today
        self.test_mode = test_mode
        self.max_workers = max_workers or settings.dispatch_workers()

    def run(self) -> RunSummary:
        logger.info(f"⏰ STEP: DAILY EXPIRY CHECK ({self.today.isoformat()})")
        logger.info("-" * 30)
        summary = RunSummary(today=self.today)

        # --- 1. EXTRACT ---
        items, contacts = self.extract()
        summary.items_scanned = len(items)

        # --- 2. TRANSFORM ---
        groups = self.transform(items, contacts)
        summary.alerts_found = sum(len(g.alerts) for g in groups.values())
        summary.groups = len(groups)
        summary.unresolved_studies = [g.study for g in groups.values() if not g.recipient]

        # --- 3. LOAD ---
        summary.dispatches = self.load(groups)

        logger.info(
            f"✅ Daily Check Complete. {summary.alerts_found} alert(s) across {summary.groups} "
            f"study(ies); {len(summary.dispatches) - len(summary.failed)} sent, {len(summary.failed)} failed."
        )
        logger.info("=" * 60)
        return summary

    def extract(self) -> tuple[list[InventoryItem], list[StudyContact]]:
        """Fetches both snapshots in parallel. Either failing aborts the run."""
        logger.info("--- Reading Snapshots ---")
        with ThreadPoolExecutor(max_workers=2) as executor:
            futures = {
                "inventory": executor.submit(self.reader.fetch_inventory),
                "contacts": executor.submit(self.reader.fetch_contacts),
            }
            snapshots = {}
            for source, future in futures.items():
                try:
                    snapshots[source] = future.result()
                except Exception as e:
                    raise SourceReadFailure(source, str(e)) from e

        items = data_handler.load_inventory(snapshots["inventory"])
        contacts = data_handler.load_contacts(snapshots["contacts"])
        logger.info(f"  > {len(items)} kit(s), {len(contacts)} contact(s)")
        return items, contacts

    def transform(
        self, items: list[InventoryItem], contacts: list[StudyContact]
    ) -> dict[str, AlertGroup]:
        logger.info("--- Evaluating Expiry Milestones ---")
        alerts = [alert for alert in (evaluate(item, self.today) for item in items) if alert]
        for alert in alerts:
            logger.info(f"  > {alert.label}: {alert.barcode} ({alert.study}) in {alert.days_left} day(s)")

        groups = aggregate(alerts, contacts)
        for group in groups.values():
            if not group.recipient:
                logger.warning(
                    f"⚠️ No contact found for study '{group.study}'. "
                    f"Skipping {len(group.alerts)} alert(s)."
                )
        return groups

    def load(self, groups: dict[str, AlertGroup]) -> list[DispatchResult]:
        """Sends every deliverable group at once and waits for all of them to settle."""
        deliverable = [g for g in groups.values() if g.recipient]
        if not deliverable:
            logger.info("No alerts to send today.")
            return []

        if self.test_mode:
            for group in deliverable:
                email = render(group.study, group.alerts)
                logger.info(f"🧪 Test Mode: would send '{email.subject}' to {group.recipient}")
            return []

        results = []
        with ThreadPoolExecutor(max_workers=max(1, min(self.max_workers, len(deliverable)))) as executor:
            futures = {}
            for group in deliverable:
                email = render(group.study, group.alerts)
                logger.info(f"📧 Sending alert for {group.study} to {group.recipient}")
                future = executor.submit(
                    self.dispatcher.send, group.recipient, email.subject, email.html, group.study
                )
                futures[future] = group

            for future in as_completed(futures):
                group = futures[future]
                try:
                    result = future.result()
                except Exception as e:
                    result = DispatchResult(
                        study=group.study, recipient=group.recipient, success=False, reason=str(e)
                    )
                if result.success:
                    logger.info(f"  > Delivered: {group.study} -> {group.recipient}")
                else:
                    logger.error(
                        f"❌ Failed to send alert for {group.study} to {group.recipient}: {result.reason}"
                    )
                results.append(result)

        return results
