from datetime import date
from typing import Optional
from pydantic import BaseModel, Field


class InventoryItem(BaseModel):
    """
    Defines the data contract for a single kit in the live inventory snapshot.
    Every field is optional because the database enforces no schema; eligibility is decided later.
    """

    barcode: Optional[str] = None
    visit: Optional[str] = None
    study: Optional[str] = None
    status: Optional[str] = None
    expiry: Optional[date] = None

    class Config:
        # Kit barcodes are sometimes stored as bare numbers.
        coerce_numbers_to_str = True
        extra = "ignore"


class StudyContact(BaseModel):
    """Delivery address for one study's alerts."""

    name: str
    email: str

    class Config:
        coerce_numbers_to_str = True
        extra = "ignore"


class Alert(BaseModel):
    """One kit that hit a milestone today. Lives only for the duration of a run."""

    barcode: Optional[str] = None
    visit: Optional[str] = None
    study: Optional[str] = None
    expiry: date
    days_left: int
    label: str


class AlertGroup(BaseModel):
    study: str
    alerts: list[Alert] = Field(default_factory=list)
    recipient: Optional[str] = None


class RenderedEmail(BaseModel):
    subject: str
    html: str


class DispatchResult(BaseModel):
    study: str
    recipient: str
    success: bool
    reason: Optional[str] = None
    status_code: Optional[int] = None


class RunSummary(BaseModel):
    """What a single daily check did. Returned by the pipeline and logged by the entry point."""

    today: date
    items_scanned: int = 0
    alerts_found: int = 0
    groups: int = 0
    unresolved_studies: list[str] = Field(default_factory=list)
    dispatches: list[DispatchResult] = Field(default_factory=list)

    @property
    def failed(self) -> list[DispatchResult]:
        return [d for d in self.dispatches if not d.success]
