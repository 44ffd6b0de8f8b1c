from html import escape

from .schemas import Alert, RenderedEmail

SUBJECT_TEMPLATE = "⚠️ LIMS Alert: Expiring Kits for {study}"

BODY_TEMPLATE = """
<h3>Action Required</h3>
<p>The following kits are expiring soon or have expired:</p>
<ul>{items}</ul>
<p>Please log in to the LIMS Inventory to process or discard them.</p>
"""


def describe_days_left(days_left: int) -> str:
    if days_left > 1:
        return f"{days_left} days left"
    if days_left == 1:
        return "1 day left"
    if days_left == 0:
        return "expires today"
    overdue = -days_left
    return f"expired {overdue} day{'s' if overdue != 1 else ''} ago"


def render_item(alert: Alert) -> str:
    return (
        f"<li><strong>[{escape(alert.label)}] {escape(alert.barcode or '')}</strong>"
        f" ({escape(alert.visit or '')}): Expires {alert.expiry.isoformat()}"
        f" ({describe_days_left(alert.days_left)})</li>"
    )


def render(study: str, alerts: list[Alert]) -> RenderedEmail:
    """Builds the notification email for one study. Items appear in the order given."""
    items = "".join(render_item(alert) for alert in alerts)
    return RenderedEmail(
        subject=SUBJECT_TEMPLATE.format(study=study),
        html=BODY_TEMPLATE.format(items=items),
    )
