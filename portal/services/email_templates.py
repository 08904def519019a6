from html import escape

FIVE_DAY_REMINDER = "five_day_reminder"
TWO_DAY_REMINDER = "two_day_reminder"
ONE_DAY_REMINDER = "one_day_reminder"
OFFER_EXPIRED = "offer_expired"
APPLICATION_CONFIRMATION = "application_confirmation"

FOOTER = "This is an automated notification from the Offer Portal"


def _layout(title: str, greeting_name: str, lines: list[str], rows: list[tuple[str, str]]) -> str:
    details = "".join(
        f'<p style="margin: 5px 0;"><strong>{escape(label)}:</strong> {escape(str(value))}</p>'
        for label, value in rows
    )
    paragraphs = "".join(f'<p style="color: #495057; font-size: 14px;">{escape(line)}</p>' for line in lines)
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: #343a40;">{escape(title)}</h2>'
        f'<p style="color: #495057; font-size: 16px;">Hello <strong>{escape(greeting_name)}</strong>,</p>'
        f"{paragraphs}"
        f'<div style="background-color: #e9ecef; padding: 15px; border-radius: 5px;">{details}</div>'
        f'<p style="color: #6c757d; font-size: 12px;">{FOOTER}</p>'
        "</div>"
    )


def _reminder(days: int, params: dict) -> tuple[str, str]:
    plural = "s" if days > 1 else ""
    title = "Offer Expiring Tomorrow" if days == 1 else f"Offer Deadline Reminder: {days} Days Remaining"
    subject = f"{title} - {params['offer_title']}"
    body = _layout(
        title,
        params["recipient_name"],
        [
            "Your offer is approaching its deadline.",
            "Please log into the portal to review your offer and applications.",
        ],
        [
            ("Offer", params["offer_title"]),
            ("Deadline", params["deadline"]),
            ("Time Remaining", f"{days} day{plural}"),
            ("Candidates", params["applicant_count"]),
        ],
    )
    return subject, body


STATUS_LABELS = {
    "active": "Active",
    "under_evaluation": "Under evaluation",
    "result": "Winner selected",
    "unsuccessful": "Closed without result",
}


def _expired(params: dict) -> tuple[str, str]:
    subject = f"Offer Expired: {params['offer_title']}"
    status = params.get("status", "under_evaluation")
    label = STATUS_LABELS.get(status, status)
    if status == "under_evaluation":
        intro = "Your offer has reached its deadline and is now under evaluation."
    else:
        intro = f"Your offer has reached its deadline. Current status: {label}."
    body = _layout(
        "Offer Expired",
        params["recipient_name"],
        [
            intro,
            "Applications can be archived during the 14 days following the deadline.",
        ],
        [
            ("Offer", params["offer_title"]),
            ("Deadline", params["deadline"]),
            ("Candidates", params["applicant_count"]),
            ("Status", label),
        ],
    )
    return subject, body


def _application_confirmation(params: dict) -> tuple[str, str]:
    subject = f"Application Confirmation: {params['offer_title']}"
    body = _layout(
        "Application Submitted Successfully",
        params["recipient_name"],
        ["Thank you for your application. We have received your submission."],
        [("Position", params["offer_title"]), ("Submitted", params["submitted_at"])],
    )
    return subject, body


TEMPLATES = {
    FIVE_DAY_REMINDER: lambda params: _reminder(5, params),
    TWO_DAY_REMINDER: lambda params: _reminder(2, params),
    ONE_DAY_REMINDER: lambda params: _reminder(1, params),
    OFFER_EXPIRED: _expired,
    APPLICATION_CONFIRMATION: _application_confirmation,
}


def render(template_id: str, params: dict) -> tuple[str, str]:
    """Returns (subject, html body) for a template."""
    try:
        builder = TEMPLATES[template_id]
    except KeyError:
        raise ValueError(f"Unknown email template '{template_id}'")
    return builder(params)
