"""Tests for recipient resolution, email templates and the notification dispatcher."""

import asyncio
import json
from datetime import datetime

import pytest

from conftest import RecordingSender
from portal.core.config import settings
from portal.models.enums import Threshold
from portal.services import email_templates, notifications
from portal.services.notification_dispatcher import (
    OTHER_RECIPIENT_NAME,
    NotificationDispatcher,
    OfferSnapshot,
    resolve_recipients,
)
from portal.services.notifications import send_notification


def snapshot(**overrides) -> OfferSnapshot:
    values = dict(
        id=7,
        title="Field Engineer",
        deadline=datetime(2026, 3, 15, 17, 0),
        creator_name="Committee Chair",
        creator_email="creator@portal.tn",
        recipients=("hr@portal.tn",),
    )
    values.update(overrides)
    return OfferSnapshot(**values)


class TestResolveRecipients:
    def test_creator_added_first(self):
        assert resolve_recipients("creator@portal.tn", ["a@portal.tn", "b@portal.tn"]) == [
            "creator@portal.tn",
            "a@portal.tn",
            "b@portal.tn",
        ]

    def test_creator_already_listed(self):
        assert resolve_recipients("Creator@portal.tn", ["a@portal.tn", "creator@portal.tn"]) == [
            "a@portal.tn",
            "creator@portal.tn",
        ]

    def test_duplicates_and_blanks_removed(self):
        assert resolve_recipients(None, ["a@portal.tn", " A@portal.tn ", "", "b@portal.tn"]) == [
            "a@portal.tn",
            "b@portal.tn",
        ]

    def test_no_recipients(self):
        assert resolve_recipients(None, []) == []


class TestTemplates:
    def test_reminder_mentions_time_left(self):
        subject, body = email_templates.render(
            email_templates.TWO_DAY_REMINDER,
            {"offer_title": "Field Engineer", "recipient_name": "Amal", "deadline": "2026-03-15 17:00", "applicant_count": 4},
        )
        assert subject == "Offer Deadline Reminder: 2 Days Remaining - Field Engineer"
        assert "2 days" in body
        assert "Amal" in body

    def test_one_day_subject(self):
        subject, _ = email_templates.render(
            email_templates.ONE_DAY_REMINDER,
            {"offer_title": "X", "recipient_name": "Y", "deadline": "2026-03-15", "applicant_count": 0},
        )
        assert subject.startswith("Offer Expiring Tomorrow")

    def test_values_are_escaped(self):
        _, body = email_templates.render(
            email_templates.OFFER_EXPIRED,
            {"offer_title": "<b>Ops</b>", "recipient_name": "R&D", "deadline": "2026-03-15", "applicant_count": 1},
        )
        assert "<b>Ops</b>" not in body
        assert "R&amp;D" in body

    def test_unknown_template(self):
        with pytest.raises(ValueError):
            email_templates.render("weekly_digest", {})

    @pytest.mark.parametrize(
        "status, label",
        [("under_evaluation", "Under evaluation"), ("result", "Winner selected"), ("unsuccessful", "Closed without result")],
    )
    def test_expired_notice_shows_current_status(self, status, label):
        """An offer settled before its deadline notice went out is not described as under evaluation."""
        _, body = email_templates.render(
            email_templates.OFFER_EXPIRED,
            {"offer_title": "X", "recipient_name": "Y", "deadline": "2026-03-15", "applicant_count": 2, "status": status},
        )
        assert f"<strong>Status:</strong> {label}" in body
        assert ("now under evaluation" in body) == (status == "under_evaluation")


class TestNotificationDispatcher:
    @pytest.mark.asyncio
    async def test_dispatch_to_all_recipients(self):
        sender = RecordingSender()
        report = await NotificationDispatcher(sender, timeout=1).dispatch(snapshot(), Threshold.FIVE_DAY, 3)

        assert report.attempted == 2
        assert report.delivered == 2
        assert report.template_id == email_templates.FIVE_DAY_REMINDER
        assert all(params["status"] == "under_evaluation" for _, _, params in sender.calls)
        names = {recipient: params["recipient_name"] for recipient, _, params in sender.calls}
        assert names == {"creator@portal.tn": "Committee Chair", "hr@portal.tn": OTHER_RECIPIENT_NAME}
        assert all(params["applicant_count"] == 3 for _, _, params in sender.calls)
        assert all(params["deadline"] == "2026-03-15 17:00" for _, _, params in sender.calls)

    @pytest.mark.asyncio
    async def test_slow_recipient_times_out_alone(self):
        """One slow recipient is cut off by its own timeout; the others still get their mail."""
        delivered = []

        async def sender(recipient, template_id, params):
            if recipient == "hr@portal.tn":
                await asyncio.sleep(5)
            delivered.append(recipient)
            return await RecordingSender()(recipient, template_id, params)

        report = await NotificationDispatcher(sender, timeout=0.05).dispatch(snapshot(), Threshold.DEADLINE, 0)
        assert report.delivered == 1
        assert report.failed == 1
        assert report.failures[0].recipient == "hr@portal.tn"
        assert report.failures[0].reason == "timeout"
        assert delivered == ["creator@portal.tn"]

    @pytest.mark.asyncio
    async def test_no_recipients(self):
        sender = RecordingSender()
        report = await NotificationDispatcher(sender).dispatch(
            snapshot(creator_email=None, recipients=()), Threshold.ONE_DAY, 0
        )
        assert report.attempted == 0
        assert sender.calls == []


@pytest.mark.asyncio
async def test_send_notification_without_credentials(monkeypatch):
    """Unconfigured mail is reported as a failed delivery rather than raised."""
    monkeypatch.setattr(settings, "GRAPH_CLIENT_ID", None)
    result = await send_notification(
        "creator@portal.tn",
        email_templates.OFFER_EXPIRED,
        {"offer_title": "X", "recipient_name": "Y", "deadline": "2026-03-15", "applicant_count": 0},
    )
    assert not result.delivered
    assert result.reason == "mail credentials not configured"


class TestSendNotificationFailures:
    """send_notification reports every failure in its result."""

    PARAMS = {"offer_title": "X", "recipient_name": "Y", "deadline": "2026-03-15", "applicant_count": 0}

    @pytest.mark.asyncio
    async def test_malformed_token_reply(self, monkeypatch):
        async def malformed_reply(recipient, subject, html_content, template_id="-"):
            raise json.JSONDecodeError("Expecting value", "", 0)

        monkeypatch.setattr(notifications, "send_email", malformed_reply)
        result = await send_notification("creator@portal.tn", email_templates.OFFER_EXPIRED, self.PARAMS)
        assert not result.delivered
        assert "Expecting value" in result.reason

    @pytest.mark.asyncio
    async def test_missing_access_token_key(self, monkeypatch):
        async def no_token(recipient, subject, html_content, template_id="-"):
            raise KeyError("access_token")

        monkeypatch.setattr(notifications, "send_email", no_token)
        result = await send_notification("creator@portal.tn", email_templates.OFFER_EXPIRED, self.PARAMS)
        assert not result.delivered
        assert "access_token" in result.reason

    @pytest.mark.asyncio
    async def test_client_timeout(self, monkeypatch):
        async def slow_graph(recipient, subject, html_content, template_id="-"):
            raise asyncio.TimeoutError()

        monkeypatch.setattr(notifications, "send_email", slow_graph)
        result = await send_notification("creator@portal.tn", email_templates.OFFER_EXPIRED, self.PARAMS)
        assert result.reason == "timeout"
