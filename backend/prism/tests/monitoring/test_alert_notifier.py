"""
Tests for Slack alert forwarding.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from prism.config.health_thresholds import HealthThresholdsLoader
from prism.context import build_app_context
from prism.monitoring.alerts import Alert, AlertNotifier, AlertSeverity
from prism.platform.environment import EnvironmentSnapshot

WEBHOOK = "https://hooks.slack.test/services/T000/B000/XXX"


def _mock_client(status_code=200, side_effect=None):
    client = MagicMock()
    client.post = AsyncMock(
        return_value=MagicMock(status_code=status_code),
        side_effect=side_effect,
    )
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


class TestAlertNotifier:

    def test_process_environment_is_not_consulted(self, monkeypatch):
        monkeypatch.setenv("HEALTH_ALERT_SLACK_WEBHOOK_URL", WEBHOOK)

        assert AlertNotifier().enabled is False

    def test_webhook_from_snapshot(self, tmp_path):
        context = build_app_context(
            EnvironmentSnapshot(values={"HEALTH_ALERT_SLACK_WEBHOOK_URL": WEBHOOK}),
            thresholds=HealthThresholdsLoader(str(tmp_path / "absent.yml")),
        )

        assert context.health_monitor._notifier.slack_webhook_url == WEBHOOK

    @pytest.mark.asyncio
    async def test_disabled_sends_nothing(self):
        notifier = AlertNotifier(slack_webhook_url="")

        with patch("prism.monitoring.alerts.httpx.AsyncClient") as client_cls:
            sent = await notifier.dispatch([Alert(AlertSeverity.CRITICAL, "down")])

        assert sent == 0
        client_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_forwards_error_and_critical_only(self):
        notifier = AlertNotifier(slack_webhook_url=WEBHOOK)
        client = _mock_client()

        with patch("prism.monitoring.alerts.httpx.AsyncClient", return_value=client):
            sent = await notifier.dispatch([
                Alert(AlertSeverity.INFO, "fyi"),
                Alert(AlertSeverity.WARNING, "degraded"),
                Alert(AlertSeverity.ERROR, "slow"),
                Alert(AlertSeverity.CRITICAL, "down"),
            ])

        assert sent == 2
        assert client.post.await_count == 2
        payload = client.post.await_args.kwargs["json"]
        assert payload["attachments"][0]["text"] == "down"

    @pytest.mark.asyncio
    async def test_cooldown_suppresses_repeats(self):
        notifier = AlertNotifier(slack_webhook_url=WEBHOOK, cooldown_minutes=15)
        client = _mock_client()

        with patch("prism.monitoring.alerts.httpx.AsyncClient", return_value=client):
            first = await notifier.dispatch([Alert(AlertSeverity.CRITICAL, "down")])
            second = await notifier.dispatch([Alert(AlertSeverity.CRITICAL, "down")])

        assert (first, second) == (1, 0)

    @pytest.mark.asyncio
    async def test_http_failure_is_swallowed(self):
        notifier = AlertNotifier(slack_webhook_url=WEBHOOK)
        client = _mock_client(side_effect=httpx.ConnectError("no route"))

        with patch("prism.monitoring.alerts.httpx.AsyncClient", return_value=client):
            sent = await notifier.dispatch([Alert(AlertSeverity.ERROR, "slow")])

        assert sent == 0

    @pytest.mark.asyncio
    async def test_non_200_counts_as_failure(self):
        notifier = AlertNotifier(slack_webhook_url=WEBHOOK)
        client = _mock_client(status_code=500)

        with patch("prism.monitoring.alerts.httpx.AsyncClient", return_value=client):
            sent = await notifier.dispatch([Alert(AlertSeverity.ERROR, "slow")])

        assert sent == 0

    @pytest.mark.asyncio
    async def test_malformed_webhook_is_swallowed(self, caplog):
        notifier = AlertNotifier(slack_webhook_url="https://exa mple.com:abc/hook")

        sent = await notifier.dispatch([Alert(AlertSeverity.CRITICAL, "down")])

        assert sent == 0
        assert "Error sending Slack alert" in caplog.text
