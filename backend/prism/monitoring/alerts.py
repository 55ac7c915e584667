"""
Health alerts: the bounded alert log and outbound alert forwarding.

Provides:
- Alert / AlertSeverity definitions
- AlertLog: newest-first ring buffer with unique timestamps
- AlertNotifier: forwards error/critical alerts to a Slack incoming webhook
  with a per-message cooldown
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Deque, Dict, Iterable, List, Optional, Union

import httpx

logger = logging.getLogger(__name__)

DEFAULT_ALERT_HISTORY = 50


class AlertSeverity(str, Enum):
    """Alert severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass
class Alert:
    """A health monitor alert."""
    severity: AlertSeverity
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    acknowledged: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "acknowledged": self.acknowledged,
        }


def _timestamp_key(timestamp: Union[datetime, str]) -> str:
    if isinstance(timestamp, datetime):
        return timestamp.isoformat()
    return str(timestamp)


class AlertLog:
    """
    Newest-first alert buffer holding at most `max_alerts` entries.

    Timestamps are strictly increasing within one log so an alert can be
    addressed by its timestamp alone.
    """

    def __init__(self, max_alerts: int = DEFAULT_ALERT_HISTORY):
        self._alerts: Deque[Alert] = deque(maxlen=max_alerts)
        self._last_timestamp: Optional[datetime] = None

    def __len__(self) -> int:
        return len(self._alerts)

    def __iter__(self):
        return iter(self._alerts)

    @property
    def max_alerts(self) -> int:
        return self._alerts.maxlen

    def add(self, severity: AlertSeverity, message: str, acknowledged: bool = False) -> Alert:
        timestamp = datetime.now(timezone.utc)
        if self._last_timestamp is not None and timestamp <= self._last_timestamp:
            timestamp = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = timestamp

        alert = Alert(
            severity=severity,
            message=message,
            timestamp=timestamp,
            acknowledged=acknowledged,
        )
        self._alerts.appendleft(alert)

        if severity in (AlertSeverity.CRITICAL, AlertSeverity.ERROR):
            logger.error(
                "Health alert raised",
                extra={"severity": severity.value, "alert_message": message},
            )
        else:
            logger.info(
                "Health alert raised",
                extra={"severity": severity.value, "alert_message": message},
            )

        return alert

    def recent(self, limit: Optional[int] = None) -> List[Alert]:
        alerts = list(self._alerts)
        return alerts if limit is None else alerts[:limit]

    def acknowledge(self, timestamp: Union[datetime, str]) -> bool:
        """Mark the alert with this timestamp as acknowledged. Unknown timestamps are a no-op."""
        key = _timestamp_key(timestamp)
        for alert in self._alerts:
            if alert.timestamp.isoformat() == key:
                alert.acknowledged = True
                return True
        return False

    def clear_acknowledged(self) -> int:
        kept = [a for a in self._alerts if not a.acknowledged]
        removed = len(self._alerts) - len(kept)
        self._alerts.clear()
        self._alerts.extend(kept)
        return removed

    def clear(self) -> None:
        self._alerts.clear()


class AlertNotifier:
    """
    Forwards alerts to configured channels (Slack).

    Only error and critical alerts are forwarded. Identical messages are
    suppressed during the cooldown window.
    """

    FORWARDED_SEVERITIES = (AlertSeverity.ERROR, AlertSeverity.CRITICAL)

    def __init__(
        self,
        slack_webhook_url: Optional[str] = None,
        cooldown_minutes: int = 15,
        timeout_seconds: float = 10.0,
    ):
        self.slack_webhook_url = slack_webhook_url
        self._cooldown = timedelta(minutes=cooldown_minutes)
        self._timeout = timeout_seconds
        self._recent_alerts: Dict[str, datetime] = {}

    @property
    def enabled(self) -> bool:
        return bool(self.slack_webhook_url)

    def _should_send(self, alert: Alert) -> bool:
        """Check if alert should be sent (cooldown period)."""
        if alert.severity not in self.FORWARDED_SEVERITIES:
            return False

        key = f"{alert.severity.value}:{alert.message}"
        now = datetime.now(timezone.utc)
        last_sent = self._recent_alerts.get(key)
        if last_sent and now - last_sent < self._cooldown:
            return False

        self._recent_alerts[key] = now
        return True

    async def dispatch(self, alerts: Iterable[Alert]) -> int:
        """Forward eligible alerts. Returns the number sent; never raises."""
        if not self.enabled:
            return 0

        sent = 0
        for alert in alerts:
            if not self._should_send(alert):
                logger.debug("Alert suppressed", extra={"severity": alert.severity.value})
                continue
            if await self._send_to_slack(alert):
                sent += 1
        return sent

    async def _send_to_slack(self, alert: Alert) -> bool:
        """Send alert to Slack webhook."""
        severity_emoji = {
            AlertSeverity.ERROR: ":x:",
            AlertSeverity.CRITICAL: ":rotating_light:",
        }
        color = {
            AlertSeverity.ERROR: "#f44336",
            AlertSeverity.CRITICAL: "#9c27b0",
        }

        payload = {
            "attachments": [
                {
                    "color": color.get(alert.severity, "#808080"),
                    "title": f"{severity_emoji.get(alert.severity, '')} Portal health alert",
                    "text": alert.message,
                    "fields": [
                        {"title": "Severity", "value": alert.severity.value, "short": True},
                    ],
                    "ts": int(alert.timestamp.timestamp()),
                }
            ]
        }

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.slack_webhook_url,
                    json=payload,
                    timeout=self._timeout,
                )
            if response.status_code != 200:
                logger.error("Failed to send Slack alert", extra={
                    "status_code": response.status_code
                })
                return False
            return True
        except Exception as e:
            logger.error("Error sending Slack alert", extra={"error": str(e)})
            return False
