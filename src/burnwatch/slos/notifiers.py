"""
Notification sinks for alert transitions.

The engine only knows the AlertSink protocol. Delivery, formatting and
routing belong to the sink; the ones here post to Slack and PagerDuty,
log, record, or fan out to several other sinks.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import httpx
import structlog

from burnwatch.slos.models import AlertFired, AlertResolved, AlertTransition, DataGap

logger = structlog.get_logger()


class NotificationError(Exception):
    """Raised when notification fails."""


@runtime_checkable
class AlertSink(Protocol):
    """Receiver of finalized alert transitions."""

    async def on_alert_fired(self, event: AlertFired) -> None: ...

    async def on_alert_resolved(self, event: AlertResolved) -> None: ...

    async def on_data_gap(self, event: DataGap) -> None: ...


async def deliver(sink: AlertSink, event: AlertTransition) -> None:
    """Route a transition to the matching sink method."""
    if isinstance(event, AlertFired):
        await sink.on_alert_fired(event)
    elif isinstance(event, AlertResolved):
        await sink.on_alert_resolved(event)
    elif isinstance(event, DataGap):
        await sink.on_data_gap(event)
    else:
        raise TypeError(f"Unsupported transition: {type(event).__name__}")


class LoggingSink:
    """Write transitions to the structured log."""

    async def on_alert_fired(self, event: AlertFired) -> None:
        logger.warning("notify_alert_fired", **event.to_dict())

    async def on_alert_resolved(self, event: AlertResolved) -> None:
        logger.info("notify_alert_resolved", **event.to_dict())

    async def on_data_gap(self, event: DataGap) -> None:
        logger.warning("notify_data_gap", **event.to_dict())


class RecordingSink:
    """Keep every delivered transition in memory, in delivery order."""

    def __init__(self) -> None:
        self.events: list[AlertTransition] = []

    async def on_alert_fired(self, event: AlertFired) -> None:
        self.events.append(event)

    async def on_alert_resolved(self, event: AlertResolved) -> None:
        self.events.append(event)

    async def on_data_gap(self, event: DataGap) -> None:
        self.events.append(event)

    @property
    def fired(self) -> list[AlertFired]:
        return [e for e in self.events if isinstance(e, AlertFired)]

    @property
    def resolved(self) -> list[AlertResolved]:
        return [e for e in self.events if isinstance(e, AlertResolved)]

    @property
    def data_gaps(self) -> list[DataGap]:
        return [e for e in self.events if isinstance(e, DataGap)]


class SlackSink:
    """Send transitions to Slack via webhook."""

    def __init__(self, webhook_url: str, timeout: float = 10.0) -> None:
        self.webhook_url = webhook_url
        self.timeout = timeout

    async def on_alert_fired(self, event: AlertFired) -> None:
        await self._post(event, self._format_fired(event))

    async def on_alert_resolved(self, event: AlertResolved) -> None:
        await self._post(event, self._format_resolved(event))

    async def on_data_gap(self, event: DataGap) -> None:
        await self._post(event, self._format_data_gap(event))

    async def _post(self, event: AlertTransition, payload: dict[str, Any]) -> None:
        """
        Post a formatted message to the webhook.

        Raises:
            NotificationError: If sending fails
        """
        logger.info(
            "sending_slack_alert",
            slo=event.slo_name,
            severity=event.tier_severity,
            kind=event.kind,
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.webhook_url, json=payload)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error(
                "slack_alert_failed",
                slo=event.slo_name,
                error=str(exc),
            )
            raise NotificationError(f"Failed to send Slack alert: {exc}") from exc

        logger.info("slack_alert_sent", slo=event.slo_name, kind=event.kind)

    def _format_fired(self, event: AlertFired) -> dict[str, Any]:
        color_map = {
            "critical": "#ff0000",
            "high": "#ff6600",
            "warning": "#ff9900",
        }
        title = f"Error budget burn: {event.slo_name} ({event.tier_severity})"
        text = (
            f"*SLO:* `{event.slo_name}`\n"
            f"*Severity:* {event.tier_severity.upper()}\n"
            f"*Short window burn:* {event.short_burn:.2f}x\n"
            f"*Long window burn:* {event.long_burn:.2f}x"
        )
        return self._message(
            title, text, color_map.get(event.tier_severity, "#999999"), event.fired_at
        )

    def _format_resolved(self, event: AlertResolved) -> dict[str, Any]:
        title = f"Resolved: {event.slo_name} ({event.tier_severity})"
        text = f"Burn rate for `{event.slo_name}` is back within budget."
        return self._message(title, text, "#36a64f", event.resolved_at)

    def _format_data_gap(self, event: DataGap) -> dict[str, Any]:
        title = f"Data gap: {event.slo_name} ({event.tier_severity})"
        text = (
            f"Alert for `{event.slo_name}` was cleared because SLI data stopped "
            "arriving. This is not a confirmed recovery; check the collector."
        )
        return self._message(title, text, "#999999", event.detected_at)

    def _message(self, title: str, text: str, color: str, at: Any) -> dict[str, Any]:
        return {
            "text": title,  # Fallback text
            "blocks": [
                {"type": "header", "text": {"type": "plain_text", "text": title}},
                {"type": "section", "text": {"type": "mrkdwn", "text": text}},
                {
                    "type": "context",
                    "elements": [
                        {
                            "type": "mrkdwn",
                            "text": f"*At:* {at.strftime('%Y-%m-%d %H:%M:%S UTC')}",
                        },
                    ],
                },
            ],
            "attachments": [{"color": color}],
        }


class PagerDutySink:
    """Trigger and resolve PagerDuty incidents through the Events v2 API."""

    def __init__(
        self,
        routing_key: str,
        timeout: float = 10.0,
        api_url: str = "https://events.pagerduty.com/v2/enqueue",
    ) -> None:
        self.routing_key = routing_key
        self.timeout = timeout
        self.api_url = api_url

    @staticmethod
    def dedup_key(event: AlertTransition) -> str:
        """One incident per (SLO, tier), so resolve closes what trigger opened."""
        return f"burnwatch/{event.slo_name}/{event.tier_index}"

    async def on_alert_fired(self, event: AlertFired) -> None:
        await self._send(
            event,
            {
                "routing_key": self.routing_key,
                "event_action": "trigger",
                "dedup_key": self.dedup_key(event),
                "payload": {
                    "summary": (
                        f"{event.slo_name} burning error budget at "
                        f"{event.short_burn:.1f}x ({event.tier_severity})"
                    ),
                    "severity": "critical" if event.tier_severity == "critical" else "warning",
                    "source": "burnwatch",
                    "component": event.slo_name,
                    "custom_details": event.to_dict(),
                },
            },
        )

    async def on_alert_resolved(self, event: AlertResolved) -> None:
        await self._send(event, self._resolve_payload(event))

    async def on_data_gap(self, event: DataGap) -> None:
        # A data gap still closes the incident; the gap itself is logged.
        logger.warning("pagerduty_resolving_on_data_gap", slo=event.slo_name)
        await self._send(event, self._resolve_payload(event))

    def _resolve_payload(self, event: AlertTransition) -> dict[str, Any]:
        return {
            "routing_key": self.routing_key,
            "event_action": "resolve",
            "dedup_key": self.dedup_key(event),
        }

    async def _send(self, event: AlertTransition, payload: dict[str, Any]) -> None:
        logger.info(
            "sending_pagerduty_event",
            slo=event.slo_name,
            severity=event.tier_severity,
            action=payload["event_action"],
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.api_url, json=payload)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error(
                "pagerduty_event_failed",
                slo=event.slo_name,
                error=str(exc),
            )
            raise NotificationError(f"Failed to send PagerDuty event: {exc}") from exc

        logger.info("pagerduty_event_sent", slo=event.slo_name, dedup_key=payload["dedup_key"])


class FanoutSink:
    """Unified sink that routes each transition to multiple channels."""

    def __init__(self, sinks: dict[str, AlertSink] | None = None) -> None:
        self.sinks: dict[str, AlertSink] = dict(sinks or {})

    def add(self, name: str, sink: AlertSink) -> None:
        self.sinks[name] = sink

    async def on_alert_fired(self, event: AlertFired) -> None:
        await self.send(event)

    async def on_alert_resolved(self, event: AlertResolved) -> None:
        await self.send(event)

    async def on_data_gap(self, event: DataGap) -> None:
        await self.send(event)

    async def send(self, event: AlertTransition) -> dict[str, Any]:
        """
        Deliver to every channel; one failing channel does not stop the others.

        Returns:
            Status of each channel
        """
        results: dict[str, Any] = {}

        for channel, sink in self.sinks.items():
            try:
                await deliver(sink, event)
                results[channel] = {"status": "sent"}
            except NotificationError as exc:
                results[channel] = {"status": "failed", "error": str(exc)}

        return results


def build_sink(
    slack_webhook_url: str | None = None,
    pagerduty_routing_key: str | None = None,
    timeout: float = 10.0,
) -> FanoutSink:
    """Build the default sink: structured log plus any configured channels."""
    sink = FanoutSink({"log": LoggingSink()})
    if slack_webhook_url:
        sink.add("slack", SlackSink(slack_webhook_url, timeout=timeout))
    if pagerduty_routing_key:
        sink.add("pagerduty", PagerDutySink(pagerduty_routing_key, timeout=timeout))
    return sink
