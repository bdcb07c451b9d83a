"""
Grafana OTLP Metrics Exporter
==============================

Pushes monitor metrics to Grafana Cloud via OTLP/HTTP.

Metrics exported:
- shipment_alerts_total: one data point per dispatched alert
- llm_tokens_total / llm_latency_ms: usage of the model-assisted classifier
"""

import base64
import time
from typing import Any, Dict, List, Optional

import httpx

from shipwatch.config import settings
from shipwatch.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


def _attributes(values: Dict[str, Any]) -> List[dict]:
    return [
        {"key": key, "value": {"stringValue": str(value)}}
        for key, value in values.items()
    ]


def _gauge(name: str, unit: str, value: int, timestamp_ns: int, attributes: List[dict]) -> dict:
    return {
        "name": name,
        "unit": unit,
        "gauge": {
            "dataPoints": [
                {"asInt": value, "timeUnixNano": timestamp_ns, "attributes": attributes}
            ]
        }
    }


class GrafanaOTLPExporter:
    """
    Export metrics to Grafana Cloud via the OTLP HTTP endpoint.

    Disabled (every export returns False) unless host, API key and
    instance ID are all configured.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        api_key: Optional[str] = None,
        instance_id: Optional[str] = None,
        timeout_seconds: float = 10.0
    ):
        self._host = host or settings.grafana_host
        self._api_key = api_key or settings.grafana_api_key
        self._instance_id = instance_id or settings.grafana_instance_id
        self._timeout = timeout_seconds
        self._enabled = bool(self._host and self._api_key and self._instance_id)

        if self._enabled:
            auth_pair = f"{self._instance_id}:{self._api_key}"
            self._auth_encoded = base64.b64encode(auth_pair.encode()).decode()
            if "/otlp/v1/metrics" not in self._host:
                self._url = f"{self._host.rstrip('/')}/otlp/v1/metrics"
            else:
                self._url = self._host
            logger.info("Grafana OTLP exporter initialized", extra={"host": self._host})
        else:
            logger.info("Grafana OTLP exporter not configured - metrics will not be exported")

    def is_enabled(self) -> bool:
        """Check if exporter is properly configured."""
        return self._enabled

    async def export_alert(
        self,
        issue_kind: str,
        severity: str,
        source: str,
        board: str
    ) -> bool:
        """Record one dispatched shipment alert."""
        attributes = _attributes({
            "issue_kind": issue_kind,
            "severity": severity,
            "source": source,
            "board": board,
            "service": settings.app_name,
        })
        timestamp_ns = int(time.time() * 1_000_000_000)
        return await self._send([
            _gauge("shipment_alerts_total", "1", 1, timestamp_ns, attributes)
        ])

    async def export_llm_metrics(
        self,
        model: str,
        prompt_tokens: int,
        completion_tokens: int,
        latency_ms: int,
        operation: str = "update_analysis"
    ) -> bool:
        """Record token usage and latency of one LLM call."""
        attributes = _attributes({
            "model": model,
            "operation": operation,
            "service": settings.app_name,
        })
        timestamp_ns = int(time.time() * 1_000_000_000)
        return await self._send([
            _gauge("llm_tokens_total", "1", prompt_tokens + completion_tokens, timestamp_ns, attributes),
            _gauge("llm_latency_ms", "ms", latency_ms, timestamp_ns, attributes),
        ])

    async def _send(self, metrics: List[dict]) -> bool:
        if not self._enabled:
            return False

        payload = {
            "resourceMetrics": [
                {
                    "resource": {
                        "attributes": _attributes({
                            "service.name": settings.app_name,
                            "service.version": settings.app_version,
                            "deployment.environment": settings.environment,
                        })
                    },
                    "scopeMetrics": [{"metrics": metrics}]
                }
            ]
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Basic {self._auth_encoded}",
            "X-Grafana-Org-Id": str(self._instance_id)
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.error("Error exporting metrics to Grafana", extra={"error": str(e)})
            return False

        if response.status_code in (200, 202):
            return True

        logger.warning(
            "Failed to export metrics to Grafana",
            extra={"status_code": response.status_code, "response": response.text[:500]}
        )
        return False


# Global exporter instance
_grafana_exporter: Optional[GrafanaOTLPExporter] = None


def get_grafana_exporter() -> GrafanaOTLPExporter:
    """Get or create global Grafana exporter instance."""
    global _grafana_exporter
    if _grafana_exporter is None:
        _grafana_exporter = GrafanaOTLPExporter()
    return _grafana_exporter
