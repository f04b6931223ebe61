"""Shared OTel metrics instruments for the service."""

from opentelemetry import metrics

METER_NAME = "poker_jira"

meter = metrics.get_meter(METER_NAME)

jira_instance_requests_total = meter.create_counter(
    name="jira_instance_requests_total",
    description="Jira instance API requests by operation and outcome",
    unit="1",
)

jira_search_duration = meter.create_histogram(
    name="jira_search_duration_seconds",
    description="Duration of JQL story searches against Jira",
    unit="s",
)
