import logging
import re
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, push_to_gateway

from gatekeeper import config

logger = logging.getLogger("gatekeeper")

push_registry = CollectorRegistry()

api_call_count = Counter(
    "gatekeeper_num_api_calls",
    "Total number of GitHub API calls",
    labelnames=["endpoint"],
    registry=push_registry,
)

action_counter = Counter(
    "gatekeeper_num_actions",
    "Number of assignment and review request calls",
    labelnames=["action", "result"],
    registry=push_registry,
)

outcome_counter = Counter(
    "gatekeeper_num_outcomes",
    "Number of finished runs by outcome",
    labelnames=["outcome"],
    registry=push_registry,
)

_ENDPOINT_PATTERNS = [
    (re.compile(r"/commits/[^/]+/check-runs"), "check-runs"),
    (re.compile(r"/protection/required_status_checks"), "required_status_checks"),
    (re.compile(r"/pulls/\d+/requested_reviewers"), "requested_reviewers"),
    (re.compile(r"/issues/\d+/assignees"), "assignees"),
    (re.compile(r"/pulls(/\d+)?([?]|$)"), "pulls"),
]


def _normalize_api_endpoint(url: str) -> str:
    for pattern, name in _ENDPOINT_PATTERNS:
        if pattern.search(url):
            return name
    return "other"


def record_api_call(endpoint: str) -> None:
    api_call_count.labels(endpoint=_normalize_api_endpoint(endpoint)).inc()


def push_metrics(gateway: Optional[str] = None) -> None:
    gateway = gateway or config.PUSH_GATEWAY
    if gateway is None:
        return
    try:
        push_to_gateway(gateway, job="gatekeeper", registry=push_registry)
    except OSError as e:
        logger.warning("Pushing metrics to %s failed: %s", gateway, e)
