import logging
import re

from prometheus_client import CollectorRegistry, Counter, push_to_gateway

from reconciler import config

logger = logging.getLogger("reconciler")

push_registry = CollectorRegistry()

api_call_count = Counter(
    "reconciler_num_api_calls",
    "Total number of GitHub API calls",
    labelnames=["endpoint"],
    registry=push_registry,
)

decision_counter = Counter(
    "reconciler_num_decisions",
    "Number of reconciliation decisions by kind",
    labelnames=["kind"],
    registry=push_registry,
)

publish_attempt_counter = Counter(
    "reconciler_num_publish_attempts",
    "Number of synthetic success publish attempts",
    labelnames=["result"],
    registry=push_registry,
)

workflow_parse_error_count = Counter(
    "reconciler_num_workflow_parse_errors",
    "Number of workflow documents skipped because they failed to parse",
    registry=push_registry,
)

_ENDPOINT_PATTERNS = [
    (re.compile(r"/rulesets/\d+$"), "ruleset"),
    (re.compile(r"/rulesets(\?.*)?$"), "rulesets"),
    (re.compile(r"/pulls/\d+/files(\?.*)?$"), "pull_files"),
    (re.compile(r"/pulls/\d+$"), "pulls"),
    (re.compile(r"/statuses/[0-9a-f]+$"), "statuses"),
    (re.compile(r"/check-runs$"), "check_runs"),
]


def _normalize_api_endpoint(url: str) -> str:
    for pattern, name in _ENDPOINT_PATTERNS:
        if pattern.search(url):
            return name
    return "other"


def record_api_call(endpoint: str) -> None:
    api_call_count.labels(endpoint=_normalize_api_endpoint(endpoint)).inc()


def push_metrics() -> None:
    if config.PUSH_GATEWAY is None:
        return
    try:
        push_to_gateway(config.PUSH_GATEWAY, job="reconciler", registry=push_registry)
    except OSError:
        logger.warning("Unable to push metrics to %s", config.PUSH_GATEWAY, exc_info=True)
