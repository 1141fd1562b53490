from gatekeeper import metric
from gatekeeper.metric import (
    _normalize_api_endpoint,
    api_call_count,
    push_metrics,
    record_api_call,
)


def test_record_api_call_tracks_endpoint_label():
    before = api_call_count.labels(endpoint="pulls")._value.get()
    record_api_call(endpoint="https://api.github.com/repos/org/repo/pulls/42")
    after = api_call_count.labels(endpoint="pulls")._value.get()
    assert after == before + 1


def test_normalize_api_endpoint_examples():
    base = "https://api.github.com/repos/org/repo"
    assert _normalize_api_endpoint(f"{base}/commits/{{ref}}/check-runs") == (
        "check-runs"
    )
    assert (
        _normalize_api_endpoint(
            f"{base}/branches/{{branch}}/protection/required_status_checks"
        )
        == "required_status_checks"
    )
    assert _normalize_api_endpoint(f"{base}/pulls/7/requested_reviewers") == (
        "requested_reviewers"
    )
    assert _normalize_api_endpoint(f"{base}/issues/7/assignees") == "assignees"
    assert _normalize_api_endpoint(f"{base}/pulls?state=all") == "pulls"
    assert _normalize_api_endpoint(f"{base}/pulls/7") == "pulls"
    assert _normalize_api_endpoint("/repos/org/repo") == "other"


def test_push_metrics_without_gateway_is_noop(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("push_to_gateway should not be called")

    monkeypatch.setattr(metric, "push_to_gateway", fail)
    monkeypatch.setattr(metric.config, "PUSH_GATEWAY", None)
    push_metrics()


def test_push_metrics_failure_is_logged(monkeypatch, caplog):
    calls = []

    def refuse(gateway, job, registry):
        calls.append((gateway, job))
        raise OSError("connection refused")

    monkeypatch.setattr(metric, "push_to_gateway", refuse)
    push_metrics("localhost:9091")

    assert calls == [("localhost:9091", "gatekeeper")]
    assert "connection refused" in caplog.text
