import pytest

from odaneguard.app.stats import AnalysisStatus, DetectionStats
from odaneguard.app.virustotal import VirusTotalClient
from odaneguard.errors import ConfigError, MalformedUpstreamError, UpstreamError
from conftest import FakeResponse, FakeSession, vt_analysis, vt_submission

STATS = {"malicious": 2, "suspicious": 1, "harmless": 60, "undetected": 7}


def test_from_env_requires_key():
    with pytest.raises(ConfigError) as exc:
        VirusTotalClient.from_env()
    assert exc.value.code == "MISSING_API_KEY"
    assert exc.value.status_code == 500


def test_submit_url(monkeypatch):
    monkeypatch.setenv("VIRUSTOTAL_API_KEY", "vt-key")
    session = FakeSession(post=[FakeResponse(200, vt_submission("u-xyz"))])
    client = VirusTotalClient.from_env(session=session)
    assert client.submit_url("http://example.com") == "u-xyz"
    method, url, kwargs = session.calls[0]
    assert method == "POST"
    assert url.endswith("/urls")
    assert kwargs["data"] == {"url": "http://example.com"}
    assert kwargs["headers"]["x-apikey"] == "vt-key"


@pytest.mark.parametrize("status", ["queued", "in-progress"])
def test_get_analysis_pending(status):
    session = FakeSession(get=[FakeResponse(200, vt_analysis(status=status))])
    result = VirusTotalClient("k", session=session).get_analysis("u-abc-123")
    assert result.status is AnalysisStatus.PENDING
    assert result.is_pending
    assert result.analysis_id == "u-abc-123"
    assert result.stats is None


def test_get_analysis_completed():
    session = FakeSession(get=[FakeResponse(200, vt_analysis(stats=STATS))])
    result = VirusTotalClient("k", session=session).get_analysis("u-abc-123")
    assert result.is_success
    assert result.stats == DetectionStats(2, 1, 60, 7)
    assert result.scan_date == "2023-11-14T22:13:20Z"
    assert session.calls[0][1].endswith("/analyses/u-abc-123")


def test_get_analysis_non_2xx():
    session = FakeSession(get=[FakeResponse(401, {"error": {}}, reason="Unauthorized")])
    with pytest.raises(UpstreamError) as exc:
        VirusTotalClient("k", session=session).get_analysis("u-abc-123")
    assert exc.value.upstream_status == 401
    assert exc.value.message == "VirusTotal analysis failed: Unauthorized"


@pytest.mark.parametrize("payload", [
    None,
    {"error": "nope"},
    {"data": {"attributes": None}},
    {"data": {"attributes": {"status": "completed", "stats": {"malicious": -3}}}},
    {"data": {"attributes": {"status": "completed", "stats": "many"}}},
])
def test_get_analysis_malformed(payload):
    session = FakeSession(get=[FakeResponse(200, payload, text="garbage")])
    with pytest.raises(MalformedUpstreamError):
        VirusTotalClient("k", session=session).get_analysis("u-abc-123")


def test_submit_url_missing_id():
    session = FakeSession(post=[FakeResponse(200, {"data": {"type": "analysis"}})])
    with pytest.raises(MalformedUpstreamError):
        VirusTotalClient("k", session=session).submit_url("http://example.com")
