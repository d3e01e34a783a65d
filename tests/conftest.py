import pytest


class FakeResponse:
    def __init__(self, status_code=200, payload=None, reason="OK", text=None):
        self.status_code = status_code
        self._payload = payload
        self.reason = reason
        self.text = text if text is not None else ("" if payload is None else str(payload))

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """Records calls and replays canned responses (one per call, last one repeats)."""

    def __init__(self, get=None, post=None):
        self._get = list(get or [])
        self._post = list(post or [])
        self.calls = []

    @staticmethod
    def _next(queue):
        if len(queue) > 1:
            return queue.pop(0)
        return queue[0]

    def get(self, url, **kwargs):
        self.calls.append(("GET", url, kwargs))
        return self._next(self._get)

    def post(self, url, **kwargs):
        self.calls.append(("POST", url, kwargs))
        return self._next(self._post)


def vt_analysis(status="completed", stats=None, date=1700000000):
    attrs = {"status": status, "date": date}
    if stats is not None:
        attrs["stats"] = stats
    return {"data": {"id": "u-abc-123", "type": "analysis", "attributes": attrs}}


def vt_submission(analysis_id="u-abc-123"):
    return {"data": {"type": "analysis", "id": analysis_id}}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("VIRUSTOTAL_API_KEY", "WHOISXML_API_KEY", "WHOIS_PROVIDER",
                 "ODANEGUARD_API_KEY", "REDIS_URL", "PORT", "ODANEGUARD_MAX_UPLOAD_BYTES"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SSL_PROBE_ENABLED", "false")
