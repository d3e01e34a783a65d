import io

import pytest

from odaneguard import api
from odaneguard.app import scanner, whois_lookup
from odaneguard.app.virustotal import VirusTotalClient
from odaneguard.app.whois_lookup import FALLBACK_DOMAIN_INFO
from conftest import FakeResponse, FakeSession, vt_analysis, vt_submission

CLEAN = {"malicious": 0, "suspicious": 0, "harmless": 70, "undetected": 0}


@pytest.fixture
def client(monkeypatch):
    api.app.config['TESTING'] = True
    monkeypatch.setattr(api.limiter, "enabled", False, raising=False)
    with api.app.test_client() as c:
        yield c


@pytest.fixture
def fake_vt(monkeypatch):
    """Route VirusTotal calls to canned responses and skip WHOIS."""
    def install(*analyses):
        session = FakeSession(
            post=[FakeResponse(200, vt_submission())],
            get=[FakeResponse(200, a) for a in analyses],
        )
        vt = VirusTotalClient("k", session=session)
        monkeypatch.setattr(VirusTotalClient, "from_env", classmethod(lambda cls, session=None: vt))
        monkeypatch.setattr(scanner, "get_domain_info", lambda url: FALLBACK_DOMAIN_INFO)
        return session
    return install


def test_health(client):
    rv = client.get('/health')
    assert rv.status_code == 200
    assert rv.get_json()['status'] == 'ok'


def test_check_url_missing_input(client):
    rv = client.post('/check-url', json={})
    assert rv.status_code == 400
    assert rv.get_json()['message'] == 'URL is required'


def test_check_url_missing_api_key(client):
    rv = client.post('/check-url', json={'input': 'http://example.com'})
    assert rv.status_code == 500
    data = rv.get_json()
    assert data['error'] == 'MISSING_API_KEY'
    assert data['message'] == 'API configuration error'


def test_check_url_success(client, fake_vt):
    fake_vt(vt_analysis(stats=CLEAN))
    rv = client.post('/check-url', json={'input': 'http://example.com'})
    assert rv.status_code == 200
    d = rv.get_json()
    assert d['status'] == 'success'
    assert d['threat_level'] == 'LOW'
    assert d['positives'] == 0 and d['total'] == 70
    assert d['reputation_score'] == 45
    assert d['registrar'] == 'Unknown'
    assert d['recommendations'][0]['severity'] == 'success'


def test_check_url_pending_then_analysis(client, fake_vt):
    fake_vt(vt_analysis(status='in-progress'), vt_analysis(stats=dict(CLEAN, malicious=5)))
    rv = client.post('/check-url', json={'input': 'http://example.com'})
    assert rv.get_json()['status'] == 'pending'
    assert rv.get_json()['analysis_id'] == 'u-abc-123'

    rv = client.post('/check-analysis', json={'analysis_id': 'u-abc-123', 'url': 'http://example.com'})
    assert rv.status_code == 200
    d = rv.get_json()
    assert d['threat_level'] == 'HIGH'
    assert d['is_malicious'] is True


def test_check_analysis_requires_fields(client):
    rv = client.post('/check-analysis', json={'analysis_id': 'u-1'})
    assert rv.status_code == 400
    assert rv.get_json()['message'] == 'Analysis ID and URL are required'


def test_upstream_failure_is_500(client, monkeypatch):
    session = FakeSession(post=[FakeResponse(429, None, reason="Too Many Requests")])
    vt = VirusTotalClient("k", session=session)
    monkeypatch.setattr(VirusTotalClient, "from_env", classmethod(lambda cls, session=None: vt))
    rv = client.post('/check-url', json={'input': 'http://example.com'})
    assert rv.status_code == 500
    assert 'Too Many Requests' in rv.get_json()['message']


def test_check_email(client, fake_vt):
    session = fake_vt(vt_analysis(stats=CLEAN))
    rv = client.post('/check-email', json={'input': 'user@example.com'})
    assert rv.status_code == 200
    assert rv.get_json()['domain'] == 'example.com'
    assert session.calls[0][2]['data'] == {'url': 'http://example.com'}


def test_check_email_invalid(client):
    rv = client.post('/check-email', json={'input': 'not-an-email'})
    assert rv.status_code == 400
    assert rv.get_json()['error'] == 'INVALID_INPUT'


def test_check_pdf_no_file(client):
    rv = client.post('/check-pdf', data={}, content_type='multipart/form-data')
    assert rv.status_code == 400
    assert rv.get_json()['message'] == 'No file provided'


def test_check_pdf_parse_failure(client):
    data = {'file': (io.BytesIO(b'not really a pdf'), 'broken.pdf')}
    rv = client.post('/check-pdf', data=data, content_type='multipart/form-data')
    assert rv.status_code == 400
    d = rv.get_json()
    assert d['status'] == 'error'
    assert d['threat_level'] == 'UNKNOWN'


def test_check_pdf_urls(client, monkeypatch):
    monkeypatch.setattr(api, 'scan_pdf', lambda data: {'status': 'success', 'urls': ['https://a.example']})
    data = {'file': (io.BytesIO(b'%PDF-1.4'), 'doc.pdf')}
    rv = client.post('/check-pdf', data=data, content_type='multipart/form-data')
    assert rv.status_code == 200
    assert rv.get_json()['urls'] == ['https://a.example']


def test_whois_route(client, monkeypatch):
    monkeypatch.setenv('WHOISXML_API_KEY', 'k')
    rv = client.post('/whois', json={})
    assert rv.status_code == 400

    monkeypatch.setattr(whois_lookup.requests, 'get',
                        lambda *a, **kw: FakeResponse(500, None, reason='Internal Server Error'))
    rv = client.post('/whois', json={'domain': 'example.com'})
    assert rv.status_code == 500
    assert rv.get_json()['message'] == 'WHOIS lookup failed: Internal Server Error'


def test_whois_route_missing_key(client):
    rv = client.post('/whois', json={'domain': 'example.com'})
    assert rv.status_code == 500
    assert rv.get_json()['error'] == 'MISSING_API_KEY'


def test_reputation_route(client):
    body = {
        'threat_level': 'low',
        'domain_info': {'has_ssl': True, 'domain_age': '10 years'},
        'positives': 0,
        'total': 70,
    }
    rv = client.post('/reputation', json=body)
    assert rv.status_code == 200
    assert rv.get_json()['reputation_score'] == 100

    body.update(positives=60, total=100)
    assert client.post('/reputation', json=body).get_json()['reputation_score'] == 10

    rv = client.post('/reputation', json={'threat_level': 'SEVERE'})
    assert rv.status_code == 400


@pytest.mark.parametrize('domain_info', [
    {'domain_age': 5},
    {'has_ssl': 'false'},
    {'name_servers': 'ns1.example.com'},
])
def test_reputation_rejects_mistyped_domain_info(client, domain_info):
    rv = client.post('/reputation', json={'threat_level': 'LOW', 'domain_info': domain_info})
    assert rv.status_code == 400
    assert rv.get_json()['error'] == 'INVALID_INPUT'


def test_api_key_enforced(client, monkeypatch):
    monkeypatch.setenv('ODANEGUARD_API_KEY', 'secret')
    rv = client.post('/check-url', json={'input': 'http://example.com'})
    assert rv.status_code == 401
    rv = client.post('/reputation', json={'threat_level': 'LOW'}, headers={'X-API-Key': 'secret'})
    assert rv.status_code == 200
