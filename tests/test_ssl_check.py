from odaneguard.app import ssl_check


def test_no_certificate(monkeypatch):
    monkeypatch.setattr(ssl_check, "_get_certificate", lambda domain: None)
    res = ssl_check.check_ssl("example.com")
    assert res["cert_valid"] is False
    assert res["explanation"] == "Unable to retrieve certificate"
    assert ssl_check.has_valid_certificate("example.com") is False


def test_unparseable_certificate(monkeypatch):
    monkeypatch.setattr(ssl_check, "_get_certificate", lambda domain: b"\x00not-der")
    res = ssl_check.check_ssl("example.com")
    assert res["cert_valid"] is False
    assert res["explanation"].startswith("Certificate parse error")
