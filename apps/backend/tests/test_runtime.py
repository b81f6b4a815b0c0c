from portal_analytics.core.config import settings


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_debug_runtime_hides_secrets(client, monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", "sk-live-secret")

    r = client.get("/debug/runtime")
    body = r.json()

    assert r.status_code == 200
    assert body["openai_key_present"] is True
    assert body["router_import_error"] is None
    assert "sk-live-secret" not in r.text


def test_operator_alias_set_is_lowercased(monkeypatch):
    monkeypatch.setattr(settings, "operator_aliases", " Uptrade , UM-MAIN0001,,")
    assert settings.operator_alias_set == {"uptrade", "um-main0001"}
