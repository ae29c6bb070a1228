import json

import pytest

from browser_request import profile_loader
from browser_request.client import BrowserClient
from browser_request.types import DeviceClass

PAYLOAD = {
    "user_agents": [
        {
            "id": "alpha",
            "family": "Chrome",
            "version": "130.0.0.0",
            "device": "desktop",
            "os": "Windows 10",
            "platform": "Windows",
            "mobile": False,
            "original": "Mozilla/5.0 alpha",
            "weight": 1.0,
            "accept_header": "text/html",
        },
        {
            "id": "beta",
            "family": "Chrome",
            "device": "mobile",
            "mobile": True,
            "original": "Mozilla/5.0 beta",
        },
    ],
    "locales": {"de-AT": "de-AT,de;q=0.9"},
}


def test_load_profiles_from_json(monkeypatch):
    monkeypatch.setattr(profile_loader, "_read_file", lambda path: PAYLOAD)
    ua_provider, locale_provider = profile_loader.load_profiles("dummy.json")

    assert ua_provider.random(DeviceClass.DESKTOP).id == "alpha"
    assert ua_provider.random(DeviceClass.MOBILE).id == "beta"
    assert locale_provider.get("de-AT").accept_language == "de-AT,de;q=0.9"
    # built-in table is kept
    assert locale_provider.get("en-US").accept_language == "en-US,en;q=0.9"


def test_load_profiles_yaml_file(tmp_path):
    path = tmp_path / "profiles.yaml"
    path.write_text(
        "default_locale: fr-FR\n"
        "user_agents:\n"
        "  - id: alpha\n"
        "    family: Firefox\n"
        "    original: Mozilla/5.0 yaml\n"
        "locales:\n"
        "  - tag: fr-FR\n"
        "    accept_language: fr-FR,fr;q=0.5\n",
        encoding="utf-8",
    )
    ua_provider, locale_provider = profile_loader.load_profiles(path)

    assert ua_provider.get("alpha").original == "Mozilla/5.0 yaml"
    assert locale_provider.default == "fr-FR"
    assert locale_provider.get().accept_language == "fr-FR,fr;q=0.5"


def test_load_profiles_requires_user_agents(monkeypatch):
    monkeypatch.setattr(profile_loader, "_read_file", lambda path: {"user_agents": []})
    with pytest.raises(RuntimeError):
        profile_loader.load_profiles("dummy.json")


def test_client_from_profile_file(tmp_path):
    path = tmp_path / "profiles.json"
    path.write_text(json.dumps(PAYLOAD), encoding="utf-8")

    client = BrowserClient.from_profile_file(path)
    profile = client.generate_profile({"url": "https://example.com", "useMobileVersion": True})

    assert profile.id == "beta"
    assert profile.user_agent.original == "Mozilla/5.0 beta"
