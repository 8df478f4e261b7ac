from unittest.mock import MagicMock

import requests

from sarkari_pulse.services.scraper import fetcher as fetcher_module
from sarkari_pulse.services.scraper.fetcher import ApiRequest, FetchError, Fetcher, PageRequest, RawPayload
from sarkari_pulse.services.scraper.session import ScrapeSession


def fake_response(status_code=200, json_data=None, text="", json_error=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.reason = "Too Many Requests" if status_code == 429 else "OK"
    resp.text = text
    if json_error is not None:
        resp.json.side_effect = json_error
    else:
        resp.json.return_value = json_data
    return resp


def test_api_request_returns_json_payload(monkeypatch, settings):
    get = MagicMock(return_value=fake_response(json_data={"data": {"hits": {"items": []}}}))
    monkeypatch.setattr(fetcher_module.requests, "get", get)

    result = Fetcher(settings).fetch(ApiRequest(url="https://api.example/search", params={"from": 0, "size": 10}))

    assert isinstance(result, RawPayload)
    assert result.kind == "json"
    assert result.json == {"data": {"hits": {"items": []}}}
    assert "from=0" in result.url
    assert get.call_args.kwargs["timeout"] == 20.0


def test_http_429_is_rate_limited(monkeypatch, settings):
    monkeypatch.setattr(fetcher_module.requests, "get", MagicMock(return_value=fake_response(429)))

    result = Fetcher(settings).fetch(ApiRequest(url="https://api.example/search"))

    assert isinstance(result, FetchError)
    assert result.kind == "http"
    assert result.is_rate_limited


def test_timeout_and_network_errors_are_values(monkeypatch, settings):
    fetcher = Fetcher(settings)

    monkeypatch.setattr(fetcher_module.requests, "get", MagicMock(side_effect=requests.Timeout("slow")))
    timeout = fetcher.fetch(ApiRequest(url="https://api.example/search"))

    monkeypatch.setattr(fetcher_module.requests, "get", MagicMock(side_effect=requests.ConnectionError("refused")))
    network = fetcher.fetch(ApiRequest(url="https://api.example/search"))

    assert timeout.kind == "timeout"
    assert network.kind == "network"
    assert network.is_network and not timeout.is_network


def test_non_json_body_is_parse_error(monkeypatch, settings):
    resp = fake_response(json_error=ValueError("Expecting value"))
    monkeypatch.setattr(fetcher_module.requests, "get", MagicMock(return_value=resp))

    result = Fetcher(settings).fetch(ApiRequest(url="https://api.example/search"))

    assert result.kind == "parse"


def test_page_request_falls_back_to_plain_get(monkeypatch, settings):
    get = MagicMock(return_value=fake_response(text="<html>ok</html>"))
    monkeypatch.setattr(fetcher_module.requests, "get", get)
    session = ScrapeSession(settings.user_agent, browser_enabled=False)

    result = Fetcher(settings).fetch(PageRequest(url="https://dbt.example/list"), session)

    assert result.kind == "html"
    assert result.text == "<html>ok</html>"
    assert session.get_driver() is None
    assert not session.browser_started


def test_rendered_page_uses_session_driver(monkeypatch, settings):
    driver = MagicMock()
    driver.execute_script.return_value = "complete"
    driver.page_source = "<html>rendered</html>"
    session = ScrapeSession(settings.user_agent)
    monkeypatch.setattr(session, "get_driver", lambda: driver)
    monkeypatch.setattr(fetcher_module.time, "sleep", lambda seconds: None)

    result = Fetcher(settings).fetch(PageRequest(url="https://dbt.example/list", settle_seconds=0), session)

    assert result.text == "<html>rendered</html>"
    driver.get.assert_called_once_with("https://dbt.example/list")
