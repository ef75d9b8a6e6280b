import json

import pytest
import requests
import responses

from caddyadmin.caddy import (
    AdminConfig,
    CaddyError,
    Config,
    HandleDef,
    Match,
    Route,
    Server,
    Upstream,
    caddy_url,
    get_config_at_path,
    get_full_config,
    get_servers_config,
    save_config,
    save_servers_config,
    servers_from_json,
    servers_to_json,
)

BASE = "http://localhost:2019"

SERVERS = {
    "srv0": {
        "listen": [":443"],
        "routes": [
            {
                "match": [{"host": ["app.example.com"]}],
                "handle": [
                    {
                        "handler": "subroute",
                        "routes": [
                            {
                                "handle": [
                                    {
                                        "handler": "reverse_proxy",
                                        "upstreams": [{"dial": "127.0.0.1:3000"}],
                                    }
                                ]
                            }
                        ],
                    }
                ],
                "terminal": True,
            }
        ],
    }
}


@pytest.fixture(autouse=True)
def _no_env(monkeypatch):
    monkeypatch.delenv("CADDY_URL", raising=False)


@pytest.fixture
def mocked():
    with responses.RequestsMock() as rsps:
        yield rsps


def test_caddy_url_default():
    assert caddy_url("/load") == BASE + "/load"


def test_caddy_url_keeps_trailing_slash():
    assert caddy_url("/config/") == BASE + "/config/"


def test_caddy_url_joins_base_path(monkeypatch):
    monkeypatch.setenv("CADDY_URL", "http://caddy.example.com/admin/")
    assert caddy_url("/load") == "http://caddy.example.com/admin/load"


def test_server_round_trip():
    servers = servers_from_json(json.dumps(SERVERS))
    assert json.loads(servers_to_json(servers)) == SERVERS


def test_parsed_structure():
    server = servers_from_json(json.dumps(SERVERS))["srv0"]
    sub = server.routes[0].handle[0]
    assert sub.handler == "subroute"
    assert sub.routes[0].handle[0].upstreams == [Upstream(dial="127.0.0.1:3000")]
    assert server.routes[0].match == [Match(host=["app.example.com"])]


def test_omit_empty_fields():
    assert HandleDef(handler="file_server").to_dict() == {"handler": "file_server"}
    assert Route().to_dict() == {}
    assert Server().to_dict() == {}
    assert Upstream().to_dict() == {"dial": ""}
    assert AdminConfig().to_dict() == {}


def test_servers_from_null_is_empty():
    assert servers_from_json("null") == {}


def test_servers_from_invalid_json_raises():
    with pytest.raises(ValueError):
        servers_from_json("{not json")


def test_config_round_trip():
    data = {"admin": {"listen": "localhost:2019", "origins": ["localhost"]}, "apps": {"http": {"servers": SERVERS}}}
    config = Config.from_dict(data)
    assert config.admin == AdminConfig(listen="localhost:2019", origins=["localhost"])
    assert config.to_dict() == data


def test_empty_config():
    assert Config().to_dict() == {}
    assert Config.from_dict({}).servers is None


def test_save_config_success(mocked):
    mocked.add(responses.POST, BASE + "/load", json={})
    assert save_config(b'{"apps":{}}') is None
    assert mocked.calls[0].request.body == b'{"apps":{}}'


def test_save_config_bad_request(mocked):
    mocked.add(responses.POST, BASE + "/load", status=400, json={"error": "bad config"})
    with pytest.raises(CaddyError, match="bad config"):
        save_config("{}")


def test_save_config_bad_request_without_message(mocked):
    mocked.add(responses.POST, BASE + "/load", status=400, json={})
    assert save_config("{}") is None
    assert len(mocked.calls) == 1


def test_save_config_connection_error(mocked):
    mocked.add(responses.POST, BASE + "/load", body=requests.ConnectionError("refused"))
    with pytest.raises(CaddyError):
        save_config("{}")


def test_save_servers_config_posts_json(mocked):
    mocked.add(responses.POST, BASE + "/config/apps/http/servers", body="ok")
    servers = {"srv0": Server(listen=[":80"])}
    assert save_servers_config(servers) == "ok"
    assert json.loads(mocked.calls[0].request.body) == {"srv0": {"listen": [":80"]}}


def test_get_servers_config(mocked):
    mocked.add(responses.GET, BASE + "/config/apps/http/servers", json=SERVERS)
    servers = get_servers_config()
    assert list(servers) == ["srv0"]
    assert servers["srv0"].listen == [":443"]


def test_get_servers_config_bad_body(mocked):
    mocked.add(responses.GET, BASE + "/config/apps/http/servers", body="garbage")
    assert get_servers_config() == {}


def test_get_config_at_path(mocked):
    mocked.add(responses.GET, BASE + "/config/apps/http", json={"servers": {}})
    assert get_config_at_path("apps/http") == {"servers": {}}


def test_get_full_config(mocked):
    mocked.add(responses.GET, BASE + "/config/", json={"apps": {"http": {"servers": SERVERS}}})
    config = get_full_config()
    assert config.admin is None
    assert config.to_dict() == {"apps": {"http": {"servers": SERVERS}}}


def test_get_full_config_null(mocked):
    mocked.add(responses.GET, BASE + "/config/", body="null")
    assert get_full_config() == Config()