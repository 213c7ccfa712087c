from __future__ import annotations

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

import olnode
from olnode.monitor.app import create_app, event_stream, sse_event
from olnode.monitor.cache import CheckCache
from olnode.monitor.models import CacheSnapshot, ChainView, CheckItems, OwnerAccountView, ValidatorView


def _populated() -> CacheSnapshot:
    return CacheSnapshot(
        items=CheckItems(configs_exist=True, node_running=True, sync_height=99),
        chain=ChainView(epoch=12, height=1000, validator_count=1, waypoint="W"),
        validators=[ValidatorView(account_address="aa" * 16, voting_power=10)],
        account=OwnerAccountView(address="aa" * 16, balance=1.5, is_in_validator_set=True),
        refreshed_at=1,
    )


def test_epoch_json_is_exact():
    cache = CheckCache()
    cache.replace(_populated())
    client = TestClient(create_app(cache))

    r = client.get("/epoch.json")

    assert r.status_code == 200
    assert r.content == b'{"epoch":12,"waypoint":"W"}'


def test_plain_reads_before_first_refresh_return_defaults():
    client = TestClient(create_app(CheckCache()))

    vals = client.get("/vals")
    assert vals.status_code == 200
    assert vals.json() == []

    chain = client.get("/chain")
    assert chain.status_code == 200
    assert chain.json()["epoch"] == 0
    assert chain.json()["waypoint"] is None

    epoch = client.get("/epoch.json")
    assert epoch.status_code == 200
    assert epoch.json() == {"epoch": 0, "waypoint": None}


def test_plain_reads_serve_cache():
    cache = CheckCache()
    cache.replace(_populated())
    client = TestClient(create_app(cache))

    vals = client.get("/vals").json()
    assert [v["account_address"] for v in vals] == ["aa" * 16]
    assert client.get("/chain").json()["height"] == 1000


def test_reads_within_a_cycle_are_identical():
    cache = CheckCache()
    cache.replace(_populated())
    client = TestClient(create_app(cache))

    assert client.get("/chain").content == client.get("/chain").content
    assert client.get("/vals").content == client.get("/vals").content


def test_account_json_passes_file_through(tmp_path):
    manifest = tmp_path / "account.json"
    manifest.write_text('{"wallet": {"account": "abc"}}', encoding="utf-8")
    client = TestClient(create_app(CheckCache(), account_file=manifest))

    r = client.get("/account.json")

    assert r.status_code == 200
    assert r.content == manifest.read_bytes()
    assert r.headers["content-type"].startswith("application/json")


def test_account_json_missing_is_404(tmp_path):
    client = TestClient(create_app(CheckCache(), account_file=tmp_path / "nope.json"))
    assert client.get("/account.json").status_code == 404


def test_static_assets_are_served_at_root(tmp_path):
    (tmp_path / "index.html").write_text("<h1>monitor</h1>", encoding="utf-8")
    client = TestClient(create_app(CheckCache(), static_dir=tmp_path))

    r = client.get("/")
    assert r.status_code == 200
    assert "monitor" in r.text
    # API routes still win over the static mount.
    assert client.get("/vals").status_code == 200


def test_event_stream_emits_current_cache_each_tick():
    cache = CheckCache()

    async def take_two():
        stream = event_stream(lambda: cache.read().chain.model_dump_json(), 0)
        first = await stream.__anext__()
        cache.replace(_populated())
        second = await stream.__anext__()
        await stream.aclose()
        return first, second

    first, second = asyncio.run(take_two())

    assert first.startswith("data: ") and first.endswith("\n\n")
    assert json.loads(first[len("data: "):])["epoch"] == 0
    assert json.loads(second[len("data: "):])["epoch"] == 12


def test_sse_event_format():
    assert sse_event('{"a":1}') == 'data: {"a":1}\n\n'


async def _first_event(app, path: str):
    # TestClient buffers the whole response, so drive the ASGI app directly and
    # disconnect once the first event has been sent.
    sent = []
    got_event = asyncio.Event()

    async def receive():
        await got_event.wait()
        return {"type": "http.disconnect"}

    async def send(message):
        sent.append(message)
        if message["type"] == "http.response.body" and message.get("body"):
            got_event.set()

    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": path,
        "raw_path": path.encode("ascii"),
        "root_path": "",
        "query_string": b"",
        "headers": [(b"host", b"testserver")],
        "client": ("testclient", 50000),
        "server": ("testserver", 80),
    }
    await asyncio.wait_for(app(scope, receive, send), timeout=5.0)

    start = next(m for m in sent if m["type"] == "http.response.start")
    headers = {k.decode("latin-1"): v.decode("latin-1") for k, v in start["headers"]}
    body = next(m["body"] for m in sent if m["type"] == "http.response.body" and m.get("body"))
    return start["status"], headers, body.decode("utf-8")


@pytest.mark.parametrize(
    "path,expected",
    [
        ("/check", lambda snap: snap.items.model_dump(mode="json")),
        ("/chain_live", lambda snap: snap.chain.model_dump(mode="json")),
        ("/account", lambda snap: snap.account.model_dump(mode="json")),
        ("/validators", lambda snap: [v.model_dump(mode="json") for v in snap.validators]),
    ],
)
def test_push_endpoints_stream_the_cached_snapshot(path, expected):
    cache = CheckCache()
    cache.replace(_populated())
    app = create_app(cache)

    status, headers, body = asyncio.run(_first_event(app, path))

    assert status == 200
    assert headers["content-type"].startswith("text/event-stream")
    assert headers["cache-control"] == "no-cache"
    assert body.startswith("data: ") and body.endswith("\n\n")
    assert json.loads(body[len("data: "):]) == expected(cache.read())


def test_push_endpoint_before_first_refresh_sends_defaults():
    status, _, body = asyncio.run(_first_event(create_app(CheckCache()), "/validators"))

    assert status == 200
    assert json.loads(body[len("data: "):]) == []


def test_app_reports_package_version():
    assert create_app(CheckCache()).version == olnode.__version__
