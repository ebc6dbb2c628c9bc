import asyncio

import aiohttp
import pytest
from aiohttp import test_utils

from vpanel.webserver import WebServer


@pytest.fixture
def content(tmp_path):
    root = tmp_path / "wwwroot"
    (root / "js").mkdir(parents=True)
    (root / "index.html").write_text("<html>panel</html>")
    (root / "js" / "app.js").write_text("console.log('panel');")
    (tmp_path / "secret.txt").write_text("outside")
    return root


def test_config_lists_ports_sorted_by_name(content):
    server = WebServer(0, content)
    server.add_proxy_port("zeta", 5002)
    server.add_proxy_port("alpha", 5001)
    config = server.config()
    assert config == {"proxy_ports": {"alpha": 5001, "zeta": 5002}}
    assert list(config["proxy_ports"]) == ["alpha", "zeta"]


def test_add_proxy_port_replaces_existing(content):
    server = WebServer(0, content)
    server.add_proxy_port("pdp", 5000)
    server.add_proxy_port("pdp", 6000)
    assert server.config()["proxy_ports"] == {"pdp": 6000}


@pytest.mark.asyncio
async def test_config_endpoint(content):
    server = WebServer(0, content)
    server.add_proxy_port("pdp", 5000)
    async with test_utils.TestClient(test_utils.TestServer(server.make_app())) as client:
        response = await client.get("/config.json")
        assert response.status == 200
        assert response.content_type == "application/json"
        assert await response.json() == server.config()


@pytest.mark.asyncio
async def test_root_serves_index(content):
    server = WebServer(0, content)
    async with test_utils.TestClient(test_utils.TestServer(server.make_app())) as client:
        response = await client.get("/")
        assert response.status == 200
        assert await response.text() == "<html>panel</html>"


@pytest.mark.asyncio
async def test_nested_static_file(content):
    server = WebServer(0, content)
    async with test_utils.TestClient(test_utils.TestServer(server.make_app())) as client:
        response = await client.get("/js/app.js")
        assert response.status == 200
        assert await response.text() == "console.log('panel');"


@pytest.mark.asyncio
async def test_missing_file_is_404(content):
    server = WebServer(0, content)
    async with test_utils.TestClient(test_utils.TestServer(server.make_app())) as client:
        response = await client.get("/nothing.html")
        assert response.status == 404


@pytest.mark.asyncio
async def test_files_outside_content_dir_are_not_served(content):
    server = WebServer(0, content)
    async with test_utils.TestClient(test_utils.TestServer(server.make_app())) as client:
        response = await client.get("/js/..%2F..%2Fsecret.txt")
        assert response.status == 404


@pytest.mark.asyncio
async def test_run_serves_until_stopped(content):
    server = WebServer(0, content, host="127.0.0.1")
    server.add_proxy_port("pdp", 5000)
    task = asyncio.create_task(server.run())
    await asyncio.wait_for(server.started.wait(), 5)
    async with aiohttp.ClientSession() as session:
        async with session.get(f"http://127.0.0.1:{server.bound_port}/config.json") as response:
            body = await response.json()
    assert body == {"proxy_ports": {"pdp": 5000}}
    server.stop()
    await asyncio.wait_for(task, 10)
    assert task.done() and task.exception() is None