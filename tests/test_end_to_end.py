"""
End-to-end tests: real shard workers behind a real coordinator
"""
import asyncio
import json
import pytest
from aiohttp import test_utils, web
from shard_search.core.config import CoordinatorConfig, ShardAddress, ShardConfig
from shard_search.core.coordinator import SearchCoordinator
from shard_search.core.node import ShardNode
from shard_search.search.engine import SearchEngine


HOST = "127.0.0.1"

SHARD_B_DOCUMENTS = [
    {"title": "Quantum Needles", "abstract": "Searching on qubits.", "label": "quant-ph"},
    {"title": "Unrelated", "abstract": "Nothing to see.", "label": "misc"},
]

SHARD_C_DOCUMENTS = [
    {"title": "Needle Threading", "abstract": "A textile study.", "label": "physics"},
    {"title": "Haystacks", "abstract": "Where is the NEEDLE?", "label": "cs.IR"},
    {"title": "Another needle", "abstract": "", "label": "cs.DS"},
]


def write_shard(tmp_path, name, documents):
    path = tmp_path / f"{name}.json"
    path.write_text(json.dumps(documents), encoding="utf-8")
    return str(path)


def shard_config(tmp_path, shard_id, documents):
    return ShardConfig(
        shard_id=shard_id,
        host=HOST,
        port=test_utils.unused_port(),
        data_file=write_shard(tmp_path, shard_id, documents)
    )


async def stub_shard(handler):
    """Start a shard stand-in answering /search with handler"""
    app = web.Application()
    app.router.add_post('/search', handler)
    server = test_utils.TestServer(app, host=HOST)
    await server.start_server()
    return server


async def slow_shard(delay):
    """Start a shard stand-in that answers only after delay seconds"""
    async def handle(request):
        await asyncio.sleep(delay)
        return web.json_response({"shard": "slow", "total": 0, "results": []})

    return await stub_shard(handle)


@pytest.mark.asyncio
async def test_query_merges_all_shards(tmp_path):
    """Test a query reaching two live shards"""
    config_b = shard_config(tmp_path, "shard-b", SHARD_B_DOCUMENTS)
    config_c = shard_config(tmp_path, "shard-c", SHARD_C_DOCUMENTS)

    async with ShardNode(config_b), ShardNode(config_c):
        coordinator = SearchCoordinator(CoordinatorConfig(
            shards=[config_b.address(), config_c.address()],
            search_timeout=5
        ))
        try:
            result = await coordinator.handle_query("needle")
        finally:
            await coordinator.stop()

    assert result.total == 4
    assert sorted(hit.title for hit in result.results) == [
        "Another needle", "Haystacks", "Needle Threading", "Quantum Needles"
    ]
    shard_c_titles = [hit.title for hit in result.results if hit.shard == "shard-c"]
    assert shard_c_titles == ["Needle Threading", "Haystacks", "Another needle"]
    assert result.shards == {"shard-b": "completed", "shard-c": "completed"}


@pytest.mark.asyncio
async def test_unreachable_and_slow_shards_are_tolerated(tmp_path):
    """Test partial failure: one shard down, one too slow, one healthy"""
    config_c = shard_config(tmp_path, "shard-c", SHARD_C_DOCUMENTS)
    slow = await slow_shard(delay=2)

    try:
        async with ShardNode(config_c):
            coordinator = SearchCoordinator(CoordinatorConfig(
                shards=[
                    ShardAddress(shard_id="down", host=HOST, port=test_utils.unused_port()),
                    ShardAddress(shard_id="slow", host=HOST, port=slow.port),
                    config_c.address(),
                ],
                search_timeout=0.5
            ))
            try:
                result = await coordinator.handle_query("needle")
            finally:
                await coordinator.stop()
    finally:
        await slow.close()

    assert result.total == 3
    assert all(hit.shard == "shard-c" for hit in result.results)
    assert result.shards == {"shard-c": "completed", "down": "failed", "slow": "timed_out"}


@pytest.mark.asyncio
async def test_client_to_coordinator_over_http(tmp_path):
    """Test the full path from the client through the coordinator"""
    config_b = shard_config(tmp_path, "shard-b", SHARD_B_DOCUMENTS)
    coordinator_config = CoordinatorConfig(
        host=HOST,
        port=test_utils.unused_port(),
        shards=[config_b.address()],
        search_timeout=5
    )

    async with ShardNode(config_b), SearchCoordinator(coordinator_config):
        engine = SearchEngine(f"http://{HOST}:{coordinator_config.port}")

        result = await engine.search("QUANTUM")
        empty = await engine.search("   ")
        health = await engine.get_coordinator_status()
        shards = await engine.get_shards()

    assert result.total == 1
    assert result.results[0].title == "Quantum Needles"
    assert result.results[0].shard == "shard-b"
    assert empty.total == 0
    assert health["total_shards"] == 1
    assert shards["shards"][0]["shard_id"] == "shard-b"


@pytest.mark.asyncio
async def test_coordinator_accepts_text_and_json_queries(tmp_path):
    config_b = shard_config(tmp_path, "shard-b", SHARD_B_DOCUMENTS)

    async with ShardNode(config_b):
        coordinator = SearchCoordinator(CoordinatorConfig(shards=[config_b.address()], search_timeout=5))
        try:
            async with test_utils.TestClient(test_utils.TestServer(coordinator.app)) as client:
                text = await (await client.post('/search', data="needle\n")).json()
                as_json = await (await client.post('/search', json={"query": "needle"})).json()
                blank = await (await client.post('/search', data="\n")).json()
                bad = await client.post('/search', json={"query": 42})
        finally:
            await coordinator.stop()

    assert text["total"] == 1
    assert as_json == text
    assert blank == {"total": 0, "results": [], "shards": {}}
    assert bad.status == 400


@pytest.mark.asyncio
async def test_malformed_shard_responses_count_as_failed():
    """Test bad replies from a shard are a missing contribution"""
    async def garbage(request):
        return web.Response(text="this is not json")

    async def wrong_total(request):
        return web.json_response({"shard": "wrong-total", "total": 2, "results": []})

    async def server_error(request):
        return web.json_response({"status": "error"}, status=500)

    servers = {
        "garbage": await stub_shard(garbage),
        "wrong-total": await stub_shard(wrong_total),
        "error": await stub_shard(server_error),
    }

    try:
        coordinator = SearchCoordinator(CoordinatorConfig(
            shards=[
                ShardAddress(shard_id=shard_id, host=HOST, port=server.port)
                for shard_id, server in servers.items()
            ],
            search_timeout=5
        ))
        try:
            result = await coordinator.handle_query("needle")
        finally:
            await coordinator.stop()
    finally:
        for server in servers.values():
            await server.close()

    assert result.total == 0
    assert result.results == []
    assert result.shards == {"garbage": "failed", "wrong-total": "failed", "error": "failed"}


@pytest.mark.asyncio
async def test_coordinator_query_edge_cases(tmp_path):
    """Test undecodable bodies and padded terms on the text protocol"""
    config_c = shard_config(tmp_path, "shard-c", SHARD_C_DOCUMENTS)

    async with ShardNode(config_c):
        coordinator = SearchCoordinator(CoordinatorConfig(shards=[config_c.address()], search_timeout=5))
        try:
            async with test_utils.TestClient(test_utils.TestServer(coordinator.app)) as client:
                undecodable = await client.post(
                    '/search',
                    data=b"\xff\xfeneedle\n",
                    headers={"Content-Type": "text/plain; charset=utf-8"}
                )
                undecodable_body = await undecodable.json()
                padded = await (await client.post('/search', data="another needle \n")).json()
        finally:
            await coordinator.stop()

    assert undecodable.status == 400
    assert "UTF-8" in undecodable_body["error"]
    assert padded["total"] == 1
    assert padded["results"][0]["title"] == "Another needle"
