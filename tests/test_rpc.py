import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from octra_autosend.rpc import OctraRpc
from octra_autosend.wallet import Wallet

from conftest import PRIV, WALLET_ADDR, make_addr


@pytest_asyncio.fixture
async def node():
    state = {"sent": [], "send_fail_first": 0, "headers": {}, "posts": {}}

    async def send_tx(request):
        body = await request.json()
        state["sent"].append(body)
        if state["send_fail_first"] > 0:
            state["send_fail_first"] -= 1
            return web.json_response({"error": "mempool busy"}, status=503)
        return web.json_response({"status": "accepted", "tx_hash": "deadbeef"})

    async def balance(request):
        addr = request.match_info["addr"]
        if addr == make_addr(9):
            return web.Response(status=404, text="not found")
        return web.json_response({"nonce": 5, "balance": "12.5", "has_public_key": True})

    async def view_encrypted(request):
        state["headers"]["view"] = request.headers.get("X-Private-Key")
        if request.headers.get("X-Private-Key") != PRIV:
            return web.json_response({"error": "unauthorized"}, status=401)
        return web.json_response({"encrypted_balance_raw": "200000", "public_balance_raw": "3000000"})

    async def pending(request):
        state["headers"]["pending"] = request.headers.get("X-Private-Key")
        assert request.query["address"] == WALLET_ADDR
        return web.json_response({"pending_transfers": [{"id": 1, "sender": make_addr(2)}]})

    def recorder(name):
        async def handler(request):
            state["posts"][name] = await request.json()
            return web.json_response({"tx_hash": name})
        return handler

    async def plain_ok(request):
        return web.Response(text="OK cafebabe")

    app = web.Application()
    app.router.add_post("/send-tx", send_tx)
    app.router.add_get("/balance/{addr}", balance)
    app.router.add_get("/view_encrypted_balance/{addr}", view_encrypted)
    app.router.add_get("/pending_private_transfers", pending)
    app.router.add_post("/encrypt_balance", recorder("encrypt"))
    app.router.add_post("/private_transfer", recorder("private"))
    app.router.add_post("/claim_private_transfer", recorder("claim"))
    app.router.add_post("/plain/send-tx", plain_ok)

    server = TestServer(app)
    await server.start_server()
    wallet = Wallet(PRIV, WALLET_ADDR, f"http://{server.host}:{server.port}")
    yield OctraRpc(wallet, timeout=5, retry_delay=(0, 0)), state
    await wallet.close()
    await server.close()


@pytest.mark.asyncio
async def test_send_tx_returns_hash(node):
    rpc, state = node
    result = await rpc.send_tx({"nonce": 6})
    assert result.ok
    assert result.data == "deadbeef"
    assert state["sent"] == [{"nonce": 6}]


@pytest.mark.asyncio
async def test_send_tx_retries_with_same_payload(node):
    rpc, state = node
    state["send_fail_first"] = 1
    result = await rpc.send_tx({"nonce": 9}, retries=1)
    assert result.ok
    assert [tx["nonce"] for tx in state["sent"]] == [9, 9]


@pytest.mark.asyncio
async def test_send_tx_failure_is_a_result_not_an_exception(node):
    rpc, state = node
    state["send_fail_first"] = 5
    result = await rpc.send_tx({"nonce": 1})
    assert not result.ok
    assert result.status == 503
    assert "mempool busy" in result.error


@pytest.mark.asyncio
async def test_send_tx_accepts_plain_ok_reply(node):
    rpc, _ = node
    rpc.wallet.rpc += "/plain"
    result = await rpc.send_tx({"nonce": 1})
    assert result.ok
    assert result.data == "cafebabe"


@pytest.mark.asyncio
async def test_get_account(node):
    rpc, _ = node
    ok = await rpc.get_account(make_addr(1))
    assert ok.ok and ok.data["nonce"] == 5
    missing = await rpc.get_account(make_addr(9))
    assert not missing.ok
    assert missing.status == 404


@pytest.mark.asyncio
async def test_private_reads_send_key_header(node):
    rpc, state = node
    bal = await rpc.get_encrypted_balance()
    assert bal.ok
    assert bal.data["encrypted_balance_raw"] == "200000"
    pending = await rpc.get_pending_transfers()
    assert pending.ok
    assert pending.data == [{"id": 1, "sender": make_addr(2)}]
    assert state["headers"] == {"view": PRIV, "pending": PRIV}


@pytest.mark.asyncio
async def test_post_payloads(node):
    rpc, state = node
    await rpc.encrypt_balance(100000, "v2|blob")
    await rpc.private_transfer(make_addr(3), 100000, "cHVia2V5")
    await rpc.claim_private_transfer(17)
    assert state["posts"]["encrypt"] == {
        "address": WALLET_ADDR, "amount": "100000", "private_key": PRIV, "encrypted_data": "v2|blob",
    }
    assert state["posts"]["private"] == {
        "from": WALLET_ADDR, "to": make_addr(3), "amount": "100000",
        "from_private_key": PRIV, "to_public_key": "cHVia2V5",
    }
    assert state["posts"]["claim"] == {"recipient_address": WALLET_ADDR, "private_key": PRIV, "transfer_id": 17}


@pytest.mark.asyncio
async def test_unreachable_node_degrades_to_failure():
    wallet = Wallet(PRIV, WALLET_ADDR, "http://127.0.0.1:1")
    rpc = OctraRpc(wallet, timeout=2)
    try:
        result = await rpc.get_account(WALLET_ADDR)
    finally:
        await wallet.close()
    assert not result.ok
    assert result.error

