import json

import pytest
import responses

from xmrblocks.rpc import (
    FEE_ESTIMATE_GRACE_BLOCKS,
    RpcClient,
    RpcError,
)

URL = "http://localhost:18081"


@pytest.fixture
def mocked():
    with responses.RequestsMock() as rsps:
        yield rsps


@pytest.fixture
def client():
    with RpcClient(URL) as rpc:
        yield rpc


def _body(rsps, index=0):
    return json.loads(rsps.calls[index].request.body)


def test_url_without_scheme_gets_http():
    rpc = RpcClient("127.0.0.1:18081")
    assert rpc.daemon_url == "http://127.0.0.1:18081"
    rpc.close()


def test_login_string_without_secret():
    rpc = RpcClient(URL, login="user")
    assert rpc.login == ("user", "")
    rpc.close()


def test_login_tuple_kept():
    password = "password"
    rpc = RpcClient(URL, login=("user", password))
    assert rpc.login == ("user", password)
    rpc.close()


def test_get_current_height(mocked, client):
    mocked.add(responses.POST, URL + "/getheight", json={"height": 12345, "status": "OK"})
    assert client.get_current_height() == 12345


def test_get_current_height_missing_field(mocked, client):
    mocked.add(responses.POST, URL + "/getheight", json={"status": "OK"})
    with pytest.raises(RpcError):
        client.get_current_height()


def test_connection_error_raises(mocked, client):
    with pytest.raises(RpcError, match="Error connecting to Monero daemon"):
        client.get_current_height()


def test_http_error_raises(mocked, client):
    mocked.add(responses.POST, URL + "/getheight", status=500)
    with pytest.raises(RpcError):
        client.get_current_height()


def test_invalid_json_raises(mocked, client):
    mocked.add(responses.POST, URL + "/getheight", body="not json")
    with pytest.raises(RpcError):
        client.get_current_height()


def test_get_mempool_sorted_newest_first(mocked, client):
    txs = [
        {"id_hash": "a", "receive_time": 100},
        {"id_hash": "b", "receive_time": 300},
        {"id_hash": "c", "receive_time": 200},
    ]
    mocked.add(
        responses.POST,
        URL + "/get_transaction_pool",
        json={"status": "OK", "transactions": txs},
    )
    result = client.get_mempool()
    assert [tx["id_hash"] for tx in result] == ["b", "c", "a"]
    times = [tx["receive_time"] for tx in result]
    assert times == sorted(times, reverse=True)


def test_get_mempool_empty(mocked, client):
    mocked.add(responses.POST, URL + "/get_transaction_pool", json={"status": "OK"})
    assert client.get_mempool() == []


def test_get_mempool_bad_status(mocked, client):
    mocked.add(responses.POST, URL + "/get_transaction_pool", json={"status": "BUSY"})
    with pytest.raises(RpcError):
        client.get_mempool()


def test_send_raw_transaction_request(mocked, client):
    mocked.add(responses.POST, URL + "/sendrawtransaction", json={"status": "OK"})
    reply = client.send_raw_transaction("abcd")
    assert reply["status"] == "OK"
    assert _body(mocked) == {"tx_as_hex": "abcd", "do_not_relay": False}


def test_send_raw_transaction_failed(mocked, client):
    mocked.add(
        responses.POST,
        URL + "/sendrawtransaction",
        json={"status": "Failed", "reason": "double spend"},
    )
    with pytest.raises(RpcError, match="double spend"):
        client.send_raw_transaction("abcd")


def test_get_network_info(mocked, client):
    result = {"status": "OK", "height": 42, "target": 120}
    mocked.add(responses.POST, URL + "/json_rpc", json={"jsonrpc": "2.0", "id": 0, "result": result})
    assert client.get_network_info() == result
    body = _body(mocked)
    assert body["method"] == "get_info"
    assert body["jsonrpc"] == "2.0"
    assert body["id"] == 0


def test_get_network_info_busy(mocked, client):
    mocked.add(responses.POST, URL + "/json_rpc", json={"result": {"status": "BUSY"}})
    with pytest.raises(RpcError, match="Daemon is busy. Please try again later."):
        client.get_network_info()


def test_get_network_info_other_status(mocked, client):
    mocked.add(responses.POST, URL + "/json_rpc", json={"result": {"status": "Weird"}})
    with pytest.raises(RpcError, match="Weird"):
        client.get_network_info()


def test_json_rpc_error_object(mocked, client):
    mocked.add(
        responses.POST,
        URL + "/json_rpc",
        json={"error": {"code": -1, "message": "boom"}},
    )
    with pytest.raises(RpcError, match="boom"):
        client.get_hardfork_info()


def test_get_hardfork_info(mocked, client):
    mocked.add(
        responses.POST,
        URL + "/json_rpc",
        json={"result": {"status": "OK", "version": 16}},
    )
    assert client.get_hardfork_info()["version"] == 16
    assert _body(mocked)["method"] == "hard_fork_info"


def test_get_hardfork_info_busy(mocked, client):
    mocked.add(responses.POST, URL + "/json_rpc", json={"result": {"status": "BUSY"}})
    with pytest.raises(RpcError, match="daemon is busy"):
        client.get_hardfork_info()


def test_get_base_fee_estimate(mocked, client):
    mocked.add(responses.POST, URL + "/get_fee_estimate", json={"fee": 20000, "status": "OK"})
    assert client.get_base_fee_estimate(7) == 20000
    assert _body(mocked) == {"grace_blocks": 7}


def test_get_dynamic_per_kb_fee_estimate_default_grace(mocked, client):
    mocked.add(
        responses.POST,
        URL + "/json_rpc",
        json={"result": {"status": "OK", "fee": 31000}},
    )
    assert client.get_dynamic_per_kb_fee_estimate() == 31000
    body = _body(mocked)
    assert body["method"] == "get_fee_estimate"
    assert body["params"] == {"grace_blocks": FEE_ESTIMATE_GRACE_BLOCKS}


def test_get_alt_blocks(mocked, client):
    mocked.add(
        responses.POST,
        URL + "/get_alt_blocks_hashes",
        json={"status": "OK", "blks_hashes": ["aa", "bb"]},
    )
    assert client.get_alt_blocks() == ["aa", "bb"]


def test_get_alt_blocks_failure(mocked, client):
    mocked.add(responses.POST, URL + "/get_alt_blocks_hashes", json={"status": "Failed"})
    with pytest.raises(RpcError, match="daemon rpc failed. Please try again later."):
        client.get_alt_blocks()


def test_get_block_blob_round_trip(mocked, client):
    blob = bytes(range(16))
    mocked.add(
        responses.POST,
        URL + "/json_rpc",
        json={"result": {"status": "OK", "blob": blob.hex()}},
    )
    assert client.get_block_blob("ff" * 32) == blob
    body = _body(mocked)
    assert body["method"] == "getblock"
    assert body["params"] == {"hash": "ff" * 32}


def test_get_block_blob_bad_hex(mocked, client):
    mocked.add(
        responses.POST,
        URL + "/json_rpc",
        json={"result": {"status": "OK", "blob": "zz"}},
    )
    with pytest.raises(RpcError):
        client.get_block_blob("ff" * 32)