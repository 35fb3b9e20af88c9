import pytest
import sys
import os
import json
import socket
from aiohttp import web

sys.path.append(os.getcwd())

from tests.fakes import FakeHorizonGateway, FakeFetcher, make_settings
from sofizpay.web_tools import HTTPSessionManager


# --- Helpers ---

def get_free_port():
    """Finds a free port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        return s.getsockname()[1]


# --- Fixtures: Config ---

@pytest.fixture(scope="function")
def horizon_server_config():
    port = get_free_port()
    return {"host": "localhost", "port": port, "url": f"http://localhost:{port}"}


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def gateway():
    return FakeHorizonGateway()


@pytest.fixture
def fetcher(gateway):
    return FakeFetcher(gateway)


@pytest.fixture
async def session_manager():
    manager = HTTPSessionManager()
    yield manager
    await manager.close()


# --- Mock Servers ---

@pytest.fixture
async def mock_horizon(horizon_server_config):
    """Starts a local mock Stellar Horizon server."""

    class HorizonMockState:
        def __init__(self):
            self.requests = []
            self.accounts = {}
            self.account_transactions = {}  # account_id -> list, newest first
            self.stream_events = []
            self.transactions = {}
            self.operations = {}
            self.transaction_response = {"successful": True, "hash": "abc123"}
            self.status_queue = []  # statuses answered before the real body, e.g. [429, 429]
            self.base_url = horizon_server_config["url"]

        def add_transaction(self, tx, operations):
            self.transactions[tx["id"]] = tx
            self.operations[tx["id"]] = operations

        def set_account(self, account_id, balances=None):
            self.accounts[account_id] = {
                "id": account_id,
                "account_id": account_id,
                "sequence": "123",
                "balances": balances or [{"asset_type": "native", "balance": "100.0"}],
                "signers": [{"key": account_id, "weight": 1}],
                "thresholds": {"low_threshold": 0, "med_threshold": 1, "high_threshold": 2},
                "data": {},
                "flags": {"auth_required": False, "auth_revocable": False},
            }

        def get_requests(self, endpoint=None):
            if endpoint:
                return [r for r in self.requests if r["endpoint"] == endpoint]
            return self.requests

    state = HorizonMockState()
    routes = web.RouteTableDef()

    def queued_error():
        if state.status_queue:
            status = state.status_queue.pop(0)
            return web.json_response({"status": status, "title": "Rate Limit Exceeded"}, status=status)
        return None

    @routes.get("/accounts/{account_id}")
    async def get_account(request):
        account_id = request.match_info['account_id']
        state.requests.append({"endpoint": "accounts", "method": "GET", "account_id": account_id})
        if account_id in state.accounts:
            return web.json_response(state.accounts[account_id])
        return web.json_response({"status": 404, "title": "Resource Missing"}, status=404)

    @routes.get("/accounts/{account_id}/transactions")
    async def account_transactions(request):
        account_id = request.match_info['account_id']
        if "text/event-stream" in request.headers.get("Accept", ""):
            state.requests.append({
                "endpoint": "stream", "method": "GET", "account_id": account_id, "query": dict(request.query)
            })
            response = web.StreamResponse()
            response.content_type = "text/event-stream"
            await response.prepare(request)
            await response.write(b'data: "hello"\n\n')
            for record in state.stream_events:
                await response.write(f"id: {record['paging_token']}\ndata: {json.dumps(record)}\n\n".encode())
            return response

        state.requests.append({
            "endpoint": "account_transactions", "method": "GET", "account_id": account_id,
            "query": dict(request.query),
        })
        records = state.account_transactions.get(account_id, [])
        limit = int(request.query.get("limit", 10))
        return web.json_response({"_embedded": {"records": records[:limit]}, "_links": {}})

    @routes.post("/transactions")
    async def submit_transaction(request):
        data = await request.post()
        state.requests.append({"endpoint": "submit", "method": "POST", "data": dict(data)})
        if state.transaction_response.get("successful"):
            return web.json_response(state.transaction_response)
        return web.json_response(state.transaction_response, status=400)

    @routes.get("/transactions/{tx_id}")
    async def get_transaction(request):
        tx_id = request.match_info['tx_id']
        state.requests.append({"endpoint": "transaction", "method": "GET", "tx_id": tx_id})
        error = queued_error()
        if error is not None:
            return error
        if tx_id in state.transactions:
            return web.json_response(state.transactions[tx_id])
        return web.json_response({"status": 404, "title": "Resource Missing"}, status=404)

    @routes.get("/transactions/{tx_id}/operations")
    async def get_operations(request):
        tx_id = request.match_info['tx_id']
        state.requests.append({
            "endpoint": "operations", "method": "GET", "tx_id": tx_id, "query": dict(request.query)
        })
        error = queued_error()
        if error is not None:
            return error
        return web.json_response({"_embedded": {"records": state.operations.get(tx_id, [])}})

    @routes.get("/make-cib-transaction/")
    async def make_cib_transaction(request):
        state.requests.append({"endpoint": "cib", "method": "GET", "query": dict(request.query)})
        error = queued_error()
        if error is not None:
            return web.json_response({"error": "Invalid amount"}, status=error.status)
        return web.json_response({"success": True, "url": "https://pay.example/cib/1"})

    @routes.get("/{path:.*}")
    async def catch_all(request):
        path = request.match_info['path']
        state.requests.append({"endpoint": path, "method": "GET"})
        return web.json_response({"status": 404}, status=404)

    app = web.Application()
    app.add_routes(routes)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, horizon_server_config["host"], horizon_server_config["port"])
    await site.start()

    yield state

    await runner.cleanup()
