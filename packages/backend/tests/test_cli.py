"""CLI tests — commands run through Click's CliRunner against a mock backend.

Learn: httpx.MockTransport stands in for the server, so each test asserts
both what the command sent and what it printed.
"""

import httpx
import pytest
from click.testing import CliRunner

from stallpos.auth.jwt import verify_token
from stallpos.cli import main as cli


@pytest.fixture
def backend(monkeypatch):
    """Route CLI requests to a handler the test installs."""
    state = {"requests": [], "handler": None}

    def transport_handler(request: httpx.Request) -> httpx.Response:
        state["requests"].append(request)
        return state["handler"](request)

    def fake_client():
        return httpx.AsyncClient(
            base_url="http://stallpos.test",
            transport=httpx.MockTransport(transport_handler),
        )

    monkeypatch.setattr(cli, "_client", fake_client)
    return state


def test_token_mints_verifiable_jwt():
    result = CliRunner().invoke(cli.main, ["token", "--role", "delivery", "--user-id", "rider-3"])
    assert result.exit_code == 0
    payload = verify_token(result.output.strip())
    assert payload["sub"] == "rider-3"
    assert payload["role"] == "delivery"


def test_token_rejects_unknown_role():
    result = CliRunner().invoke(cli.main, ["token", "--role", "chef"])
    assert result.exit_code != 0


def test_stats(backend):
    backend["handler"] = lambda req: httpx.Response(
        200,
        json={
            "totalClients": 3,
            "totalRooms": 1,
            "roomStats": {"delivery": 2},
            "timestamp": "2024-12-25T14:30:00Z",
        },
    )
    result = CliRunner().invoke(cli.main, ["stats"])
    assert result.exit_code == 0
    assert "Clients: 3" in result.output
    assert "delivery" in result.output
    assert backend["requests"][0].url.path == "/api/v1/realtime/stats"


def test_orders_table(backend):
    backend["handler"] = lambda req: httpx.Response(
        200,
        json=[
            {
                "custom_order_id": "2512-1430-ABC",
                "status": "pending",
                "customer_name": "Ana",
                "items_count": 2,
                "total_amount": 5.0,
            }
        ],
    )
    result = CliRunner().invoke(cli.main, ["orders", "--status", "pending"])
    assert result.exit_code == 0
    assert "2512-1430-ABC" in result.output
    assert backend["requests"][0].url.params["status"] == "pending"


def test_orders_empty(backend):
    backend["handler"] = lambda req: httpx.Response(200, json=[])
    result = CliRunner().invoke(cli.main, ["orders"])
    assert "No orders found." in result.output


def test_set_status(backend):
    backend["handler"] = lambda req: httpx.Response(
        200, json={"custom_order_id": "2512-1430-ABC", "status": "ready"}
    )
    result = CliRunner().invoke(cli.main, ["set-status", "o1", "ready"])
    assert result.exit_code == 0
    request = backend["requests"][0]
    assert request.method == "PATCH"
    assert request.url.path == "/api/v1/orders/o1/status"
    assert b'"ready"' in request.content


def test_set_status_reports_conflict(backend):
    backend["handler"] = lambda req: httpx.Response(
        409, json={"detail": "Cannot transition from 'pending' to 'ready'."}
    )
    result = CliRunner().invoke(cli.main, ["set-status", "o1", "ready"])
    assert result.exit_code == 1
    assert "Cannot transition" in result.output


def test_announce(backend):
    backend["handler"] = lambda req: httpx.Response(202, json={"status": "sent", "recipients": 4})
    result = CliRunner().invoke(cli.main, ["announce", "Card machine is down", "-t", "warning"])
    assert result.exit_code == 0
    assert "Sent to 4 client(s)" in result.output
    assert b'"warning"' in backend["requests"][0].content
