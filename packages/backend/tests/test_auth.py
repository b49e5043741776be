"""Auth tests — JWT minting/verification and role checks over real tokens.

Learn: These use `unauthenticated_client`, which leaves the real
get_current_user in place, so every request goes through Bearer parsing,
PyJWT verification, and require_role().
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from stallpos.auth.jwt import TokenError, create_access_token, verify_token
from stallpos.config import settings


def _auth(role: str, user_id: str = "user-1") -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


# ═══════════════════════════════════════════════════════════
# Tokens
# ═══════════════════════════════════════════════════════════


def test_token_round_trip():
    payload = verify_token(create_access_token("user-7", "delivery"))
    assert payload["sub"] == "user-7"
    assert payload["role"] == "delivery"
    assert payload["type"] == "access"


def test_unknown_role_is_refused():
    with pytest.raises(TokenError):
        create_access_token("user-7", "chef")


def test_expired_token():
    token = jwt.encode(
        {"sub": "u", "role": "admin", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(TokenError, match="expired"):
        verify_token(token)


def test_wrong_signature():
    token = jwt.encode({"sub": "u", "role": "admin"}, "some-other-secret", algorithm="HS256")
    with pytest.raises(TokenError):
        verify_token(token)


def test_missing_subject():
    token = jwt.encode({"role": "admin"}, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    with pytest.raises(TokenError, match="subject"):
        verify_token(token)


# ═══════════════════════════════════════════════════════════
# HTTP
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_protected_route_without_token(unauthenticated_client):
    r = await unauthenticated_client.get("/api/v1/orders")
    assert r.status_code == 401
    assert r.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_protected_route_with_bad_token(unauthenticated_client):
    r = await unauthenticated_client.get(
        "/api/v1/orders", headers={"Authorization": "Bearer garbage"}
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_staff_roles_can_list_orders(unauthenticated_client):
    for role in ("admin", "counter", "delivery"):
        r = await unauthenticated_client.get("/api/v1/orders", headers=_auth(role))
        assert r.status_code == 200, role


@pytest.mark.asyncio
async def test_counter_creates_order_as_itself(unauthenticated_client):
    r = await unauthenticated_client.post(
        "/api/v1/orders",
        headers=_auth("counter", "till-2"),
        json={
            "customer_name": "Ana",
            "items": [
                {"product_id": "p1", "product_name": "Chai", "quantity": 1, "unit_price": 1.5}
            ],
        },
    )
    assert r.status_code == 201
    assert r.json()["created_by"] == "till-2"


@pytest.mark.asyncio
async def test_stats_overview_is_admin_only(unauthenticated_client):
    r = await unauthenticated_client.get("/api/v1/orders/stats/overview", headers=_auth("counter"))
    assert r.status_code == 403
    r = await unauthenticated_client.get("/api/v1/orders/stats/overview", headers=_auth("admin"))
    assert r.status_code == 200
