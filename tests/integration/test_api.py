"""Integration tests for the pooltracker API.

Drives a full session over HTTP: tokens, approvals, pool creation, swaps,
liquidity, routing and metrics.
"""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from pooltracker.api.endpoints import get_context
from pooltracker.api.main import app
from pooltracker.context import PoolTrackerContext
from tests.helpers import ADMIN, ALICE, DAY, FEED_ONE, make_context


@pytest.fixture
def context() -> PoolTrackerContext:
    return make_context(fee_bps=30)


@pytest.fixture
def client(context: PoolTrackerContext) -> Iterator[TestClient]:
    """Create a test client bound to a fresh context."""
    app.dependency_overrides[get_context] = lambda: context
    yield TestClient(app)
    app.dependency_overrides.clear()


def caller(address: str) -> dict[str, str]:
    return {"X-Caller": address}


def create_token(client: TestClient, symbol: str, holder: str, supply: int) -> str:
    response = client.post(
        "/tokens",
        json={"symbol": symbol, "initialSupply": str(supply), "holder": holder},
    )
    assert response.status_code == 201
    return response.json()["address"]


def approve(client: TestClient, token: str, owner: str, spender: str, amount: int) -> None:
    response = client.post(
        f"/tokens/{token}/approve",
        json={"spender": spender, "amount": str(amount)},
        headers=caller(owner),
    )
    assert response.status_code == 200
    assert response.json()["allowance"] == str(amount)


def balance(client: TestClient, token: str, holder: str) -> int:
    response = client.get(f"/tokens/{token}/balance/{holder}")
    assert response.status_code == 200
    return int(response.json()["balance"])


@pytest.fixture
def market(client: TestClient) -> dict[str, str]:
    """Two tokens, both routed at 1.0, and an X/Y pool of (1e6, 1e6) created by ALICE."""
    registry = client.get("/registry").json()["address"]
    token_x = create_token(client, "X", ALICE, 10**7)
    token_y = create_token(client, "Y", ALICE, 10**7)
    for token in (token_x, token_y):
        feed = client.post(
            "/feeds",
            json={"price": str(FEED_ONE), "description": "1.0"},
            headers=caller(ADMIN),
        ).json()["address"]
        response = client.post(
            "/registry/routing",
            json={"tokenAddress": token, "priceFeed": feed},
            headers=caller(ADMIN),
        )
        assert response.status_code == 201
        approve(client, token, ALICE, registry, 10**6)

    response = client.post(
        "/pools",
        json={
            "assetOne": token_x,
            "assetTwo": token_y,
            "amountOne": str(10**6),
            "amountTwo": str(10**6),
        },
        headers=caller(ALICE),
    )
    assert response.status_code == 201
    return {"registry": registry, "x": token_x, "y": token_y, "pool": response.json()["address"]}


class TestRegistryApi:
    def test_registry_info(self, client, context):
        response = client.get("/registry")
        assert response.status_code == 200
        data = response.json()
        assert data["address"] == context.registry.address
        assert data["owner"] == ADMIN
        assert data["poolCount"] == 0
        assert data["feeBps"] == 30
        assert data["basePriceFeed"] is None

    def test_pool_created(self, client, market):
        data = client.get(f"/pools/{market['pool']}").json()
        assert data["assetOneAddress"] == market["x"]
        assert data["assetTwoAddress"] == market["y"]
        assert data["owner"] == market["registry"]
        assert data["reserveOne"] == str(10**6)
        assert data["totalShares"] == str(10**6)
        assert data["yield"] == "0"
        assert data["status"] == "active"
        assert balance(client, market["x"], ALICE) == 9 * 10**6

    def test_pair_lookup_symmetric(self, client, market):
        forward = client.get(f"/registry/pair/{market['x']}/{market['y']}").json()
        reverse = client.get(f"/registry/pair/{market['y']}/{market['x']}").json()
        assert forward == reverse == {"address": market["pool"]}

    def test_pair_lookup_missing(self, client, market):
        other = create_token(client, "Z", ALICE, 10)
        assert client.get(f"/registry/pair/{market['x']}/{other}").json() == {"address": None}

    def test_duplicate_pool(self, client, market):
        response = client.post(
            "/pools",
            json={
                "assetOne": market["y"],
                "assetTwo": market["x"],
                "amountOne": "1",
                "amountTwo": "1",
            },
            headers=caller(ALICE),
        )
        assert response.status_code == 409
        assert response.json()["error"] == "DuplicatePairError"

    def test_indexes(self, client, market):
        assert client.get("/registry/tokens").json() == {"addresses": [market["x"], market["y"]]}
        assert client.get("/registry/tokens/1").json() == {"address": market["y"]}
        assert client.get(f"/registry/pool-pairs/{market['x']}").json() == {
            "addresses": [market["y"]]
        }
        assert client.get(f"/registry/pool-pairs/{market['y']}/0").json() == {
            "address": market["x"]
        }
        assert client.get(f"/registry/pool-owner/{ALICE}").json() == {"addresses": [market["pool"]]}
        assert client.get(f"/registry/pool-owner/{ALICE}/0").json() == {"address": market["pool"]}
        assert client.get(f"/registry/pool-owner/{ALICE}/1").status_code == 404

    def test_routing_table(self, client, market):
        entries = client.get("/registry/routing").json()["entries"]
        assert [entry["tokenAddress"] for entry in entries] == [market["x"], market["y"]]
        assert client.get("/registry/routing/0").json() == entries[0]
        assert client.get("/registry/routing/2").status_code == 404


class TestPoolApi:
    def test_quote(self, client, market):
        response = client.get(
            f"/pools/{market['pool']}/quote",
            params={"inputAsset": market["x"], "amount": "10000"},
        )
        assert response.status_code == 200
        assert response.json()["outputAmount"] == "9871"

    def test_swap(self, client, market):
        approve(client, market["x"], ALICE, market["pool"], 10_000)
        response = client.post(
            f"/pools/{market['pool']}/swap",
            json={"inputAsset": market["x"], "inputAmount": "10000", "minOutput": "9800"},
            headers=caller(ALICE),
        )
        assert response.status_code == 200
        data = response.json()
        assert data["amountOut"] == "9871"
        assert data["feeAmount"] == "30"
        assert data["tokenOut"] == market["y"]

        pool = client.get(f"/pools/{market['pool']}").json()
        assert pool["reserveOne"] == "1010000"
        assert pool["reserveTwo"] == "990129"
        assert pool["yield"] == "30"

    def test_swap_slippage(self, client, market):
        approve(client, market["x"], ALICE, market["pool"], 10_000)
        response = client.post(
            f"/pools/{market['pool']}/swap",
            json={"inputAsset": market["x"], "inputAmount": "10000", "minOutput": "9900"},
            headers=caller(ALICE),
        )
        assert response.status_code == 409
        assert response.json()["error"] == "SlippageExceededError"

    def test_swap_without_approval(self, client, market):
        response = client.post(
            f"/pools/{market['pool']}/swap",
            json={"inputAsset": market["x"], "inputAmount": "10000"},
            headers=caller(ALICE),
        )
        assert response.status_code == 402

    def test_liquidity_round_trip(self, client, market):
        approve(client, market["x"], ALICE, market["pool"], 1000)
        approve(client, market["y"], ALICE, market["pool"], 1000)
        added = client.post(
            f"/pools/{market['pool']}/liquidity",
            json={"amountOne": "1000", "amountTwo": "1000"},
            headers=caller(ALICE),
        )
        assert added.status_code == 200
        assert added.json()["shares"] == "1000"

        removed = client.post(
            f"/pools/{market['pool']}/liquidity/remove",
            json={"shares": "1000"},
            headers=caller(ALICE),
        )
        assert removed.status_code == 200
        assert removed.json()["amountOne"] == "1000"

        drain = client.post(
            f"/pools/{market['pool']}/liquidity/remove",
            json={"shares": str(10**6)},
            headers=caller(ALICE),
        )
        assert drain.status_code == 409
        assert drain.json()["error"] == "InsufficientLiquidityError"


class TestMetricsApi:
    def test_usd_value_routed(self, client, market):
        response = client.get(f"/metrics/usd-value/{market['x']}", params={"amount": "5"})
        data = response.json()
        assert data["value"] == str(5 * FEED_ONE)
        assert data["source"] == "routing"

    def test_usd_value_no_path(self, client, market):
        other = create_token(client, "Z", ALICE, 10)
        data = client.get(f"/metrics/usd-value/{other}", params={"amount": "5"}).json()
        assert data["value"] == "0"
        assert data["source"] == "no_path"
        assert data["routingToken"] is None

    def test_token_metrics(self, client, market):
        x = market["x"]
        assert client.get(f"/metrics/market-cap/{x}").json() == {"value": str(10**7 * FEED_ONE)}
        assert client.get(f"/metrics/tvl/{x}").json() == {"value": str(10**6 * FEED_ONE)}
        assert client.get(f"/metrics/tvl-ratio/{x}").json() == {"value": "10"}

    def test_pair_metrics(self, client, market):
        base = f"/metrics/pair/{market['x']}/{market['y']}"
        assert client.get(f"{base}/market-cap").json() == {"value": str(2 * 10**7 * FEED_ONE)}
        assert client.get(f"{base}/tvl").json() == {"value": str(2 * 10**6 * FEED_ONE)}
        assert client.get(f"{base}/tvl-ratio").json() == {"value": "10"}

    def test_daily_rate_day_zero(self, client, market):
        response = client.get(f"/metrics/pair/{market['x']}/{market['y']}/daily-rate")
        assert response.status_code == 422

    def test_report(self, client, context, market):
        client.post(
            "/feeds",
            json={"price": str(FEED_ONE), "description": "BASE", "base": True},
            headers=caller(ADMIN),
        )
        approve(client, market["x"], ALICE, market["pool"], 10_000)
        client.post(
            f"/pools/{market['pool']}/swap",
            json={"inputAsset": market["x"], "inputAmount": "10000"},
            headers=caller(ALICE),
        )

        report = client.get(f"/metrics/pair/{market['x']}/{market['y']}").json()
        assert report["pool"] == market["pool"]
        assert report["yield"] == "30"
        assert report["dailyRate"] is None
        assert report["dailyRoi"] is None

        context.clock.advance(2 * DAY)
        report = client.get(f"/metrics/pair/{market['x']}/{market['y']}").json()
        assert report["dailyRate"] == "15"
        assert report["dailyRoi"] is not None
        assert client.get(
            f"/metrics/pair/{market['x']}/{market['y']}/daily-rate"
        ).json() == {"value": "15"}


class TestFeedsApi:
    def test_update_feed(self, client, context, market):
        feed = client.get("/registry/routing/0").json()["priceFeed"]
        context.clock.advance(60)
        response = client.put(f"/feeds/{feed}", json={"price": str(3 * FEED_ONE)}, headers=caller(ADMIN))
        assert response.status_code == 200
        assert response.json()["price"] == str(3 * FEED_ONE)
        assert response.json()["updatedAt"] == context.clock.now()

        value = client.get(f"/metrics/usd-value/{market['x']}", params={"amount": "2"}).json()
        assert value["value"] == str(6 * FEED_ONE)
