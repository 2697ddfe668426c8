"""Unit tests for API error handling."""

import pytest
from fastapi.testclient import TestClient

from pooltracker.api.endpoints import get_context
from pooltracker.api.main import app, status_for
from pooltracker.errors import (
    DivisionByZeroError,
    DuplicatePairError,
    IndexOutOfRangeError,
    InsufficientAllowanceError,
    InsufficientLiquidityError,
    InvalidAmountError,
    NotOwnerError,
    PoolNotFoundError,
    PoolTrackerError,
    SlippageExceededError,
    TransferFailure,
    UnknownPoolError,
)
from tests.helpers import ADMIN, ALICE, BOB, UNUSED_FEED, UNUSED_TOKEN, make_context, make_token, seed_pool


@pytest.fixture
def context():
    return make_context()


@pytest.fixture
def client(context):
    """Create a test client bound to a fresh context."""
    app.dependency_overrides[get_context] = lambda: context
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestStatusMapping:
    @pytest.mark.parametrize(
        "error,status",
        [
            (InvalidAmountError("x"), 400),
            (InsufficientAllowanceError("x"), 402),
            (TransferFailure("x"), 402),
            (NotOwnerError("x"), 403),
            (UnknownPoolError("x"), 404),
            (PoolNotFoundError("x"), 404),
            (IndexOutOfRangeError("x"), 404),
            (DuplicatePairError("x"), 409),
            (SlippageExceededError("x"), 409),
            (InsufficientLiquidityError("x"), 409),
            (DivisionByZeroError("x"), 422),
            (PoolTrackerError("x"), 500),
        ],
    )
    def test_status_for(self, error, status):
        assert status_for(error) == status


class TestErrorResponses:
    """Core errors come back as {"error", "detail"} with a mapped status."""

    def test_unknown_pool(self, client):
        response = client.get(f"/pools/{UNUSED_TOKEN}")
        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "UnknownPoolError"
        assert UNUSED_TOKEN in body["detail"]

    def test_index_out_of_range(self, client):
        response = client.get("/registry/tokens/0")
        assert response.status_code == 404
        assert response.json()["error"] == "IndexOutOfRangeError"

    def test_not_owner(self, client):
        response = client.post(
            "/registry/routing",
            json={"tokenAddress": UNUSED_TOKEN, "priceFeed": UNUSED_FEED},
            headers={"X-Caller": ALICE},
        )
        assert response.status_code == 403
        assert response.json()["error"] == "NotOwnerError"

    def test_invalid_pair(self, client, context):
        token = make_token(context, "X", {ALICE: 1000})
        response = client.post(
            "/pools",
            json={
                "assetOne": token.address,
                "assetTwo": token.address,
                "amountOne": "1",
                "amountTwo": "1",
            },
            headers={"X-Caller": ALICE},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidPairError"

    def test_missing_allowance(self, client, context):
        token_x = make_token(context, "X", {ALICE: 1000})
        token_y = make_token(context, "Y", {ALICE: 1000})
        response = client.post(
            "/pools",
            json={
                "assetOne": token_x.address,
                "assetTwo": token_y.address,
                "amountOne": "100",
                "amountTwo": "100",
            },
            headers={"X-Caller": ALICE},
        )
        assert response.status_code == 402
        assert response.json()["error"] == "InsufficientAllowanceError"

    def test_undefined_ratio(self, client, context):
        token_x = make_token(context, "X", {ALICE: 1000})
        token_y = make_token(context, "Y", {ALICE: 1000})
        seed_pool(context, ALICE, token_x, token_y, 100, 100)
        response = client.get(f"/metrics/pair/{token_x.address}/{token_y.address}/tvl-ratio")
        assert response.status_code == 422
        assert response.json()["error"] == "DivisionByZeroError"

    def test_missing_pool_for_pair_metric(self, client, context):
        token_x = make_token(context, "X")
        token_y = make_token(context, "Y")
        response = client.get(f"/metrics/pair/{token_x.address}/{token_y.address}/tvl")
        assert response.status_code == 404
        assert response.json()["error"] == "PoolNotFoundError"


class TestRequestValidation:
    def test_missing_caller_header(self, client):
        response = client.post(
            "/registry/routing",
            json={"tokenAddress": UNUSED_TOKEN, "priceFeed": UNUSED_FEED},
        )
        assert response.status_code == 422

    def test_invalid_caller_header(self, client):
        response = client.post(
            "/registry/routing",
            json={"tokenAddress": UNUSED_TOKEN, "priceFeed": UNUSED_FEED},
            headers={"X-Caller": "0x1234"},
        )
        assert response.status_code == 400

    def test_invalid_address_in_path(self, client):
        response = client.get("/pools/not-an-address")
        assert response.status_code == 422

    def test_invalid_body_address(self, client):
        response = client.post(
            "/registry/routing",
            json={"tokenAddress": "0x1234", "priceFeed": UNUSED_FEED},
            headers={"X-Caller": ADMIN},
        )
        assert response.status_code == 422

    def test_invalid_quote_amount(self, client, context):
        token_x = make_token(context, "X", {ALICE: 1000})
        token_y = make_token(context, "Y", {ALICE: 1000})
        pool = seed_pool(context, ALICE, token_x, token_y, 100, 100)
        response = client.get(
            f"/pools/{pool.address}/quote",
            params={"inputAsset": token_x.address, "amount": "-5"},
        )
        assert response.status_code == 422

    def test_unknown_pair_metric(self, client, context):
        token_x = make_token(context, "X")
        token_y = make_token(context, "Y")
        response = client.get(f"/metrics/pair/{token_x.address}/{token_y.address}/volume")
        assert response.status_code == 404

    def test_feed_creation_owner_only(self, client):
        response = client.post("/feeds", json={"price": "100"}, headers={"X-Caller": BOB})
        assert response.status_code == 403
