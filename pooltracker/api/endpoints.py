"""API endpoints for the pool registry, pools and metrics.

One endpoint per core operation. Mutating endpoints identify the caller by
the X-Caller header. Core calls run in the default executor. Reads are
bounded by a request timeout; writes always report their committed
outcome. Core errors are mapped to HTTP statuses by the handlers in
pooltracker.api.main.
"""

import asyncio
import os
from collections.abc import Callable
from functools import lru_cache
from typing import Annotated, TypeVar

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Path, Query

from pooltracker.context import PoolTrackerContext, context_from_env
from pooltracker.metrics import PoolReport
from pooltracker.models.api import (
    AddLiquidityRequest,
    AddressListResponse,
    AddressResponse,
    AddRoutingRequest,
    AllowanceResponse,
    ApproveRequest,
    BalanceResponse,
    CreateFeedRequest,
    CreatePoolRequest,
    CreateTokenRequest,
    FeedResponse,
    LiquidityResponse,
    PoolReportResponse,
    PoolResponse,
    QuoteResponse,
    RegistryResponse,
    RemoveLiquidityRequest,
    RoutingEntryResponse,
    RoutingListResponse,
    SwapRequest,
    SwapResponse,
    TokenResponse,
    UpdateFeedRequest,
    ValuationResponse,
    ValueResponse,
)
from pooltracker.models.types import normalize_address, validate_uint256
from pooltracker.oracles import StaticPriceFeed
from pooltracker.pools import LiquidityPool, RoutingEntry

logger = structlog.get_logger()

router = APIRouter()

# Upper bound on a single core call; the core itself never blocks
REQUEST_TIMEOUT_SECONDS = float(os.environ.get("POOLTRACKER_REQUEST_TIMEOUT", "5.0"))

ADDRESS_PATTERN = r"^0x[a-fA-F0-9]{40}$"

T = TypeVar("T")

AddressPath = Annotated[str, Path(pattern=ADDRESS_PATTERN)]
IndexPath = Annotated[int, Path(ge=0)]


@lru_cache(maxsize=1)
def get_default_context() -> PoolTrackerContext:
    """The process-wide context, built from the environment on first use."""
    return context_from_env()


def get_context() -> PoolTrackerContext:
    """Dependency provider for the context.

    Override this in tests to inject a fresh context:
        app.dependency_overrides[get_context] = lambda: context
    """
    return get_default_context()


def get_caller(x_caller: Annotated[str, Header(alias="X-Caller")]) -> str:
    """Caller identity of a mutating request."""
    try:
        return normalize_address(x_caller, validate=True)
    except ValueError as err:
        raise HTTPException(status_code=400, detail=f"Invalid X-Caller: {x_caller}") from err


ContextDep = Annotated[PoolTrackerContext, Depends(get_context)]
CallerDep = Annotated[str, Depends(get_caller)]


def parse_amount(value: str) -> int:
    try:
        return int(validate_uint256(value))
    except ValueError as err:
        raise HTTPException(status_code=422, detail=str(err)) from err


async def run_write(func: Callable[..., T], *args: object) -> T:
    """Run a mutating core call off the event loop.

    Not bounded by the request timeout; the worker thread cannot be
    cancelled once it starts.
    """
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, func, *args)


async def run_core(func: Callable[..., T], *args: object) -> T:
    """Run a read-only core call off the event loop, bounded by the request timeout."""
    loop = asyncio.get_event_loop()
    try:
        return await asyncio.wait_for(
            loop.run_in_executor(None, func, *args),
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
    except TimeoutError as err:
        logger.warning(
            "request_timeout",
            operation=getattr(func, "__name__", repr(func)),
            timeout_seconds=REQUEST_TIMEOUT_SECONDS,
        )
        raise HTTPException(status_code=504, detail="Operation timed out") from err


# --- Serializers ---


def pool_response(pool: LiquidityPool) -> PoolResponse:
    snapshot = pool.snapshot()
    return PoolResponse(
        address=snapshot.address,
        asset_one=snapshot.asset_one,
        asset_two=snapshot.asset_two,
        owner=snapshot.owner,
        reserve_one=str(snapshot.reserve_one),
        reserve_two=str(snapshot.reserve_two),
        total_shares=str(snapshot.total_shares),
        fee_bps=snapshot.fee_bps,
        yield_amount=str(snapshot.yield_amount),
        status=snapshot.status.value,
    )


def routing_response(entry: RoutingEntry) -> RoutingEntryResponse:
    return RoutingEntryResponse(token_address=entry.token_address, price_feed=entry.price_feed)


def feed_response(feed: StaticPriceFeed) -> FeedResponse:
    price, updated_at = feed.latest_price()
    return FeedResponse(
        address=feed.address,
        price=str(price),
        decimals=feed.decimals,
        updated_at=updated_at,
        description=feed.description,
    )


def report_response(report: PoolReport) -> PoolReportResponse:
    def optional(value: int | None) -> str | None:
        return None if value is None else str(value)

    return PoolReportResponse(
        pool=report.pool,
        asset_one=report.asset_one,
        asset_two=report.asset_two,
        reserve_one=str(report.reserve_one),
        reserve_two=str(report.reserve_two),
        yield_amount=str(report.yield_amount),
        pair_market_cap=str(report.pair_market_cap),
        pair_tvl=str(report.pair_tvl),
        pair_tvl_ratio=optional(report.pair_tvl_ratio),
        total_roi=optional(report.total_roi),
        daily_rate=optional(report.daily_rate),
        daily_roi=optional(report.daily_roi),
    )


# --- Tokens and feeds (in-memory ledgers and oracles) ---


@router.post("/tokens", status_code=201)
async def create_token(request: CreateTokenRequest, context: ContextDep) -> TokenResponse:
    token = context.create_token(
        request.symbol,
        initial_supply=int(request.initial_supply),
        holder=request.holder,
        decimals=request.decimals,
        name=request.name,
    )
    return TokenResponse(
        address=token.address,
        symbol=token.symbol,
        name=token.name,
        decimals=token.decimals,
        total_supply=str(token.total_supply()),
    )


@router.post("/tokens/{token}/approve")
async def approve(
    token: AddressPath, request: ApproveRequest, context: ContextDep, caller: CallerDep
) -> AllowanceResponse:
    ledger = context.ledgers.get(token)
    approve_fn = getattr(ledger, "approve", None)
    if approve_fn is None:
        raise HTTPException(status_code=400, detail=f"Ledger {token} does not support approve")
    approve_fn(caller, request.spender, int(request.amount))
    logger.info("allowance_set", token=ledger.address, owner=caller, spender=request.spender)
    return AllowanceResponse(
        token=ledger.address,
        owner=caller,
        spender=normalize_address(request.spender),
        allowance=str(ledger.allowance(caller, request.spender)),
    )


@router.get("/tokens/{token}/balance/{holder}")
async def balance_of(token: AddressPath, holder: AddressPath, context: ContextDep) -> BalanceResponse:
    ledger = context.ledgers.get(token)
    return BalanceResponse(
        token=ledger.address,
        holder=normalize_address(holder),
        balance=str(ledger.balance_of(holder)),
    )


@router.post("/feeds", status_code=201)
async def create_feed(
    request: CreateFeedRequest, context: ContextDep, caller: CallerDep
) -> FeedResponse:
    _require_admin(context, caller)
    feed = context.create_price_feed(
        int(request.price),
        decimals=request.decimals,
        description=request.description,
        base=request.base,
    )
    return feed_response(feed)


@router.put("/feeds/{feed}")
async def update_feed(
    feed: AddressPath, request: UpdateFeedRequest, context: ContextDep, caller: CallerDep
) -> FeedResponse:
    _require_admin(context, caller)
    oracle = context.feeds.get(feed)
    if not isinstance(oracle, StaticPriceFeed):
        raise HTTPException(status_code=400, detail=f"Feed {feed} cannot be updated")
    oracle.update_price(int(request.price))
    return feed_response(oracle)


def _require_admin(context: PoolTrackerContext, caller: str) -> None:
    if caller != context.owner:
        raise HTTPException(status_code=403, detail=f"{caller} is not the registry owner")


# --- Registry ---


@router.get("/registry")
async def registry_info(context: ContextDep) -> RegistryResponse:
    registry = context.registry
    return RegistryResponse(
        address=registry.address,
        owner=registry.owner,
        pool_count=registry.pool_count,
        fee_bps=registry.config.fee_bps,
        base_price_feed=context.metrics.base_price_feed,
    )


@router.post("/pools", status_code=201)
async def create_pool(
    request: CreatePoolRequest, context: ContextDep, caller: CallerDep
) -> PoolResponse:
    pool = await run_write(
        context.registry.create_pool,
        caller,
        request.asset_one,
        request.asset_two,
        int(request.amount_one),
        int(request.amount_two),
    )
    return pool_response(pool)


@router.get("/registry/pair/{token_a}/{token_b}")
async def pair_to_pool(token_a: AddressPath, token_b: AddressPath, context: ContextDep) -> AddressResponse:
    pool = context.registry.pair_to_pool(token_a, token_b)
    return AddressResponse(address=pool.address if pool is not None else None)


@router.get("/registry/tokens")
async def list_tokens(context: ContextDep) -> AddressListResponse:
    return AddressListResponse(addresses=list(context.registry.all_tokens()))


@router.get("/registry/tokens/{index}")
async def token_at(index: IndexPath, context: ContextDep) -> AddressResponse:
    return AddressResponse(address=context.registry.tokens(index))


@router.get("/registry/pool-pairs/{token}")
async def list_pool_pairs(token: AddressPath, context: ContextDep) -> AddressListResponse:
    return AddressListResponse(addresses=list(context.registry.all_pool_pairs(token)))


@router.get("/registry/pool-pairs/{token}/{index}")
async def pool_pair_at(token: AddressPath, index: IndexPath, context: ContextDep) -> AddressResponse:
    return AddressResponse(address=context.registry.pool_pairs(token, index))


@router.get("/registry/pool-owner/{creator}")
async def list_pool_owner(creator: AddressPath, context: ContextDep) -> AddressListResponse:
    return AddressListResponse(addresses=list(context.registry.all_pool_owner(creator)))


@router.get("/registry/pool-owner/{creator}/{index}")
async def pool_owner_at(creator: AddressPath, index: IndexPath, context: ContextDep) -> AddressResponse:
    return AddressResponse(address=context.registry.pool_owner(creator, index))


@router.get("/registry/routing")
async def list_routing(context: ContextDep) -> RoutingListResponse:
    entries = context.registry.all_routing_addresses()
    return RoutingListResponse(entries=[routing_response(entry) for entry in entries])


@router.get("/registry/routing/{index}")
async def routing_at(index: IndexPath, context: ContextDep) -> RoutingEntryResponse:
    return routing_response(context.registry.routing_addresses(index))


@router.post("/registry/routing", status_code=201)
async def add_routing_address(
    request: AddRoutingRequest, context: ContextDep, caller: CallerDep
) -> RoutingEntryResponse:
    entry = context.registry.add_routing_address(caller, request.token_address, request.price_feed)
    return routing_response(entry)


# --- Pools ---


@router.get("/pools/{pool}")
async def get_pool(pool: AddressPath, context: ContextDep) -> PoolResponse:
    return pool_response(context.registry.get_pool(pool))


@router.get("/pools/{pool}/quote")
async def quote(
    pool: AddressPath,
    context: ContextDep,
    input_asset: Annotated[str, Query(alias="inputAsset", pattern=ADDRESS_PATTERN)],
    amount: Annotated[str, Query()],
) -> QuoteResponse:
    liquidity_pool = context.registry.get_pool(pool)
    input_amount = parse_amount(amount)
    output_amount = liquidity_pool.get_swap_quantity(input_asset, input_amount)
    return QuoteResponse(
        pool=liquidity_pool.address,
        input_asset=normalize_address(input_asset),
        input_amount=str(input_amount),
        output_amount=str(output_amount),
    )


@router.post("/pools/{pool}/swap")
async def swap(
    pool: AddressPath, request: SwapRequest, context: ContextDep, caller: CallerDep
) -> SwapResponse:
    liquidity_pool = context.registry.get_pool(pool)
    result = await run_write(
        liquidity_pool.swap,
        caller,
        request.input_asset,
        int(request.input_amount),
        int(request.min_output),
    )
    return SwapResponse(
        pool=result.pool_address,
        token_in=result.token_in,
        token_out=result.token_out,
        amount_in=str(result.amount_in),
        amount_out=str(result.amount_out),
        fee_amount=str(result.fee_amount),
    )


@router.post("/pools/{pool}/liquidity")
async def add_liquidity(
    pool: AddressPath, request: AddLiquidityRequest, context: ContextDep, caller: CallerDep
) -> LiquidityResponse:
    liquidity_pool = context.registry.get_pool(pool)
    change = await run_write(
        liquidity_pool.add_liquidity,
        caller,
        int(request.amount_one),
        int(request.amount_two),
        int(request.min_shares),
    )
    return LiquidityResponse(
        pool=change.pool_address,
        provider=change.provider,
        amount_one=str(change.amount_one),
        amount_two=str(change.amount_two),
        shares=str(change.shares),
    )


@router.post("/pools/{pool}/liquidity/remove")
async def remove_liquidity(
    pool: AddressPath, request: RemoveLiquidityRequest, context: ContextDep, caller: CallerDep
) -> LiquidityResponse:
    liquidity_pool = context.registry.get_pool(pool)
    change = await run_write(
        liquidity_pool.remove_liquidity,
        caller,
        int(request.shares),
        int(request.min_amount_one),
        int(request.min_amount_two),
    )
    return LiquidityResponse(
        pool=change.pool_address,
        provider=change.provider,
        amount_one=str(change.amount_one),
        amount_two=str(change.amount_two),
        shares=str(change.shares),
    )


# --- Metrics ---


@router.get("/metrics/usd-value/{token}")
async def usd_value(
    token: AddressPath, context: ContextDep, amount: Annotated[str, Query()]
) -> ValuationResponse:
    valuation = await run_core(context.metrics.valuate, token, parse_amount(amount))
    return ValuationResponse(
        token=valuation.token,
        amount=str(valuation.amount),
        value=str(valuation.value),
        source=valuation.source.value,
        routing_token=valuation.routing_token,
        price_feed=valuation.price_feed,
    )


@router.get("/metrics/market-cap/{token}")
async def market_cap(token: AddressPath, context: ContextDep) -> ValueResponse:
    return ValueResponse(value=str(await run_core(context.metrics.market_cap, token)))


@router.get("/metrics/tvl/{token}")
async def tvl(token: AddressPath, context: ContextDep) -> ValueResponse:
    return ValueResponse(value=str(await run_core(context.metrics.tvl, token)))


@router.get("/metrics/tvl-ratio/{token}")
async def tvl_ratio(token: AddressPath, context: ContextDep) -> ValueResponse:
    return ValueResponse(value=str(await run_core(context.metrics.tvl_ratio, token)))


@router.get("/metrics/pair/{token_a}/{token_b}")
async def pool_report(token_a: AddressPath, token_b: AddressPath, context: ContextDep) -> PoolReportResponse:
    report = await run_core(context.metrics.pool_report, token_a, token_b)
    return report_response(report)


# Pair metrics sharing the (token_a, token_b) -> int signature
PAIR_METRICS = {
    "market-cap": "pair_market_cap",
    "tvl": "pair_tvl",
    "tvl-ratio": "pair_tvl_ratio",
    "total-roi": "total_roi",
    "daily-rate": "daily_rate",
    "daily-roi": "daily_roi",
}


@router.get("/metrics/pair/{token_a}/{token_b}/{metric}")
async def pair_metric(
    token_a: AddressPath, token_b: AddressPath, metric: str, context: ContextDep
) -> ValueResponse:
    method_name = PAIR_METRICS.get(metric)
    if method_name is None:
        raise HTTPException(
            status_code=404,
            detail=f"Unknown pair metric '{metric}', expected one of {sorted(PAIR_METRICS)}",
        )
    value = await run_core(getattr(context.metrics, method_name), token_a, token_b)
    return ValueResponse(value=str(value))
