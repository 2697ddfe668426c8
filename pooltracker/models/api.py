"""Pydantic models for the pooltracker HTTP API.

Amounts travel as decimal strings (Uint256) so that 256-bit values survive
JSON clients that parse numbers as doubles.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from pooltracker.models.types import Address, Uint256


class ApiModel(BaseModel):
    """Base model accepting both camelCase aliases and field names."""

    model_config = {"populate_by_name": True}


# --- Requests ---


class CreateTokenRequest(ApiModel):
    symbol: str = Field(min_length=1, max_length=32)
    name: str | None = None
    decimals: int = Field(default=18, ge=0, le=77)
    initial_supply: Uint256 = Field(default="0", alias="initialSupply")
    holder: Address | None = None


class ApproveRequest(ApiModel):
    spender: Address
    amount: Uint256


class CreateFeedRequest(ApiModel):
    price: Uint256
    decimals: int = Field(default=8, ge=0, le=77)
    description: str = ""
    base: bool = Field(default=False, description="Use as the metrics base price feed")


class UpdateFeedRequest(ApiModel):
    price: Uint256


class CreatePoolRequest(ApiModel):
    asset_one: Address = Field(alias="assetOne")
    asset_two: Address = Field(alias="assetTwo")
    amount_one: Uint256 = Field(alias="amountOne")
    amount_two: Uint256 = Field(alias="amountTwo")


class SwapRequest(ApiModel):
    input_asset: Address = Field(alias="inputAsset")
    input_amount: Uint256 = Field(alias="inputAmount")
    min_output: Uint256 = Field(default="0", alias="minOutput")


class AddLiquidityRequest(ApiModel):
    amount_one: Uint256 = Field(alias="amountOne")
    amount_two: Uint256 = Field(alias="amountTwo")
    min_shares: Uint256 = Field(default="0", alias="minShares")


class RemoveLiquidityRequest(ApiModel):
    shares: Uint256
    min_amount_one: Uint256 = Field(default="0", alias="minAmountOne")
    min_amount_two: Uint256 = Field(default="0", alias="minAmountTwo")


class AddRoutingRequest(ApiModel):
    token_address: Address = Field(alias="tokenAddress")
    price_feed: Address = Field(alias="priceFeed")


# --- Responses ---


class TokenResponse(ApiModel):
    address: str
    symbol: str
    name: str
    decimals: int
    total_supply: str = Field(alias="totalSupply")


class BalanceResponse(ApiModel):
    token: str
    holder: str
    balance: str


class AllowanceResponse(ApiModel):
    token: str
    owner: str
    spender: str
    allowance: str


class FeedResponse(ApiModel):
    address: str
    price: str
    decimals: int
    updated_at: int = Field(alias="updatedAt")
    description: str = ""


class PoolResponse(ApiModel):
    address: str
    asset_one: str = Field(alias="assetOneAddress")
    asset_two: str = Field(alias="assetTwoAddress")
    owner: str
    reserve_one: str = Field(alias="reserveOne")
    reserve_two: str = Field(alias="reserveTwo")
    total_shares: str = Field(alias="totalShares")
    fee_bps: int = Field(alias="feeBps")
    yield_amount: str = Field(alias="yield")
    status: str


class QuoteResponse(ApiModel):
    pool: str
    input_asset: str = Field(alias="inputAsset")
    input_amount: str = Field(alias="inputAmount")
    output_amount: str = Field(alias="outputAmount")


class SwapResponse(ApiModel):
    pool: str
    token_in: str = Field(alias="tokenIn")
    token_out: str = Field(alias="tokenOut")
    amount_in: str = Field(alias="amountIn")
    amount_out: str = Field(alias="amountOut")
    fee_amount: str = Field(alias="feeAmount")


class LiquidityResponse(ApiModel):
    pool: str
    provider: str
    amount_one: str = Field(alias="amountOne")
    amount_two: str = Field(alias="amountTwo")
    shares: str


class RegistryResponse(ApiModel):
    address: str
    owner: str
    pool_count: int = Field(alias="poolCount")
    fee_bps: int = Field(alias="feeBps")
    base_price_feed: str | None = Field(default=None, alias="basePriceFeed")


class AddressResponse(ApiModel):
    address: str | None


class AddressListResponse(ApiModel):
    addresses: list[str]


class RoutingEntryResponse(ApiModel):
    token_address: str = Field(alias="tokenAddress")
    price_feed: str = Field(alias="priceFeed")


class RoutingListResponse(ApiModel):
    entries: list[RoutingEntryResponse]


class ValueResponse(ApiModel):
    value: str


class ValuationResponse(ApiModel):
    token: str
    amount: str
    value: str
    source: str
    routing_token: str | None = Field(default=None, alias="routingToken")
    price_feed: str | None = Field(default=None, alias="priceFeed")


class PoolReportResponse(ApiModel):
    pool: str
    asset_one: str = Field(alias="assetOne")
    asset_two: str = Field(alias="assetTwo")
    reserve_one: str = Field(alias="reserveOne")
    reserve_two: str = Field(alias="reserveTwo")
    yield_amount: str = Field(alias="yield")
    pair_market_cap: str = Field(alias="pairMarketCap")
    pair_tvl: str = Field(alias="pairTvl")
    pair_tvl_ratio: str | None = Field(default=None, alias="pairTvlRatio")
    total_roi: str | None = Field(default=None, alias="totalRoi")
    daily_rate: str | None = Field(default=None, alias="dailyRate")
    daily_roi: str | None = Field(default=None, alias="dailyRoi")


class ErrorResponse(ApiModel):
    error: str
    detail: str
