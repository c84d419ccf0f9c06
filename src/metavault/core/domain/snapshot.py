"""
VaultSnapshot — Модель снапшота мета-хранилища

Immutable Pydantic модель, представляющая снапшот состояния хранилища.
Полная совместимость с JSON Schema (core/contracts/schema/vault_snapshot.json).
"""

from enum import Enum

from pydantic import BaseModel, Field

from .vault import VaultParams, VaultState


# =============================================================================
# ENUMS
# =============================================================================


class RoutingMode(str, Enum):
    """
    Способ размещения капитала во внешних vaults.

    - SINGLE: один базовый vault
    - DUAL: два базовых vault поровну (straddle: covered call + put selling)
    - SWAP_THEN_TARGET: yield vault + обмен прибыли в DCA vault (DCA)
    """

    SINGLE = "SINGLE"
    DUAL = "DUAL"
    SWAP_THEN_TARGET = "SWAP_THEN_TARGET"


# =============================================================================
# NESTED MODELS
# =============================================================================


class Roles(BaseModel):
    owner: str = Field(..., min_length=1)
    keeper: str = Field(..., min_length=1)
    fee_recipient: str = Field(..., min_length=1)

    model_config = {"frozen": True}


class FeeSettings(BaseModel):
    """Ставки комиссий. management_fee хранится за раунд."""

    management_fee: int = Field(..., ge=0)
    performance_fee: int = Field(..., ge=0)

    model_config = {"frozen": True}


class RoundPrice(BaseModel):
    round: int = Field(..., ge=1)
    price_per_share: int = Field(..., gt=0)

    model_config = {"frozen": True}


class BaseVaultAllocation(BaseModel):
    """Позиция мета-хранилища в одном внешнем vault."""

    role: str = Field(..., min_length=1, description="Роль vault (yield, dca, call, put, target)")
    vault: str = Field(..., min_length=1)
    shares: int = Field(..., ge=0)
    value: int = Field(..., ge=0, description="Стоимость позиции в asset")
    queued_shares: int = Field(0, ge=0, description="Shares в очереди на вывод во внешнем vault")

    model_config = {"frozen": True}


# =============================================================================
# SNAPSHOT
# =============================================================================


class VaultSnapshot(BaseModel):
    """Снапшот мета-хранилища."""

    schema_version: str = Field("1", min_length=1)
    address: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    symbol: str = Field(..., min_length=1)
    routing_mode: RoutingMode

    params: VaultParams
    state: VaultState
    roles: Roles
    fees: FeeSettings

    total_supply: int = Field(..., ge=0)
    total_balance: int = Field(..., ge=0)
    idle_balance: int = Field(..., ge=0)
    withdrawal_reserve: int = Field(..., ge=0)
    round_prices: list[RoundPrice] = Field(default_factory=list)
    allocations: list[BaseVaultAllocation] = Field(default_factory=list)

    model_config = {"frozen": True}
