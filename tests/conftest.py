"""
Общие фикстуры: токены, базовые vaults, роутер обмена и мета-хранилища
в трёх режимах размещения капитала.
"""

import pytest

from metavault.core.domain import MetaVaultConfig, VaultParams
from metavault.external import (
    InMemoryBaseVault,
    InMemorySwapRouter,
    InMemoryToken,
    encode_path,
)
from metavault.vault import DCARouter, DualTargetRouter, MetaVault, SingleTargetRouter


# =============================================================================
# АДРЕСА
# =============================================================================


def _address(byte: str) -> str:
    return "0x" + byte * 20


USDC = _address("a0")
WETH = _address("c0")

OWNER = _address("01")
KEEPER = _address("02")
FEE_RECIPIENT = _address("03")
USER = _address("04")
OTHER_USER = _address("05")

META_VAULT = _address("10")
CALL_VAULT = _address("20")
PUT_VAULT = _address("21")
YIELD_VAULT = _address("22")
DCA_VAULT = _address("23")
SWAP_ROUTER = _address("30")

DECIMALS = 6
MINIMUM_SUPPLY = 10**3
CAP = 10**15
DEPOSIT_AMOUNT = 100_000_000_000


# =============================================================================
# ФАБРИКИ
# =============================================================================


def make_params(**overrides) -> VaultParams:
    values = {
        "decimals": DECIMALS,
        "asset": USDC,
        "underlying": WETH,
        "minimum_supply": MINIMUM_SUPPLY,
        "cap": CAP,
    }
    values.update(overrides)
    return VaultParams(**values)


def make_config(**overrides) -> MetaVaultConfig:
    values = {
        "owner": OWNER,
        "keeper": KEEPER,
        "fee_recipient": FEE_RECIPIENT,
        "management_fee": 0,
        "performance_fee": 0,
        "token_name": "Ribbon USDC Meta Vault",
        "token_symbol": "rMETA",
        "vault_params": make_params(),
    }
    values.update(overrides)
    return MetaVaultConfig(**values)


def fund(token: InMemoryToken, account: str, amount: int, spender: str = META_VAULT) -> None:
    """Выпуск токенов аккаунту и approve на spender."""
    token.mint(account, amount)
    token.approve(spender, token.allowance(account, spender) + amount, sender=account)


# =============================================================================
# ФИКСТУРЫ
# =============================================================================


@pytest.fixture
def usdc():
    return InMemoryToken(USDC, "USDC", 6)


@pytest.fixture
def weth():
    return InMemoryToken(WETH, "WETH", 18)


@pytest.fixture
def call_vault(usdc):
    return InMemoryBaseVault(CALL_VAULT, usdc)


@pytest.fixture
def put_vault(usdc):
    return InMemoryBaseVault(PUT_VAULT, usdc)


@pytest.fixture
def yield_vault(usdc):
    return InMemoryBaseVault(YIELD_VAULT, usdc)


@pytest.fixture
def dca_vault(weth):
    return InMemoryBaseVault(DCA_VAULT, weth)


@pytest.fixture
def swap_router(usdc, weth):
    router = InMemorySwapRouter(SWAP_ROUTER, [usdc, weth])
    # 1 USDC (10**6) -> 0.001 WETH (10**15)
    router.set_rate(USDC, WETH, 10**15, 10**6)
    return router


@pytest.fixture
def straddle(usdc, call_vault, put_vault):
    vault = MetaVault(META_VAULT, usdc)
    vault.initialize(make_config(), DualTargetRouter(call_vault, put_vault))
    return vault


@pytest.fixture
def single(usdc, call_vault):
    vault = MetaVault(META_VAULT, usdc)
    vault.initialize(make_config(), SingleTargetRouter(call_vault))
    return vault


@pytest.fixture
def swap_path():
    return encode_path([USDC, WETH], [3000])


@pytest.fixture
def dca(usdc, weth, yield_vault, dca_vault, swap_router, swap_path):
    vault = MetaVault(META_VAULT, usdc)
    router = DCARouter(yield_vault, dca_vault, weth, swap_router, swap_path)
    vault.initialize(make_config(), router)
    return vault
