"""
External collaborators of Meta Vaults

Протоколы токенов, базовых vaults и роутера обмена, их реализации в памяти
и кодек пути обмена.
"""

# Interfaces
from metavault.external.interfaces import (
    BaseVault,
    FungibleToken,
    SwapRouter,
)

# In-memory implementations
from metavault.external.memory import (
    POOL_FEE_DENOMINATOR,
    InMemoryBaseVault,
    InMemorySwapRouter,
    InMemoryToken,
)

# Swap Path
from metavault.external.swap_path import (
    ADDRESS_SIZE,
    FEE_SIZE,
    MIN_PATH_SIZE,
    decode_path,
    encode_path,
    validate_swap_path,
)

__all__ = [
    # Interfaces
    "FungibleToken",
    "BaseVault",
    "SwapRouter",
    # In-memory
    "InMemoryToken",
    "InMemoryBaseVault",
    "InMemorySwapRouter",
    "POOL_FEE_DENOMINATOR",
    # Swap Path
    "ADDRESS_SIZE",
    "FEE_SIZE",
    "MIN_PATH_SIZE",
    "encode_path",
    "decode_path",
    "validate_swap_path",
]
