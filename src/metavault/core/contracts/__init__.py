"""
Contract Validation Module

Модуль для валидации JSON контрактов Meta Vaults.
"""

from .validators import (
    ContractValidator,
    SchemaLoader,
    VaultSnapshotValidator,
    default_loader,
    validate_vault_snapshot,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "VaultSnapshotValidator",
    # Functions
    "default_loader",
    "validate_vault_snapshot",
]
