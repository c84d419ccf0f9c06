"""
MetaVaultConfig — Конфигурация инициализации мета-хранилища

Модель группирует аргументы initialize(). Pydantic проверяет только типы;
бизнес-предусловия ("!owner", "!cap", ...) проверяет MetaVault.initialize,
чтобы поднимать исключения проекта.
"""

from pydantic import BaseModel, Field

from .vault import VaultParams


class MetaVaultConfig(BaseModel):
    """
    Аргументы инициализации.

    management_fee задаётся как годовая ставка (2_000_000 = 2%),
    performance_fee — как ставка на прибыль раунда (20_000_000 = 20%).
    """

    owner: str
    keeper: str
    fee_recipient: str
    management_fee: int = Field(0, ge=0)
    performance_fee: int = Field(0, ge=0)
    token_name: str
    token_symbol: str
    vault_params: VaultParams

    model_config = {"frozen": True}
