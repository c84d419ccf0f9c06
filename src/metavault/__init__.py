"""
Meta Vaults — агрегирующие хранилища поверх базовых option-selling vaults.

Пакет:
- core: fixed-point математика, доменные модели, JSON контракты
- external: интерфейсы внешних коллабораторов и их in-memory реализации
- vault: оркестрация депозитов, вывода и ролловера раундов
"""

__version__ = "0.1.0"
