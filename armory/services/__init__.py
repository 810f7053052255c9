"""
Armory services.

Settlement, equipment, the four marketplace flows and shop administration.
"""

from armory.services.admin import (
    MAX_FORGE_BATCH,
    forge_into_stock,
    forge_weapons,
    open_shop,
    restock_all,
    transfer_capability,
    withdraw_to,
)
from armory.services.equipment import swing, unwield, wield
from armory.services.marketplace import Receipt, buy, rent, sell, trade
from armory.services.settlement import pay_in_full, purchase, trade_in, trade_in_credit

__all__ = [
    # Administration
    "MAX_FORGE_BATCH",
    "forge_into_stock",
    "forge_weapons",
    "open_shop",
    "restock_all",
    "transfer_capability",
    "withdraw_to",
    # Equipment
    "swing",
    "unwield",
    "wield",
    # Flows
    "Receipt",
    "buy",
    "rent",
    "sell",
    "trade",
    # Settlement
    "pay_in_full",
    "purchase",
    "trade_in",
    "trade_in_credit",
]
