from armory.db.database import get_session, init_db
from armory.db.operations import (
    PrincipalAssets,
    avatar_from_rows,
    get_principal_assets,
    get_shop_row,
    get_weapon_rows_held_by,
    shop_from_rows,
    total_gold_in_store,
)
from armory.db.workspace import Workspace, transaction

__all__ = [
    "PrincipalAssets",
    "Workspace",
    "avatar_from_rows",
    "get_principal_assets",
    "get_session",
    "get_shop_row",
    "get_weapon_rows_held_by",
    "init_db",
    "shop_from_rows",
    "total_gold_in_store",
    "transaction",
]
