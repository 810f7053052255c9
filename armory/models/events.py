from dataclasses import dataclass


@dataclass(frozen=True)
class WeaponSwung:
    """An avatar swung the weapon it is wielding."""

    avatar_id: str
    weapon_id: str
    kind: str
