"""
SQLAlchemy ORM models for persistent storage.

Rows are the host's object store. Domain objects are materialised from
them at the start of a transaction and written back only on commit.

Every object row carries a version. The transaction workspace bumps it on
each write and the UPDATE only matches the version it loaded, so two
transactions that read the same row cannot both commit (StaleDataError).
"""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# Who holds a weapon row
HOLDER_PRINCIPAL = "principal"
HOLDER_SHOP = "shop"
HOLDER_AVATAR = "avatar"


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class TreasuryDB(Base):
    """The mint authority. At most one row exists."""

    __tablename__ = "treasuries"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    owner: Mapped[str] = mapped_column(String(255), index=True)
    total_supply: Mapped[int] = mapped_column(BigInteger, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}

    def __repr__(self) -> str:
        return f"<TreasuryDB(id={self.id}, supply={self.total_supply})>"


class ShopDB(Base):
    """
    A shared shop object.

    Its per-kind inventories live in shop_inventories; its stock lives in
    weapons rows held by the shop.
    """

    __tablename__ = "shops"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    earnings: Mapped[int] = mapped_column(BigInteger, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}

    inventories: Mapped[list["ShopInventoryDB"]] = relationship(
        back_populates="shop", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<ShopDB(id={self.id}, earnings={self.earnings})>"


class ShopInventoryDB(Base):
    """Price of one weapon kind at one shop."""

    __tablename__ = "shop_inventories"
    __table_args__ = (UniqueConstraint("shop_id", "kind", name="uq_shop_kind"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shop_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("shops.id", ondelete="CASCADE"), index=True
    )
    kind: Mapped[str] = mapped_column(String(255))
    price: Mapped[int] = mapped_column(BigInteger)

    shop: Mapped["ShopDB"] = relationship(back_populates="inventories")

    def __repr__(self) -> str:
        return f"<ShopInventoryDB(shop={self.shop_id}, kind={self.kind}, price={self.price})>"


class CapabilityDB(Base):
    """Ownership record of a shop's one and only OwnerCapability."""

    __tablename__ = "capabilities"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    shop_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("shops.id", ondelete="CASCADE"), unique=True
    )
    owner: Mapped[str] = mapped_column(String(255), index=True)

    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}

    def __repr__(self) -> str:
        return f"<CapabilityDB(id={self.id}, shop={self.shop_id}, owner={self.owner})>"


class AvatarDB(Base):
    __tablename__ = "avatars"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    owner: Mapped[str] = mapped_column(String(255), index=True)
    name: Mapped[str] = mapped_column(String(64))
    gold: Mapped[int] = mapped_column(BigInteger, default=0)
    weapon_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}

    def __repr__(self) -> str:
        return f"<AvatarDB(id={self.id}, name={self.name}, gold={self.gold})>"


class WeaponDB(Base):
    """
    A weapon and its single current holder.

    holder_type is one of principal / shop / avatar; holder_id is the
    principal name, shop id or avatar id respectively.
    """

    __tablename__ = "weapons"
    __table_args__ = (Index("ix_weapon_holder", "holder_type", "holder_id"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    kind: Mapped[str] = mapped_column(String(255))
    holder_type: Mapped[str] = mapped_column(String(16))
    holder_id: Mapped[str] = mapped_column(String(255))

    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}

    def __repr__(self) -> str:
        holder = f"{self.holder_type}:{self.holder_id}"
        return f"<WeaponDB(id={self.id}, kind={self.kind}, holder={holder})>"


class CoinDB(Base):
    """Free-standing gold owned by a principal."""

    __tablename__ = "coins"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    owner: Mapped[str] = mapped_column(String(255), index=True)
    value: Mapped[int] = mapped_column(BigInteger)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}

    def __repr__(self) -> str:
        return f"<CoinDB(id={self.id}, owner={self.owner}, value={self.value})>"
