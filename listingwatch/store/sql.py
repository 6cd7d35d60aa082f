"""SQLAlchemy-backed relational store."""

import logging
import uuid
from collections.abc import Sequence
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Numeric, String, Text, exists, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from listingwatch.errors import NotFoundError, StoreError
from listingwatch.models import (
    Complaint,
    ComplaintStatus,
    ComplianceStatus,
    Marketplace,
    MonitoredListing,
    Product,
)
from listingwatch.store.base import ListingStore

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all tables."""

    pass


class MarketplaceRow(Base):
    """Registered marketplace."""

    __tablename__ = "marketplaces"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    base_url: Mapped[str] = mapped_column(Text, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)


class ProductRow(Base):
    """Product with its minimum authorized price."""

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    sku: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    minimum_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)


class ListingRow(Base):
    """Monitored listing."""

    __tablename__ = "monitored_listings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    code: Mapped[Optional[str]] = mapped_column(String(32), nullable=True, index=True)
    product_id: Mapped[str] = mapped_column(ForeignKey("products.id"), nullable=False)
    marketplace_id: Mapped[str] = mapped_column(ForeignKey("marketplaces.id"), nullable=False)
    client_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    detected_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    minimum_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    origin: Mapped[str] = mapped_column(String(24), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)


class ComplaintRow(Base):
    """Client complaint about a listing."""

    __tablename__ = "complaints"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    client_id: Mapped[str] = mapped_column(String(36), nullable=False)
    product_id: Mapped[str] = mapped_column(ForeignKey("products.id"), nullable=False)
    marketplace_id: Mapped[str] = mapped_column(ForeignKey("marketplaces.id"), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    reported_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="requested", nullable=False)
    admin_comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)


def _marketplace(row: MarketplaceRow) -> Marketplace:
    return Marketplace(id=row.id, name=row.name, base_url=row.base_url, active=row.active)


def _product(row: ProductRow) -> Product:
    return Product(id=row.id, name=row.name, sku=row.sku, minimum_price=row.minimum_price, active=row.active)


def _listing(row: ListingRow) -> MonitoredListing:
    return MonitoredListing(
        id=row.id,
        url=row.url,
        code=row.code,
        product_id=row.product_id,
        marketplace_id=row.marketplace_id,
        client_id=row.client_id,
        detected_price=row.detected_price,
        minimum_price=row.minimum_price,
        status=row.status,  # type: ignore[arg-type]
        origin=row.origin,  # type: ignore[arg-type]
        updated_at=row.updated_at,
    )


def _complaint(row: ComplaintRow) -> Complaint:
    return Complaint(
        id=row.id,
        client_id=row.client_id,
        product_id=row.product_id,
        marketplace_id=row.marketplace_id,
        url=row.url,
        reported_price=row.reported_price,
        notes=row.notes,
        status=row.status,  # type: ignore[arg-type]
        admin_comment=row.admin_comment,
        created_at=row.created_at,
    )


class SqlStore(ListingStore):
    """Relational store on an async SQLAlchemy engine.

    Any SQLAlchemy failure is re-raised as StoreError with the driver message,
    so callers can surface it verbatim.
    """

    def __init__(self, database_url: str, echo: bool = False):
        """Initialize store.

        Args:
            database_url: Async SQLAlchemy URL, e.g. 'sqlite+aiosqlite:///listingwatch.db'.
            echo: Log emitted SQL.
        """
        self.database_url = database_url
        self.engine = create_async_engine(database_url, echo=echo)
        self.session_factory = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

    async def create_all(self) -> None:
        """Create tables that do not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()

    async def _scalars(self, statement: Any) -> list[Any]:
        try:
            async with self.session_factory() as session:
                result = await session.scalars(statement)
                return list(result.all())
        except SQLAlchemyError as e:
            logger.error(f"Query failed: {e}")
            raise StoreError(str(e)) from e

    async def _scalar(self, statement: Any) -> Any:
        try:
            async with self.session_factory() as session:
                return await session.scalar(statement)
        except SQLAlchemyError as e:
            logger.error(f"Query failed: {e}")
            raise StoreError(str(e)) from e

    async def _insert(self, row: Base) -> str:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(row)
                return row.id  # type: ignore[attr-defined]
        except SQLAlchemyError as e:
            logger.error(f"Insert into {row.__tablename__} failed: {e}")
            raise StoreError(str(e)) from e

    async def _update(self, table: type[Base], record_id: str, fields: dict[str, Any]) -> None:
        if "id" in fields:
            raise StoreError("Record id cannot be updated")
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        update(table).where(table.id == record_id).values(**fields)  # type: ignore[attr-defined]
                    )
        except SQLAlchemyError as e:
            logger.error(f"Update of {table.__tablename__} {record_id} failed: {e}")
            raise StoreError(str(e)) from e
        if result.rowcount == 0:  # type: ignore[attr-defined]
            raise NotFoundError(f"{table.__tablename__} record not found: {record_id}")

    # Directory

    async def list_marketplaces(self, active_only: bool = True) -> list[Marketplace]:
        statement = select(MarketplaceRow).order_by(MarketplaceRow.name)
        if active_only:
            statement = statement.where(MarketplaceRow.active.is_(True))
        return [_marketplace(row) for row in await self._scalars(statement)]

    async def list_products(self, active_only: bool = True) -> list[Product]:
        statement = select(ProductRow).order_by(ProductRow.name)
        if active_only:
            statement = statement.where(ProductRow.active.is_(True))
        return [_product(row) for row in await self._scalars(statement)]

    async def get_marketplace(self, marketplace_id: str) -> Marketplace | None:
        row = await self._scalar(select(MarketplaceRow).where(MarketplaceRow.id == marketplace_id))
        return _marketplace(row) if row else None

    async def get_product(self, product_id: str) -> Product | None:
        row = await self._scalar(select(ProductRow).where(ProductRow.id == product_id))
        return _product(row) if row else None

    async def add_marketplace(self, marketplace: Marketplace) -> str:
        return await self._insert(
            MarketplaceRow(
                id=marketplace.id or _new_id(),
                name=marketplace.name,
                base_url=marketplace.base_url,
                active=marketplace.active,
            )
        )

    async def add_product(self, product: Product) -> str:
        return await self._insert(
            ProductRow(
                id=product.id or _new_id(),
                name=product.name,
                sku=product.sku,
                minimum_price=product.minimum_price,
                active=product.active,
            )
        )

    # Monitored listings

    async def listing_exists(self, code: str) -> bool:
        return bool(await self._scalar(select(exists().where(ListingRow.code == code))))

    async def get_listing(self, listing_id: str) -> MonitoredListing | None:
        row = await self._scalar(select(ListingRow).where(ListingRow.id == listing_id))
        return _listing(row) if row else None

    async def get_listing_by_code(self, code: str) -> MonitoredListing | None:
        row = await self._scalar(select(ListingRow).where(ListingRow.code == code).limit(1))
        return _listing(row) if row else None

    async def insert_listing(self, listing: MonitoredListing) -> str:
        return await self._insert(
            ListingRow(
                id=listing.id or _new_id(),
                url=listing.url,
                code=listing.code,
                product_id=listing.product_id,
                marketplace_id=listing.marketplace_id,
                client_id=listing.client_id,
                detected_price=listing.detected_price,
                minimum_price=listing.minimum_price,
                status=listing.status,
                origin=listing.origin,
                updated_at=listing.updated_at or _utcnow(),
            )
        )

    async def update_listing(self, listing_id: str, fields: dict[str, Any]) -> None:
        await self._update(ListingRow, listing_id, fields)

    async def list_listings(self, status: ComplianceStatus | None = None) -> list[MonitoredListing]:
        statement = select(ListingRow).order_by(ListingRow.updated_at.desc())
        if status is not None:
            statement = statement.where(ListingRow.status == status)
        return [_listing(row) for row in await self._scalars(statement)]

    # Complaints

    async def complaint_exists(self, url: str, statuses: Sequence[ComplaintStatus] | None = None) -> bool:
        condition = ComplaintRow.url == url
        if statuses is not None:
            condition = condition & ComplaintRow.status.in_(list(statuses))
        return bool(await self._scalar(select(exists().where(condition))))

    async def insert_complaint(self, complaint: Complaint) -> str:
        return await self._insert(
            ComplaintRow(
                id=complaint.id or _new_id(),
                client_id=complaint.client_id,
                product_id=complaint.product_id,
                marketplace_id=complaint.marketplace_id,
                url=complaint.url,
                reported_price=complaint.reported_price,
                notes=complaint.notes,
                status=complaint.status,
                admin_comment=complaint.admin_comment,
                created_at=complaint.created_at or _utcnow(),
            )
        )

    async def get_complaint(self, complaint_id: str) -> Complaint | None:
        row = await self._scalar(select(ComplaintRow).where(ComplaintRow.id == complaint_id))
        return _complaint(row) if row else None

    async def update_complaint(self, complaint_id: str, fields: dict[str, Any]) -> None:
        await self._update(ComplaintRow, complaint_id, fields)

    async def list_complaints(
        self,
        status: ComplaintStatus | None = None,
        client_id: str | None = None,
    ) -> list[Complaint]:
        statement = select(ComplaintRow).order_by(ComplaintRow.created_at.desc())
        if status is not None:
            statement = statement.where(ComplaintRow.status == status)
        if client_id is not None:
            statement = statement.where(ComplaintRow.client_id == client_id)
        return [_complaint(row) for row in await self._scalars(statement)]
