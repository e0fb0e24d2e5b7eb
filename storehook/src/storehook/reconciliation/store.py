"""Customer record upserts keyed by the platform's customer id."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from storehook.database.connection import DatabaseManager
from storehook.database.models import Customer
from storehook.events import ClassifiedEvent, EnrichmentResult, EventKind
from storehook.reconciliation.locks import KeyedLock
from storehook.reconciliation.merge import collect_fields, merge_fields
from storehook.utils.exceptions import StoreError

logger = structlog.get_logger(__name__)


class ReconciliationStore:
    """Owns the customer record set.

    Upserts for the same external id are serialized in-process; the unique
    constraint on ``external_customer_id`` covers writers in other processes.
    """

    def __init__(self, db_manager: DatabaseManager, default_currency: str = "SAR") -> None:
        self.db_manager = db_manager
        self.default_currency = default_currency
        self._locks = KeyedLock()

    async def get(self, external_customer_id: str) -> Optional[Customer]:
        """Fetch the record for an external customer id, if any."""
        async with self.db_manager.session() as session:
            result = await session.execute(
                select(Customer).where(
                    Customer.external_customer_id == external_customer_id
                )
            )
            return result.scalar_one_or_none()

    async def upsert(
        self,
        event: ClassifiedEvent,
        enrichment: Optional[EnrichmentResult] = None,
    ) -> int:
        """
        Create or merge the customer record an event refers to.

        Event fields are applied first, enrichment fields after them.

        Args:
            event: Classified event of a known kind
            enrichment: Details fetched for the same customer, if any

        Returns:
            Internal id of the affected record

        Raises:
            ValueError: For unknown events or events without a customer id
            StoreError: When the record cannot be written
        """
        if event.kind is EventKind.UNKNOWN:
            raise ValueError("Unknown events are never persisted")
        external_id = event.external_customer_id
        if not external_id:
            raise ValueError("Event has no external customer id")

        updates = [collect_fields(event.profile, event.order)]
        if enrichment is not None:
            updates.append(collect_fields(enrichment.profile, enrichment.order))

        async with self._locks.acquire(external_id):
            try:
                return await self._apply(external_id, updates)
            except IntegrityError as exc:
                # Another writer inserted the same id first; merge into theirs
                logger.warning(
                    "Upsert conflict, re-reading record",
                    external_customer_id=external_id,
                    error=str(exc.orig),
                )
            except SQLAlchemyError as exc:
                raise StoreError(
                    "Failed to persist customer record",
                    external_customer_id=external_id,
                    original_error=exc,
                ) from exc

            try:
                return await self._apply(external_id, updates)
            except SQLAlchemyError as exc:
                raise StoreError(
                    "Failed to persist customer record after conflict",
                    external_customer_id=external_id,
                    original_error=exc,
                ) from exc

    async def _apply(self, external_id: str, updates: list[Dict[str, Any]]) -> int:
        async with self.db_manager.session() as session:
            async with session.begin():
                result = await session.execute(
                    select(Customer)
                    .where(Customer.external_customer_id == external_id)
                    .with_for_update()
                )
                customer = result.scalar_one_or_none()
                created = customer is None

                if created:
                    customer = Customer(external_customer_id=external_id)
                    session.add(customer)

                changed: list[str] = []
                for fields in updates:
                    changed.extend(merge_fields(customer, fields))

                if not customer.currency:
                    customer.currency = self.default_currency

                now = datetime.now(timezone.utc)
                if created:
                    customer.created_at = now
                customer.updated_at = now

                await session.flush()
                record_id = customer.id

        logger.info(
            "Customer record created" if created else "Customer record merged",
            record_id=record_id,
            external_customer_id=external_id,
            changed_fields=sorted(set(changed)),
        )
        return record_id
