# storefront/repositories/order_repo.py
import uuid
from collections import defaultdict
from datetime import datetime, timezone

from sqlalchemy import update
from sqlmodel import Session, select

from storefront.models.order import Order, OrderItem


class OrderRepository:
    """
    Data access layer for orders and order_items.

    NOTE:
      - No commits here; order creation is a multi-step transaction.
        The service is responsible for calling session.commit().
    """

    # ---- Orders ----

    def list_for_owner(
        self,
        session: Session,
        owner_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.owner_id == owner_id)
            .order_by(Order.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return session.exec(stmt).all()

    def list_all(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = select(Order).order_by(Order.created_at.desc()).offset(skip).limit(limit)
        return session.exec(stmt).all()

    def get_by_id(
        self,
        session: Session,
        order_id: uuid.UUID,
        fresh: bool = False,
    ) -> Order | None:
        return session.get(Order, order_id, populate_existing=fresh)

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()  # Assign PK
        session.refresh(order)
        return order

    def mark_paid_if_unpaid(
        self,
        session: Session,
        order_id: uuid.UUID,
        **payment_fields,
    ) -> bool:
        """
        Flip is_paid False -> True together with the payment result.
        Returns False if the order was already paid (or missing).
        """
        stmt = (
            update(Order)
            .where(Order.id == order_id)
            .where(Order.is_paid == False)  # noqa: E712
            .values(
                is_paid=True,
                paid_at=datetime.now(timezone.utc),
                **payment_fields,
            )
        )
        return session.execute(stmt).rowcount == 1

    def mark_delivered_if_undelivered(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> bool:
        stmt = (
            update(Order)
            .where(Order.id == order_id)
            .where(Order.is_delivered == False)  # noqa: E712
            .values(is_delivered=True, delivered_at=datetime.now(timezone.utc))
        )
        return session.execute(stmt).rowcount == 1

    # ---- Order items ----

    def list_items_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderItem]:
        stmt = select(OrderItem).where(OrderItem.order_id == order_id)
        return session.exec(stmt).all()

    def list_items_for_orders(
        self,
        session: Session,
        order_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, list[OrderItem]]:
        grouped: dict[uuid.UUID, list[OrderItem]] = defaultdict(list)
        if not order_ids:
            return grouped
        stmt = select(OrderItem).where(OrderItem.order_id.in_(order_ids))
        for item in session.exec(stmt).all():
            grouped[item.order_id].append(item)
        return grouped

    def create_items(
        self,
        session: Session,
        items: list[OrderItem],
    ) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        for item in items:
            session.refresh(item)
        return items
