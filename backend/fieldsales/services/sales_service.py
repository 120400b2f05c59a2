# Overview: Service-layer operations for sales; the pick/sell/return state machine and payment chain.

"""
Sale Record Engine

WHY: A Sale is a quantity of one product taken out of stock by an agent,
manager or admin. It then either sells (possibly in parts) or comes back.
Payment is recorded by the field (paid) and confirmed by the owning admin.

STATE MACHINE (product_status x payment_status):
- product_status: picked -> sold | returned. sold and returned are terminal;
  asking for a different product status afterwards is a conflict, asking for
  the same one again is a no-op (no second metric bump, no second restock).
- payment_status: pending -> paid -> confirmed, or pending -> cancelled.
  "confirmed" is only reachable through confirm_payment (admin only).

PARTIAL SALE: selling fewer units than were picked splits the record. A new
Sale carries the sold units; the original keeps the remainder, still picked.
Units and money are conserved: 4 + 6 == 10 and 20 + 30 == 50.

STOCK: pick_inventory debits stock and inserts the Sale in one transaction.
Returning a picked sale credits stock in the same transaction as the status
change. Deleting a sale never restocks.

MULTI-TENANT: owner_admin_id comes from hierarchy_service at creation and is
never recomputed. Every read and write is filtered by the caller's Scope;
stats use the same Scope as list/read.

NOTIFICATIONS: collected while the unit of work runs, dispatched only after
it commits (notification_service never raises).
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy import case, func, update

from ..extensions import db
from ..errors import (
    AccessDeniedError,
    AlreadyConfirmedError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ..models import Agent, Manager, Product, Sale
from ..models.communications import (
    TYPE_PAYMENT_CONFIRMED,
    TYPE_PAYMENT_RECEIVED,
    TYPE_PRODUCT_PICKED,
    TYPE_PRODUCT_RETURNED,
    TYPE_PRODUCT_SOLD,
)
from ..models.sales import (
    PAYMENT_STATUS_CANCELLED,
    PAYMENT_STATUS_CONFIRMED,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PENDING,
    PAYMENT_STATUSES,
    PRODUCT_STATUS_PICKED,
    PRODUCT_STATUS_RETURNED,
    PRODUCT_STATUS_SOLD,
    PRODUCT_STATUSES,
)
from ..validation import (
    ModelValidationPolicy,
    parse_bool,
    parse_int,
    parse_quantity,
    validate_payload,
)
from fieldsales.time_utils import utcnow
from . import hierarchy_service, inventory_service, notification_service
from .concurrency import lock_for_update, run_with_retry
from .hierarchy_service import Principal


SALE_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"customer_name", "customer_phone", "customer_address", "notes"},
)

# camelCase names sent by the dashboards
SALE_ALIASES = {
    "productId": "product_id",
    "customerName": "customer_name",
    "customerPhone": "customer_phone",
    "customerAddress": "customer_address",
    "markSold": "mark_sold",
    "productStatus": "product_status",
    "paymentStatus": "payment_status",
    "soldQuantity": "sold_quantity",
}

# Allowed payment moves through update_sale; confirmation has its own operation
_PAYMENT_TRANSITIONS = {
    PAYMENT_STATUS_PENDING: {PAYMENT_STATUS_PAID, PAYMENT_STATUS_CANCELLED},
    PAYMENT_STATUS_PAID: set(),
    PAYMENT_STATUS_CONFIRMED: set(),
    PAYMENT_STATUS_CANCELLED: set(),
}

REF_SALE = "Sales"


@dataclass
class SaleResult:
    """Outcome of a sale mutation plus the confirmation message for the caller."""
    message: str
    sale: Sale
    remaining_pick: Sale | None = None

    def to_dict(self) -> dict:
        body = {"message": self.message, "sale": self.sale.to_dict()}
        if self.remaining_pick is not None:
            body["remaining_pick"] = self.remaining_pick.to_dict()
        return body


def _normalize_keys(payload) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return {SALE_ALIASES.get(k, k): v for k, v in payload.items()}


def _money(cents: int) -> str:
    return f"${cents / 100:,.2f}"


def _set_quantity(sale: Sale, quantity: int) -> None:
    """Only way quantity changes after insert; keeps total == unit * quantity."""
    if quantity < 1:
        raise ValidationError("quantity must be at least 1")
    sale.quantity = quantity
    sale.total_price_cents = sale.unit_price_cents * quantity


def _bump_agent_metrics(agent_id: int | None, revenue_cents: int) -> None:
    if agent_id is None:
        return
    db.session.execute(
        update(Agent)
        .where(Agent.id == agent_id)
        .values(
            total_sales=Agent.total_sales + 1,
            total_revenue_cents=Agent.total_revenue_cents + revenue_cents,
        )
        .execution_options(synchronize_session=False)
    )


def _scoped_sale(scope: hierarchy_service.Scope, sale_id: int, *, lock: bool = False) -> Sale:
    query = scope.apply(db.session.query(Sale).filter(Sale.id == sale_id), Sale)
    if lock:
        query = lock_for_update(query)
    sale = query.first()
    if not sale:
        raise NotFoundError("Sale not found")
    return sale


def _admin_event(sale: Sale, type_: str, title: str, message: str, *, actor: Principal | None = None):
    recipient = hierarchy_service.admin_user_id(sale.owner_admin_id)
    if actor is not None and recipient == actor.id:
        return None
    return notification_service.event(
        recipient, "admin", type_, title, message, (REF_SALE, sale.id),
        sender_id=actor.id if actor else None,
    )


def _manager_event(sale: Sale, type_: str, title: str, message: str, *, actor: Principal | None = None):
    recipient = hierarchy_service.manager_user_id(sale.manager)
    if recipient is None or (actor is not None and recipient == actor.id):
        return None
    return notification_service.event(
        recipient, "manager", type_, title, message, (REF_SALE, sale.id),
        sender_id=actor.id if actor else None,
    )


def _agent_event(sale: Sale, type_: str, title: str, message: str, *, actor: Principal | None = None):
    recipient = hierarchy_service.agent_user_id(sale.agent)
    if recipient is None or (actor is not None and recipient == actor.id):
        return None
    return notification_service.event(
        recipient, "agent", type_, title, message, (REF_SALE, sale.id),
        sender_id=actor.id if actor else None,
    )


def _dispatch(events: list) -> None:
    notification_service.dispatch([e for e in events if e is not None])


def pick_inventory(
    *,
    product: Product,
    quantity: int,
    owner_admin_id: int,
    agent: Agent | None = None,
    manager: Manager | None = None,
    details: dict | None = None,
    mark_sold: bool = False,
) -> Sale:
    """
    Debit stock and insert the Sale in the caller's transaction.

    Does not commit. If anything after the conditional debit fails, rolling
    back the session undoes the debit as well.
    """
    product = inventory_service.reserve(product.id, quantity, owner_admin_id)

    details = details or {}
    sale = Sale(
        product=product,
        agent=agent,
        manager=manager,
        owner_admin_id=owner_admin_id,
        unit_price_cents=product.price_cents,
        customer_name=details.get("customer_name") or "N/A",
        customer_phone=details.get("customer_phone"),
        customer_address=details.get("customer_address"),
        notes=details.get("notes"),
        product_status=PRODUCT_STATUS_SOLD if mark_sold else PRODUCT_STATUS_PICKED,
        payment_status=PAYMENT_STATUS_PENDING,
        sold_at=utcnow() if mark_sold else None,
    )
    _set_quantity(sale, quantity)
    db.session.add(sale)
    db.session.flush()

    if mark_sold and agent is not None:
        _bump_agent_metrics(agent.id, sale.total_price_cents)

    return sale


def create_sale(principal: Principal, payload: dict) -> SaleResult:
    """
    Pick stock for the caller (agent, manager or admin).

    Raises ValidationError, NotFoundError, AccessDeniedError,
    InsufficientStockError. Nothing is written unless every check passes.
    """
    data = _normalize_keys(payload)

    if data.get("product_id") is None:
        raise ValidationError("product_id is required")
    product_id = parse_int(data["product_id"], "product_id")
    quantity = parse_quantity(data.get("quantity"))
    mark_sold = parse_bool(data.get("mark_sold"))

    detail_input = {k: data[k] for k in SALE_CREATE_POLICY.writable_fields if k in data}
    if not str(detail_input.get("customer_name") or "").strip():
        detail_input.pop("customer_name", None)
    details = validate_payload(model=Sale, payload=detail_input, policy=SALE_CREATE_POLICY, partial=True)

    owner_admin_id = hierarchy_service.require_owner_admin(principal)

    agent = None
    manager = None
    if principal.is_agent:
        agent = hierarchy_service.get_agent_profile(principal)
        manager = agent.manager
    elif principal.is_manager:
        manager = hierarchy_service.get_manager_profile(principal)
    elif not principal.is_admin:
        raise AccessDeniedError("Access denied")

    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    if product.owner_admin_id != owner_admin_id:
        raise AccessDeniedError("Access denied")

    def _op():
        sale = pick_inventory(
            product=product,
            quantity=quantity,
            owner_admin_id=owner_admin_id,
            agent=agent,
            manager=manager,
            details=details,
            mark_sold=mark_sold,
        )
        picked_by = agent.name if agent else hierarchy_service.actor_label(principal)
        events = [
            _manager_event(
                sale, TYPE_PRODUCT_PICKED, "Product Picked",
                f"Product {product.name} has been picked by {picked_by}",
                actor=principal,
            ),
            _admin_event(
                sale, TYPE_PRODUCT_PICKED, "Product Picked",
                f"Product {product.name} has been picked",
                actor=principal,
            ),
        ]
        db.session.commit()
        return sale, events

    sale, events = run_with_retry(_op)
    current_app.logger.info(
        "Sale %s created: %s x product %s for admin %s (%s)",
        sale.id, sale.quantity, product_id, owner_admin_id, sale.product_status,
    )
    _dispatch(events)
    return SaleResult("Sale created successfully", sale)


def list_sales(principal: Principal) -> list[Sale]:
    """Sales in the caller's scope, newest first. Empty list when none match."""
    scope = hierarchy_service.require_scope(principal)
    return (
        scope.apply(db.session.query(Sale), Sale)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .all()
    )


def get_sale(principal: Principal, sale_id: int) -> Sale:
    scope = hierarchy_service.require_scope(principal)
    return _scoped_sale(scope, sale_id)


def _parse_update(patch) -> dict:
    """Validate the whole patch up front; returns the recognised fields only."""
    data = _normalize_keys(patch)
    parsed = {}

    product_status = data.get("product_status")
    if product_status not in (None, ""):
        product_status = str(product_status).strip().lower()
        if product_status not in PRODUCT_STATUSES:
            raise ValidationError(f"product_status must be one of: {', '.join(PRODUCT_STATUSES)}")
        parsed["product_status"] = product_status

    payment_status = data.get("payment_status")
    if payment_status not in (None, ""):
        payment_status = str(payment_status).strip().lower()
        if payment_status not in PAYMENT_STATUSES:
            raise ValidationError(f"payment_status must be one of: {', '.join(PAYMENT_STATUSES)}")
        if payment_status == PAYMENT_STATUS_CONFIRMED:
            raise ValidationError("Payments are confirmed through the confirm-payment operation")
        parsed["payment_status"] = payment_status

    notes = data.get("notes")
    if notes is not None:
        if not isinstance(notes, str):
            raise ValidationError("notes must be a string")
        parsed["notes"] = notes.strip() or None

    if parsed.get("product_status") == PRODUCT_STATUS_SOLD and data.get("sold_quantity") is not None:
        sold_quantity = parse_int(data["sold_quantity"], "sold_quantity")
        if sold_quantity < 1:
            raise ValidationError("sold_quantity must be at least 1")
        parsed["sold_quantity"] = sold_quantity

    return parsed


def _check_transitions(sale: Sale, changes: dict) -> None:
    """Reject illegal moves against the current (locked) state before mutating."""
    new_product = changes.get("product_status")
    if new_product and new_product != sale.product_status:
        if sale.product_status != PRODUCT_STATUS_PICKED:
            raise ConflictError(
                f"Sale is already {sale.product_status}; it cannot become {new_product}"
            )
        if new_product == PRODUCT_STATUS_PICKED:
            raise ConflictError("A sale cannot move back to picked")

    sold_quantity = changes.get("sold_quantity")
    if new_product == PRODUCT_STATUS_SOLD and sold_quantity is not None:
        if sale.product_status == PRODUCT_STATUS_PICKED and sold_quantity > sale.quantity:
            raise ConflictError(
                "sold_quantity cannot exceed picked quantity",
                details={"picked": sale.quantity, "requested": sold_quantity},
            )

    new_payment = changes.get("payment_status")
    if new_payment and new_payment != sale.payment_status:
        if new_payment not in _PAYMENT_TRANSITIONS.get(sale.payment_status, set()):
            raise ConflictError(
                f"Payment status cannot change from {sale.payment_status} to {new_payment}"
            )


def update_sale(principal: Principal, sale_id: int, patch: dict) -> SaleResult:
    """
    Sparse update of a sale in the caller's scope.

    Branches (several may fire in one call, in this order):
    - notes: replaced
    - payment_status=paid: manager flag and timestamp set; owner admin and
      the sale's manager are told (never the actor themself)
    - payment_status=cancelled: recorded
    - product_status=sold: full sale, or a split when sold_quantity is less
      than the picked quantity; agent metrics move by the sold revenue only
    - product_status=returned: stock released once, sold_at cleared
    """
    changes = _parse_update(patch)
    scope = hierarchy_service.require_scope(principal)

    def _op():
        sale = _scoped_sale(scope, sale_id, lock=True)
        _check_transitions(sale, changes)

        events = []
        remaining_pick = None
        message = "Sale updated successfully"
        now = utcnow()
        product_name = sale.product.name if sale.product else f"#{sale.product_id}"

        if "notes" in changes:
            sale.notes = changes["notes"]

        new_payment = changes.get("payment_status")
        if new_payment and new_payment != sale.payment_status:
            sale.payment_status = new_payment
            if new_payment == PAYMENT_STATUS_PAID:
                sale.payment_confirmed_by_manager = True
                sale.payment_confirmed_at = now
                text = (
                    f"{hierarchy_service.actor_label(principal)} recorded payment of "
                    f"{_money(sale.total_price_cents)} for product {product_name}"
                )
                events.append(_admin_event(sale, TYPE_PAYMENT_RECEIVED, "Payment Received", text, actor=principal))
                events.append(_manager_event(sale, TYPE_PAYMENT_RECEIVED, "Payment Received", text, actor=principal))

        new_product = changes.get("product_status")
        if new_product == PRODUCT_STATUS_SOLD and sale.product_status == PRODUCT_STATUS_PICKED:
            sold_quantity = changes.get("sold_quantity", sale.quantity)

            if sold_quantity < sale.quantity:
                sold = Sale(
                    product_id=sale.product_id,
                    agent_id=sale.agent_id,
                    manager_id=sale.manager_id,
                    owner_admin_id=sale.owner_admin_id,
                    unit_price_cents=sale.unit_price_cents,
                    customer_name=sale.customer_name,
                    customer_phone=sale.customer_phone,
                    customer_address=sale.customer_address,
                    notes=sale.notes,
                    product_status=PRODUCT_STATUS_SOLD,
                    payment_status=sale.payment_status,
                    payment_confirmed_by_manager=sale.payment_confirmed_by_manager,
                    payment_confirmed_by_admin=sale.payment_confirmed_by_admin,
                    payment_confirmed_at=sale.payment_confirmed_at,
                    sold_at=now,
                )
                _set_quantity(sold, sold_quantity)
                _set_quantity(sale, sale.quantity - sold_quantity)
                db.session.add(sold)
                db.session.flush()

                _bump_agent_metrics(sale.agent_id, sold.total_price_cents)
                events.append(_manager_event(
                    sold, TYPE_PRODUCT_SOLD, "Product Sold",
                    f"{sold_quantity} unit(s) of {product_name} sold by "
                    f"{sale.agent.name if sale.agent else hierarchy_service.actor_label(principal)}",
                    actor=principal,
                ))
                remaining_pick = sale
                sale = sold
                message = "Partial quantity marked as sold successfully"
            else:
                sale.product_status = PRODUCT_STATUS_SOLD
                sale.sold_at = now
                _bump_agent_metrics(sale.agent_id, sale.total_price_cents)
                events.append(_manager_event(
                    sale, TYPE_PRODUCT_SOLD, "Product Sold",
                    f"Product {product_name} has been sold by "
                    f"{sale.agent.name if sale.agent else hierarchy_service.actor_label(principal)}",
                    actor=principal,
                ))

        elif new_product == PRODUCT_STATUS_RETURNED and sale.product_status == PRODUCT_STATUS_PICKED:
            sale.product_status = PRODUCT_STATUS_RETURNED
            sale.sold_at = None
            inventory_service.release(sale.product_id, sale.quantity)
            events.append(_manager_event(
                sale, TYPE_PRODUCT_RETURNED, "Product Returned",
                f"Product {product_name} has been returned",
                actor=principal,
            ))

        db.session.commit()
        return SaleResult(message, sale, remaining_pick), events

    result, events = run_with_retry(_op)
    current_app.logger.info(
        "Sale %s updated by user %s: %s", sale_id, principal.id, sorted(changes)
    )
    _dispatch(events)
    return result


def confirm_payment(principal: Principal, sale_id: int) -> SaleResult:
    """
    Admin-only final step of the payment chain.

    Raises AlreadyConfirmedError on a confirmed sale (state unchanged) and
    ConflictError on a cancelled one.
    """
    if not principal.is_admin:
        raise AccessDeniedError("Only admins can confirm payments")
    scope = hierarchy_service.Scope(owner_admin_id=principal.id)

    def _op():
        sale = _scoped_sale(scope, sale_id, lock=True)
        if sale.payment_status == PAYMENT_STATUS_CONFIRMED:
            raise AlreadyConfirmedError("Payment already confirmed")
        if sale.payment_status == PAYMENT_STATUS_CANCELLED:
            raise ConflictError("Cancelled payments cannot be confirmed")

        sale.payment_status = PAYMENT_STATUS_CONFIRMED
        sale.payment_confirmed_by_admin = True
        sale.payment_confirmed_at = utcnow()

        product_name = sale.product.name if sale.product else f"#{sale.product_id}"
        text = (
            f"Payment of {_money(sale.total_price_cents)} for product {product_name} "
            "has been confirmed by admin"
        )
        events = [
            _manager_event(sale, TYPE_PAYMENT_CONFIRMED, "Payment Confirmed", text, actor=principal),
            _agent_event(sale, TYPE_PAYMENT_CONFIRMED, "Payment Confirmed", text, actor=principal),
        ]
        db.session.commit()
        return sale, events

    sale, events = run_with_retry(_op)
    current_app.logger.info("Payment for sale %s confirmed by admin %s", sale_id, principal.id)
    _dispatch(events)
    return SaleResult("Payment confirmed successfully", sale)


def delete_sale(principal: Principal, sale_id: int) -> None:
    """
    Admin-only hard delete within the admin's own tenant.

    Stock is NOT restored; a deleted pick stays debited until a product edit
    corrects the count.
    """
    if not principal.is_admin:
        raise AccessDeniedError("Only admins can delete sales")

    sale = (
        db.session.query(Sale)
        .filter(Sale.id == sale_id, Sale.owner_admin_id == principal.id)
        .first()
    )
    if not sale:
        raise NotFoundError("Sale not found")

    db.session.delete(sale)
    db.session.commit()
    current_app.logger.info("Sale %s deleted by admin %s (stock not restored)", sale_id, principal.id)


def get_sales_stats(principal: Principal) -> dict:
    """
    Aggregates over exactly the rows list_sales would return.

    total_sales: sold records; total_revenue_cents: sold AND confirmed, with
    total_revenue the same figure in currency units;
    pending_payments: payment pending; total_orders: all records.
    """
    scope = hierarchy_service.require_scope(principal)

    sold = Sale.product_status == PRODUCT_STATUS_SOLD
    query = db.session.query(
        func.count(Sale.id),
        func.coalesce(func.sum(case((sold, 1), else_=0)), 0),
        func.coalesce(
            func.sum(case((sold & (Sale.payment_status == PAYMENT_STATUS_CONFIRMED), Sale.total_price_cents), else_=0)),
            0,
        ),
        func.coalesce(func.sum(case((Sale.payment_status == PAYMENT_STATUS_PENDING, 1), else_=0)), 0),
    )
    total_orders, total_sales, total_revenue, pending = scope.apply(query, Sale).one()

    return {
        "total_sales": int(total_sales),
        "total_revenue_cents": int(total_revenue),
        "total_revenue": int(total_revenue) / 100,
        "pending_payments": int(pending),
        "total_orders": int(total_orders),
    }
