# Overview: Pytest coverage for stock reservation and release.

"""
Inventory Ledger Tests

Verifies:
1. reserve() debits exactly the requested units or nothing at all
2. Insufficient stock reports available/requested and leaves stock untouched
3. Products of another tenant look missing
4. Stock conservation across pick, sell and return
"""

import pytest

from fieldsales.errors import InsufficientStockError, NotFoundError, ValidationError
from fieldsales.models import Product, Sale, User
from fieldsales.services import inventory_service, sales_service

from conftest import principal


def _stock(db_session, product_id: int) -> int:
    return db_session.query(Product.quantity).filter(Product.id == product_id).scalar()


class TestReserve:

    def test_reserve_debits_stock(self, db_session, admin_a, product_a):
        product = inventory_service.reserve(product_a.id, 3, admin_a.id, commit=True)
        assert product.quantity == 7
        assert _stock(db_session, product_a.id) == 7

    def test_reserve_whole_stock(self, db_session, admin_a, product_a):
        inventory_service.reserve(product_a.id, 10, admin_a.id, commit=True)
        assert _stock(db_session, product_a.id) == 0

    def test_insufficient_stock(self, db_session, admin_a, product_a):
        with pytest.raises(InsufficientStockError) as exc:
            inventory_service.reserve(product_a.id, 11, admin_a.id)

        assert exc.value.kind == "insufficient_stock"
        assert exc.value.details == {"available": 10, "requested": 11}
        db_session.rollback()
        assert _stock(db_session, product_a.id) == 10

    def test_other_tenant_product_is_not_found(self, db_session, admin_a, product_b):
        with pytest.raises(NotFoundError):
            inventory_service.reserve(product_b.id, 1, admin_a.id)
        db_session.rollback()
        assert _stock(db_session, product_b.id) == 5

    def test_missing_product(self, db_session, admin_a):
        with pytest.raises(NotFoundError):
            inventory_service.reserve(999999, 1, admin_a.id)

    @pytest.mark.parametrize("qty", [0, -1, "abc", 1.5, True, None])
    def test_bad_quantity_is_rejected(self, db_session, admin_a, product_a, qty):
        with pytest.raises(ValidationError):
            inventory_service.reserve(product_a.id, qty, admin_a.id)
        assert _stock(db_session, product_a.id) == 10


class TestRelease:

    def test_release_credits_stock(self, db_session, admin_a, product_a):
        inventory_service.release(product_a.id, 4, commit=True)
        assert _stock(db_session, product_a.id) == 14

    def test_release_missing_product(self, db_session):
        with pytest.raises(NotFoundError):
            inventory_service.release(999999, 1)


class TestConservation:
    """initial == available + units of sales not returned."""

    def _outstanding(self, db_session, product_id: int) -> int:
        rows = db_session.query(Sale).filter(
            Sale.product_id == product_id, Sale.product_status != "returned"
        ).all()
        return sum(s.quantity for s in rows)

    def test_pick_sell_return_conserves_units(self, db_session, agent_a, product_a):
        agent = principal(db_session.query(User).filter_by(email=agent_a.email).one())

        first = sales_service.create_sale(agent, {"product_id": product_a.id, "quantity": 4}).sale
        second = sales_service.create_sale(agent, {"product_id": product_a.id, "quantity": 3}).sale
        assert _stock(db_session, product_a.id) + self._outstanding(db_session, product_a.id) == 10

        sales_service.update_sale(agent, first.id, {"product_status": "sold", "sold_quantity": 1})
        assert _stock(db_session, product_a.id) + self._outstanding(db_session, product_a.id) == 10

        sales_service.update_sale(agent, second.id, {"product_status": "returned"})
        assert _stock(db_session, product_a.id) == 6
        assert _stock(db_session, product_a.id) + self._outstanding(db_session, product_a.id) == 10

    def test_failed_pick_changes_nothing(self, db_session, agent_a, product_a):
        agent = principal(db_session.query(User).filter_by(email=agent_a.email).one())

        with pytest.raises(InsufficientStockError):
            sales_service.create_sale(agent, {"product_id": product_a.id, "quantity": 50})

        assert _stock(db_session, product_a.id) == 10
        assert db_session.query(Sale).count() == 0
