# Overview: Pytest coverage for product catalogue price parsing.

import pytest

from fieldsales.errors import ValidationError
from fieldsales.models import Product
from fieldsales.services import products_service

from conftest import auth_headers, get_auth_token, principal


class TestPriceParsing:

    @pytest.mark.parametrize("price,cents", [
        ("10", 1000),
        ("19.99", 1999),
        (7.5, 750),
        ("0", 0),
    ])
    def test_decimal_price_to_cents(self, db_session, admin_a, price, cents):
        product = products_service.create_product(principal(admin_a), {
            "name": "Priced", "price": price, "quantity": 1,
        })
        assert product.price_cents == cents

    @pytest.mark.parametrize("price", [
        "Infinity",
        "-Infinity",
        "NaN",
        "abc",
        None,
        True,
        "1.234",
    ])
    def test_bad_price_rejected(self, db_session, admin_a, price):
        with pytest.raises(ValidationError):
            products_service.create_product(principal(admin_a), {
                "name": "Bad", "price": price, "quantity": 1,
            })
        assert db_session.query(Product).count() == 0

    def test_infinite_price_over_http(self, client, db_session, admin_a):
        token = get_auth_token(client, admin_a.email)
        resp = client.post("/api/products", json={
            "name": "Unbounded", "price": "Infinity", "quantity": 1,
        }, headers=auth_headers(token))

        assert resp.status_code == 400
        assert resp.json["kind"] == "validation_error"
