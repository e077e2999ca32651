"""Service-level tests for CartService: totals, concurrency token."""

import random
import uuid

import pytest
from sqlalchemy import update
from sqlmodel import select

from storefront.core.errors import CartConflict, InsufficientStock, NotInCart
from storefront.models.cart import Cart, CartItem
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.cart import CartItemCreate, CartItemUpdate
from storefront.services.cart_service import CartService
from storefront.services.inventory_service import InventoryService


@pytest.fixture
def cart_service():
    return CartService(CartRepository(), InventoryService(ProductRepository()))


def _assert_no_drift(cart):
    assert cart.total_items == sum(line.qty for line in cart.items)
    assert cart.total_price == pytest.approx(
        sum(line.qty * line.unit_price for line in cart.items)
    )


def test_totals_never_drift_over_random_mutations(
    cart_service, session, shopper, make_product
):
    products = [
        make_product(f"Item {i}", price=price, stock=6)
        for i, price in enumerate([19.99, 250.0, 75.5, 1200.0])
    ]
    rng = random.Random(1234)

    for _ in range(60):
        product = rng.choice(products)
        op = rng.choice(["add", "set", "remove"])
        qty = rng.randint(1, 8)
        try:
            if op == "add":
                cart = cart_service.add_item(
                    session, shopper.id, CartItemCreate(product_id=product.id, qty=qty)
                )
            elif op == "set":
                cart = cart_service.set_item_quantity(
                    session, shopper.id, product.id, CartItemUpdate(qty=qty)
                )
            else:
                cart = cart_service.remove_item(session, shopper.id, product.id)
        except (InsufficientStock, NotInCart):
            cart = cart_service.get_cart(session, shopper.id)

        _assert_no_drift(cart)
        assert all(1 <= line.qty <= 6 for line in cart.items)
        assert len({line.product_id for line in cart.items}) == len(cart.items)


@pytest.mark.parametrize("stock,qty", [(0, 1), (1, 2), (5, 6), (3, 100)])
def test_add_more_than_stock_fails(cart_service, session, shopper, make_product, stock, qty):
    product = make_product(stock=stock)
    with pytest.raises(InsufficientStock) as exc:
        cart_service.add_item(
            session, shopper.id, CartItemCreate(product_id=product.id, qty=qty)
        )
    assert exc.value.available == stock
    assert exc.value.requested == qty


def test_stale_version_is_rejected(session, shopper, make_product, cart_service):
    product = make_product(stock=5)
    cart_service.add_item(session, shopper.id, CartItemCreate(product_id=product.id, qty=1))

    repo = CartRepository()
    cart = repo.get_for_owner(session, shopper.id)
    seen_version = cart.version

    # A concurrent writer bumps the version behind this session's back
    session.execute(
        update(Cart)
        .where(Cart.id == cart.id)
        .values(version=Cart.version + 1)
        .execution_options(synchronize_session=False)
    )
    assert cart.version == seen_version

    assert repo.save_totals(session, cart, 1, product.price) is False


def test_lost_race_rolls_back_line_change(
    session, shopper, make_product, cart_service, monkeypatch
):
    product = make_product(stock=5)
    cart_service.add_item(session, shopper.id, CartItemCreate(product_id=product.id, qty=1))

    monkeypatch.setattr(cart_service.cart_repo, "save_totals", lambda *a, **kw: False)
    with pytest.raises(CartConflict):
        cart_service.set_item_quantity(
            session, shopper.id, product.id, CartItemUpdate(qty=4)
        )

    item = session.exec(select(CartItem).where(CartItem.product_id == product.id)).one()
    assert item.quantity == 1


def test_clear_on_missing_cart(cart_service, session, shopper):
    cart = cart_service.clear(session, shopper.id)
    assert cart.items == []
    assert cart.total_items == 0


def test_inventory_reads_current_stock(session, make_product, engine):
    from sqlmodel import Session

    from storefront.core.errors import ProductNotFound
    from storefront.models.product import Product

    inventory = InventoryService(ProductRepository())
    product = make_product(stock=4)
    assert inventory.get_available(session, product.id) == 4

    with Session(engine) as other:
        row = other.get(Product, product.id)
        row.count_in_stock = 1
        other.add(row)
        other.commit()

    assert inventory.get_available(session, product.id) == 1

    with pytest.raises(ProductNotFound):
        inventory.get_available(session, uuid.uuid4())


def test_concurrent_add_of_same_product_is_a_conflict(
    cart_service, session, shopper, make_product, monkeypatch
):
    product = make_product(stock=5)
    cart_service.add_item(session, shopper.id, CartItemCreate(product_id=product.id, qty=2))

    # The other tab's insert landed after this request looked for the line
    monkeypatch.setattr(cart_service.cart_repo, "get_item", lambda *a, **kw: None)
    with pytest.raises(CartConflict):
        cart_service.add_item(
            session, shopper.id, CartItemCreate(product_id=product.id, qty=4)
        )

    monkeypatch.undo()
    cart = cart_service.get_cart(session, shopper.id)
    assert [(line.product_id, line.qty) for line in cart.items] == [(product.id, 2)]
    _assert_no_drift(cart)


def test_re_add_checks_new_quantity_not_the_sum(
    cart_service, session, shopper, make_product
):
    product = make_product(stock=5)
    cart_service.add_item(session, shopper.id, CartItemCreate(product_id=product.id, qty=3))

    cart = cart_service.add_item(
        session, shopper.id, CartItemCreate(product_id=product.id, qty=3)
    )

    assert [line.qty for line in cart.items] == [3]
    assert cart.total_items == 3
