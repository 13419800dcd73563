import pytest
from sqlalchemy import func, select

from storefront import checkout, models, schemas
from storefront.errors import EmptyCart, InvalidInput, NotFound, OutOfStock

from .conftest import make_product, make_user


def lines(*items):
    return [schemas.CartLineIn(id=pid, count=count, price=price) for pid, count, price in items]


def payment(amount=2000):
    return schemas.PaymentIntent(id="pi_123", amount=amount, status="succeeded", currency="thb")


async def snapshot(session_factory):
    async with session_factory() as s:
        carts = (await s.execute(select(models.Cart.id, models.Cart.ordered_by_id, models.Cart.cart_total))).all()
        cart_lines = (
            await s.execute(select(models.ProductOnCart.cart_id, models.ProductOnCart.product_id, models.ProductOnCart.count))
        ).all()
        products = (await s.execute(select(models.Product.id, models.Product.quantity, models.Product.sold))).all()
        orders = (await s.execute(select(func.count(models.Order.id)))).scalar_one()
    return (
        sorted(tuple(row) for row in carts),
        sorted(tuple(row) for row in cart_lines),
        sorted(tuple(row) for row in products),
        orders,
    )


async def test_build_cart_computes_total_from_snapshot_prices(db, session_factory, user):
    mochi = await make_product(db, "Mochi", price=10.0, quantity=5)
    donut = await make_product(db, "Donut", price=3.0, quantity=10)

    cart = await checkout.build_cart(db, user.id, lines((mochi.id, 2, 9.5), (donut.id, 3, 2.25)))

    assert cart.cart_total == 9.5 * 2 + 2.25 * 3
    async with session_factory() as s:
        saved = await checkout.get_cart(s, user.id)
        assert saved.cart_total == cart.cart_total
        assert [(line.product_id, line.count, line.price) for line in saved.items] == [
            (mochi.id, 2, 9.5),
            (donut.id, 3, 2.25),
        ]


async def test_build_cart_rejects_empty_lines(db, user):
    with pytest.raises(InvalidInput):
        await checkout.build_cart(db, user.id, [])


async def test_build_cart_unknown_user(db):
    mochi = await make_product(db)
    with pytest.raises(NotFound):
        await checkout.build_cart(db, 999, lines((mochi.id, 1, 10.0)))


async def test_out_of_stock_leaves_store_untouched(db, session_factory, user):
    mochi = await make_product(db, "Mochi", quantity=5)
    donut = await make_product(db, "Donut", quantity=1)
    await checkout.build_cart(db, user.id, lines((mochi.id, 1, 10.0)))
    before = await snapshot(session_factory)

    with pytest.raises(OutOfStock) as excinfo:
        await checkout.build_cart(db, user.id, lines((mochi.id, 2, 10.0), (donut.id, 2, 3.0)))

    assert "Donut" in excinfo.value.message
    assert await snapshot(session_factory) == before


async def test_missing_product_is_out_of_stock(db, user):
    with pytest.raises(OutOfStock) as excinfo:
        await checkout.build_cart(db, user.id, lines((4242, 1, 1.0)))
    assert excinfo.value.message == "Sorry, product out of stock"


async def test_repeated_lines_are_checked_against_stock_together(db, user):
    mochi = await make_product(db, "Mochi", quantity=3)
    with pytest.raises(OutOfStock):
        await checkout.build_cart(db, user.id, lines((mochi.id, 2, 10.0), (mochi.id, 2, 10.0)))


async def test_saving_again_replaces_the_cart(db, session_factory, user):
    mochi = await make_product(db, "Mochi", quantity=5)
    donut = await make_product(db, "Donut", quantity=5)
    await checkout.build_cart(db, user.id, lines((mochi.id, 2, 10.0)))
    await checkout.build_cart(db, user.id, lines((donut.id, 1, 3.0)))

    async with session_factory() as s:
        carts = (await s.execute(select(models.Cart).where(models.Cart.ordered_by_id == user.id))).scalars().all()
        assert len(carts) == 1
        all_lines = (await s.execute(select(models.ProductOnCart))).scalars().all()
        assert [(line.product_id, line.count) for line in all_lines] == [(donut.id, 1)]
        assert carts[0].cart_total == 3.0


async def test_get_cart_missing(db, user):
    with pytest.raises(NotFound):
        await checkout.get_cart(db, user.id)


async def test_empty_cart_is_idempotent(db, session_factory, user):
    mochi = await make_product(db)
    await checkout.build_cart(db, user.id, lines((mochi.id, 1, 10.0)))

    assert await checkout.empty_cart(db, user.id) == 1
    assert await checkout.empty_cart(db, user.id) == 0
    async with session_factory() as s:
        assert (await s.execute(select(func.count(models.ProductOnCart.id)))).scalar_one() == 0


async def test_place_order_without_cart_creates_nothing(db, session_factory, user):
    with pytest.raises(EmptyCart):
        await checkout.place_order(db, user.id, payment())
    async with session_factory() as s:
        assert (await s.execute(select(func.count(models.Order.id)))).scalar_one() == 0


async def test_place_order_moves_stock_and_clears_cart(db, session_factory, user):
    product_a = await make_product(db, "Cake", price=10.0, quantity=5)
    await checkout.build_cart(db, user.id, lines((product_a.id, 2, 10.0)))

    order = await checkout.place_order(db, user.id, payment(amount=2000))

    assert order.cart_total == 20.0
    assert order.amount == 20.0
    assert order.stripe_payment_id == "pi_123"
    assert order.order_status == "Not Process"
    assert [(line.product_id, line.count, line.price) for line in order.items] == [(product_a.id, 2, 10.0)]

    async with session_factory() as s:
        product = await s.get(models.Product, product_a.id)
        assert (product.quantity, product.sold) == (3, 2)
        assert (await s.execute(select(func.count(models.Cart.id)))).scalar_one() == 0
        assert (await s.execute(select(func.count(models.Order.id)))).scalar_one() == 1


async def test_place_order_rolls_back_when_stock_ran_out(db, session_factory, user):
    cake = await make_product(db, "Cake", quantity=5)
    donut = await make_product(db, "Donut", quantity=5)
    await checkout.build_cart(db, user.id, lines((cake.id, 2, 10.0), (donut.id, 4, 3.0)))

    # somebody else bought the donuts in the meantime
    other = await make_user(db, "other@example.com", "Other")
    await checkout.build_cart(db, other.id, lines((donut.id, 3, 3.0)))
    await checkout.place_order(db, other.id, payment())
    before = await snapshot(session_factory)

    with pytest.raises(OutOfStock):
        await checkout.place_order(db, user.id, payment())

    assert await snapshot(session_factory) == before


async def test_list_orders_only_returns_own_orders(db, user):
    cake = await make_product(db, "Cake", quantity=5)
    other = await make_user(db, "other@example.com", "Other")
    await checkout.build_cart(db, user.id, lines((cake.id, 1, 10.0)))
    await checkout.place_order(db, user.id, payment())

    assert len(await checkout.list_orders(db, user.id)) == 1
    assert await checkout.list_orders(db, other.id) == []


def test_cart_total_helper():
    items = lines((1, 2, 1.5), (2, 1, 4.0))
    assert checkout.cart_total(items) == 7.0
