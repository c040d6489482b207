#!/usr/bin/env python3

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Optional

from sqlalchemy.orm import Session

from src.database import Database
from src.models import (
    FoodCart, FoodItem, Service, Coupon, CouponUsage, CouponCart, CouponService,
    Booking, BookingDate, BookingItem, BookingServiceLine, PaymentSlip, PaymentCapture, CartSlotLock
)

def clear_data(db: Session):
    """Delete everything, children first"""
    for model in (
        PaymentCapture, PaymentSlip, CouponUsage, BookingServiceLine, BookingItem, BookingDate, Booking,
        CartSlotLock, CouponService, CouponCart, Coupon, FoodItem, Service, FoodCart
    ):
        db.query(model).delete()

def seed_catalogue(db: Session, now: Optional[datetime] = None) -> Dict[str, object]:
    """Insert carts, menu items, services and coupons; returns them by key"""
    now = now or datetime.now()
    seeded: Dict[str, object] = {}

    # 1. Food carts
    print("Creating food carts...")
    carts = {
        "taco": FoodCart(name="Taco Cart", description="Street tacos, made to order",
                         location="Munich", price_per_hour=Decimal("150.00"),
                         shipping_price=Decimal("40.00"), capacity=120),
        "crepe": FoodCart(name="Crepe Cart", description="Sweet and savoury crepes",
                          location="Munich", price_per_hour=Decimal("120.00"),
                          shipping_price=Decimal("35.00"), capacity=80),
        "espresso": FoodCart(name="Espresso Bar", description="Mobile coffee bar",
                             location="Augsburg", price_per_hour=Decimal("100.00"), capacity=150),
        "grill": FoodCart(name="Grill Cart", description="Retired for renovation",
                          location="Munich", price_per_hour=Decimal("90.00"), is_active=False),
    }
    db.add_all(carts.values())
    db.flush()
    seeded.update({f"cart_{key}": cart for key, cart in carts.items()})

    # 2. Menu
    print("Creating food items...")
    items = {
        "tacos": FoodItem(cart_id=carts["taco"].id, name="Tacos al Pastor", category="main", price=Decimal("3.50")),
        "nachos": FoodItem(cart_id=carts["taco"].id, name="Nachos", category="side", price=Decimal("4.25")),
        "crepe": FoodItem(cart_id=carts["crepe"].id, name="Nutella Crepe", category="dessert", price=Decimal("5.00")),
        "churros": FoodItem(cart_id=carts["taco"].id, name="Churros", category="dessert",
                            price=Decimal("2.75"), is_available=False),
    }
    db.add_all(items.values())
    db.flush()
    seeded.update({f"item_{key}": item for key, item in items.items()})

    # 3. Staff and extra services
    print("Creating services...")
    services = {
        "chef": Service(name="Chef", category="STAFF", price_per_hour=Decimal("35.00")),
        "server": Service(name="Server", category="STAFF", price_per_hour=Decimal("25.00")),
        "dj": Service(name="DJ", category="ENTERTAINMENT", price_per_hour=Decimal("60.00"), is_active=False),
    }
    db.add_all(services.values())
    db.flush()
    seeded.update({f"service_{key}": service for key, service in services.items()})

    # 4. Coupons
    print("Creating coupons...")
    coupons = {
        "save10": Coupon(code="SAVE10", name="10% off", type="PERCENTAGE", value=Decimal("10"),
                         min_order_amount=Decimal("20"), max_discount=Decimal("5"),
                         valid_from=now - timedelta(days=30), valid_until=now + timedelta(days=30)),
        "fixed50": Coupon(code="FIXED50", name="50 off", type="FIXED_AMOUNT", value=Decimal("50"),
                          valid_from=now - timedelta(days=30), valid_until=now + timedelta(days=30)),
        "once": Coupon(code="ONCE", name="Single use", type="PERCENTAGE", value=Decimal("20"), usage_limit=1,
                       valid_from=now - timedelta(days=30), valid_until=now + timedelta(days=30)),
        "tacoonly": Coupon(code="TACOONLY", name="Taco cart special", type="FIXED_AMOUNT", value=Decimal("15"),
                           valid_from=now - timedelta(days=30), valid_until=now + timedelta(days=30)),
        "chefonly": Coupon(code="CHEFONLY", name="Chef hire special", type="PERCENTAGE", value=Decimal("5"),
                           valid_from=now - timedelta(days=30), valid_until=now + timedelta(days=30)),
        "expired": Coupon(code="OLDIE", name="Last season", type="PERCENTAGE", value=Decimal("10"),
                          valid_from=now - timedelta(days=90), valid_until=now - timedelta(days=1)),
        "future": Coupon(code="SOON", name="Next season", type="PERCENTAGE", value=Decimal("10"),
                         valid_from=now + timedelta(days=1), valid_until=now + timedelta(days=90)),
        "disabled": Coupon(code="PAUSED", name="Paused promo", type="PERCENTAGE", value=Decimal("10"),
                           status="INACTIVE",
                           valid_from=now - timedelta(days=30), valid_until=now + timedelta(days=30)),
    }
    coupons["tacoonly"].carts = [carts["taco"]]
    coupons["chefonly"].services = [services["chef"]]
    db.add_all(coupons.values())
    db.flush()
    seeded.update({f"coupon_{key}": coupon for key, coupon in coupons.items()})

    return seeded

def create_seed_data(database: Optional[Database] = None):
    database = database or Database()
    database.create_all()

    try:
        print("🚀 Creating seed data for the food cart booking system...")
        with database.session_scope() as db:
            print("Clearing existing data...")
            clear_data(db)
            seeded = seed_catalogue(db)

        carts = sum(1 for key in seeded if key.startswith("cart_"))
        coupons = sum(1 for key in seeded if key.startswith("coupon_"))
        print(f"✅ Seed data created: {carts} carts, {coupons} coupons")
    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        raise
    finally:
        database.dispose()

if __name__ == "__main__":
    create_seed_data()
