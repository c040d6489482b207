from sqlalchemy import Column, Integer, BigInteger, String, Boolean, DateTime, Date, Text, ForeignKey, Numeric, UniqueConstraint, CheckConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from src.database import Base

# SQLite only autoincrements INTEGER primary keys
Identifier = BigInteger().with_variant(Integer, "sqlite")

# ================================
# Catalogue (owned by admin collaborators, read-only here)
# ================================
class FoodCart(Base):
    __tablename__ = "food_carts"

    id = Column(Identifier, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    location = Column(String(255))
    price_per_hour = Column(Numeric(10, 2), nullable=False)
    shipping_price = Column(Numeric(10, 2), nullable=False, default=0)
    capacity = Column(Integer, default=0)
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    food_items = relationship("FoodItem", back_populates="cart")
    bookings = relationship("Booking", back_populates="cart")

class FoodItem(Base):
    __tablename__ = "food_items"

    id = Column(Identifier, primary_key=True, index=True)
    cart_id = Column(Identifier, ForeignKey("food_carts.id"))
    name = Column(String(255), nullable=False)
    description = Column(Text)
    category = Column(String(100))
    price = Column(Numeric(10, 2), nullable=False)
    is_available = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    cart = relationship("FoodCart", back_populates="food_items")

class Service(Base):
    __tablename__ = "services"

    id = Column(Identifier, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    category = Column(String(50), nullable=False, default="STAFF")
    price_per_hour = Column(Numeric(10, 2), nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

# ================================
# Bookings
# ================================
class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("start_minute < end_minute", name="ck_bookings_window_chronological"),
        Index("ix_bookings_cart_date_status", "cart_id", "booking_date", "status"),
    )

    id = Column(Identifier, primary_key=True, index=True)
    cart_id = Column(Identifier, ForeignKey("food_carts.id"), nullable=False)
    booking_date = Column(Date, nullable=False)
    start_minute = Column(Integer, nullable=False)
    end_minute = Column(Integer, nullable=False)
    total_hours = Column(Numeric(6, 2), nullable=False)

    customer_first_name = Column(String(255), nullable=False)
    customer_last_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)
    customer_phone = Column(String(50), nullable=False)
    customer_address = Column(String(255), nullable=False)
    customer_city = Column(String(100), nullable=False)
    customer_state = Column(String(100), nullable=False)
    customer_zip = Column(String(20), nullable=False)
    customer_country = Column(String(100), nullable=False)
    event_type = Column(String(100))
    guest_count = Column(Integer)
    special_notes = Column(Text)
    delivery_method = Column(String(20), nullable=False, default="pickup")
    shipping_address = Column(String(255))
    shipping_city = Column(String(100))
    shipping_state = Column(String(100))
    shipping_zip = Column(String(20))

    cart_service_amount = Column(Numeric(10, 2), nullable=False, default=0)
    services_amount = Column(Numeric(10, 2), nullable=False, default=0)
    food_amount = Column(Numeric(10, 2), nullable=False, default=0)
    shipping_amount = Column(Numeric(10, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    total_amount = Column(Numeric(10, 2), nullable=False)

    status = Column(String(20), nullable=False, default="PENDING", index=True)
    payment_status = Column(String(20), nullable=False, default="PENDING")
    payment_method = Column(String(30), nullable=False)
    transaction_id = Column(String(255))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    cart = relationship("FoodCart", back_populates="bookings")
    dates = relationship("BookingDate", back_populates="booking", cascade="all, delete-orphan", order_by="BookingDate.id")
    items = relationship("BookingItem", back_populates="booking", cascade="all, delete-orphan")
    services = relationship("BookingServiceLine", back_populates="booking", cascade="all, delete-orphan")
    payment_slips = relationship("PaymentSlip", back_populates="booking", order_by="PaymentSlip.id")
    payment_captures = relationship("PaymentCapture", back_populates="booking", order_by="PaymentCapture.id")
    coupon_usage = relationship("CouponUsage", back_populates="booking", uselist=False)

class BookingDate(Base):
    """One reserved window; bookings spanning several dates have one row per window"""
    __tablename__ = "booking_dates"
    __table_args__ = (
        CheckConstraint("start_minute < end_minute", name="ck_booking_dates_window_chronological"),
        Index("ix_booking_dates_date", "booking_date"),
    )

    id = Column(Identifier, primary_key=True, index=True)
    booking_id = Column(Identifier, ForeignKey("bookings.id"), nullable=False, index=True)
    booking_date = Column(Date, nullable=False)
    start_minute = Column(Integer, nullable=False)
    end_minute = Column(Integer, nullable=False)
    total_hours = Column(Numeric(6, 2), nullable=False)
    cart_amount = Column(Numeric(10, 2), nullable=False)

    # Relationships
    booking = relationship("Booking", back_populates="dates")

class BookingItem(Base):
    __tablename__ = "booking_items"

    id = Column(Identifier, primary_key=True, index=True)
    booking_id = Column(Identifier, ForeignKey("bookings.id"), nullable=False, index=True)
    food_item_id = Column(Identifier, ForeignKey("food_items.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    line_total = Column(Numeric(10, 2), nullable=False)

    # Relationships
    booking = relationship("Booking", back_populates="items")
    food_item = relationship("FoodItem")

class BookingServiceLine(Base):
    __tablename__ = "booking_services"

    id = Column(Identifier, primary_key=True, index=True)
    booking_id = Column(Identifier, ForeignKey("bookings.id"), nullable=False, index=True)
    service_id = Column(Identifier, ForeignKey("services.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    hours = Column(Numeric(6, 2), nullable=False)
    price_per_hour = Column(Numeric(10, 2), nullable=False)
    line_total = Column(Numeric(10, 2), nullable=False)

    # Relationships
    booking = relationship("Booking", back_populates="services")
    service = relationship("Service")

class CartSlotLock(Base):
    """Per cart and day admission token, compared-and-set by every admission"""
    __tablename__ = "cart_slot_locks"
    __table_args__ = (
        UniqueConstraint("cart_id", "booking_date", name="uq_cart_slot_locks_cart_date"),
    )

    id = Column(Identifier, primary_key=True, index=True)
    cart_id = Column(Identifier, ForeignKey("food_carts.id"), nullable=False)
    booking_date = Column(Date, nullable=False)
    version = Column(Integer, nullable=False, default=0)

# ================================
# Coupons
# ================================
class Coupon(Base):
    __tablename__ = "coupons"
    __table_args__ = (
        CheckConstraint("valid_from < valid_until", name="ck_coupons_validity_window"),
    )

    id = Column(Identifier, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    type = Column(String(20), nullable=False)
    value = Column(Numeric(10, 2), nullable=False)
    min_order_amount = Column(Numeric(10, 2))
    max_discount = Column(Numeric(10, 2))
    usage_limit = Column(Integer)
    valid_from = Column(DateTime, nullable=False)
    valid_until = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False, default="ACTIVE")
    version_id = Column(Integer, nullable=False, default=0)
    created_by = Column(String(255))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    carts = relationship("FoodCart", secondary="coupon_carts")
    services = relationship("Service", secondary="coupon_services")
    usages = relationship("CouponUsage", back_populates="coupon")

class CouponCart(Base):
    __tablename__ = "coupon_carts"

    coupon_id = Column(Identifier, ForeignKey("coupons.id"), primary_key=True)
    cart_id = Column(Identifier, ForeignKey("food_carts.id"), primary_key=True)

class CouponService(Base):
    __tablename__ = "coupon_services"

    coupon_id = Column(Identifier, ForeignKey("coupons.id"), primary_key=True)
    service_id = Column(Identifier, ForeignKey("services.id"), primary_key=True)

class CouponUsage(Base):
    __tablename__ = "coupon_usages"

    id = Column(Identifier, primary_key=True, index=True)
    coupon_id = Column(Identifier, ForeignKey("coupons.id"), nullable=False, index=True)
    booking_id = Column(Identifier, ForeignKey("bookings.id"), nullable=False, unique=True)
    discount_amount = Column(Numeric(10, 2), nullable=False)
    used_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    coupon = relationship("Coupon", back_populates="usages")
    booking = relationship("Booking", back_populates="coupon_usage")

# ================================
# Payment artifacts
# ================================
class PaymentSlip(Base):
    __tablename__ = "payment_slips"

    id = Column(Identifier, primary_key=True, index=True)
    booking_id = Column(Identifier, ForeignKey("bookings.id"), nullable=False, index=True)
    file_name = Column(String(255), default="Payment Receipt Link")
    file_path = Column(String(1024), nullable=False)
    status = Column(String(20), nullable=False, default="PENDING")
    verified_at = Column(DateTime(timezone=True))
    verified_by = Column(String(255))
    admin_notes = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    booking = relationship("Booking", back_populates="payment_slips")

class PaymentCapture(Base):
    __tablename__ = "payment_captures"

    id = Column(Identifier, primary_key=True, index=True)
    booking_id = Column(Identifier, ForeignKey("bookings.id"), nullable=False, index=True)
    external_reference_id = Column(String(255), unique=True, nullable=False)
    status = Column(String(20), nullable=False)
    amount = Column(Numeric(10, 2))
    currency = Column(String(3))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    booking = relationship("Booking", back_populates="payment_captures")
