"""
SQLAlchemy Database Models

Multi-tenant QR ordering data model:
- Restaurants with their tables and settings bag
- Menu items with allergens and priced customizations
- Orders with denormalized line item snapshots and allergen summary
- Reviews, table-side service requests, waiting list, chat log
- Outbound notification log (delivery status per message)

Author: QR Dine Team
Version: 1.0.0
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from qrdine.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls: type[enum.Enum]) -> Enum:
    """Store enum values (not member names) in the column."""
    return Enum(
        enum_cls,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        length=32,
    )


# =============================================================================
# ENUMS
# =============================================================================

class UserRole(str, enum.Enum):
    CUSTOMER = "customer"
    STAFF = "staff"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class RestaurantStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class TableStatus(str, enum.Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    CLEANING = "cleaning"


class TablePhase(str, enum.Enum):
    """Coarse customer-journey stage, tracked separately from order status."""
    WAITING = "waiting"
    SEATED = "seated"
    ORDERING = "ordering"
    WAITING_FOOD = "waiting_food"
    EATING = "eating"
    PACKING = "packing"
    DEPARTURE = "departure"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def terminal(cls) -> tuple["OrderStatus", ...]:
        return (cls.COMPLETED, cls.CANCELLED)

    @classmethod
    def active(cls) -> tuple["OrderStatus", ...]:
        return (cls.PENDING, cls.CONFIRMED, cls.PREPARING, cls.READY, cls.SERVED)


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, enum.Enum):
    CARD = "card"
    CASH = "cash"


class ReviewStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ServiceType(str, enum.Enum):
    SPECIAL_REQUEST = "special_request"
    CALL_SERVER = "call_server"
    SPECIAL_INSTRUCTIONS = "special_instructions"


class ServiceStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ServicePriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class WaitingStatus(str, enum.Enum):
    WAITING = "waiting"
    NOTIFIED = "notified"
    SEATED = "seated"
    CANCELLED = "cancelled"


class NotificationChannel(str, enum.Enum):
    SMS = "sms"
    EMAIL = "email"


class NotificationStatus(str, enum.Enum):
    QUEUED = "queued"
    SENT = "sent"
    FAILED = "failed"


# =============================================================================
# USERS & TENANTS
# =============================================================================

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(_enum(UserRole), default=UserRole.CUSTOMER, nullable=False, index=True)
    restaurant_id = Column(
        Integer,
        ForeignKey("restaurants.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    phone = Column(String(20), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<User #{self.id} {self.email} ({self.role.value})>"


class Restaurant(Base):
    """
    A tenant. Everything a customer or staff member touches is scoped
    by restaurant_id.
    """
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # =========================================================================
    # IDENTITY & CONTACT
    # =========================================================================
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    cuisine = Column(String(50), nullable=True)
    address = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    email = Column(String(255), nullable=True)
    website = Column(String(255), nullable=True)

    # =========================================================================
    # OWNERSHIP & STATUS
    # =========================================================================
    owner_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL", use_alter=True, name="fk_restaurants_owner_id"),
        nullable=True,
        index=True,
    )
    status = Column(_enum(RestaurantStatus), default=RestaurantStatus.ACTIVE, nullable=False)

    # Tax rate, toggles and operating hours (see schemas.RestaurantSettings)
    settings = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    tables = relationship(
        "RestaurantTable",
        back_populates="restaurant",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="RestaurantTable.id",
    )

    def __repr__(self):
        return f"<Restaurant #{self.id} {self.name}>"


class RestaurantTable(Base):
    __tablename__ = "restaurant_tables"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "table_number", name="uq_table_number_per_restaurant"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(
        Integer,
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    table_number = Column(String(20), nullable=False)
    capacity = Column(Integer, nullable=False, default=4)
    status = Column(_enum(TableStatus), default=TableStatus.AVAILABLE, nullable=False)
    current_phase = Column(_enum(TablePhase), default=TablePhase.WAITING, nullable=False)
    current_order_id = Column(Integer, nullable=True)

    # QR code (PNG data URL) and the frontend URL it encodes
    qr_code = Column(Text, nullable=True)
    qr_url = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    restaurant = relationship("Restaurant", back_populates="tables")

    def __repr__(self):
        return f"<Table {self.table_number} @ restaurant #{self.restaurant_id} - {self.status.value}>"


# =============================================================================
# MENU
# =============================================================================

class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(
        Integer,
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    category = Column(String(50), nullable=False, index=True)
    image_url = Column(String(500), nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)
    preparation_time = Column(Integer, default=15, nullable=False)

    allergens = Column(JSON, nullable=False, default=list)
    dietary_info = Column(JSON, nullable=False, default=list)
    # [{"id", "name", "type", "options": [{"name", "price"}], "required", "max_selections"}]
    customizations = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<MenuItem #{self.id} {self.name} ${self.price:.2f}>"


# =============================================================================
# ORDERS
# =============================================================================

class Order(Base):
    """
    A table order.

    Line items are a snapshot of the menu at order time, so later menu
    edits never change historical orders.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(
        Integer,
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    table_number = Column(String(20), nullable=False, index=True)

    # =========================================================================
    # CUSTOMER INFORMATION
    # =========================================================================
    customer_name = Column(String(100), nullable=False)
    customer_phone = Column(String(20), nullable=False, index=True)
    customer_email = Column(String(255), nullable=True)

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    items = Column(JSON, nullable=False)
    special_instructions = Column(Text, nullable=True)
    kitchen_notes = Column(Text, nullable=True)

    # =========================================================================
    # PRICING
    # =========================================================================
    subtotal = Column(Float, nullable=False)
    tax = Column(Float, nullable=False)
    tax_rate = Column(Float, nullable=False)
    total = Column(Float, nullable=False)

    # =========================================================================
    # PAYMENT INFO
    # =========================================================================
    payment_method = Column(_enum(PaymentMethod), default=PaymentMethod.CARD, nullable=False)
    payment_status = Column(
        _enum(PaymentStatus),
        default=PaymentStatus.PENDING,
        nullable=False,
        index=True,
    )
    payment_intent_id = Column(String(100), nullable=True, index=True)

    # =========================================================================
    # ORDER STATUS
    # =========================================================================
    status = Column(_enum(OrderStatus), default=OrderStatus.PENDING, nullable=False, index=True)
    estimated_prep_time = Column(Integer, nullable=False, default=15)

    # =========================================================================
    # ALLERGENS
    # =========================================================================
    allergen_summary = Column(JSON, nullable=False, default=dict)
    has_allergen_concerns = Column(Boolean, default=False, nullable=False, index=True)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def is_terminal(self) -> bool:
        return self.status in OrderStatus.terminal()

    def __repr__(self):
        return f"<Order #{self.id} - table {self.table_number} - {self.status.value}>"


# =============================================================================
# REVIEWS
# =============================================================================

class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(
        Integer,
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"), nullable=True)
    customer_name = Column(String(100), nullable=False)
    customer_email = Column(String(255), nullable=True)
    table_number = Column(String(20), nullable=True)

    rating = Column(Integer, nullable=False)
    title = Column(String(150), nullable=True)
    comment = Column(Text, nullable=False)
    status = Column(_enum(ReviewStatus), default=ReviewStatus.PENDING, nullable=False, index=True)
    helpful_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    responses = relationship(
        "ReviewResponse",
        back_populates="review",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ReviewResponse.id",
    )


class ReviewResponse(Base):
    """A staff reply on a review thread."""
    __tablename__ = "review_responses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    review_id = Column(Integer, ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False, index=True)
    responder_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    responder_name = Column(String(100), nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    review = relationship("Review", back_populates="responses")


# =============================================================================
# TABLE-SIDE SERVICE
# =============================================================================

class ServiceRequest(Base):
    __tablename__ = "service_requests"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(
        Integer,
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    table_number = Column(String(20), nullable=False)

    type = Column(_enum(ServiceType), nullable=False, index=True)
    category = Column(String(50), nullable=True)
    title = Column(String(150), nullable=False)
    details = Column(JSON, nullable=False, default=dict)
    note = Column(Text, nullable=True)

    status = Column(_enum(ServiceStatus), default=ServiceStatus.PENDING, nullable=False, index=True)
    priority = Column(_enum(ServicePriority), default=ServicePriority.MEDIUM, nullable=False)
    assigned_to = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    staff_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)


# =============================================================================
# WAITING LIST
# =============================================================================

class WaitingListEntry(Base):
    __tablename__ = "waiting_list"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(
        Integer,
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    customer_name = Column(String(100), nullable=False)
    customer_phone = Column(String(20), nullable=False)
    party_size = Column(Integer, nullable=False)
    status = Column(_enum(WaitingStatus), default=WaitingStatus.WAITING, nullable=False, index=True)
    estimated_wait_time = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    notified_at = Column(DateTime(timezone=True), nullable=True)
    seated_at = Column(DateTime(timezone=True), nullable=True)


# =============================================================================
# AI CHAT
# =============================================================================

class ChatSession(Base):
    __tablename__ = "chat_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), nullable=False, unique=True, index=True)
    restaurant_id = Column(
        Integer,
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    table_number = Column(String(20), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(
        Integer,
        ForeignKey("chat_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role = Column(String(16), nullable=False)  # user | assistant
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


# =============================================================================
# OUTBOUND NOTIFICATIONS
# =============================================================================

class NotificationLog(Base):
    """
    One outbound SMS/email. Written as QUEUED together with the change
    that triggered it, then updated by each delivery attempt.
    """
    __tablename__ = "notification_log"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(
        Integer,
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, index=True)

    channel = Column(_enum(NotificationChannel), default=NotificationChannel.SMS, nullable=False)
    kind = Column(String(50), nullable=False)
    recipient = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=True)
    body = Column(Text, nullable=False)

    status = Column(
        _enum(NotificationStatus),
        default=NotificationStatus.QUEUED,
        nullable=False,
        index=True,
    )
    attempts = Column(Integer, default=0, nullable=False)
    last_error = Column(Text, nullable=True)
    provider_message_id = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    sent_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Notification #{self.id} {self.kind} -> {self.recipient} ({self.status.value})>"
