"""
Pydantic Schemas for Request/Response Validation

The public API speaks camelCase (``customerPhone``); Python code uses
snake_case. Every schema accepts both spellings on input and renders
camelCase on output.

Author: QR Dine Team
Version: 1.0.0
"""

import re
from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from qrdine.models import (
    NotificationChannel,
    NotificationStatus,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    RestaurantStatus,
    ReviewStatus,
    ServicePriority,
    ServiceStatus,
    ServiceType,
    TablePhase,
    TableStatus,
    UserRole,
    WaitingStatus,
)


WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_EMAIL_RE = re.compile(r"^[\w\.\+-]+@[\w\.-]+\.\w+$")
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class CamelModel(BaseModel):
    """Base schema: camelCase aliases, populate by field name, ORM-friendly."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def validate_phone_number(v: str) -> str:
    cleaned = re.sub(r"[^\d]", "", v)
    if len(cleaned) < 10 or len(cleaned) > 15:
        raise ValueError("must be a valid phone number (10-15 digits)")
    return v.strip()


def validate_email_address(v: Optional[str]) -> Optional[str]:
    if v is None or v.strip() == "":
        return None
    v = v.strip().lower()
    if not _EMAIL_RE.match(v):
        raise ValueError("Invalid email format")
    return v


def _coerce_table_id(v: Any) -> Any:
    # QR payloads carry table numbers as numbers or strings
    if isinstance(v, int):
        return str(v)
    return v


def _optional_phone(v: Optional[str]) -> Optional[str]:
    return validate_phone_number(v) if v else None


def _required_email(v: str) -> str:
    email = validate_email_address(v)
    if email is None:
        raise ValueError("email is required")
    return email


PhoneNumber = Annotated[str, AfterValidator(validate_phone_number)]
OptionalPhone = Annotated[Optional[str], AfterValidator(_optional_phone)]
OptionalEmail = Annotated[Optional[str], AfterValidator(validate_email_address)]
RequiredEmail = Annotated[str, AfterValidator(_required_email)]
TableNumber = Annotated[str, BeforeValidator(_coerce_table_id)]
OptionalTableNumber = Annotated[Optional[str], BeforeValidator(_coerce_table_id)]


# =============================================================================
# AUTH & USERS
# =============================================================================

class RegisterRequest(CamelModel):
    name: str = Field(..., min_length=2, max_length=100, examples=["Maria Rossi"])
    email: RequiredEmail = Field(..., examples=["maria@bellavista.com"])
    password: str = Field(..., min_length=6, max_length=128)
    role: Literal["customer", "staff", "admin"] = "customer"
    phone: OptionalPhone = None


class LoginRequest(CamelModel):
    email: str
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: OptionalPhone = None
    password: Optional[str] = Field(None, min_length=6, max_length=128)


class UserOut(CamelModel):
    id: int
    name: str
    email: str
    role: UserRole
    restaurant_id: Optional[int] = None
    phone: Optional[str] = None
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime


class AdminUserCreate(RegisterRequest):
    role: UserRole = UserRole.STAFF
    restaurant_id: Optional[int] = None


class AdminUserUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: OptionalEmail = None
    password: Optional[str] = Field(None, min_length=6, max_length=128)
    role: Optional[UserRole] = None
    restaurant_id: Optional[int] = None
    phone: OptionalPhone = None
    is_active: Optional[bool] = None


# =============================================================================
# RESTAURANTS & TABLES
# =============================================================================

class DayHours(CamelModel):
    open: str = "09:00"
    close: str = "22:00"
    closed: bool = False

    @field_validator("open", "close")
    @classmethod
    def validate_time(cls, v: str) -> str:
        if not _TIME_RE.match(v):
            raise ValueError("Time must be in HH:MM format")
        return v


def _default_hours() -> dict[str, DayHours]:
    return {day: DayHours() for day in WEEKDAYS}


class RestaurantSettings(CamelModel):
    """Per-restaurant settings bag stored as JSON on the restaurant row."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        extra="ignore",
    )

    tax_rate: float = Field(0.08, ge=0, le=1)
    currency: str = Field("usd", min_length=3, max_length=3)
    allow_cash_payment: bool = True
    enable_order_notifications: bool = True
    enable_allergen_alerts: bool = True
    auto_confirm_orders: bool = False
    auto_approve_reviews: bool = True
    enable_server_call: bool = True
    enable_waiting_list: bool = True
    wait_minutes_per_party: int = Field(15, ge=1, le=240)
    operating_hours: dict[str, DayHours] = Field(default_factory=_default_hours)

    @field_validator("operating_hours")
    @classmethod
    def validate_days(cls, v: dict[str, DayHours]) -> dict[str, DayHours]:
        unknown = set(v) - set(WEEKDAYS)
        if unknown:
            raise ValueError(f"Unknown weekday(s): {sorted(unknown)}")
        return {**_default_hours(), **v}


def restaurant_settings(restaurant) -> RestaurantSettings:
    """Parse a restaurant's stored settings bag, filling defaults."""
    return RestaurantSettings.model_validate(restaurant.settings or {})


class RestaurantSettingsUpdate(CamelModel):
    tax_rate: Optional[float] = Field(None, ge=0, le=1)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    allow_cash_payment: Optional[bool] = None
    enable_order_notifications: Optional[bool] = None
    enable_allergen_alerts: Optional[bool] = None
    auto_confirm_orders: Optional[bool] = None
    auto_approve_reviews: Optional[bool] = None
    enable_server_call: Optional[bool] = None
    enable_waiting_list: Optional[bool] = None
    wait_minutes_per_party: Optional[int] = Field(None, ge=1, le=240)
    operating_hours: Optional[dict[str, DayHours]] = None


class TableCreate(CamelModel):
    table_number: TableNumber = Field(..., min_length=1, max_length=20)
    capacity: int = Field(4, ge=1, le=20)


class TableUpdate(CamelModel):
    table_number: OptionalTableNumber = Field(None, min_length=1, max_length=20)
    capacity: Optional[int] = Field(None, ge=1, le=20)
    status: Optional[TableStatus] = None
    current_phase: Optional[TablePhase] = None


class TableOut(CamelModel):
    id: int
    table_number: str
    capacity: int
    status: TableStatus
    current_phase: TablePhase
    current_order_id: Optional[int] = None
    qr_code: Optional[str] = None
    qr_url: Optional[str] = None
    updated_at: Optional[datetime] = None


class RestaurantCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=100, examples=["Bella Vista"])
    description: Optional[str] = Field(None, max_length=1000)
    cuisine: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=255)
    phone: OptionalPhone = None
    email: OptionalEmail = None
    website: Optional[str] = Field(None, max_length=255)
    settings: Optional[RestaurantSettingsUpdate] = None
    tables: list[TableCreate] = Field(default_factory=list)

    @field_validator("tables")
    @classmethod
    def unique_tables(cls, v: list[TableCreate]) -> list[TableCreate]:
        numbers = [t.table_number for t in v]
        if len(numbers) != len(set(numbers)):
            raise ValueError("Table numbers must be unique")
        return v


class RestaurantUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    cuisine: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=255)
    phone: OptionalPhone = None
    email: OptionalEmail = None
    website: Optional[str] = Field(None, max_length=255)


class AdminRestaurantCreate(RestaurantCreate):
    owner_id: int


class AdminRestaurantUpdate(RestaurantUpdate):
    status: Optional[RestaurantStatus] = None
    owner_id: Optional[int] = None


class RestaurantOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    cuisine: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    status: RestaurantStatus
    owner_id: Optional[int] = None
    settings: RestaurantSettings
    tables: list[TableOut] = Field(default_factory=list)
    created_at: datetime


class RestaurantPublic(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    cuisine: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None


class ResetRequest(CamelModel):
    reset_type: Literal["orders", "reviews", "service", "all"]


# =============================================================================
# MENU
# =============================================================================

class CustomizationOption(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    price: float = Field(0.0, ge=0)


class Customization(CamelModel):
    id: Optional[str] = Field(None, max_length=50)
    name: str = Field(..., min_length=1, max_length=100)
    type: Literal["radio", "checkbox", "select"] = "radio"
    options: list[CustomizationOption] = Field(..., min_length=1)
    required: bool = False
    max_selections: Optional[int] = Field(None, ge=1)

    @field_validator("options")
    @classmethod
    def unique_option_names(cls, v: list[CustomizationOption]) -> list[CustomizationOption]:
        names = [o.name for o in v]
        if len(names) != len(set(names)):
            raise ValueError("Option names must be unique within a customization")
        return v

    @model_validator(mode="after")
    def fill_id(self) -> "Customization":
        if not self.id:
            self.id = re.sub(r"[^a-z0-9]+", "-", self.name.lower()).strip("-")
        if not self.id:
            raise ValueError(f"Customization '{self.name}' needs an explicit id")
        return self


def _unique_customization_ids(customizations: Optional[list[Customization]]) -> Optional[list[Customization]]:
    if customizations is None:
        return customizations
    ids = [c.id for c in customizations]
    if len(ids) != len(set(ids)):
        raise ValueError("Customization ids must be unique")
    return customizations


class MenuItemCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Margherita Pizza"])
    description: Optional[str] = Field(None, max_length=500)
    price: float = Field(..., gt=0, examples=[16.99])
    category: str = Field(..., min_length=1, max_length=50, examples=["Mains"])
    image_url: Optional[str] = Field(None, max_length=500)
    is_available: bool = True
    preparation_time: int = Field(15, ge=1, le=180)
    allergens: list[str] = Field(default_factory=list)
    dietary_info: list[str] = Field(default_factory=list)
    customizations: list[Customization] = Field(default_factory=list)
    # Superadmins must name the restaurant; staff default to their own
    restaurant_id: Optional[int] = None

    @field_validator("allergens", "dietary_info")
    @classmethod
    def normalize_tags(cls, v: list[str]) -> list[str]:
        return [t.strip().lower() for t in v if t and t.strip()]

    @field_validator("customizations")
    @classmethod
    def unique_customization_ids(cls, v: list[Customization]) -> list[Customization]:
        return _unique_customization_ids(v)


class MenuItemUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    price: Optional[float] = Field(None, gt=0)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    image_url: Optional[str] = Field(None, max_length=500)
    is_available: Optional[bool] = None
    preparation_time: Optional[int] = Field(None, ge=1, le=180)
    allergens: Optional[list[str]] = None
    dietary_info: Optional[list[str]] = None
    customizations: Optional[list[Customization]] = None

    @field_validator("allergens", "dietary_info")
    @classmethod
    def normalize_tags(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if v is None:
            return v
        return [t.strip().lower() for t in v if t and t.strip()]

    @field_validator("customizations")
    @classmethod
    def unique_customization_ids(cls, v: Optional[list[Customization]]) -> Optional[list[Customization]]:
        return _unique_customization_ids(v)


class MenuItemOut(CamelModel):
    id: int
    restaurant_id: int
    name: str
    description: Optional[str] = None
    price: float
    category: str
    image_url: Optional[str] = None
    is_available: bool
    preparation_time: int
    allergens: list[str]
    dietary_info: list[str]
    customizations: list[Customization]
    created_at: datetime
    updated_at: Optional[datetime] = None


class MenuItemEnvelope(CamelModel):
    success: bool = True
    message: Optional[str] = None
    item: MenuItemOut


class MenuListResponse(CamelModel):
    success: bool = True
    count: int
    categories: list[str]
    items: list[MenuItemOut]


class BulkUploadRequest(CamelModel):
    restaurant_id: Optional[int] = None
    items: list[dict[str, Any]] = Field(..., min_length=1, max_length=500)


class BulkRowError(CamelModel):
    row: int
    error: str


class BulkUploadResponse(CamelModel):
    success: bool
    created: int
    errors: list[BulkRowError]
    items: list[MenuItemOut]


# =============================================================================
# ORDERS
# =============================================================================

class AllergenPreferences(CamelModel):
    avoid_allergens: list[str] = Field(default_factory=list)
    dietary_preferences: list[str] = Field(default_factory=list)
    special_instructions: Optional[str] = Field(None, max_length=500)


class SelectedCustomization(CamelModel):
    customization_id: str = Field(..., min_length=1)
    selected_options: list[str] = Field(..., min_length=1)


class OrderItemCreate(CamelModel):
    """Single line of a checkout request."""
    menu_item_id: Optional[int] = None
    id: Optional[int] = None
    quantity: int = Field(..., ge=1, le=99, examples=[2])
    selected_customizations: list[SelectedCustomization] = Field(default_factory=list)
    customizations: list[str] = Field(default_factory=list)
    allergen_preferences: Optional[AllergenPreferences] = None
    special_instructions: Optional[str] = Field(None, max_length=300)

    @model_validator(mode="after")
    def require_menu_item(self) -> "OrderItemCreate":
        if self.menu_item_id is None:
            if self.id is None:
                raise ValueError("menuItemId is required")
            self.menu_item_id = self.id
        return self


class OrderCreate(CamelModel):
    """Request schema for customer checkout."""
    restaurant_id: int = Field(..., examples=[1])
    table_id: TableNumber = Field(..., min_length=1, max_length=20, alias="tableId", examples=["5"])
    customer_name: str = Field(..., min_length=1, max_length=100, examples=["John Doe"])
    customer_phone: PhoneNumber = Field(..., examples=["555-123-4567"])
    customer_email: OptionalEmail = None
    payment_method: PaymentMethod = PaymentMethod.CARD
    special_instructions: Optional[str] = Field(None, max_length=500)
    items: list[OrderItemCreate] = Field(..., min_length=1)


class OrderStatusUpdate(CamelModel):
    status: OrderStatus
    kitchen_notes: Optional[str] = Field(None, max_length=1000)


class OrderNotesUpdate(CamelModel):
    kitchen_notes: str = Field(..., max_length=1000)


class ConfirmPaymentRequest(CamelModel):
    payment_intent_id: str = Field(..., min_length=1)


class RefundRequest(CamelModel):
    amount: Optional[float] = Field(None, gt=0)
    reason: Optional[Literal["duplicate", "fraudulent", "requested_by_customer"]] = None


class PricedOption(CamelModel):
    name: str
    price: float


class CustomizationSnapshot(CamelModel):
    customization_id: str
    name: str
    options: list[PricedOption]


class OrderLineItem(CamelModel):
    """Snapshot of a menu item as it was ordered."""
    menu_item_id: int
    name: str
    price: float
    quantity: int
    category: str
    description: Optional[str] = None
    allergens: list[str] = Field(default_factory=list)
    selected_customizations: list[CustomizationSnapshot] = Field(default_factory=list)
    customization_total: float = 0.0
    line_total: float
    customizations: list[str] = Field(default_factory=list)
    allergen_preferences: Optional[AllergenPreferences] = None
    special_instructions: Optional[str] = None


class AllergenSummary(CamelModel):
    avoided_allergens: list[str] = Field(default_factory=list)
    dietary_preferences: list[str] = Field(default_factory=list)
    special_instructions_count: int = 0
    has_allergen_concerns: bool = False
    affected_items: list[str] = Field(default_factory=list)


class OrderOut(CamelModel):
    id: int
    restaurant_id: int
    table_number: str = Field(serialization_alias="tableId")
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    items: list[OrderLineItem]
    special_instructions: Optional[str] = None
    kitchen_notes: Optional[str] = None
    subtotal: float
    tax: float
    tax_rate: float
    total: float
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    payment_intent_id: Optional[str] = None
    status: OrderStatus
    estimated_prep_time: int
    allergen_summary: AllergenSummary
    created_at: datetime
    updated_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class OrderEnvelope(CamelModel):
    success: bool = True
    message: Optional[str] = None
    order: OrderOut
    allergen_summary: Optional[AllergenSummary] = None


class OrderListResponse(CamelModel):
    success: bool = True
    total: int
    page: int = 1
    pages: int = 1
    orders: list[OrderOut]


class PaymentIntentResponse(CamelModel):
    success: bool = True
    payment_intent_id: str
    client_secret: Optional[str] = None
    amount: float
    currency: str
    reused: bool = False


class RefundResponse(CamelModel):
    success: bool = True
    refund_id: Optional[str] = None
    amount: Optional[float] = None
    order: OrderOut


class NotificationOut(CamelModel):
    id: int
    order_id: Optional[int] = None
    channel: NotificationChannel
    kind: str
    recipient: str
    status: NotificationStatus
    attempts: int
    last_error: Optional[str] = None
    provider_message_id: Optional[str] = None
    created_at: datetime
    sent_at: Optional[datetime] = None


# =============================================================================
# REVIEWS
# =============================================================================

class ReviewCreate(CamelModel):
    customer_name: str = Field(..., min_length=1, max_length=100)
    customer_email: OptionalEmail = None
    table_number: OptionalTableNumber = Field(None, max_length=20)
    order_id: Optional[int] = None
    rating: int = Field(..., ge=1, le=5)
    title: Optional[str] = Field(None, max_length=150)
    comment: str = Field(..., min_length=1, max_length=1000)


class ReviewReplyCreate(CamelModel):
    message: str = Field(..., min_length=1, max_length=1000)


class ReviewStatusUpdate(CamelModel):
    status: ReviewStatus


class ReviewReplyOut(CamelModel):
    id: int
    responder_name: str
    message: str
    created_at: datetime


class ReviewOut(CamelModel):
    id: int
    restaurant_id: int
    order_id: Optional[int] = None
    customer_name: str
    table_number: Optional[str] = None
    rating: int
    title: Optional[str] = None
    comment: str
    status: ReviewStatus
    helpful_count: int
    responses: list[ReviewReplyOut] = Field(default_factory=list)
    created_at: datetime


class ReviewEnvelope(CamelModel):
    success: bool = True
    message: Optional[str] = None
    review: ReviewOut


class ReviewListResponse(CamelModel):
    success: bool = True
    total: int
    page: int
    pages: int
    average_rating: float
    rating_distribution: dict[str, int]
    reviews: list[ReviewOut]


# =============================================================================
# TABLE-SIDE SERVICE
# =============================================================================

class ServiceRequestItem(CamelModel):
    category: str = Field(..., min_length=1, max_length=50, examples=["dietary"])
    title: str = Field(..., min_length=1, max_length=150, examples=["Gluten-free bread"])
    selected_options: list[str] = Field(default_factory=list)
    note: Optional[str] = Field(None, max_length=500)


class ServiceRequestCreate(CamelModel):
    restaurant_id: int
    table_id: TableNumber = Field(..., min_length=1, max_length=20, alias="tableId")
    requests: list[ServiceRequestItem] = Field(..., min_length=1, max_length=20)


class CallServerRequest(CamelModel):
    restaurant_id: int
    table_id: TableNumber = Field(..., min_length=1, max_length=20, alias="tableId")
    reason: Optional[str] = Field(None, max_length=100)
    message: Optional[str] = Field(None, max_length=500)


class SpecialInstructionsRequest(CamelModel):
    restaurant_id: int
    table_id: TableNumber = Field(..., min_length=1, max_length=20, alias="tableId")
    instructions: str = Field(..., min_length=1, max_length=1000)
    allergens: list[str] = Field(default_factory=list)
    dietary_preferences: list[str] = Field(default_factory=list)
    order_id: Optional[int] = None


class ServiceRequestUpdate(CamelModel):
    status: Optional[ServiceStatus] = None
    priority: Optional[ServicePriority] = None
    staff_notes: Optional[str] = Field(None, max_length=1000)
    assigned_to: Optional[int] = None


class ServiceRequestOut(CamelModel):
    id: int
    restaurant_id: int
    table_number: str = Field(serialization_alias="tableId")
    type: ServiceType
    category: Optional[str] = None
    title: str
    details: dict[str, Any]
    note: Optional[str] = None
    status: ServiceStatus
    priority: ServicePriority
    assigned_to: Optional[int] = None
    staff_notes: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None


class ServiceRequestEnvelope(CamelModel):
    success: bool = True
    message: Optional[str] = None
    requests: list[ServiceRequestOut]


# =============================================================================
# WAITING LIST
# =============================================================================

class WaitingListJoin(CamelModel):
    customer_name: str = Field(..., min_length=1, max_length=100)
    customer_phone: PhoneNumber
    party_size: int = Field(..., ge=1, le=20)


class WaitingStatusUpdate(CamelModel):
    status: WaitingStatus


class WaitingListEntryOut(CamelModel):
    id: int
    restaurant_id: int
    customer_name: str
    customer_phone: str
    party_size: int
    status: WaitingStatus
    estimated_wait_time: int
    position: Optional[int] = None
    created_at: datetime
    notified_at: Optional[datetime] = None
    seated_at: Optional[datetime] = None


class WaitingListEnvelope(CamelModel):
    success: bool = True
    message: Optional[str] = None
    entry: WaitingListEntryOut


# =============================================================================
# AI CHAT
# =============================================================================

class ChatSendRequest(CamelModel):
    message: str = Field(..., min_length=1, max_length=1000)
    restaurant_id: int
    session_id: Optional[str] = Field(None, max_length=64)
    table_id: OptionalTableNumber = Field(None, max_length=20, alias="tableId")


class ChatMessageOut(CamelModel):
    role: str
    content: str
    created_at: datetime


class ChatReply(CamelModel):
    success: bool = True
    session_id: str
    reply: str
    provider: str


class ChatHistoryResponse(CamelModel):
    success: bool = True
    session_id: str
    is_active: bool
    messages: list[ChatMessageOut]


class RecommendationRequest(CamelModel):
    restaurant_id: int
    preferences: Optional[str] = Field(None, max_length=500)
    dietary_restrictions: list[str] = Field(default_factory=list)
    budget: Optional[float] = Field(None, gt=0)


class RecommendationResponse(CamelModel):
    success: bool = True
    recommendations: str
    provider: str
    suggested_items: list[MenuItemOut]


# =============================================================================
# GENERIC
# =============================================================================

class MessageResponse(CamelModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[Union[str, list[Any]]] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    environment: str
    database: str
    redis: str
    payment_service: str
    notification_service: str
    chat_service: str
    timestamp: datetime


class AuthResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
    token: str
    user: UserOut
    restaurant: Optional[RestaurantOut] = None


class UserEnvelope(CamelModel):
    success: bool = True
    message: Optional[str] = None
    user: UserOut
    restaurant: Optional[RestaurantOut] = None


class RestaurantEnvelope(CamelModel):
    success: bool = True
    message: Optional[str] = None
    restaurant: RestaurantOut


class TableEnvelope(CamelModel):
    success: bool = True
    message: Optional[str] = None
    table: TableOut
