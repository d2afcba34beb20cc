import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, validator

from models import ORDER_STATUSES

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SLUG_RE = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")


def _check_email(v: str) -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError("Email is required")
    if not EMAIL_RE.match(v):
        raise ValueError("Please enter a valid email address")
    return v.lower()


def _check_password(v: str) -> str:
    if not v or not v.strip():
        raise ValueError("Password is required")
    if len(v) < 6:
        raise ValueError("Password must be at least 6 characters")
    return v


def _check_price(v: float) -> float:
    if v <= 0:
        raise ValueError("Price must be greater than 0")
    if v > 1000000:
        raise ValueError("Price is too high")
    return round(v, 2)


def _check_url(v: str) -> str:
    v = v.strip()
    if not v.startswith(("http://", "https://")):
        raise ValueError("URL must start with http:// or https://")
    return v


def _not_null(v):
    if v is None:
        raise ValueError("Field cannot be null")
    return v


# ========== Users ==========

class UserCreate(BaseModel):
    email: str
    password: str
    full_name: Optional[str] = None

    @validator("email")
    def validate_email(cls, v):
        return _check_email(v)

    @validator("password")
    def validate_password(cls, v):
        return _check_password(v)


class UserLogin(BaseModel):
    email: str
    password: str

    @validator("email")
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class UserResponse(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    role: str
    is_verified: bool


class PasswordChange(BaseModel):
    new_password: str

    @validator("new_password")
    def validate_new_password(cls, v):
        return _check_password(v)


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None


class ProfileResponse(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None


# ========== Menu ==========

class MenuItemCreate(BaseModel):
    name: str
    description: Optional[str] = ""
    price: float
    image: Optional[str] = None
    category: str
    featured: bool = False
    in_stock: bool = True

    @validator("name")
    def validate_name(cls, v: str) -> str:
        if not v or len(v.strip()) == 0:
            raise ValueError("Item name cannot be empty")
        if len(v) > 100:
            raise ValueError("Item name cannot exceed 100 characters")
        return v.strip()

    @validator("category")
    def validate_category(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Category is required")
        return v.strip().lower()

    @validator("price")
    def validate_price(cls, v):
        return _check_price(v)


class MenuItemUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    image: Optional[str] = None
    category: Optional[str] = None
    featured: Optional[bool] = None
    in_stock: Optional[bool] = None

    @validator("name", "price", "category", "featured", "in_stock", pre=True)
    def reject_null(cls, v):
        return _not_null(v)

    @validator("name")
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("Item name cannot be empty")
        if len(v) > 100:
            raise ValueError("Item name cannot exceed 100 characters")
        return v.strip()

    @validator("price")
    def validate_price(cls, v):
        return _check_price(v)

    @validator("category")
    def validate_category(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Category is required")
        return v.strip().lower()


class MenuItemResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: float
    image: Optional[str] = None
    category: str
    featured: bool
    in_stock: bool


# ========== Categories ==========

class CategoryCreate(BaseModel):
    name: str
    display_name: str
    order_index: int = 0

    @validator("name")
    def validate_slug(cls, v: str) -> str:
        v = v.strip().lower()
        if not SLUG_RE.match(v):
            raise ValueError("Category name must be a lowercase slug, e.g. 'main-courses'")
        return v

    @validator("display_name")
    def validate_display_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Display name cannot be empty")
        return v.strip()


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    display_name: Optional[str] = None
    order_index: Optional[int] = None

    @validator("name", "display_name", pre=True)
    def reject_null(cls, v):
        return _not_null(v)

    @validator("name")
    def validate_slug(cls, v):
        v = v.strip().lower()
        if not SLUG_RE.match(v):
            raise ValueError("Category name must be a lowercase slug, e.g. 'main-courses'")
        return v

    @validator("display_name")
    def validate_display_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Display name cannot be empty")
        return v.strip()


class CategoryResponse(BaseModel):
    id: int
    name: str
    display_name: str
    order_index: Optional[int] = 0


# ========== Gallery ==========

class GalleryImageCreate(BaseModel):
    title: str
    url: str
    featured: bool = False

    @validator("url")
    def validate_url(cls, v):
        return _check_url(v)


class GalleryImageUpdate(BaseModel):
    title: Optional[str] = None
    url: Optional[str] = None
    featured: Optional[bool] = None

    @validator("title", "url", "featured", pre=True)
    def reject_null(cls, v):
        return _not_null(v)

    @validator("url")
    def validate_url(cls, v):
        return _check_url(v)


class FeaturedFlag(BaseModel):
    featured: bool


class GalleryImageResponse(BaseModel):
    id: int
    title: str
    url: str
    featured: bool


# ========== Team ==========

class TeamMemberCreate(BaseModel):
    name: str
    position: str
    bio: Optional[str] = None
    image: Optional[str] = None
    order_index: int = 0


class TeamMemberUpdate(BaseModel):
    name: Optional[str] = None
    position: Optional[str] = None
    bio: Optional[str] = None
    image: Optional[str] = None
    order_index: Optional[int] = None

    @validator("name", "position", pre=True)
    def reject_null(cls, v):
        return _not_null(v)


class TeamMemberResponse(BaseModel):
    id: int
    name: str
    position: str
    bio: Optional[str] = None
    image: Optional[str] = None
    order_index: Optional[int] = 0


# ========== Settings ==========

class SettingsUpdate(BaseModel):
    restaurant_name: Optional[str] = None
    restaurant_address: Optional[str] = None
    restaurant_phone: Optional[str] = None
    restaurant_email: Optional[str] = None
    opening_hours: Optional[str] = None
    delivery_fee: Optional[float] = None

    @validator("restaurant_name", pre=True)
    def reject_null(cls, v):
        return _not_null(v)

    @validator("restaurant_name")
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("Restaurant name cannot be empty")
        return v

    @validator("restaurant_email")
    def validate_email(cls, v):
        return v if v is None else _check_email(v)

    @validator("delivery_fee")
    def validate_delivery_fee(cls, v):
        if v is not None and v < 0:
            raise ValueError("Delivery fee cannot be negative")
        return v


class SettingsResponse(BaseModel):
    id: int
    restaurant_name: str
    restaurant_address: Optional[str] = None
    restaurant_phone: Optional[str] = None
    restaurant_email: Optional[str] = None
    opening_hours: Optional[str] = None
    delivery_fee: Optional[float] = 0.0


# ========== Cart ==========

class CartItemAdd(BaseModel):
    menu_item_id: int
    quantity: int = 1

    @validator("quantity")
    def validate_quantity(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Quantity must be greater than 0")
        if v > 100:
            raise ValueError("Quantity cannot exceed 100")
        return v


class CartQuantityUpdate(BaseModel):
    quantity: int

    @validator("quantity")
    def validate_quantity(cls, v: int) -> int:
        if v > 100:
            raise ValueError("Quantity cannot exceed 100")
        return v


class CartLineResponse(BaseModel):
    id: int
    name: str
    price: float
    image: Optional[str] = None
    quantity: int


class CartResponse(BaseModel):
    session_id: Optional[str] = None
    items: List[CartLineResponse]
    total: float
    item_count: int


# ========== Checkout & orders ==========

class CheckoutRequest(BaseModel):
    # Left as plain strings: checkout.validate_checkout reports per-field messages
    customer_name: str = ""
    customer_email: str = ""
    customer_phone: str = ""
    address: str = ""
    city: str = ""
    zip_code: str = ""
    delivery_method: str = "delivery"
    payment_method: str = "demo"
    card_number: str = ""
    expiry_date: str = ""
    cvv: str = ""
    notes: str = ""
    discount_code: Optional[str] = None


class OrderItemResponse(BaseModel):
    id: int
    menu_item_id: Optional[int] = None
    name: Optional[str] = None
    image: Optional[str] = None
    quantity: int
    price: float
    subtotal: float


class OrderResponse(BaseModel):
    id: int
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    address: Optional[str] = None
    total: float
    status: str
    payment_status: str
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItemResponse]


class CheckoutResponse(BaseModel):
    order: OrderResponse
    subtotal: float
    discount: float
    delivery_fee: float
    tax: float
    total: float
    email_sent: bool


class OrderStatusUpdate(BaseModel):
    status: str

    @validator("status")
    def validate_status(cls, v: str) -> str:
        if v not in ORDER_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(ORDER_STATUSES)}")
        return v


class OrderStats(BaseModel):
    total_orders: int
    total_revenue: float
    pending_orders: int
    preparing_orders: int
    ready_orders: int
    delivered_orders: int
    today_orders: int
    today_revenue: float


# ========== Email functions ==========

class EmailOrderLine(BaseModel):
    name: str
    quantity: int
    price: float


class OrderConfirmationRequest(BaseModel):
    customer_email: str
    customer_name: str
    order_id: str
    order_items: List[EmailOrderLine]
    total: float
    estimated_time: Optional[str] = None

    @validator("customer_email")
    def validate_customer_email(cls, v):
        return _check_email(v)


class AdminVerificationRequest(BaseModel):
    email: str
    confirm_url: str
    site_name: Optional[str] = None

    @validator("email")
    def validate_email(cls, v):
        return _check_email(v)


class NewsletterSubscribe(BaseModel):
    email: str
    name: Optional[str] = None

    @validator("email")
    def validate_email(cls, v):
        return _check_email(v)


class TestEmailRequest(BaseModel):
    email: str
    subject: Optional[str] = None
    content: Optional[str] = None

    @validator("email")
    def validate_email(cls, v):
        return _check_email(v)


class EmailResult(BaseModel):
    success: bool
    message: str
    emailId: Optional[str] = None

