import logging
import os
from typing import List, Optional

import uvicorn
from fastapi import Depends, FastAPI, Header, HTTPException, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import email_service
import models
from cart import Cart, CartOwner, CartService, is_guest_session_id, new_guest_session_id
from checkout import calculate_totals, format_address, payment_status_for, validate_checkout
from database import engine, get_db, init_restaurant_data, wait_for_db
from dependencies import get_current_admin, get_current_user, get_optional_user
from email_service import EmailDeliveryError
from redis_client import rate_limit, redis_client
from repositories import (
    CategoryRepository,
    DuplicateError,
    GalleryRepository,
    MenuRepository,
    NotFoundError,
    OrderRepository,
    SettingsRepository,
    TeamRepository,
)
from schemas import (
    AdminVerificationRequest,
    CartItemAdd,
    CartQuantityUpdate,
    CartResponse,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    CheckoutRequest,
    CheckoutResponse,
    EmailResult,
    FeaturedFlag,
    GalleryImageCreate,
    GalleryImageResponse,
    GalleryImageUpdate,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    NewsletterSubscribe,
    OrderConfirmationRequest,
    OrderResponse,
    OrderStats,
    OrderStatusUpdate,
    SettingsResponse,
    SettingsUpdate,
    TeamMemberCreate,
    TeamMemberResponse,
    TeamMemberUpdate,
    TestEmailRequest,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger("restaurant.api")

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:8080")
CART_SESSION_HEADER = "X-Cart-Session"
CHECKOUT_RATE_LIMIT = int(os.getenv("CHECKOUT_RATE_LIMIT", "10"))

app = FastAPI(title="DistinctGyrro Restaurant API")

origins = [
    FRONTEND_URL,
    "http://localhost",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:8080",
    "http://127.0.0.1:8080",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[CART_SESSION_HEADER],
)


@app.on_event("startup")
def startup_event():
    if wait_for_db():
        try:
            models.Base.metadata.create_all(bind=engine)
            init_restaurant_data()
            logger.info("Database initialised")
        except SQLAlchemyError as e:
            logger.error(f"Error creating/initialising the database: {e}")
    else:
        logger.error("Database did not become available during startup")

    if redis_client.is_available():
        logger.info("Redis available")
    else:
        logger.warning("Redis unavailable, caching disabled")


@app.exception_handler(NotFoundError)
def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(DuplicateError)
def duplicate_handler(request: Request, exc: DuplicateError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


def _server_error(db: Session, action: str, e: Exception):
    db.rollback()
    logger.error(f"Error {action}: {e}")
    return HTTPException(status_code=500, detail=f"Error {action}")


@app.get("/")
def read_root():
    return {"message": "Restaurant API is working!"}


@app.get("/health")
def health_check():
    return {"status": "ok", "message": "API is running"}


@app.get("/cache/info")
def get_cache_info():
    return redis_client.get_cache_info()


@app.post("/admin/cache/clear")
def clear_cache(admin: models.User = Depends(get_current_admin)):
    cleared = redis_client.clear_all_cache()
    logger.info(f"Cache clear requested by {admin.email}: {'done' if cleared else 'redis unavailable'}")
    return {"cleared": cleared}


# ========== Serialization ==========

def menu_item_to_dict(item: models.MenuItem) -> dict:
    return {
        "id": item.id,
        "name": item.name,
        "description": item.description,
        "price": float(item.price),
        "image": item.image,
        "category": item.category,
        "featured": bool(item.featured),
        "in_stock": bool(item.in_stock),
    }


def category_to_dict(category: models.Category) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "display_name": category.display_name,
        "order_index": category.order_index,
    }


def gallery_image_to_dict(image: models.GalleryImage) -> dict:
    return {"id": image.id, "title": image.title, "url": image.url, "featured": bool(image.featured)}


def settings_to_dict(settings: models.RestaurantSettings) -> dict:
    return {
        "id": settings.id,
        "restaurant_name": settings.restaurant_name,
        "restaurant_address": settings.restaurant_address,
        "restaurant_phone": settings.restaurant_phone,
        "restaurant_email": settings.restaurant_email,
        "opening_hours": settings.opening_hours,
        "delivery_fee": float(settings.delivery_fee or 0),
    }


def order_to_response(order: models.Order) -> OrderResponse:
    items = []
    for item in order.items:
        menu_item = item.menu_item
        items.append({
            "id": item.id,
            "menu_item_id": item.menu_item_id,
            "name": item.name or (menu_item.name if menu_item else "Unknown"),
            "image": menu_item.image if menu_item else None,
            "quantity": item.quantity,
            "price": float(item.price),
            "subtotal": float(item.subtotal),
        })

    return OrderResponse(
        id=order.id,
        customer_name=order.customer_name,
        customer_email=order.customer_email,
        customer_phone=order.customer_phone,
        address=order.address,
        total=float(order.total),
        status=order.status,
        payment_status=order.payment_status,
        payment_method=order.payment_method,
        notes=order.notes,
        created_at=order.created_at,
        updated_at=order.updated_at,
        items=items,
    )


# ========== Menu ==========

@app.get("/menu", response_model=List[MenuItemResponse])
def get_menu(category: Optional[str] = None, search: Optional[str] = None, featured: Optional[bool] = None,
             db: Session = Depends(get_db)):
    if not category and not search and featured is None:
        cached = redis_client.get_cached_menu_items()
        if cached:
            return cached

        items = [menu_item_to_dict(item) for item in MenuRepository(db).list()]
        redis_client.cache_menu_items(items)
        return items

    return MenuRepository(db).list(category=category, search=search, featured=featured)


@app.get("/menu/featured", response_model=List[MenuItemResponse])
def get_featured_menu(db: Session = Depends(get_db)):
    return MenuRepository(db).list(featured=True)


@app.get("/menu/{item_id}", response_model=MenuItemResponse)
def get_menu_item(item_id: int, db: Session = Depends(get_db)):
    return MenuRepository(db).get(item_id)


@app.get("/admin/menu", response_model=List[MenuItemResponse])
def admin_list_menu(db: Session = Depends(get_db), admin: models.User = Depends(get_current_admin)):
    return MenuRepository(db).list()


@app.post("/admin/menu", response_model=MenuItemResponse, status_code=201)
def create_menu_item(item: MenuItemCreate, db: Session = Depends(get_db),
                     admin: models.User = Depends(get_current_admin)):
    try:
        db_item = MenuRepository(db).create(item.dict())
    except SQLAlchemyError as e:
        raise _server_error(db, "creating menu item", e)

    redis_client.invalidate_menu_cache()
    logger.info(f"Menu item {db_item.id} created by {admin.email}")
    return db_item


@app.put("/admin/menu/{item_id}", response_model=MenuItemResponse)
def update_menu_item(item_id: int, item: MenuItemUpdate, db: Session = Depends(get_db),
                     admin: models.User = Depends(get_current_admin)):
    try:
        db_item = MenuRepository(db).update(item_id, item.dict(exclude_unset=True))
    except SQLAlchemyError as e:
        raise _server_error(db, f"updating menu item {item_id}", e)

    redis_client.invalidate_menu_cache()
    return db_item


@app.delete("/admin/menu/{item_id}")
def delete_menu_item(item_id: int, db: Session = Depends(get_db), admin: models.User = Depends(get_current_admin)):
    try:
        MenuRepository(db).delete(item_id)
    except SQLAlchemyError as e:
        raise _server_error(db, f"deleting menu item {item_id}", e)

    redis_client.invalidate_menu_cache()
    return {"message": "Menu item deleted"}


@app.patch("/admin/menu/{item_id}/featured", response_model=MenuItemResponse)
def toggle_menu_item_featured(item_id: int, db: Session = Depends(get_db),
                              admin: models.User = Depends(get_current_admin)):
    db_item = MenuRepository(db).toggle_featured(item_id)
    redis_client.invalidate_menu_cache()
    return db_item


@app.patch("/admin/menu/{item_id}/in-stock", response_model=MenuItemResponse)
def toggle_menu_item_in_stock(item_id: int, db: Session = Depends(get_db),
                              admin: models.User = Depends(get_current_admin)):
    db_item = MenuRepository(db).toggle_in_stock(item_id)
    redis_client.invalidate_menu_cache()
    return db_item


# ========== Categories ==========

@app.get("/categories", response_model=List[CategoryResponse])
def get_categories(db: Session = Depends(get_db)):
    cached = redis_client.get_cached_categories()
    if cached:
        return cached

    categories = [category_to_dict(c) for c in CategoryRepository(db).list()]
    redis_client.cache_categories(categories)
    return categories


@app.post("/admin/categories", response_model=CategoryResponse, status_code=201)
def create_category(category: CategoryCreate, db: Session = Depends(get_db),
                    admin: models.User = Depends(get_current_admin)):
    try:
        db_category = CategoryRepository(db).create(category.dict())
    except SQLAlchemyError as e:
        raise _server_error(db, "creating category", e)

    redis_client.invalidate_categories_cache()
    return db_category


@app.put("/admin/categories/{category_id}", response_model=CategoryResponse)
def update_category(category_id: int, category: CategoryUpdate, db: Session = Depends(get_db),
                    admin: models.User = Depends(get_current_admin)):
    try:
        db_category = CategoryRepository(db).update(category_id, category.dict(exclude_unset=True))
    except SQLAlchemyError as e:
        raise _server_error(db, f"updating category {category_id}", e)

    redis_client.invalidate_categories_cache()
    return db_category


@app.delete("/admin/categories/{category_id}")
def delete_category(category_id: int, db: Session = Depends(get_db),
                    admin: models.User = Depends(get_current_admin)):
    try:
        CategoryRepository(db).delete(category_id)
    except SQLAlchemyError as e:
        raise _server_error(db, f"deleting category {category_id}", e)

    redis_client.invalidate_categories_cache()
    return {"message": "Category deleted"}


# ========== Gallery ==========

@app.get("/gallery", response_model=List[GalleryImageResponse])
def get_gallery(db: Session = Depends(get_db)):
    cached = redis_client.get_cached_gallery()
    if cached:
        return cached

    images = [gallery_image_to_dict(i) for i in GalleryRepository(db).list()]
    redis_client.cache_gallery(images)
    return images


@app.get("/gallery/featured", response_model=List[GalleryImageResponse])
def get_featured_gallery(db: Session = Depends(get_db)):
    return GalleryRepository(db).list_featured()


@app.post("/admin/gallery", response_model=GalleryImageResponse, status_code=201)
def add_gallery_image(image: GalleryImageCreate, db: Session = Depends(get_db),
                      admin: models.User = Depends(get_current_admin)):
    try:
        db_image = GalleryRepository(db).add(image.dict())
    except SQLAlchemyError as e:
        raise _server_error(db, "adding gallery image", e)

    redis_client.invalidate_gallery_cache()
    return db_image


@app.put("/admin/gallery/{image_id}", response_model=GalleryImageResponse)
def update_gallery_image(image_id: int, image: GalleryImageUpdate, db: Session = Depends(get_db),
                         admin: models.User = Depends(get_current_admin)):
    try:
        db_image = GalleryRepository(db).update(image_id, image.dict(exclude_unset=True))
    except SQLAlchemyError as e:
        raise _server_error(db, f"updating gallery image {image_id}", e)

    redis_client.invalidate_gallery_cache()
    return db_image


@app.patch("/admin/gallery/{image_id}/featured", response_model=GalleryImageResponse)
def set_gallery_image_featured(image_id: int, flag: FeaturedFlag, db: Session = Depends(get_db),
                               admin: models.User = Depends(get_current_admin)):
    db_image = GalleryRepository(db).set_featured(image_id, flag.featured)
    redis_client.invalidate_gallery_cache()
    return db_image


@app.delete("/admin/gallery/{image_id}")
def delete_gallery_image(image_id: int, db: Session = Depends(get_db),
                         admin: models.User = Depends(get_current_admin)):
    try:
        GalleryRepository(db).delete(image_id)
    except SQLAlchemyError as e:
        raise _server_error(db, f"deleting gallery image {image_id}", e)

    redis_client.invalidate_gallery_cache()
    return {"message": "Gallery image deleted"}


# ========== Team ==========

@app.get("/team", response_model=List[TeamMemberResponse])
def get_team(db: Session = Depends(get_db)):
    return TeamRepository(db).list()


@app.post("/admin/team", response_model=TeamMemberResponse, status_code=201)
def create_team_member(member: TeamMemberCreate, db: Session = Depends(get_db),
                       admin: models.User = Depends(get_current_admin)):
    try:
        return TeamRepository(db).create(member.dict())
    except SQLAlchemyError as e:
        raise _server_error(db, "creating team member", e)


@app.put("/admin/team/{member_id}", response_model=TeamMemberResponse)
def update_team_member(member_id: int, member: TeamMemberUpdate, db: Session = Depends(get_db),
                       admin: models.User = Depends(get_current_admin)):
    try:
        return TeamRepository(db).update(member_id, member.dict(exclude_unset=True))
    except SQLAlchemyError as e:
        raise _server_error(db, f"updating team member {member_id}", e)


@app.delete("/admin/team/{member_id}")
def delete_team_member(member_id: int, db: Session = Depends(get_db),
                       admin: models.User = Depends(get_current_admin)):
    try:
        TeamRepository(db).delete(member_id)
    except SQLAlchemyError as e:
        raise _server_error(db, f"deleting team member {member_id}", e)
    return {"message": "Team member deleted"}


# ========== Settings ==========

@app.get("/settings", response_model=SettingsResponse)
def get_settings(db: Session = Depends(get_db)):
    cached = redis_client.get_cached_settings()
    if cached:
        return cached

    settings = settings_to_dict(SettingsRepository(db).get())
    redis_client.cache_settings(settings)
    return settings


@app.get("/admin/settings", response_model=SettingsResponse)
def admin_get_settings(db: Session = Depends(get_db), admin: models.User = Depends(get_current_admin)):
    return settings_to_dict(SettingsRepository(db).get())


@app.put("/admin/settings", response_model=SettingsResponse)
def update_settings(payload: SettingsUpdate, db: Session = Depends(get_db),
                    admin: models.User = Depends(get_current_admin)):
    try:
        settings = SettingsRepository(db).update(payload.dict(exclude_unset=True))
    except SQLAlchemyError as e:
        raise _server_error(db, "updating restaurant settings", e)

    redis_client.invalidate_settings_cache()
    logger.info(f"Restaurant settings updated by {admin.email}")
    return settings_to_dict(settings)


# ========== Cart ==========

async def get_cart_owner(response: Response,
                         x_cart_session: Optional[str] = Header(None),
                         user: Optional[models.User] = Depends(get_optional_user)) -> CartOwner:
    if user is not None:
        return CartOwner(user_id=user.id, session_id=x_cart_session)

    session_id = x_cart_session if is_guest_session_id(x_cart_session) else new_guest_session_id()
    response.headers[CART_SESSION_HEADER] = session_id
    return CartOwner(session_id=session_id)


def cart_response(owner: CartOwner, cart: Cart) -> dict:
    return {
        "session_id": owner.session_id if owner.is_guest else None,
        "items": cart.to_list(),
        "total": cart.total,
        "item_count": cart.item_count,
    }


@app.get("/cart", response_model=CartResponse)
def get_cart(owner: CartOwner = Depends(get_cart_owner), db: Session = Depends(get_db)):
    return cart_response(owner, CartService(db).load(owner))


@app.post("/cart/items", response_model=CartResponse)
def add_to_cart(payload: CartItemAdd, owner: CartOwner = Depends(get_cart_owner), db: Session = Depends(get_db)):
    menu_item = MenuRepository(db).get(payload.menu_item_id)
    if not menu_item.in_stock:
        raise HTTPException(status_code=400, detail=f"{menu_item.name} is out of stock")

    service = CartService(db)
    cart = service.load(owner)
    cart.add(menu_item_to_dict(menu_item), payload.quantity)
    service.save(owner, cart)
    return cart_response(owner, cart)


@app.put("/cart/items/{item_id}", response_model=CartResponse)
def update_cart_item(item_id: int, payload: CartQuantityUpdate, owner: CartOwner = Depends(get_cart_owner),
                     db: Session = Depends(get_db)):
    service = CartService(db)
    cart = service.load(owner)
    if not cart.update_quantity(item_id, payload.quantity):
        raise HTTPException(status_code=404, detail="Item is not in the cart")
    service.save(owner, cart)
    return cart_response(owner, cart)


@app.delete("/cart/items/{item_id}", response_model=CartResponse)
def remove_cart_item(item_id: int, owner: CartOwner = Depends(get_cart_owner), db: Session = Depends(get_db)):
    service = CartService(db)
    cart = service.load(owner)
    if not cart.remove(item_id):
        raise HTTPException(status_code=404, detail="Item is not in the cart")
    service.save(owner, cart)
    return cart_response(owner, cart)


@app.delete("/cart", response_model=CartResponse)
def clear_cart(owner: CartOwner = Depends(get_cart_owner), db: Session = Depends(get_db)):
    CartService(db).clear(owner)
    return cart_response(owner, Cart())


@app.post("/cart/claim", response_model=CartResponse)
def claim_guest_cart(policy: Optional[str] = None,
                     x_cart_session: Optional[str] = Header(None),
                     user: models.User = Depends(get_current_user),
                     db: Session = Depends(get_db)):
    if not is_guest_session_id(x_cart_session):
        raise HTTPException(status_code=400, detail=f"Missing or invalid {CART_SESSION_HEADER} header")

    try:
        cart = CartService(db).claim(user.id, x_cart_session, policy)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return cart_response(CartOwner(user_id=user.id), cart)


# ========== Checkout ==========

def limit_checkout(request: Request):
    client_host = request.client.host if request.client else "unknown"
    allowed, _ = redis_client.check_rate_limit(f"rate_limit:checkout:{client_host}", CHECKOUT_RATE_LIMIT, 60)
    if not allowed:
        raise HTTPException(status_code=429, detail="Rate limit exceeded. Try again in 60 seconds.")


@app.post("/checkout", response_model=CheckoutResponse, dependencies=[Depends(limit_checkout)])
def checkout(form: CheckoutRequest, owner: CartOwner = Depends(get_cart_owner), db: Session = Depends(get_db)):
    service = CartService(db)
    cart = service.load(owner)
    if cart.is_empty():
        raise HTTPException(status_code=400, detail="Please add items to your cart before checkout.")

    errors = validate_checkout(form)
    if errors:
        return JSONResponse(status_code=422, content={
            "detail": "Please fill in all required fields correctly.",
            "errors": errors,
        })

    menu = MenuRepository(db)
    unavailable = []
    for line in cart.lines:
        try:
            if not menu.get(line["id"]).in_stock:
                unavailable.append(line["name"])
        except NotFoundError:
            unavailable.append(line["name"])
    if unavailable:
        raise HTTPException(status_code=400, detail=f"No longer available: {', '.join(unavailable)}")

    totals = calculate_totals(cart.lines, form.discount_code)
    order_data = {
        "customer_name": form.customer_name.strip(),
        "customer_email": form.customer_email.strip().lower(),
        "customer_phone": form.customer_phone.strip(),
        "address": format_address(form),
        "total": totals["total"],
        "status": "pending",
        "payment_status": payment_status_for(form.payment_method),
        "payment_method": form.payment_method,
        "notes": form.notes.strip() or None,
    }
    items = [
        {"menu_item_id": line["id"], "name": line["name"], "quantity": line["quantity"], "price": line["price"]}
        for line in cart.lines
    ]

    try:
        order = OrderRepository(db).create(order_data, items)
    except SQLAlchemyError as e:
        logger.error(f"Error creating order: {e}")
        raise HTTPException(status_code=500, detail="Failed to place order. Please try again.")

    logger.info(f"Order {order.id} placed by {order.customer_email} ({totals['total']:.2f})")
    service.clear(owner)

    email_sent = True
    try:
        email_service.send_order_confirmation(
            customer_email=order.customer_email,
            customer_name=order.customer_name,
            order_id=order.id,
            order_items=items,
            total=order.total,
            estimated_time="15-20 minutes" if form.delivery_method == "pickup" else "35-45 minutes",
        )
    except EmailDeliveryError as e:
        # The order stands even when the confirmation email fails
        email_sent = False
        logger.error(f"Order {order.id}: confirmation email failed: {e}")

    return {"order": order_to_response(order), "email_sent": email_sent, **totals}


# ========== Orders ==========

@app.get("/admin/orders", response_model=List[OrderResponse])
def admin_list_orders(status: Optional[str] = None, db: Session = Depends(get_db),
                      admin: models.User = Depends(get_current_admin)):
    return [order_to_response(order) for order in OrderRepository(db).list(status=status)]


@app.get("/admin/orders/stats", response_model=OrderStats)
def admin_order_stats(db: Session = Depends(get_db), admin: models.User = Depends(get_current_admin)):
    return OrderRepository(db).stats()


@app.get("/admin/orders/{order_id}", response_model=OrderResponse)
def admin_get_order(order_id: int, db: Session = Depends(get_db), admin: models.User = Depends(get_current_admin)):
    return order_to_response(OrderRepository(db).get(order_id))


@app.patch("/admin/orders/{order_id}/status", response_model=OrderResponse)
def update_order_status(order_id: int, payload: OrderStatusUpdate, db: Session = Depends(get_db),
                        admin: models.User = Depends(get_current_admin)):
    try:
        order = OrderRepository(db).update_status(order_id, payload.status)
    except SQLAlchemyError as e:
        raise _server_error(db, f"updating order {order_id}", e)

    logger.info(f"Order {order_id} status -> {payload.status}")
    return order_to_response(order)


@app.delete("/admin/orders/{order_id}")
def delete_order(order_id: int, db: Session = Depends(get_db), admin: models.User = Depends(get_current_admin)):
    try:
        OrderRepository(db).delete(order_id)
    except SQLAlchemyError as e:
        raise _server_error(db, f"deleting order {order_id}", e)
    return {"message": "Order deleted successfully"}


@app.get("/account/orders", response_model=List[OrderResponse])
def get_my_orders(db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    return [order_to_response(order) for order in OrderRepository(db).list_for_email(current_user.email)]


# ========== Newsletter & email functions ==========

@app.post("/newsletter/subscribe")
@rate_limit(max_requests=5, window=60, key_prefix="newsletter")
async def subscribe_newsletter(request: Request, payload: NewsletterSubscribe):
    try:
        await run_in_threadpool(email_service.send_newsletter_welcome, payload.email, payload.name)
    except EmailDeliveryError as e:
        logger.error(f"Newsletter welcome email to {payload.email} failed: {e}")
        raise HTTPException(status_code=502, detail="Could not subscribe to newsletter. Please try again.")
    return {"message": "Thank you for subscribing to our newsletter!"}


def _function_result(action: str, send):
    try:
        email_id = send()
    except EmailDeliveryError as e:
        logger.error(f"Error in {action}: {e}")
        return JSONResponse(status_code=500, content={
            "success": False,
            "error": str(e),
            "details": f"Failed to send {action.replace('-', ' ')} email",
        })
    return EmailResult(success=True, message=f"{action} email sent successfully", emailId=email_id)


@app.post("/functions/send-order-confirmation", response_model=EmailResult)
def fn_send_order_confirmation(payload: OrderConfirmationRequest, admin: models.User = Depends(get_current_admin)):
    return _function_result("order-confirmation", lambda: email_service.send_order_confirmation(
        payload.customer_email,
        payload.customer_name,
        payload.order_id,
        [line.dict() for line in payload.order_items],
        payload.total,
        payload.estimated_time,
    ))


@app.post("/functions/send-admin-verification", response_model=EmailResult)
def fn_send_admin_verification(payload: AdminVerificationRequest, admin: models.User = Depends(get_current_admin)):
    return _function_result("admin-verification", lambda: email_service.send_admin_verification(
        payload.email, payload.confirm_url, payload.site_name
    ))


@app.post("/functions/send-newsletter-welcome", response_model=EmailResult)
def fn_send_newsletter_welcome(payload: NewsletterSubscribe, admin: models.User = Depends(get_current_admin)):
    return _function_result("newsletter-welcome", lambda: email_service.send_newsletter_welcome(
        payload.email, payload.name
    ))


@app.post("/functions/send-test-email", response_model=EmailResult)
def fn_send_test_email(payload: TestEmailRequest, admin: models.User = Depends(get_current_admin)):
    return _function_result("test", lambda: email_service.send_test_email(
        payload.email, payload.subject, payload.content
    ))


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
