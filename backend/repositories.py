"""
Typed data access, one method per operation.

Repositories flush and commit their own writes; callers handle rollback.
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

import models
from database import DEFAULT_SETTINGS


class NotFoundError(Exception):
    pass


class DuplicateError(Exception):
    pass


def _apply(obj, data: Dict):
    for key, value in data.items():
        setattr(obj, key, value)


class MenuRepository:
    def __init__(self, db: Session):
        self.db = db

    def list(self, category: Optional[str] = None, search: Optional[str] = None,
             featured: Optional[bool] = None, in_stock: Optional[bool] = None) -> List[models.MenuItem]:
        query = self.db.query(models.MenuItem)
        if category and category != "all":
            query = query.filter(models.MenuItem.category == category)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(or_(
                func.lower(models.MenuItem.name).like(pattern),
                func.lower(models.MenuItem.description).like(pattern),
            ))
        if featured is not None:
            query = query.filter(models.MenuItem.featured == featured)
        if in_stock is not None:
            query = query.filter(models.MenuItem.in_stock == in_stock)
        return query.order_by(models.MenuItem.id).all()

    def get(self, item_id: int) -> models.MenuItem:
        item = self.db.get(models.MenuItem, item_id)
        if not item:
            raise NotFoundError("Menu item not found")
        return item

    def create(self, data: Dict) -> models.MenuItem:
        item = models.MenuItem(**data)
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        return item

    def update(self, item_id: int, data: Dict) -> models.MenuItem:
        item = self.get(item_id)
        _apply(item, data)
        self.db.commit()
        self.db.refresh(item)
        return item

    def delete(self, item_id: int):
        item = self.get(item_id)
        self.db.delete(item)
        self.db.commit()

    def toggle_featured(self, item_id: int) -> models.MenuItem:
        item = self.get(item_id)
        item.featured = not item.featured
        self.db.commit()
        self.db.refresh(item)
        return item

    def toggle_in_stock(self, item_id: int) -> models.MenuItem:
        item = self.get(item_id)
        item.in_stock = not item.in_stock
        self.db.commit()
        self.db.refresh(item)
        return item


class CategoryRepository:
    def __init__(self, db: Session):
        self.db = db

    def list(self) -> List[models.Category]:
        return self.db.query(models.Category).order_by(models.Category.order_index, models.Category.id).all()

    def get(self, category_id: int) -> models.Category:
        category = self.db.get(models.Category, category_id)
        if not category:
            raise NotFoundError("Category not found")
        return category

    def _ensure_unique(self, name: str, exclude_id: Optional[int] = None):
        query = self.db.query(models.Category).filter(models.Category.name == name)
        if exclude_id is not None:
            query = query.filter(models.Category.id != exclude_id)
        if query.first():
            raise DuplicateError(f"Category '{name}' already exists")

    def create(self, data: Dict) -> models.Category:
        self._ensure_unique(data["name"])
        category = models.Category(**data)
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return category

    def update(self, category_id: int, data: Dict) -> models.Category:
        category = self.get(category_id)
        if data.get("name"):
            self._ensure_unique(data["name"], exclude_id=category_id)
        _apply(category, data)
        self.db.commit()
        self.db.refresh(category)
        return category

    def delete(self, category_id: int):
        category = self.get(category_id)
        self.db.delete(category)
        self.db.commit()


class GalleryRepository:
    def __init__(self, db: Session):
        self.db = db

    def list(self) -> List[models.GalleryImage]:
        return self.db.query(models.GalleryImage).order_by(models.GalleryImage.id).all()

    def list_featured(self) -> List[models.GalleryImage]:
        return (self.db.query(models.GalleryImage)
                .filter(models.GalleryImage.featured.is_(True))
                .order_by(models.GalleryImage.id)
                .all())

    def get(self, image_id: int) -> models.GalleryImage:
        image = self.db.get(models.GalleryImage, image_id)
        if not image:
            raise NotFoundError("Gallery image not found")
        return image

    def add(self, data: Dict) -> models.GalleryImage:
        image = models.GalleryImage(**data)
        self.db.add(image)
        self.db.commit()
        self.db.refresh(image)
        return image

    def update(self, image_id: int, data: Dict) -> models.GalleryImage:
        image = self.get(image_id)
        _apply(image, data)
        self.db.commit()
        self.db.refresh(image)
        return image

    def delete(self, image_id: int):
        image = self.get(image_id)
        self.db.delete(image)
        self.db.commit()

    def set_featured(self, image_id: int, featured: bool) -> models.GalleryImage:
        return self.update(image_id, {"featured": featured})


class TeamRepository:
    def __init__(self, db: Session):
        self.db = db

    def list(self) -> List[models.TeamMember]:
        return self.db.query(models.TeamMember).order_by(models.TeamMember.order_index, models.TeamMember.id).all()

    def get(self, member_id: int) -> models.TeamMember:
        member = self.db.get(models.TeamMember, member_id)
        if not member:
            raise NotFoundError("Team member not found")
        return member

    def create(self, data: Dict) -> models.TeamMember:
        member = models.TeamMember(**data)
        self.db.add(member)
        self.db.commit()
        self.db.refresh(member)
        return member

    def update(self, member_id: int, data: Dict) -> models.TeamMember:
        member = self.get(member_id)
        _apply(member, data)
        self.db.commit()
        self.db.refresh(member)
        return member

    def delete(self, member_id: int):
        member = self.get(member_id)
        self.db.delete(member)
        self.db.commit()


class SettingsRepository:
    SINGLETON_ID = 1

    def __init__(self, db: Session):
        self.db = db

    def get(self) -> models.RestaurantSettings:
        settings = self.db.get(models.RestaurantSettings, self.SINGLETON_ID)
        if not settings:
            settings = models.RestaurantSettings(id=self.SINGLETON_ID, **DEFAULT_SETTINGS)
            self.db.add(settings)
            self.db.commit()
            self.db.refresh(settings)
        return settings

    def update(self, data: Dict) -> models.RestaurantSettings:
        """Only the keys present in data are written; the id never changes."""
        settings = self.get()
        data = {key: value for key, value in data.items() if key != "id"}
        _apply(settings, data)
        self.db.commit()
        self.db.refresh(settings)
        return settings


class OrderRepository:
    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(models.Order).options(
            joinedload(models.Order.items).joinedload(models.OrderItem.menu_item)
        )

    def list(self, status: Optional[str] = None) -> List[models.Order]:
        query = self._query()
        if status:
            query = query.filter(models.Order.status == status)
        return query.order_by(models.Order.created_at.desc(), models.Order.id.desc()).all()

    def list_for_email(self, email: str) -> List[models.Order]:
        return (self._query()
                .filter(func.lower(models.Order.customer_email) == email.lower())
                .order_by(models.Order.created_at.desc(), models.Order.id.desc())
                .all())

    def get(self, order_id: int) -> models.Order:
        order = self._query().filter(models.Order.id == order_id).first()
        if not order:
            raise NotFoundError("Order not found")
        return order

    def create(self, order_data: Dict, items: List[Dict]) -> models.Order:
        """Insert the order and its item rows in a single transaction."""
        if not items:
            raise ValueError("Order must contain at least one item")

        order = models.Order(**order_data)
        for item in items:
            quantity = int(item["quantity"])
            price = float(item["price"])
            order.items.append(models.OrderItem(
                menu_item_id=item.get("menu_item_id"),
                name=item.get("name"),
                quantity=quantity,
                price=price,
                subtotal=round(price * quantity, 2),
            ))

        self.db.add(order)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(order)
        return order

    def update_status(self, order_id: int, status: str) -> models.Order:
        if status not in models.ORDER_STATUSES:
            raise ValueError(f"Unknown order status: {status}")
        order = self.get(order_id)
        order.status = status
        order.updated_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(order)
        return order

    def delete(self, order_id: int):
        order = self.get(order_id)
        self.db.delete(order)
        self.db.commit()

    def stats(self) -> Dict:
        orders = self.db.query(models.Order).all()
        today = datetime.now(timezone.utc).date()

        def is_today(order):
            created = order.created_at
            if created is None:
                return False
            if created.tzinfo is None:
                created = created.replace(tzinfo=timezone.utc)
            return created.astimezone(timezone.utc).date() == today

        todays = [order for order in orders if is_today(order)]

        def count(status):
            return sum(1 for order in orders if order.status == status)

        return {
            "total_orders": len(orders),
            "total_revenue": round(sum(float(order.total) for order in orders), 2),
            "pending_orders": count("pending"),
            "preparing_orders": count("preparing"),
            "ready_orders": count("ready"),
            "delivered_orders": count("delivered"),
            "today_orders": len(todays),
            "today_revenue": round(sum(float(order.total) for order in todays), 2),
        }
