"""
Shopping cart: quantity-keyed lines persisted per owner.

Signed-in users keep their cart in the user_carts table, guests keep theirs
under a guest session id in Redis (or in process memory while Redis is down).
"""
import logging
import os
import random
import re
import string
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import models
from redis_client import GUEST_CART_TTL, redis_client

logger = logging.getLogger(__name__)

CART_LOGIN_POLICY = os.getenv("CART_LOGIN_POLICY", "merge")
LOGIN_POLICIES = ("merge", "replace")

LINE_FIELDS = ("id", "name", "price", "image", "quantity")
GUEST_SESSION_RE = re.compile(r"^guest_\d+_[a-z0-9]{9}$")


def new_guest_session_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"guest_{int(time.time() * 1000)}_{suffix}"


def is_guest_session_id(value: Optional[str]) -> bool:
    return bool(value) and GUEST_SESSION_RE.match(value) is not None


class Cart:
    """List of {id, name, price, image, quantity}; every quantity is >= 1."""

    def __init__(self, lines: Optional[List[Dict]] = None):
        self.lines: List[Dict] = []
        for line in lines or []:
            if int(line.get("quantity", 0)) >= 1:
                self.lines.append({field: line.get(field) for field in LINE_FIELDS})

    def _find(self, item_id: int) -> Optional[Dict]:
        for line in self.lines:
            if line["id"] == item_id:
                return line
        return None

    def add(self, item: Dict, quantity: int = 1) -> Dict:
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")

        line = self._find(item["id"])
        if line:
            line["quantity"] += quantity
            return line

        line = {
            "id": item["id"],
            "name": item["name"],
            "price": float(item["price"]),
            "image": item.get("image"),
            "quantity": quantity,
        }
        self.lines.append(line)
        return line

    def remove(self, item_id: int) -> bool:
        before = len(self.lines)
        self.lines = [line for line in self.lines if line["id"] != item_id]
        return len(self.lines) != before

    def update_quantity(self, item_id: int, quantity: int) -> bool:
        """Set the quantity of a line; anything below 1 removes the line."""
        if quantity < 1:
            return self.remove(item_id)
        line = self._find(item_id)
        if not line:
            return False
        line["quantity"] = quantity
        return True

    def clear(self):
        self.lines = []

    def merge(self, other: "Cart"):
        for line in other.lines:
            self.add(line, line["quantity"])

    @property
    def total(self) -> float:
        return round(sum(line["price"] * line["quantity"] for line in self.lines), 2)

    @property
    def item_count(self) -> int:
        return sum(line["quantity"] for line in self.lines)

    def is_empty(self) -> bool:
        return not self.lines

    def to_list(self) -> List[Dict]:
        return [dict(line) for line in self.lines]


@dataclass
class CartOwner:
    user_id: Optional[int] = None
    session_id: Optional[str] = None

    @property
    def is_guest(self) -> bool:
        return self.user_id is None


class GuestCartStore:
    """Guest carts in Redis, held in process memory when Redis is unavailable."""

    def __init__(self, client=redis_client, ttl: int = GUEST_CART_TTL, clock=time.time):
        self.client = client
        self.ttl = ttl
        self.clock = clock
        # key -> (saved_at, lines)
        self._local: Dict[str, Tuple[float, List[Dict]]] = {}

    def _evict_expired(self):
        cutoff = self.clock() - self.ttl
        for key in [key for key, (saved_at, _) in self._local.items() if saved_at < cutoff]:
            del self._local[key]

    def load(self, key: str) -> List[Dict]:
        cached = self.client.load_guest_cart(key)
        if cached is not None:
            return cached
        self._evict_expired()
        entry = self._local.get(key)
        return entry[1] if entry else []

    def save(self, key: str, lines: List[Dict]):
        self._evict_expired()
        if self.client.save_guest_cart(key, lines):
            self._local.pop(key, None)
        else:
            self._local[key] = (self.clock(), lines)

    def delete(self, key: str):
        self.client.delete_guest_cart(key)
        self._local.pop(key, None)


guest_cart_store = GuestCartStore()


def _user_fallback_key(user_id: int) -> str:
    # Never matches GUEST_SESSION_RE, so a guest header cannot reach it
    return f"user:{user_id}"


class CartService:
    def __init__(self, db: Session, store: GuestCartStore = None):
        self.db = db
        self.store = store or guest_cart_store

    def load(self, owner: CartOwner) -> Cart:
        if owner.is_guest:
            return Cart(self.store.load(owner.session_id))

        row = self.db.query(models.UserCart).filter(models.UserCart.user_id == owner.user_id).first()
        if row is None or not row.cart_data:
            # A failed remote save leaves the cart in the fallback store
            return Cart(self.store.load(_user_fallback_key(owner.user_id)))
        return Cart(row.cart_data)

    def save(self, owner: CartOwner, cart: Cart):
        if owner.is_guest:
            self.store.save(owner.session_id, cart.to_list())
            return

        try:
            row = self.db.query(models.UserCart).filter(models.UserCart.user_id == owner.user_id).first()
            if row:
                row.cart_data = cart.to_list()
            else:
                self.db.add(models.UserCart(user_id=owner.user_id, cart_data=cart.to_list()))
            self.db.commit()
            self.store.delete(_user_fallback_key(owner.user_id))
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error saving cart for user {owner.user_id}, keeping it in fallback storage: {e}")
            self.store.save(_user_fallback_key(owner.user_id), cart.to_list())

    def clear(self, owner: CartOwner):
        if owner.is_guest:
            self.store.delete(owner.session_id)
            return

        self.store.delete(_user_fallback_key(owner.user_id))
        try:
            self.db.query(models.UserCart).filter(models.UserCart.user_id == owner.user_id).delete()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error clearing cart for user {owner.user_id}: {e}")

    def claim(self, user_id: int, session_id: str, policy: str = None) -> Cart:
        """Move a guest cart into the signed-in user's cart."""
        policy = policy or CART_LOGIN_POLICY
        if policy not in LOGIN_POLICIES:
            raise ValueError(f"Unknown cart login policy: {policy}")

        user_owner = CartOwner(user_id=user_id)
        guest_cart = Cart(self.store.load(session_id))
        user_cart = self.load(user_owner)

        if guest_cart.is_empty():
            return user_cart

        if policy == "replace":
            user_cart = guest_cart
        else:
            user_cart.merge(guest_cart)

        self.save(user_owner, user_cart)
        self.store.delete(session_id)
        logger.info(f"Guest cart {session_id} claimed by user {user_id} ({policy})")
        return user_cart
