from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

import auth
import models
from database import get_db


def _user_from_token(token: str, db: Session):
    payload = auth.verify_token(token)
    if not payload or payload.get("purpose"):
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id = payload.get("sub")
    if not user_id or not str(user_id).isdigit():
        raise HTTPException(status_code=401, detail="Invalid token")

    user = db.query(models.User).filter(models.User.id == int(user_id)).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


async def get_current_user(authorization: Optional[str] = Header(None), db: Session = Depends(get_db)):
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    return _user_from_token(authorization.replace("Bearer ", ""), db)


async def get_optional_user(authorization: Optional[str] = Header(None), db: Session = Depends(get_db)):
    """Same as get_current_user, but guests get None instead of a 401."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return _user_from_token(authorization.replace("Bearer ", ""), db)


async def get_current_admin(current_user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    # The role is read from user_roles on every request, never from the token
    role = db.query(models.UserRole).filter(models.UserRole.user_id == current_user.id).first()
    if not role or role.role != "admin":
        raise HTTPException(status_code=403, detail="Only administrators can access this resource")
    if not current_user.is_verified:
        raise HTTPException(status_code=403, detail="Email not confirmed")
    return current_user
