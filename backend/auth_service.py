import logging
import os
from typing import List, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import auth
import email_service
import models
from database import engine, get_db, init_restaurant_data, wait_for_db
from dependencies import get_current_admin, get_current_user, get_optional_user
from email_service import EmailDeliveryError
from redis_client import rate_limit
from schemas import PasswordChange, ProfileResponse, ProfileUpdate, UserCreate, UserLogin, UserResponse

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger("restaurant.auth")

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:8080")

app = FastAPI(title="DistinctGyrro Auth Service")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_URL, "http://localhost:3000", "http://localhost:8080"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup_event():
    if wait_for_db():
        try:
            models.Base.metadata.create_all(bind=engine)
            init_restaurant_data(seed_menu=False)
        except SQLAlchemyError as e:
            logger.error(f"Error creating/initialising the database: {e}")


@app.get("/health")
def health_check():
    return {"status": "auth service healthy"}


def user_to_response(user: models.User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=user.role_name,
        is_verified=bool(user.is_verified),
    )


def token_response(user: models.User) -> dict:
    return {
        "access_token": auth.create_user_token(user),
        "token_type": "bearer",
        "user": user_to_response(user).dict(),
    }


def _create_user(db: Session, user: UserCreate, role: str, is_verified: bool = True) -> models.User:
    if db.query(models.User).filter(models.User.email == user.email).first():
        raise HTTPException(status_code=400, detail="Email already registered")

    db_user = models.User(
        email=user.email,
        password=auth.get_password_hash(user.password),
        full_name=user.full_name,
        is_verified=is_verified,
    )
    db_user.role = models.UserRole(role=role)
    db_user.profile = models.Profile(full_name=user.full_name)
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def _admin_count(db: Session) -> int:
    return db.query(models.UserRole).filter(models.UserRole.role == "admin").count()


@app.post("/register", response_model=UserResponse, status_code=201)
def register(user: UserCreate, db: Session = Depends(get_db)):
    try:
        db_user = _create_user(db, user, role="customer")
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error registering {user.email}: {e}")
        raise HTTPException(status_code=500, detail="Error creating account")

    logger.info(f"Customer {db_user.email} registered")
    return user_to_response(db_user)


def _authenticate(db: Session, credentials: UserLogin) -> models.User:
    if not credentials.email or not credentials.password:
        raise HTTPException(status_code=400, detail="Missing email or password")
    db_user = auth.authenticate_user(db, credentials.email, credentials.password)
    if not db_user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect email or password")
    return db_user


@app.post("/login")
@rate_limit(max_requests=10, window=60, key_prefix="auth")
async def login(request: Request, credentials: UserLogin, db: Session = Depends(get_db)):
    db_user = _authenticate(db, credentials)
    return token_response(db_user)


@app.post("/admin/login")
@rate_limit(max_requests=10, window=60, key_prefix="auth")
async def admin_login(request: Request, credentials: UserLogin, db: Session = Depends(get_db)):
    db_user = _authenticate(db, credentials)
    if db_user.role_name != "admin":
        logger.warning(f"Admin login refused for {db_user.email}")
        raise HTTPException(status_code=403, detail="You don't have admin privileges. Contact the site owner.")
    if not db_user.is_verified:
        raise HTTPException(status_code=403, detail="Email not confirmed")
    return token_response(db_user)


@app.post("/admin/register", response_model=UserResponse, status_code=201)
async def admin_register(user: UserCreate, db: Session = Depends(get_db),
                         current_user: Optional[models.User] = Depends(get_optional_user)):
    """
    The first admin is created verified without authentication.
    After that only an admin can invite another one, and the invitee
    has to confirm the email before logging in.
    """
    bootstrap = _admin_count(db) == 0
    if not bootstrap:
        if current_user is None:
            raise HTTPException(status_code=401, detail="Not authenticated")
        await get_current_admin(current_user, db)

    try:
        db_user = _create_user(db, user, role="admin", is_verified=bootstrap)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating admin {user.email}: {e}")
        raise HTTPException(status_code=500, detail="Error creating admin account")

    if bootstrap:
        logger.info(f"Bootstrap admin {db_user.email} created")
        return user_to_response(db_user)

    token = auth.create_verification_token(db_user.email)
    confirm_url = f"{FRONTEND_URL}/admin/verify-email?token={token}"
    try:
        await run_in_threadpool(email_service.send_admin_verification, db_user.email, confirm_url)
    except EmailDeliveryError as e:
        # The account exists; the invitation can be resent
        logger.error(f"Admin verification email to {db_user.email} failed: {e}")

    logger.info(f"Admin {db_user.email} invited by {current_user.email}")
    return user_to_response(db_user)


@app.get("/verify-email")
def verify_email(token: str, db: Session = Depends(get_db)):
    payload = auth.verify_token(token)
    if not payload or payload.get("purpose") != "verify-email":
        raise HTTPException(status_code=400, detail="Invalid or expired verification link")

    db_user = db.query(models.User).filter(models.User.email == payload.get("sub")).first()
    if not db_user:
        raise HTTPException(status_code=404, detail="User not found")

    if not db_user.is_verified:
        db_user.is_verified = True
        db.commit()
        logger.info(f"{db_user.email} verified")
    return {"message": "Email verified successfully", "email": db_user.email}


@app.get("/me", response_model=UserResponse)
def get_current_user_info(current_user: models.User = Depends(get_current_user)):
    return user_to_response(current_user)


def profile_to_response(user: models.User) -> ProfileResponse:
    profile = user.profile
    return ProfileResponse(
        id=user.id,
        email=user.email,
        full_name=(profile.full_name if profile else None) or user.full_name,
        phone=profile.phone if profile else None,
        address=profile.address if profile else None,
        city=profile.city if profile else None,
        zip_code=profile.zip_code if profile else None,
    )


@app.get("/me/profile", response_model=ProfileResponse)
def get_profile(current_user: models.User = Depends(get_current_user)):
    return profile_to_response(current_user)


@app.put("/me/profile", response_model=ProfileResponse)
def update_profile(payload: ProfileUpdate, db: Session = Depends(get_db),
                   current_user: models.User = Depends(get_current_user)):
    changes = payload.dict(exclude_unset=True)
    try:
        if current_user.profile is None:
            current_user.profile = models.Profile()
        for key, value in changes.items():
            setattr(current_user.profile, key, value)
        if "full_name" in changes:
            current_user.full_name = changes["full_name"]
        db.commit()
        db.refresh(current_user)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating profile for {current_user.email}: {e}")
        raise HTTPException(status_code=500, detail="Error updating profile")
    return profile_to_response(current_user)


@app.put("/me/password")
def change_password(password_data: PasswordChange, db: Session = Depends(get_db),
                    current_user: models.User = Depends(get_current_user)):
    current_user.password = auth.get_password_hash(password_data.new_password)
    db.commit()
    return {"message": "Password updated successfully"}


@app.delete("/me")
def delete_own_account(db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    if current_user.role_name == "admin" and _admin_count(db) <= 1:
        raise HTTPException(status_code=400, detail="Cannot delete the last administrator account")

    email = current_user.email
    try:
        db.delete(current_user)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting account {email}: {e}")
        raise HTTPException(status_code=500, detail="Error deleting account")

    logger.info(f"Account {email} deleted")
    return {"message": f"Your account {email} deleted.", "deleted_user": email}


@app.get("/users", response_model=List[UserResponse])
def get_users(db: Session = Depends(get_db), admin: models.User = Depends(get_current_admin)):
    return [user_to_response(user) for user in db.query(models.User).order_by(models.User.id).all()]


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8001)
