import logging
import os
import secrets
from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

# Fall back to pbkdf2 when the installed bcrypt backend cannot be used
try:
    pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
    pwd_context.hash("test")
except Exception as e:
    logger.warning(f"bcrypt is not available: {e}, using pbkdf2_sha256")
    pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_secret_key():
    env_key = os.getenv("SECRET_KEY")
    if env_key:
        return env_key

    key_file = ".secret_key"
    if os.path.exists(key_file):
        try:
            with open(key_file, "r", encoding="utf-8") as f:
                return f.read().strip()
        except UnicodeDecodeError:
            logger.warning("Could not read the secret key file, generating a new one")
            os.remove(key_file)

    new_key = secrets.token_urlsafe(32)
    with open(key_file, "w", encoding="utf-8") as f:
        f.write(new_key)
    if os.name != "nt":
        os.chmod(key_file, 0o600)
    logger.info("Generated a new SECRET_KEY")
    return new_key


SECRET_KEY = get_secret_key()
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
VERIFICATION_TOKEN_EXPIRE_HOURS = 48


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def authenticate_user(db: Session, email: str, password: str):
    from models import User
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if not user or not verify_password(password, user.password):
        return None
    return user


def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def create_user_token(user) -> str:
    return create_access_token(data={"sub": str(user.id), "email": user.email, "role": user.role_name})


def create_verification_token(email: str) -> str:
    return create_access_token(
        data={"sub": email, "purpose": "verify-email"},
        expires_delta=timedelta(hours=VERIFICATION_TOKEN_EXPIRE_HOURS),
    )


def verify_token(token: str):
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None
