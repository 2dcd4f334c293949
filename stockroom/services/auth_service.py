import logging
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from sqlalchemy.orm import Session

from stockroom.config import settings
from stockroom.models.user import User

logger = logging.getLogger(__name__)


def normalize_username(username: str) -> str:
    return username.strip().lower()


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode(), hashed.encode())


def create_access_token(user_id: str, username: str) -> str:
    payload = {
        "sub": user_id,
        "username": username,
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm="HS256")


def decode_token(token: str) -> dict | None:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=["HS256"])
    except jwt.InvalidTokenError:
        return None


def authenticate(db: Session, username: str, password: str) -> User | None:
    """Check credentials and stamp the login time on success."""
    user = db.query(User).filter(User.username == normalize_username(username), User.active == True).first()  # noqa: E712
    if not user or not verify_password(password, user.password_hash):
        logger.info("Failed login for %r", username)
        return None
    user.last_login_at = datetime.now(timezone.utc).replace(tzinfo=None)
    db.commit()
    db.refresh(user)
    return user


def get_user_by_id(db: Session, user_id: str) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def create_user(db: Session, username: str, password: str, display_name: str = "") -> User:
    username = normalize_username(username)
    if not username:
        raise ValueError("Username is required")
    if len(password) < settings.MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters")
    if db.query(User).filter(User.username == username).first():
        raise ValueError(f"Username '{username}' already exists")
    user = User(
        username=username,
        display_name=display_name.strip() or username,
        password_hash=hash_password(password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def ensure_kitchen_account(db: Session) -> User | None:
    """Create the first kitchen account from settings on an empty database.

    Returns the new account, or None when accounts already exist.
    """
    if db.query(User).count() > 0:
        return None
    user = create_user(db, settings.DEFAULT_ADMIN_USERNAME, settings.DEFAULT_ADMIN_PASSWORD, display_name="Kitchen")
    logger.info("Created kitchen account %r", user.username)
    if settings.DEFAULT_ADMIN_PASSWORD == "admin":
        logger.warning("Kitchen account %r uses the default password; set DEFAULT_ADMIN_PASSWORD", user.username)
    return user
