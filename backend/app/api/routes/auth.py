from datetime import timedelta
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, ProgrammingError
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db
from app.core.config import get_settings
from app.core.security import create_access_token, get_password_hash, verify_password
from app.db.bootstrap import ensure_runtime_schema_compatibility
from app.models.teacher import Teacher
from app.models.user import User, UserRole
from app.schemas.user import Token, UserCreate, UserLogin, UserOut

settings = get_settings()
router = APIRouter()
logger = logging.getLogger(__name__)


def ensure_teacher_profile(db: Session, *, user: User) -> bool:
    """Link a teacher-role account to its Teacher row, creating the row when missing."""
    teacher = db.execute(select(Teacher).where(Teacher.email == user.email)).scalar_one_or_none()
    if teacher is None:
        db.add(Teacher(user_id=user.id, full_name=user.name, email=user.email))
        return True
    if teacher.user_id is None:
        teacher.user_id = user.id
        return True
    return False


def _query_user_by_email(db: Session, email: str) -> User | None:
    statement = select(User).where(User.email == email)
    try:
        return db.execute(statement).scalar_one_or_none()
    except ProgrammingError:
        # Auto-heal additive schema drift for long-lived developer databases.
        db.rollback()
        try:
            ensure_runtime_schema_compatibility()
            return db.execute(statement).scalar_one_or_none()
        except Exception as bootstrap_exc:
            logger.exception("Database schema compatibility check failed during auth lookup")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Database schema is outdated. Run `alembic upgrade head` and restart backend.",
            ) from bootstrap_exc


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(payload: UserCreate, db: Session = Depends(get_db)) -> UserOut:
    existing = _query_user_by_email(db, payload.email)
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    user = User(
        name=payload.name,
        email=payload.email,
        hashed_password=get_password_hash(payload.password),
        role=payload.role,
    )
    db.add(user)

    if payload.role == UserRole.teacher:
        db.flush()
        ensure_teacher_profile(db, user=user)

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered") from exc

    db.refresh(user)
    logger.info("USER REGISTERED | user_id=%s | role=%s", user.id, user.role.value)
    return user


def validate_login_user(payload: UserLogin, db: Session) -> User:
    user = _query_user_by_email(db, payload.email)
    if user is None or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive")
    if payload.role and payload.role != user.role:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Role does not match user account")
    return user


@router.post("/login", response_model=Token)
def login(payload: UserLogin, db: Session = Depends(get_db)) -> Token:
    user = validate_login_user(payload, db)

    if user.role == UserRole.teacher and ensure_teacher_profile(db, user=user):
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if db.execute(select(Teacher).where(Teacher.email == user.email)).scalar_one_or_none() is None:
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail="Unable to ensure teacher profile for this account.",
                )

    access_token = create_access_token(user.id, expires_delta=timedelta(minutes=settings.access_token_expire_minutes))
    return Token(access_token=access_token, token_type="bearer", user=user)


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)) -> UserOut:
    return current_user


@router.post("/logout")
def logout(current_user: User = Depends(get_current_user)) -> dict:
    return {"success": True}
