from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.core.hashing import hash_password, verify_password
from backoffice.core.rate_limiter import limiter
from backoffice.database import get_db
from backoffice.models.users import User
from backoffice.schemas.user import UserCreate, UserResponse, UserUpdate

router = APIRouter(prefix="/api/users", tags=["Users"])

COMMON_PASSWORDS = {
    "password",
    "password123",
    "12345678",
    "qwerty123",
    "admin123",
}


def _check_password_strength(password: str):
    if password.lower() in COMMON_PASSWORDS:
        raise HTTPException(
            status_code=400,
            detail="Password is too common. Please choose a stronger password.",
        )

    if password.isdigit():
        raise HTTPException(
            status_code=400,
            detail="Password cannot be numbers only.",
        )


def _email_taken(db: Session, email: str, exclude_id: int | None = None) -> bool:
    query = db.query(User.id).filter(func.lower(User.email) == email.lower())
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


# ---------------- REGISTER ----------------
@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("3/minute")
def register_user(request: Request, user_data: UserCreate, db: Session = Depends(get_db)):
    _check_password_strength(user_data.password)

    if _email_taken(db, user_data.email):
        raise HTTPException(status_code=409, detail="Email already exists")

    user = User(
        name=user_data.name.strip(),
        email=user_data.email,
        password_hash=hash_password(user_data.password),
        phone=user_data.phone,
        location=user_data.location,
    )

    try:
        db.add(user)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise HTTPException(status_code=500, detail="Unable to create account")

    db.refresh(user)

    return user


# ---------------- READ ----------------
@router.get("", response_model=list[UserResponse])
def list_users(db: Session = Depends(get_db)):
    return db.query(User).order_by(User.id).all()


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return _get_user_or_404(db, user_id)


# ---------------- UPDATE PROFILE ----------------
@router.put("/{user_id}")
def update_user(user_id: int, user_data: UserUpdate, db: Session = Depends(get_db)):
    user = _get_user_or_404(db, user_id)

    if user_data.email and user_data.email.lower() != user.email.lower():
        if _email_taken(db, user_data.email, exclude_id=user.id):
            raise HTTPException(status_code=409, detail="Email already in use")

    if user_data.new_password:
        if not user_data.current_password:
            raise HTTPException(status_code=400, detail="Current password is required")

        if not verify_password(user_data.current_password, user.password_hash):
            raise HTTPException(status_code=400, detail="Current password is incorrect")

        _check_password_strength(user_data.new_password)
        user.password_hash = hash_password(user_data.new_password)

    user.name = user_data.name or user.name
    user.email = user_data.email or user.email
    user.phone = user_data.phone if user_data.phone is not None else user.phone
    user.location = user_data.location if user_data.location is not None else user.location

    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise HTTPException(status_code=500, detail="Unable to update profile")

    db.refresh(user)

    return {
        "message": "Profile updated successfully",
        "user": UserResponse.model_validate(user),
    }
