"""
Authentication endpoints
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from hrms.core.deps import get_db
from hrms.core.security import create_access_token, verify_password
from hrms.models.user import User
from hrms.schemas.auth import LoginRequest, TokenResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Authenticate user and return JWT token

    Tokens expire after JWT_EXPIRE_MINUTES; inactive accounts are refused.
    """
    user = db.query(User).filter(User.username == login_data.username).first()

    if user is None or not verify_password(login_data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password"
        )

    if not user.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )

    access_token = create_access_token(data={"sub": str(user.id), "username": user.username})
    logger.info("User %s logged in", user.id)
    return TokenResponse(access_token=access_token, token_type="bearer")
