from fastapi import APIRouter, Depends, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from ..core.database import get_db
from ..schemas.auth import UserCreate, UserLogin, UserResponse, Token, RolCreate, RolResponse
from ..services.auth_service import AuthService
from ..utils.dependencies import get_current_active_user
from ..models.user import User
from typing import List

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/signup", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def signup(user: UserCreate, db: Session = Depends(get_db)):
    """Create a new operator account"""
    return AuthService.create_user(db, user)


@router.post("/login", response_model=Token)
def login(user_login: UserLogin, request: Request, db: Session = Depends(get_db)):
    """Login operator and return access token"""
    origin = request.client.host if request.client else "unknown"
    result = AuthService.login_user(db, user_login, origin)
    return {
        "access_token": result["access_token"],
        "token_type": result["token_type"]
    }


@router.post("/token", response_model=Token)
def login_for_access_token(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """OAuth2 password flow login; the username field carries the email"""
    origin = request.client.host if request.client else "unknown"
    user_login = UserLogin(email=form_data.username, password=form_data.password)
    result = AuthService.login_user(db, user_login, origin)
    return {
        "access_token": result["access_token"],
        "token_type": result["token_type"]
    }


@router.get("/me", response_model=UserResponse)
def read_current_user(current_user: User = Depends(get_current_active_user)):
    """Get the logged-in operator"""
    return current_user


@router.post("/roles", response_model=RolResponse, status_code=status.HTTP_201_CREATED)
def create_role(
    role: RolCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Create a new role"""
    return AuthService.create_role(db, role.name_rol)


@router.get("/roles", response_model=List[RolResponse])
def get_roles(db: Session = Depends(get_db)):
    """Get all roles"""
    return AuthService.get_roles(db)
