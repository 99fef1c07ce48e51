from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from ..models.user import User, Rol
from ..schemas.auth import UserCreate, UserLogin
from ..core.security import get_password_hash, verify_password, create_access_token
from ..core.config import settings
from ..core.logging_config import get_logger
from .security_log_service import SecurityLogService
from datetime import datetime, timedelta
from typing import List, Optional

logger = get_logger(__name__)

DEFAULT_ROLES = ("administrador", "guarda", "recepcion")


class AuthService:

    @staticmethod
    def create_user(db: Session, user: UserCreate) -> User:
        existing_user = db.query(User).filter(User.email == user.email).first()
        if existing_user:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered"
            )

        role = db.query(Rol).filter(Rol.id_rol == user.role_id).first()
        if not role:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Role not found"
            )

        db_user = User(
            name_user=user.name_user,
            email=user.email,
            password_hash=get_password_hash(user.password),
            active=user.active,
            role_id=user.role_id
        )
        db.add(db_user)
        db.commit()
        db.refresh(db_user)
        logger.info("Operator %s created with role %s", db_user.email, role.name_rol)
        return db_user

    @staticmethod
    def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
        user = db.query(User).filter(User.email == email, User.active.is_(True)).first()
        if not user:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    @staticmethod
    def login_user(db: Session, user_login: UserLogin, origin: str = "unknown", now: Optional[datetime] = None):
        """Authenticate an operator; every attempt lands in the security log keyed by origin."""
        now = now or datetime.now()
        user = AuthService.authenticate_user(db, user_login.email, user_login.password)
        if not user:
            SecurityLogService.login_failed(db, user_login.email, "invalid credentials", origin, now)
            logger.warning("Failed login for %s from %s", user_login.email, origin)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Incorrect email or password",
                headers={"WWW-Authenticate": "Bearer"},
            )

        user.last_login_at = now
        db.commit()
        SecurityLogService.login_success(db, user.id_user, user.email, origin, now)

        access_token = create_access_token(
            data={"sub": user.email},
            expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
        )
        return {
            "access_token": access_token,
            "token_type": "bearer",
            "user": user
        }

    @staticmethod
    def create_role(db: Session, name_rol: str) -> Rol:
        existing_role = db.query(Rol).filter(Rol.name_rol == name_rol).first()
        if existing_role:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Role already exists"
            )

        role = Rol(name_rol=name_rol)
        db.add(role)
        db.commit()
        db.refresh(role)
        return role

    @staticmethod
    def get_roles(db: Session) -> List[Rol]:
        return db.query(Rol).all()

    @staticmethod
    def ensure_default_roles(db: Session) -> List[Rol]:
        """Create the operator roles the desk and guard stations expect, if missing."""
        existing = {name for (name,) in db.query(Rol.name_rol).all()}
        created = []
        for name in DEFAULT_ROLES:
            if name not in existing:
                role = Rol(name_rol=name)
                db.add(role)
                created.append(role)
        if created:
            db.commit()
            logger.info("Created default roles: %s", ", ".join(r.name_rol for r in created))
        return created
