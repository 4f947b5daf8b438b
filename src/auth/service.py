import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from src.models import User, Role, UserHasRole
from src.auth.schemas import UserCreate, User as UserSchema
from src.auth.utils import get_password_hash, verify_password
from typing import List, Optional

logger = logging.getLogger(__name__)

class UserService:
    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        """Get user by email"""
        return db.query(User).filter(User.email == email).first()

    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        """Get user by ID"""
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_or_create_role(db: Session, name: str) -> Role:
        role = db.query(Role).filter(Role.name == name).first()
        if role is None:
            role = Role(name=name)
            db.add(role)
            db.flush()
        return role

    @staticmethod
    def create_user(db: Session, user: UserCreate, roles: Optional[List[str]] = None) -> User:
        """Create a new user with the default 'user' role plus any extra roles"""
        db_user = User(
            name=user.name,
            email=user.email,
            password=get_password_hash(user.password)
        )

        try:
            db.add(db_user)
            db.flush()

            for role_name in ["user"] + [r for r in (roles or []) if r != "user"]:
                role = UserService.get_or_create_role(db, role_name)
                db.add(UserHasRole(user_id=db_user.id, role_id=role.id))

            db.commit()
            db.refresh(db_user)
        except IntegrityError:
            db.rollback()
            raise ValueError("Email already registered")

        logger.info("Registered user %s", db_user.id)
        return db_user

    @staticmethod
    def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
        """Authenticate user with email and password"""
        user = UserService.get_user_by_email(db, email)
        if not user:
            return None
        if not verify_password(password, user.password):
            return None
        return user

    @staticmethod
    def get_user_roles(db: Session, user_id: int) -> List[str]:
        """Get user's role names"""
        rows = (
            db.query(Role.name)
            .join(UserHasRole, UserHasRole.role_id == Role.id)
            .filter(UserHasRole.user_id == user_id)
            .all()
        )
        return [name for (name,) in rows]

    @staticmethod
    def to_schema(db: Session, user: User) -> UserSchema:
        return UserSchema(
            id=user.id,
            name=user.name,
            email=user.email,
            roles=UserService.get_user_roles(db, user.id),
            created_at=user.created_at,
            updated_at=user.updated_at
        )
