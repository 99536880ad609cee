# inventario/services/accounts.py
import logging
import re
from typing import List, Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import exists, func
from sqlalchemy.orm import Session

from models.role import Role
from models.stock import StockMovement
from models.users import MAIN_ADMIN_USERNAME, User
from utils.errors import ErrorCode, conflict, invalid, not_found
from utils.hashing import get_password_hash, verify_password

logger = logging.getLogger(__name__)

USERNAME_RE = re.compile(r"^[A-Za-z0-9._-]+$")


class RoleService:
    def __init__(self, db: Session):
        self.db = db

    def list(self) -> List[Role]:
        return self.db.query(Role).order_by(Role.id).all()

    def get(self, role_id: int) -> Role:
        if role_id is None or role_id <= 0:
            raise invalid("El ID debe ser mayor a 0")
        role = self.db.get(Role, role_id)
        if role is None:
            raise not_found(f"Rol no encontrado con ID: {role_id}")
        return role

    def find_by_name(self, name: str) -> Role:
        name = self._validate_name(name)
        role = self.db.query(Role).filter(func.upper(Role.name) == name).first()
        if role is None:
            raise not_found(f"Rol no encontrado: {name}")
        return role

    def exists(self, name: str) -> bool:
        name = self._validate_name(name)
        return self.db.query(exists().where(func.upper(Role.name) == name)).scalar()

    def count_users(self, role_id: int, only_active: bool = True) -> int:
        self.get(role_id)
        query = self.db.query(func.count(User.id)).filter(User.role_id == role_id)
        if only_active:
            query = query.filter(User.active.is_(True))
        return query.scalar() or 0

    def create(self, name: str, description: Optional[str] = None) -> Role:
        name = self._validate_name(name)
        description = self._validate_description(description)
        if self.exists(name):
            raise conflict(f"Ya existe un rol con el nombre: {name}")
        role = Role(name=name, description=description)
        self.db.add(role)
        self.db.commit()
        self.db.refresh(role)
        logger.info(f"Role created: {role.name}")
        return role

    def update(self, role_id: int, name: str, description: Optional[str] = None) -> Role:
        role = self.get(role_id)
        name = self._validate_name(name)
        description = self._validate_description(description)
        if name != role.name.upper():
            if role.is_system:
                raise conflict(f"No se puede renombrar el rol del sistema: {role.name}")
            if self.exists(name):
                raise conflict(f"Ya existe un rol con el nombre: {name}")
            role.name = name
        role.description = description
        self.db.commit()
        self.db.refresh(role)
        logger.info(f"Role updated: {role.name}")
        return role

    def delete(self, role_id: int) -> Role:
        role = self.get(role_id)
        if role.is_system:
            raise conflict(f"No se puede eliminar el rol del sistema: {role.name}")
        users = self.count_users(role_id, only_active=False)
        if users:
            raise conflict(
                f"No se puede eliminar el rol '{role.name}' porque tiene {users} usuarios asignados",
                ErrorCode.ROLE_HAS_USERS,
            )
        self.db.delete(role)
        self.db.commit()
        logger.info(f"Role deleted: {role.name}")
        return role

    @staticmethod
    def _validate_name(name: Optional[str]) -> str:
        if name is None or not name.strip():
            raise invalid("El nombre del rol no puede estar vacío")
        name = name.strip().upper()
        if len(name) > 50:
            raise invalid("El nombre del rol no puede exceder 50 caracteres")
        return name

    @staticmethod
    def _validate_description(description: Optional[str]) -> Optional[str]:
        if description is None or not description.strip():
            return None
        description = description.strip()
        if len(description) > 255:
            raise invalid("La descripción no puede exceder 255 caracteres")
        return description


class UserService:
    """User accounts. Passwords are stored as bcrypt hashes and never returned."""

    def __init__(self, db: Session):
        self.db = db
        self.roles = RoleService(db)

    def list(self, active: Optional[bool] = None) -> List[User]:
        query = self.db.query(User)
        if active is not None:
            query = query.filter(User.active.is_(active))
        return query.order_by(User.id).all()

    def get(self, user_id: int) -> User:
        if user_id is None or user_id <= 0:
            raise invalid("El ID debe ser mayor a 0")
        user = self.db.get(User, user_id)
        if user is None:
            raise not_found(f"Usuario no encontrado con ID: {user_id}")
        return user

    def find_by_username(self, username: str) -> User:
        if username is None or not username.strip():
            raise invalid("El nombre de usuario no puede estar vacío")
        user = self.db.query(User).filter(func.lower(User.username) == username.strip().lower()).first()
        if user is None:
            raise not_found(f"Usuario no encontrado: {username}")
        return user

    def find_for_login(self, login: str) -> Optional[User]:
        """Match either the username or the email, case-insensitively."""
        login = (login or "").strip().lower()
        if not login:
            return None
        return (
            self.db.query(User)
            .filter((func.lower(User.username) == login) | (func.lower(User.email) == login))
            .first()
        )

    def by_role(self, role_id: int) -> List[User]:
        self.roles.get(role_id)
        return self.db.query(User).filter(User.role_id == role_id).order_by(User.id).all()

    def username_exists(self, username: str) -> bool:
        return self.db.query(exists().where(func.lower(User.username) == username.strip().lower())).scalar()

    def email_exists(self, email: str) -> bool:
        return self.db.query(exists().where(func.lower(User.email) == email.strip().lower())).scalar()

    def has_movements(self, user_id: int) -> bool:
        return self.db.query(exists().where(StockMovement.user_id == user_id)).scalar()

    def authenticate(self, login: str, password: str) -> Optional[User]:
        user = self.find_for_login(login)
        if user is None or not verify_password(password, user.password_hash):
            return None
        return user

    def create(self, *, username: str, password: str, full_name: str, role_id: int,
               email: Optional[str] = None, active: bool = True) -> User:
        username = self._validate_username(username)
        self._validate_password(password)
        full_name = self._validate_full_name(full_name)
        email = self._validate_email(email)
        role = self.roles.get(role_id)
        if self.username_exists(username):
            raise conflict(f"Ya existe un usuario con el nombre: {username}")
        if email and self.email_exists(email):
            raise conflict(f"Ya existe un usuario con el email: {email}")

        user = User(
            username=username,
            password_hash=get_password_hash(password),
            full_name=full_name,
            email=email,
            active=active,
            role_id=role.id,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"User created: {user.username} ({role.name})")
        return user

    def update(self, user_id: int, *, username: str, full_name: str, role_id: int,
               email: Optional[str] = None, password: Optional[str] = None) -> User:
        user = self.get(user_id)
        username = self._validate_username(username)
        full_name = self._validate_full_name(full_name)
        email = self._validate_email(email)

        if username.lower() != user.username.lower():
            if user.username == MAIN_ADMIN_USERNAME:
                raise conflict("No se puede cambiar el nombre del usuario administrador principal")
            if self.username_exists(username):
                raise conflict(f"Ya existe un usuario con el nombre: {username}")
        if email and email != (user.email or "").lower() and self.email_exists(email):
            raise conflict(f"Ya existe un usuario con el email: {email}")
        if role_id != user.role_id:
            user.role_id = self.roles.get(role_id).id

        user.username = username
        user.full_name = full_name
        user.email = email
        if password:
            self._validate_password(password)
            user.password_hash = get_password_hash(password)
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"User updated: {user.username}")
        return user

    def set_active(self, user_id: int, active: bool) -> User:
        user = self.get(user_id)
        if not active and user.username == MAIN_ADMIN_USERNAME:
            raise conflict("No se puede desactivar el usuario administrador principal")
        user.active = active
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"User {'activated' if active else 'deactivated'}: {user.username}")
        return user

    def change_password(self, user: User, current_password: str, new_password: str) -> User:
        if not verify_password(current_password, user.password_hash):
            raise invalid("La contraseña actual no es correcta")
        self._validate_password(new_password)
        if current_password == new_password:
            raise invalid("La nueva contraseña debe ser diferente a la actual")
        user.password_hash = get_password_hash(new_password)
        self.db.commit()
        logger.info(f"Password changed for user {user.username}")
        return user

    def delete(self, user_id: int) -> User:
        user = self.get(user_id)
        if user.username == MAIN_ADMIN_USERNAME:
            raise conflict("No se puede eliminar el usuario administrador principal")
        if self.has_movements(user_id):
            raise conflict(
                f"No se puede eliminar el usuario '{user.username}' porque tiene movimientos de inventario registrados",
                ErrorCode.USER_HAS_MOVEMENTS,
            )
        self.db.delete(user)
        self.db.commit()
        logger.info(f"User deleted: {user.username}")
        return user

    # ---- validation ----

    @staticmethod
    def _validate_username(username: Optional[str]) -> str:
        if username is None or not username.strip():
            raise invalid("El nombre de usuario no puede estar vacío")
        username = username.strip()
        if not 3 <= len(username) <= 20:
            raise invalid("El nombre de usuario debe tener entre 3 y 20 caracteres")
        if not USERNAME_RE.match(username):
            raise invalid("El nombre de usuario solo puede contener letras, números, puntos, guiones y guiones bajos")
        return username

    @staticmethod
    def _validate_password(password: Optional[str]) -> None:
        if not password:
            raise invalid("La contraseña es obligatoria")
        if not 6 <= len(password) <= 100:
            raise invalid("La contraseña debe tener entre 6 y 100 caracteres")

    @staticmethod
    def _validate_full_name(full_name: Optional[str]) -> str:
        if full_name is None or not full_name.strip():
            raise invalid("El nombre completo no puede estar vacío")
        full_name = full_name.strip()
        if not 2 <= len(full_name) <= 100:
            raise invalid("El nombre completo debe tener entre 2 y 100 caracteres")
        return full_name

    @staticmethod
    def _validate_email(email: Optional[str]) -> Optional[str]:
        if email is None or not email.strip():
            return None
        email = email.strip().lower()
        if len(email) > 100:
            raise invalid("El email no puede exceder 100 caracteres")
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError:
            raise invalid(f"El formato del email no es válido: {email}")
        return email
