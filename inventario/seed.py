# inventario/seed.py
"""Base data: system roles, sample categories and the bootstrap admin account.

Safe to run repeatedly; existing rows are left untouched.
    python seed.py
"""
import logging

from sqlalchemy.orm import Session

from config import settings
from database import SessionLocal, init_db
from models.category import Category
from models.role import Role
from models.users import MAIN_ADMIN_USERNAME, User
from utils.hashing import get_password_hash

logger = logging.getLogger(__name__)

ROLES = [
    ("ADMIN", "Administrador del sistema con acceso completo"),
    ("GERENTE", "Gerente con permisos de gestión de inventario y usuarios"),
    ("EMPLEADO", "Empleado con permisos básicos de consulta y registro"),
]

CATEGORIES = [
    ("Electrónicos", "Dispositivos electrónicos y tecnología"),
    ("Ropa", "Prendas de vestir y accesorios"),
    ("Hogar", "Artículos para el hogar"),
    ("Deportes", "Equipos y artículos deportivos"),
    ("Libros", "Libros y material de lectura"),
]


def seed_base_data(db: Session) -> None:
    created = 0
    for name, description in ROLES:
        if not db.query(Role).filter(Role.name == name).first():
            db.add(Role(name=name, description=description))
            created += 1
    db.flush()

    for name, description in CATEGORIES:
        if not db.query(Category).filter(Category.name == name).first():
            db.add(Category(name=name, description=description))
            created += 1

    if not db.query(User).filter(User.username == MAIN_ADMIN_USERNAME).first():
        admin_role = db.query(Role).filter(Role.name == "ADMIN").one()
        db.add(User(
            username=MAIN_ADMIN_USERNAME,
            password_hash=get_password_hash(settings.ADMIN_PASSWORD),
            full_name="Administrador Sistema",
            email="admin@tienda.com",
            active=True,
            role_id=admin_role.id,
        ))
        created += 1

    db.commit()
    if created:
        logger.info(f"Seeded {created} base records")


if __name__ == "__main__":
    from utils.logging_config import setup_logging

    setup_logging(log_to_file=False)
    init_db()
    session = SessionLocal()
    try:
        seed_base_data(session)
    finally:
        session.close()
