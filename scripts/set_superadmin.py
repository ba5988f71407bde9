"""
Otorgar o quitar el rol de super administrador a un usuario existente.

Uso:
    docker compose exec api python scripts/set_superadmin.py admin@tallerapp.com
    docker compose exec api python scripts/set_superadmin.py admin@tallerapp.com --revoke
"""

# Add project root to sys.path so `app.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse

from app.database.database import SessionLocal
from app.modules.auth.models import User


def set_superuser(db, email: str, value: bool) -> User:
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if not user:
        raise SystemExit(f"No existe un usuario con email {email}")

    user.is_superuser = value
    db.commit()
    db.refresh(user)
    return user


def main():
    parser = argparse.ArgumentParser(description="Gestionar super administradores")
    parser.add_argument("email", help="Email del usuario")
    parser.add_argument("--revoke", action="store_true", help="Quitar el rol en lugar de otorgarlo")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        user = set_superuser(db, args.email, not args.revoke)
        state = "es" if user.is_superuser else "ya no es"
        print(f"{user.email} {state} super administrador")
    finally:
        db.close()


if __name__ == "__main__":
    main()
