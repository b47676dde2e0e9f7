# scripts/create_user.py
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

import argparse
from db.session import SessionLocal
from db import models as db_models
from core.security import get_password_hash
from models.user import UserCreate
from api.auth import register_user
from services.company_resolver import ensure_unknown_company


def main():
    parser = argparse.ArgumentParser(description="Create a user, or reset its password and make sure it has an unknown company.")
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--full-name", default=None)
    args = parser.parse_args()

    db = SessionLocal()
    try:
        user = db.query(db_models.User).filter(db_models.User.email == args.email.lower()).one_or_none()
        if user:
            user.hashed_password = get_password_hash(args.password)
            user.is_active = True
            ensure_unknown_company(db, user.id)
            db.commit()
            print(f"Updated user {user.email} (id={user.id})")
        else:
            user = register_user(db, UserCreate(email=args.email, password=args.password, full_name=args.full_name))
            print(f"Created user {user.email} (id={user.id})")
    finally:
        db.close()

if __name__ == "__main__":
    main()
