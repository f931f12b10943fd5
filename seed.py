#!/usr/bin/env python3
"""
Seed LearnChat with sample training examples
============================================
Creates the tables, then inserts the sample training set for one user,
creating that user first when --password is given.

Usage:
    python seed.py --email demo@example.com [--password secret123]
    python seed.py --user-id 1
"""

import argparse
import sys

from learnchat.auth import get_password_hash
from learnchat.database import SessionLocal, engine, Base
from learnchat.models import TrainingExample, User
from learnchat.worker.seed_data import SAMPLE_SOURCE, seed_sample_examples


def find_or_create_user(db, email=None, user_id=None, password=None):
    if user_id is not None:
        return db.get(User, user_id)

    user = db.query(User).filter(User.email == email).first()
    if user is None and password:
        user = User(email=email, hashed_password=get_password_hash(password), is_active=True)
        db.add(user)
        db.commit()
        db.refresh(user)
        print(f"Created user {email} (id {user.id})")
    return user


def main():
    parser = argparse.ArgumentParser(description="Seed sample LearnChat training data")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--email", help="Email of the user to seed")
    target.add_argument("--user-id", type=int, help="ID of the user to seed")
    parser.add_argument("--password", help="Create the user with this password if missing")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Seed even if the user already has sample examples",
    )
    args = parser.parse_args()

    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        user = find_or_create_user(db, email=args.email, user_id=args.user_id, password=args.password)
        if user is None:
            print("User not found. Pass --password to create it.", file=sys.stderr)
            sys.exit(1)

        existing = db.query(TrainingExample).filter(
            TrainingExample.user_id == user.id,
            TrainingExample.extra_data["source"].as_string() == SAMPLE_SOURCE,
        ).count()
        if existing and not args.force:
            print(f"User {user.id} already has {existing} sample examples. Use --force to add more.")
            return

        count = seed_sample_examples(db, user.id)
        print("Database seeded successfully!")
        print(f"  - {count} training examples for user {user.id}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
