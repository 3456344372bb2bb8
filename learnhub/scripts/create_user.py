from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Allow running this file directly: `python learnhub/scripts/create_user.py`
if __package__ in (None, ""):
    repo_root = Path(__file__).resolve().parents[2]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))

from sqlalchemy import select

from learnhub.core.security import hash_password
from learnhub.db.seed import seed_roles
from learnhub.db.session import SessionLocal
from learnhub.models import Course, CourseEnrollment, CourseTeacher, User
from learnhub.services.access_policy import role_id_for


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create or update a user for local/dev verification.")
    parser.add_argument("--email", required=True, help="User email")
    parser.add_argument("--password", required=True, help="Plain password (will be hashed)")
    parser.add_argument("--name", default="", help="Display name (optional)")
    parser.add_argument("--role", default="student", choices=["admin", "teacher", "student"])
    parser.add_argument("--course-id", type=int, default=None, help="Optional course id to join")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    email = args.email.strip().lower()
    name = args.name.strip() or email.split("@")[0]

    if len(args.password) < 6:
        print("Error: password must be at least 6 characters", file=sys.stderr)
        return 2

    with SessionLocal() as db:
        seed_roles(db)
        role_id = role_id_for(db, args.role)

        user = db.execute(select(User).where(User.email == email)).scalars().first()
        created = False
        if not user:
            user = User(email=email, name=name, password_hash=hash_password(args.password), role_id=role_id)
            db.add(user)
            db.flush()
            created = True
        else:
            user.name = name
            user.password_hash = hash_password(args.password)
            user.role_id = role_id

        joined = False
        if args.course_id is not None:
            course = db.get(Course, args.course_id)
            if not course:
                print(f"Error: course not found: {args.course_id}", file=sys.stderr)
                db.rollback()
                return 3
            if args.role == "student":
                if not db.get(CourseEnrollment, (user.id, course.id)):
                    db.add(CourseEnrollment(user_id=user.id, course_id=course.id))
                    joined = True
            elif args.role == "teacher":
                if not db.get(CourseTeacher, (user.id, course.id)):
                    db.add(CourseTeacher(user_id=user.id, course_id=course.id, is_owner=False))
                    joined = True

        db.commit()

    print({"ok": True, "created": created, "email": email, "role": args.role, "joined_course": joined})
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
