"""
Portal Seeding Script

Provisions accounts with their profiles and a demo course for local
development. Profiles are created here because the portal itself never
creates them.

Usage:
    python -m scripts.seed_portal admin@example.com secret admin
    python -m scripts.seed_portal --demo
"""
import argparse
import asyncio
import uuid
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from portal.db.config import DATABASE_URL, build_engine
from portal.models.persisted_portal import (
    AccountRecord,
    Base,
    CourseRecord,
    ProfileRecord,
    TrainingRecord,
)
from portal.security import hash_password


DEMO_ACCOUNTS = [
    ("admin@example.com", "admin123", "admin"),
    ("student@example.com", "student123", "student"),
]

DEMO_COURSE = {
    "title": "Onboarding",
    "description": "Everything a new team member needs in their first week",
    "lessons": [
        ("Welcome to the team", "https://www.youtube.com/watch?v=dQw4w9WgXcQ", 1),
        ("Tools and access", "https://vimeo.com/76979871", 2),
        ("Customer service basics", "https://www.youtube.com/watch?v=aqz-KE-bpKQ", 3),
    ],
}


async def provision_account(session: AsyncSession, email: str, password: str, role: str) -> str:
    """Create the profile and credentials for an account, or update the password."""
    email = email.strip().lower()
    existing = await session.execute(
        select(AccountRecord).where(AccountRecord.email == email)
    )
    account = existing.scalar_one_or_none()
    if account:
        account.password_hash = hash_password(password)
        profile = await session.get(ProfileRecord, account.id)
        if profile is not None:
            profile.role = role
        print(f"  ~ Updated {email} ({role})")
        return account.id

    user_id = str(uuid.uuid4())
    session.add(ProfileRecord(id=user_id, email=email, role=role))
    await session.flush()
    session.add(
        AccountRecord(id=user_id, email=email, password_hash=hash_password(password))
    )
    print(f"  + Created {email} ({role})")
    return user_id


async def seed_demo_course(session: AsyncSession) -> None:
    existing = await session.execute(
        select(CourseRecord).where(CourseRecord.title == DEMO_COURSE["title"])
    )
    if existing.scalar_one_or_none():
        print(f"  - Course '{DEMO_COURSE['title']}' already exists, skipping")
        return
    course = CourseRecord(
        title=DEMO_COURSE["title"], description=DEMO_COURSE["description"]
    )
    session.add(course)
    await session.flush()
    for title, url, order in DEMO_COURSE["lessons"]:
        session.add(
            TrainingRecord(
                title=title, video_url=url, order_number=order, course_id=course.id
            )
        )
    print(f"  + Created course '{course.title}' with {len(DEMO_COURSE['lessons'])} lessons")


async def seed(args: argparse.Namespace) -> None:
    print(f"Connecting to database: {DATABASE_URL}")
    engine = build_engine(DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        if args.demo:
            for email, password, role in DEMO_ACCOUNTS:
                await provision_account(session, email, password, role)
            await seed_demo_course(session)
        else:
            await provision_account(session, args.email, args.password, args.role)
        await session.commit()

    await engine.dispose()
    print("Seeding complete")


def main() -> None:
    parser = argparse.ArgumentParser(description="Provision portal accounts")
    parser.add_argument("email", nargs="?")
    parser.add_argument("password", nargs="?")
    parser.add_argument("role", nargs="?", choices=["admin", "student"], default="student")
    parser.add_argument("--demo", action="store_true", help="create demo accounts and a demo course")
    args = parser.parse_args()
    if not args.demo and not (args.email and args.password):
        parser.error("email and password are required unless --demo is given")
    asyncio.run(seed(args))


if __name__ == "__main__":
    main()
