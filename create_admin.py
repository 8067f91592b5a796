import sys
import asyncio
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError
from app.core.security import hash_password
from app.core.enums import UserRole
from app.db.session import AsyncSessionLocal, engine
from app.models import Base, User


async def create_admin_user(username: str, password: str, full_name: str | None = None) -> bool:
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        async with AsyncSessionLocal() as db:
            res = await db.execute(select(User).where(User.username == username))
            if res.scalars().first():
                print(f"Error: User '{username}' already exists")
                return False

            user = User(
                username=username,
                password_hash=hash_password(password),
                full_name=full_name,
                role=UserRole.ADMIN,
            )
            db.add(user)
            await db.commit()
            await db.refresh(user)

        print(f"Admin user '{username}' created successfully")
        print(f"User ID: {user.id}")
        print(f"Role: {UserRole.ADMIN}")
        return True

    except SQLAlchemyError as e:
        print(f"Error creating admin user: {str(e)}")
        return False
    finally:
        await engine.dispose()


def main():
    if len(sys.argv) < 3:
        print("Usage: python create_admin.py <username> <password> [full name]")
        sys.exit(1)

    username = sys.argv[1]
    password = sys.argv[2]
    full_name = " ".join(sys.argv[3:]) or None

    if not username or not password:
        print("Error: username and password cannot be empty")
        sys.exit(1)

    success = asyncio.run(create_admin_user(username, password, full_name))
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
