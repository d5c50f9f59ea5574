"""
Script to create an admin or staff account (invitations are for trainees only)
Usage: python scripts/create_staff_user.py <email> <password> "<full name>" [admin|staff]
"""
import sys
import asyncio
from sqlalchemy import select
from app.db.session import get_db_session
from app.core.exceptions import RegistrationError
from app.models import User, UserRole
from app.services.auth_service import auth_service
from app.services.profile_service import profile_service, split_display_name


async def create_staff_user(email: str, password: str, display_name: str, role: UserRole) -> bool:
    """Create an identity with a staff-level profile"""
    async with get_db_session() as db:
        result = await db.execute(select(User).where(User.email == email))
        if result.scalar_one_or_none():
            print(f"User with email '{email}' already exists")
            return False

        try:
            user = await auth_service.create_identity(db, email, password)
        except RegistrationError as e:
            print(f"Could not create user: {e.message}")
            return False

        firstname, lastname = split_display_name(display_name)
        await profile_service.insert_profile(
            db,
            user_id=user.id,
            email=email,
            firstname=firstname,
            lastname=lastname,
            cohort_id=None,
            role=role,
        )
        await db.commit()

        print(f"Created {role.value} account {email} (id={user.id})")
        return True


if __name__ == "__main__":
    if len(sys.argv) < 4:
        print(__doc__)
        sys.exit(1)

    role = UserRole(sys.argv[4]) if len(sys.argv) > 4 else UserRole.ADMIN
    if role == UserRole.TRAINEE:
        print("Trainees must register with an invitation token")
        sys.exit(1)

    ok = asyncio.run(create_staff_user(sys.argv[1], sys.argv[2], sys.argv[3], role))
    sys.exit(0 if ok else 1)
