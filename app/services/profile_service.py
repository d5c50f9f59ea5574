"""
Profile Service
Writes the profile row that accompanies a new identity
"""
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import Profile, UserRole


def split_display_name(display_name: str) -> Tuple[str, str]:
    """
    Split a display name on its first space.

    "Alice Smith" -> ("Alice", "Smith"), "Ann de Vries" -> ("Ann", "de Vries").
    A single word is used for both parts: "Madonna" -> ("Madonna", "Madonna").
    """
    name = display_name.strip()
    if " " not in name:
        return name, name
    first, last = name.split(" ", 1)
    return first, last.strip() or first


class ProfileService:
    """Profile store used by the registrar"""

    async def insert_profile(
        self,
        db: AsyncSession,
        user_id: int,
        email: str,
        firstname: str,
        lastname: str,
        cohort_id: Optional[int],
        role: UserRole = UserRole.TRAINEE
    ) -> Profile:
        """
        Add and flush a profile row. Does not commit; the registrar commits
        together with the token consumption.
        """
        profile = Profile(
            user_id=user_id,
            email=email,
            firstname=firstname,
            lastname=lastname,
            cohort_id=cohort_id,
            role=role,
            onboarding_completed=False,
        )
        db.add(profile)
        await db.flush()
        return profile


profile_service = ProfileService()
