"""Credential store lookups used by the auth core."""
from typing import List, Optional
from sqlalchemy import func, select
from prairiemed.models.user import Role, User, user_roles
from prairiemed.services.store import SQLStore
from prairiemed.utils.helpers import utcnow


class UserStore(SQLStore):
    def find_by_email(self, email: str) -> Optional[User]:
        """Case-insensitive email lookup."""
        if not email:
            return None
        with self.guard("find_user_by_email"):
            return self.db.execute(
                select(User).where(func.lower(User.email) == email.strip().lower()).limit(1)
            ).scalar_one_or_none()

    def find_by_id(self, user_id: str) -> Optional[User]:
        with self.guard("find_user_by_id"):
            return self.db.get(User, str(user_id))

    def get_roles(self, user_id: str) -> List[str]:
        # Queried rather than read off the relationship so role changes made by
        # other requests are picked up at issuance time.
        with self.guard("get_roles"):
            rows = self.db.execute(
                select(Role.name)
                .join(user_roles, user_roles.c.role_id == Role.id)
                .where(user_roles.c.user_id == str(user_id))
                .order_by(Role.name)
            ).scalars().all()
        return list(rows)

    def migrate_password(self, user: User, new_hash: str) -> None:
        """Stage the upgraded hash; committed with the rest of the login."""
        with self.guard("migrate_password"):
            user.password_hash = new_hash
            self.db.flush()

    def touch_last_login(self, user: User) -> None:
        user.last_login = utcnow()

    def public_profile(self, user_id: str, roles: Optional[List[str]] = None) -> dict:
        user = self.find_by_id(user_id)
        if user is None:
            # Token outlived the account row; return the minimal shape
            return {
                "user_id": str(user_id),
                "email": "",
                "first_name": None,
                "last_name": None,
                "title": None,
                "organization_id": None,
                "facility_id": None,
                "locale": "en",
                "roles": roles or [],
            }
        return {
            "user_id": user.id,
            "email": user.email,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "title": user.title,
            "organization_id": user.organization_id,
            "facility_id": user.facility_id,
            "locale": user.locale or "en",
            "roles": roles if roles is not None else self.get_roles(user.id),
        }
