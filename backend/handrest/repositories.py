"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
profiles, roles, catalog, add-ons, bookings). Repositories return
SQLModel objects and perform commits/refreshes where appropriate.
"""

from datetime import datetime, timezone
from typing import Iterable, List, Optional
from sqlmodel import Session, select
from . import models


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_by_username(self, username: str) -> Optional[models.User]:
        """Return a `User` by username or `None` if not found."""
        stmt = select(models.User).where(models.User.username == username)
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)


class ProfileRepository:
    """Contact profiles keyed by user id."""
    def __init__(self, session: Session):
        self.session = session

    def upsert(self, profile: models.Profile) -> models.Profile:
        """Create the profile for `profile.user_id` or update the existing one."""
        existing = self.get_for_user(profile.user_id)
        if existing:
            existing.full_name = profile.full_name
            existing.phone = profile.phone
            existing.email = profile.email
            profile = existing
        self.session.add(profile)
        self.session.commit()
        self.session.refresh(profile)
        return profile

    def get_for_user(self, user_id: int) -> Optional[models.Profile]:
        stmt = select(models.Profile).where(models.Profile.user_id == user_id)
        return self.session.exec(stmt).first()

    def list_for_users(self, user_ids: Iterable[int]) -> List[models.Profile]:
        """Return profiles whose `user_id` is in `user_ids`."""
        ids = list(user_ids)
        if not ids:
            return []
        stmt = select(models.Profile).where(models.Profile.user_id.in_(ids))
        return self.session.exec(stmt).all()


class RoleRepository:
    """Role grants (`UserRole` rows)."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, role: models.UserRole) -> models.UserRole:
        self.session.add(role)
        self.session.commit()
        self.session.refresh(role)
        return role

    def get(self, role_id: int) -> Optional[models.UserRole]:
        return self.session.get(models.UserRole, role_id)

    def list_all(self) -> List[models.UserRole]:
        """Return every role row, newest first."""
        stmt = select(models.UserRole).order_by(models.UserRole.created_at.desc(), models.UserRole.id.desc())
        return self.session.exec(stmt).all()

    def roles_for_user(self, user_id: int) -> List[str]:
        stmt = select(models.UserRole.role).where(models.UserRole.user_id == user_id)
        return list(self.session.exec(stmt).all())

    def update_role(self, role_id: int, role: str) -> Optional[models.UserRole]:
        """Set `role` on the row identified by `role_id`.

        Returns the updated row, or `None` when no such row exists.
        """
        row = self.get(role_id)
        if not row:
            return None
        row.role = role
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row


class CategoryRepository:
    """Read access to service categories."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, category: models.ServiceCategory) -> models.ServiceCategory:
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        return category

    def list_active(self) -> List[models.ServiceCategory]:
        stmt = (
            select(models.ServiceCategory)
            .where(models.ServiceCategory.is_active == True)  # noqa: E712
            .order_by(models.ServiceCategory.display_order, models.ServiceCategory.id)
        )
        return self.session.exec(stmt).all()

    def get(self, category_id: int) -> Optional[models.ServiceCategory]:
        return self.session.get(models.ServiceCategory, category_id)

    def get_by_name(self, name: str) -> Optional[models.ServiceCategory]:
        stmt = select(models.ServiceCategory).where(models.ServiceCategory.name == name)
        return self.session.exec(stmt).first()


class PackageRepository:
    """Read access to packages."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, package: models.Package) -> models.Package:
        self.session.add(package)
        self.session.commit()
        self.session.refresh(package)
        return package

    def list(self, category_id: Optional[int] = None) -> List[models.Package]:
        """List active packages, optionally restricted to one category."""
        stmt = select(models.Package).where(models.Package.is_active == True)  # noqa: E712
        if category_id is not None:
            stmt = stmt.where(models.Package.category_id == category_id)
        stmt = stmt.order_by(models.Package.display_order, models.Package.id)
        return self.session.exec(stmt).all()

    def get(self, package_id: int) -> Optional[models.Package]:
        return self.session.get(models.Package, package_id)

    def find_by_name_in_category(self, name: str, category_id: int) -> Optional[models.Package]:
        stmt = select(models.Package).where(
            models.Package.name == name,
            models.Package.category_id == category_id
        )
        return self.session.exec(stmt).first()


class AddonRepository:
    """CRUD operations for `AddonService` rows."""
    def __init__(self, session: Session):
        self.session = session

    def list(self, active_only: bool = False) -> List[models.AddonService]:
        """Return add-ons ordered by `display_order`."""
        stmt = select(models.AddonService)
        if active_only:
            stmt = stmt.where(models.AddonService.is_active == True)  # noqa: E712
        stmt = stmt.order_by(models.AddonService.display_order, models.AddonService.id)
        return self.session.exec(stmt).all()

    def list_by_ids(self, addon_ids: Iterable[int]) -> List[models.AddonService]:
        ids = list(addon_ids)
        if not ids:
            return []
        stmt = select(models.AddonService).where(models.AddonService.id.in_(ids))
        return self.session.exec(stmt).all()

    def get(self, addon_id: int) -> Optional[models.AddonService]:
        return self.session.get(models.AddonService, addon_id)

    def create(self, addon: models.AddonService) -> models.AddonService:
        self.session.add(addon)
        self.session.commit()
        self.session.refresh(addon)
        return addon

    def update(self, addon_id: int, updates: dict) -> Optional[models.AddonService]:
        """Apply `updates` to the add-on and bump `updated_at`."""
        addon = self.get(addon_id)
        if not addon:
            return None
        for key, value in updates.items():
            setattr(addon, key, value)
        addon.updated_at = datetime.now(timezone.utc)
        self.session.add(addon)
        self.session.commit()
        self.session.refresh(addon)
        return addon

    def delete(self, addon_id: int) -> bool:
        """Delete the add-on; returns False if it did not exist."""
        addon = self.get(addon_id)
        if not addon:
            return False
        self.session.delete(addon)
        self.session.commit()
        return True


class BookingRepository:
    """Persist bookings and their add-on lines."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, booking: models.Booking, lines: List[models.BookingAddon]) -> models.Booking:
        """Store a `Booking` together with its `BookingAddon` lines in one commit."""
        booking.addons = list(lines)
        self.session.add(booking)
        self.session.commit()
        self.session.refresh(booking)
        return booking

    def exists_number(self, booking_number: str) -> bool:
        stmt = select(models.Booking.id).where(models.Booking.booking_number == booking_number)
        return self.session.exec(stmt).first() is not None

    def get_by_number(self, booking_number: str) -> Optional[models.Booking]:
        stmt = select(models.Booking).where(models.Booking.booking_number == booking_number)
        return self.session.exec(stmt).first()

    def list_addons(self, booking_id: int) -> List[models.BookingAddon]:
        stmt = select(models.BookingAddon).where(models.BookingAddon.booking_id == booking_id)
        return self.session.exec(stmt).all()
