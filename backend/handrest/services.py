"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories
and the booking flow. Services are intentionally thin: they perform
validation, execute domain logic and persist aggregates via
repositories. Validation problems raise `ValueError`, missing rows raise
`LookupError`; controllers translate both into HTTP errors.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from passlib.context import CryptContext
import jwt
from typing import Dict, List, Optional
from . import models, repositories
from sqlmodel import Session
from .config import settings
from .utils.flow import AddonSelection

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
JWT_SECRET = settings.JWT_SECRET
JWT_ALGORITHM = settings.JWT_ALGORITHM
JWT_EXPIRE_HOURS = settings.JWT_EXPIRE_HOURS

QUICK_CLEAN_CATEGORY = 'Home Cleaning'
QUICK_CLEAN_PACKAGE = 'BASIC PACKAGE'
BOOKING_NUMBER_ATTEMPTS = 5

logger = logging.getLogger("handrest.services")


class AuthService:
    """Authentication related operations (register + authenticate)."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)
        self.profile_repo = repositories.ProfileRepository(session)
        self.role_repo = repositories.RoleRepository(session)

    def register(self, username: str, password: str, full_name: Optional[str] = None,
                 phone: Optional[str] = None, email: Optional[str] = None) -> models.User:
        """Create a new user with a hashed password.

        A profile row and a `customer` role grant are created alongside.
        Returns the persisted `User` instance.
        """
        if not username or not username.strip():
            raise ValueError('username required')
        if not password:
            raise ValueError('password required')
        hashed = PWD_CTX.hash(password)
        u = self.user_repo.create(models.User(username=username.strip(), password_hash=hashed))
        self.profile_repo.upsert(models.Profile(user_id=u.id, full_name=full_name, phone=phone, email=email))
        self.role_repo.create(models.UserRole(user_id=u.id, role=models.AppRole.CUSTOMER.value))
        return u

    def authenticate(self, username: str, password: str):
        """Verify credentials and return a signed JWT token on success.

        Returns `None` if authentication fails.
        """
        user = self.user_repo.get_by_username(username)
        if not user:
            return None
        if not PWD_CTX.verify(password, user.password_hash):
            return None
        expire = datetime.now(timezone.utc) + timedelta(hours=JWT_EXPIRE_HOURS)
        payload = {"user_id": user.id, "username": user.username, "exp": int(expire.timestamp())}
        return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def _role_entry(role: models.UserRole, profile: Optional[models.Profile]) -> Dict:
    return {
        'role_id': role.id,
        'user_id': role.user_id,
        'role': role.role,
        'role_label': models.AppRole(role.role).label,
        'profile': None if profile is None else {
            'full_name': profile.full_name,
            'phone': profile.phone,
            'email': profile.email,
        },
    }


def _matches(entry: Dict, query: str) -> bool:
    profile = entry['profile'] or {}
    q = query.lower()
    name = (profile.get('full_name') or '').lower()
    phone = profile.get('phone') or ''
    email = (profile.get('email') or '').lower()
    return q in name or query in phone or q in email


class PermissionService:
    """Role management for administrators."""
    def __init__(self, session: Session):
        self.session = session
        self.role_repo = repositories.RoleRepository(session)
        self.profile_repo = repositories.ProfileRepository(session)

    def list_users(self, search: str = '', role: Optional[str] = None) -> List[Dict]:
        """Return every role grant (newest first) joined with its profile.

        `search` filters by name, phone or email; a blank search returns
        all rows. `role` keeps only grants of that role.
        """
        roles = self.role_repo.list_all()
        if role:
            roles = [r for r in roles if r.role == models.AppRole(role).value]
        profiles = self.profile_repo.list_for_users({r.user_id for r in roles})
        by_user = {p.user_id: p for p in profiles}
        entries = [_role_entry(r, by_user.get(r.user_id)) for r in roles]
        search = (search or '').strip()
        if not search:
            return entries
        return [e for e in entries if _matches(e, search)]

    def change_role(self, role_id: int, role, actor_id: Optional[int] = None) -> Dict:
        """Set a new role on the grant identified by `role_id`.

        Only roles in `models.ASSIGNABLE_ROLES` can be chosen. Exactly one
        update is issued against the role row.
        """
        try:
            new_role = models.AppRole(role)
        except ValueError:
            raise ValueError(f'unknown role: {role}')
        if new_role not in models.ASSIGNABLE_ROLES:
            raise ValueError(f'role cannot be assigned: {new_role.value}')
        updated = self.role_repo.update_role(role_id, new_role.value)
        if updated is None:
            raise LookupError(f'role not found: {role_id}')
        logger.info("role changed role_id=%s user_id=%s role=%s actor=%s", role_id, updated.user_id, new_role.value, actor_id)
        return {'message': 'Role updated successfully', 'entry': _role_entry(updated, self.profile_repo.get_for_user(updated.user_id))}


def addon_to_dict(addon: models.AddonService) -> Dict:
    return {
        'id': addon.id,
        'name': addon.name,
        'description': addon.description,
        'price': addon.price,
        'icon': addon.icon,
        'is_active': addon.is_active,
        'display_order': addon.display_order,
        'created_at': addon.created_at.isoformat(),
        'updated_at': addon.updated_at.isoformat(),
    }


class AddonCatalogService:
    """Manage the add-on services offered next to packages."""
    def __init__(self, session: Session):
        self.session = session
        self.addon_repo = repositories.AddonRepository(session)

    def list(self, include_inactive: bool = False) -> List[models.AddonService]:
        return self.addon_repo.list(active_only=not include_inactive)

    def create(self, data: Dict) -> models.AddonService:
        self._validate(data)
        return self.addon_repo.create(models.AddonService(**data))

    def update(self, addon_id: int, updates: Dict) -> models.AddonService:
        updates = {k: v for k, v in updates.items() if v is not None}
        self._validate(updates, partial=True)
        addon = self.addon_repo.update(addon_id, updates)
        if addon is None:
            raise LookupError(f'addon not found: {addon_id}')
        return addon

    def delete(self, addon_id: int) -> None:
        if not self.addon_repo.delete(addon_id):
            raise LookupError(f'addon not found: {addon_id}')

    def _validate(self, data: Dict, partial: bool = False):
        """Raise ValueError for a blank name or a negative price."""
        if not partial or 'name' in data:
            name = data.get('name')
            if not name or not str(name).strip():
                raise ValueError('addon name required')
        if not partial or 'price' in data:
            price = data.get('price')
            if price is None or price < 0:
                raise ValueError('addon price must be >= 0')


class CatalogService:
    """Categories and packages shown on the home and package screens."""
    def __init__(self, session: Session):
        self.session = session
        self.category_repo = repositories.CategoryRepository(session)
        self.package_repo = repositories.PackageRepository(session)

    def categories(self) -> List[models.ServiceCategory]:
        return self.category_repo.list_active()

    def packages(self, category_id: Optional[int] = None) -> List[models.Package]:
        return self.package_repo.list(category_id)

    def get_category(self, category_id: int) -> models.ServiceCategory:
        category = self.category_repo.get(category_id)
        if not category or not category.is_active:
            raise LookupError(f'category not found: {category_id}')
        return category

    def get_package(self, package_id: int) -> models.Package:
        pkg = self.package_repo.get(package_id)
        if not pkg or not pkg.is_active:
            raise LookupError(f'package not found: {package_id}')
        return pkg

    def quick_clean(self):
        """Return `(category, package)` for the quick-clean shortcut.

        Either element may be `None` when the catalog lacks it.
        """
        category = self.category_repo.get_by_name(QUICK_CLEAN_CATEGORY)
        if not category:
            return None, None
        return category, self.package_repo.find_by_name_in_category(QUICK_CLEAN_PACKAGE, category.id)


def generate_booking_number(now: Optional[datetime] = None) -> str:
    """Return a booking number like `HR261018A1B2C3`."""
    now = now or datetime.now(timezone.utc)
    return f"HR{now:%y%m%d}{secrets.token_hex(3).upper()}"


class BookingService:
    """Price and persist bookings, and look them up for tracking."""
    def __init__(self, session: Session):
        self.session = session
        self.booking_repo = repositories.BookingRepository(session)
        self.addon_repo = repositories.AddonRepository(session)
        self.catalog = CatalogService(session)

    def quote(self, package_id: int, addon_ids: List[int]) -> Dict:
        """Compute base, add-on and total prices for a selection."""
        pkg = self.catalog.get_package(package_id)
        addons = self._load_addons(addon_ids)
        selection = AddonSelection(addon_ids)
        addon_price = selection.addon_total(addons)
        return {
            'package': pkg,
            'addons': addons,
            'base_price': pkg.price,
            'addon_price': addon_price,
            'total_price': selection.grand_total(pkg.price, addons),
        }

    def create_booking(self, package_id: int, addon_ids: List[int], form: Dict,
                       user_id: Optional[int] = None) -> models.Booking:
        """Persist a booking for `package_id` plus the selected add-ons.

        Prices are taken from the current catalog rows, never from the
        client. Raises ValueError for unknown or inactive add-ons and
        LookupError for an unknown package.
        """
        q = self.quote(package_id, addon_ids)
        booking = models.Booking(
            booking_number=self._new_booking_number(),
            package_id=q['package'].id,
            user_id=user_id,
            base_price=q['base_price'],
            addon_price=q['addon_price'],
            total_price=q['total_price'],
            **form,
        )
        lines = [models.BookingAddon(addon_id=a.id, price=a.price) for a in q['addons']]
        created = self.booking_repo.create(booking, lines)
        logger.info("booking created number=%s package_id=%s total=%.2f", created.booking_number, package_id, created.total_price)
        return created

    def track(self, booking_number: str) -> Dict:
        booking = self.booking_repo.get_by_number(booking_number.strip().upper())
        if not booking:
            raise LookupError(f'booking not found: {booking_number}')
        return self.booking_to_dict(booking)

    def booking_to_dict(self, booking: models.Booking) -> Dict:
        lines = self.booking_repo.list_addons(booking.id)
        return {
            'booking_number': booking.booking_number,
            'status': booking.status,
            'package_id': booking.package_id,
            'customer_name': booking.customer_name,
            'customer_email': booking.customer_email,
            'customer_phone': booking.customer_phone,
            'address_line1': booking.address_line1,
            'address_line2': booking.address_line2,
            'city': booking.city,
            'pincode': booking.pincode,
            'floor_number': booking.floor_number,
            'property_sqft': booking.property_sqft,
            'scheduled_date': booking.scheduled_date.isoformat(),
            'scheduled_time': booking.scheduled_time,
            'base_price': booking.base_price,
            'addon_price': booking.addon_price,
            'total_price': booking.total_price,
            'addons': [{'addon_id': l.addon_id, 'price': l.price} for l in lines],
        }

    def _load_addons(self, addon_ids: List[int]) -> List[models.AddonService]:
        wanted = set(addon_ids)
        addons = [a for a in self.addon_repo.list_by_ids(wanted) if a.is_active]
        missing = wanted - {a.id for a in addons}
        if missing:
            raise ValueError(f"unknown addon ids: {sorted(missing)}")
        return addons

    def _new_booking_number(self) -> str:
        for _ in range(BOOKING_NUMBER_ATTEMPTS):
            number = generate_booking_number()
            if not self.booking_repo.exists_number(number):
                return number
        raise RuntimeError('could not allocate a unique booking number')
