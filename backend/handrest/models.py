"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Each class maps to a table; monetary amounts are stored as floats in
the local currency (rupees).
"""

from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime, date, timezone
from typing import List


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AppRole(str, Enum):
    """Access level attached to a user through a `UserRole` row."""
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    STAFF = "staff"
    CUSTOMER = "customer"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


# super_admin can only be granted out of band (scripts/grant_role.py)
ASSIGNABLE_ROLES = (AppRole.ADMIN, AppRole.STAFF, AppRole.CUSTOMER)
MANAGER_ROLES = (AppRole.SUPER_ADMIN, AppRole.ADMIN)


class User(SQLModel, table=True):
    """A registered user.

    Fields:
    - `username`: unique login name
    - `password_hash`: hashed password string (never store plaintext)
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    created_at: datetime = Field(default_factory=_utcnow)


class Profile(SQLModel, table=True):
    """Contact details shown on the role-management screen."""
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key='user.id', unique=True, index=True)
    full_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class UserRole(SQLModel, table=True):
    """A role grant for a user. `role` holds an `AppRole` value."""
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key='user.id', index=True)
    role: str = Field(default=AppRole.CUSTOMER.value, index=True)
    created_at: datetime = Field(default_factory=_utcnow)


class ServiceCategory(SQLModel, table=True):
    """A group of packages such as "Home Cleaning"."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    description: Optional[str] = None
    icon: Optional[str] = None
    display_order: int = 0
    is_active: bool = True
    packages: List['Package'] = Relationship(back_populates='category')


class Package(SQLModel, table=True):
    """A purchasable cleaning-service tier with a base price."""
    id: Optional[int] = Field(default=None, primary_key=True)
    category_id: int = Field(foreign_key='servicecategory.id', index=True)
    name: str
    description: Optional[str] = None
    price: float
    display_order: int = 0
    is_active: bool = True
    category: Optional[ServiceCategory] = Relationship(back_populates='packages')


class AddonService(SQLModel, table=True):
    """An optional extra service selectable on top of a package."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: Optional[str] = None
    price: float
    icon: str = 'wrench'
    is_active: bool = True
    display_order: int = Field(default=0, index=True)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class Booking(SQLModel, table=True):
    """A customer's purchase of a package plus add-ons for a date/time."""
    id: Optional[int] = Field(default=None, primary_key=True)
    booking_number: str = Field(index=True, unique=True)
    package_id: int = Field(foreign_key='package.id')
    user_id: Optional[int] = Field(default=None, foreign_key='user.id')
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: str
    address_line1: str
    address_line2: Optional[str] = None
    city: str
    pincode: str
    floor_number: Optional[int] = None
    property_sqft: Optional[int] = None
    scheduled_date: date
    scheduled_time: str
    special_instructions: Optional[str] = None
    base_price: float
    addon_price: float = 0.0
    total_price: float
    status: str = 'pending'
    created_at: datetime = Field(default_factory=_utcnow)
    addons: List['BookingAddon'] = Relationship(back_populates='booking')


class BookingAddon(SQLModel, table=True):
    """An add-on attached to a `Booking`, priced at booking time."""
    id: Optional[int] = Field(default=None, primary_key=True)
    booking_id: int = Field(foreign_key='booking.id', index=True)
    addon_id: int = Field(foreign_key='addonservice.id')
    price: float
    booking: Optional[Booking] = Relationship(back_populates='addons')
