"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests.
"""

from datetime import date
from pydantic import BaseModel, Field
from typing import List, Optional
from .models import AppRole


class RegisterIn(BaseModel):
    """Payload for user registration."""
    username: str
    password: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class LoginIn(BaseModel):
    """Payload for the login endpoint."""
    username: str
    password: str


class TokenOut(BaseModel):
    """Authentication response containing an access token."""
    access_token: str


class RoleChangeIn(BaseModel):
    """New role chosen in the role-management dialog."""
    role: AppRole


class AddonIn(BaseModel):
    """Fields accepted when creating an add-on service."""
    name: str
    description: Optional[str] = None
    price: float = Field(ge=0)
    icon: str = 'wrench'
    is_active: bool = True
    display_order: int = 0


class AddonUpdate(BaseModel):
    """Partial update for an add-on; unset fields are left untouched."""
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    icon: Optional[str] = None
    is_active: Optional[bool] = None
    display_order: Optional[int] = None


class PropertyDetailsIn(BaseModel):
    """Property details collected before add-on selection."""
    property_sqft: int = Field(gt=0)
    floor_number: Optional[int] = Field(default=None, ge=0)
    property_type: Optional[str] = None


class BookingFormIn(BaseModel):
    """Customer contact, address and schedule captured on the booking screen."""
    customer_name: str = Field(min_length=1)
    customer_email: Optional[str] = None
    customer_phone: str = Field(min_length=1)
    address_line1: str = Field(min_length=1)
    address_line2: Optional[str] = None
    city: str = Field(min_length=1)
    pincode: str = Field(min_length=1)
    floor_number: Optional[int] = None
    property_sqft: Optional[int] = None
    scheduled_date: date
    scheduled_time: str = Field(min_length=1)
    special_instructions: Optional[str] = None


class BookingIn(BookingFormIn):
    """Direct booking request: a package, selected add-ons and the form."""
    package_id: int
    addon_ids: List[int] = []


class CategorySelectIn(BaseModel):
    category_id: int


class PackageSelectIn(BaseModel):
    package_id: int
