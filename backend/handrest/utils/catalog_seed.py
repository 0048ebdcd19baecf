"""Demo catalog used to bootstrap an empty database.

The seed is idempotent: categories are matched by name, packages by
name within their category and add-ons by name, so running it twice
creates nothing new.
"""

import logging
from typing import Dict, List
from sqlmodel import Session, select
from .. import models

logger = logging.getLogger("handrest.seed")

DEFAULT_CATEGORIES: List[Dict] = [
    {
        "name": "Home Cleaning",
        "description": "Complete cleaning for apartments and villas",
        "icon": "home",
        "packages": [
            {"name": "BASIC PACKAGE", "price": 2999, "description": "Dusting, mopping, kitchen and bathroom wipe-down"},
            {"name": "STANDARD PACKAGE", "price": 4999, "description": "Basic plus appliance exteriors and balconies"},
            {"name": "PREMIUM PACKAGE", "price": 7999, "description": "Standard plus deep scrubbing and upholstery vacuum"},
        ],
    },
    {
        "name": "Office Cleaning",
        "description": "Workspaces, cabins and pantries",
        "icon": "building",
        "packages": [
            {"name": "BASIC PACKAGE", "price": 3999, "description": "Desks, floors and washrooms"},
            {"name": "PREMIUM PACKAGE", "price": 8999, "description": "Basic plus carpets, glass partitions and pantry"},
        ],
    },
    {
        "name": "Move In / Move Out",
        "description": "Empty-property cleaning before or after a move",
        "icon": "truck",
        "packages": [
            {"name": "STANDARD PACKAGE", "price": 5999, "description": "Whole-property clean including cabinets"},
        ],
    },
]

DEFAULT_ADDONS: List[Dict] = [
    {"name": "Sofa Shampooing", "price": 799, "icon": "sofa", "description": "Per 3-seater sofa"},
    {"name": "Mattress Cleaning", "price": 599, "icon": "bed-double", "description": "Vacuum and sanitise, per mattress"},
    {"name": "Curtain Cleaning", "price": 499, "icon": "shirt", "description": None},
    {"name": "Electrical Fittings Dusting", "price": 299, "icon": "zap", "description": "Fans, lights and switchboards"},
    {"name": "Minor Repairs", "price": 399, "icon": "wrench", "description": "Tap, hinge and handle fixes"},
]


def seed_catalog(session: Session) -> Dict[str, int]:
    """Insert the default categories, packages and add-ons if missing.

    Returns counts of rows created per kind.
    """
    created = {"categories": 0, "packages": 0, "addons": 0}
    for c_order, spec in enumerate(DEFAULT_CATEGORIES):
        category = session.exec(
            select(models.ServiceCategory).where(models.ServiceCategory.name == spec["name"])
        ).first()
        if not category:
            category = models.ServiceCategory(
                name=spec["name"],
                description=spec["description"],
                icon=spec["icon"],
                display_order=c_order,
            )
            session.add(category)
            session.commit()
            session.refresh(category)
            created["categories"] += 1
        for p_order, pkg in enumerate(spec["packages"]):
            exists = session.exec(
                select(models.Package.id).where(
                    models.Package.category_id == category.id,
                    models.Package.name == pkg["name"]
                )
            ).first()
            if exists is not None:
                continue
            session.add(models.Package(category_id=category.id, display_order=p_order, **pkg))
            created["packages"] += 1
    for a_order, addon in enumerate(DEFAULT_ADDONS):
        exists = session.exec(
            select(models.AddonService.id).where(models.AddonService.name == addon["name"])
        ).first()
        if exists is not None:
            continue
        session.add(models.AddonService(display_order=a_order, **addon))
        created["addons"] += 1
    session.commit()
    if any(created.values()):
        logger.info("catalog seeded: %s", created)
    return created
