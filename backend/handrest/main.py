"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the HandRest booking backend.
Controllers are intentionally thin: they accept requests, delegate to
services, and return JSON responses.

Endpoints implemented:
- POST /auth/register
- POST /auth/login
- GET /me
- GET /categories
- GET /packages
- GET /addons, POST /addons, PATCH /addons/{addon_id}, DELETE /addons/{addon_id}
- GET /admin/roles, PATCH /admin/roles/{role_id}
- POST /bookings, GET /bookings/{booking_number}
- POST /flows, GET /flows/{flow_id} and the flow transitions below it
- GET /health
"""

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session
from typing import Optional
import json
import logging
import time
import uuid
from .database import engine, create_db_and_tables, get_session
from . import services, repositories, models
from .auth import get_current_user, get_optional_user, require_manager
from .schemas import (
    AddonIn, AddonUpdate, BookingFormIn, BookingIn, CategorySelectIn, LoginIn,
    PackageSelectIn, PropertyDetailsIn, RegisterIn, RoleChangeIn,
)
from .utils.catalog_seed import seed_catalog
from .utils.flow import FlowError
from .utils.flow_store import FlowStore
from .utils.rate_limit import SlidingWindowLimiter
from .config import settings

logger = logging.getLogger("handrest.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

app = FastAPI(title="HandRest Booking API")
_rate_limiter = SlidingWindowLimiter()
_flows = FlowStore(max_flows=settings.FLOW_MAX_SESSIONS, ttl_seconds=settings.FLOW_TTL_SECONDS)

# Wide-open CORS keeps a locally served customer frontend working in dev.
if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()
if settings.SEED_CATALOG:
    with Session(engine) as _session:
        seed_catalog(_session)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
                "client": request.client.host if request.client else "unknown",
            },
            ensure_ascii=True,
        ),
    )
    return response


def _enforce_rate_limit(request: Request) -> None:
    key = f"{request.client.host if request.client else 'unknown'}:{request.url.path}"
    decision = _rate_limiter.check(
        key, settings.BOOKING_RATE_LIMIT_PER_MIN, settings.BOOKING_RATE_LIMIT_WINDOW_SECONDS
    )
    if not decision.allowed:
        raise HTTPException(
            status_code=429,
            detail=f"rate limit exceeded; retry after {decision.retry_after}s",
            headers={"Retry-After": str(decision.retry_after)},
        )


def _category_to_dict(c: models.ServiceCategory) -> dict:
    return {'id': c.id, 'name': c.name, 'description': c.description, 'icon': c.icon}


def _package_to_dict(p: models.Package) -> dict:
    return {
        'id': p.id,
        'category_id': p.category_id,
        'name': p.name,
        'description': p.description,
        'price': p.price,
    }


@app.post('/auth/register')
def register(payload: RegisterIn, db: Session = Depends(get_session)):
    """Register a new customer account (idempotent).

    Returns the existing user if the username is already taken to make
    the operation idempotent (useful for automation/tests).
    """
    existing = repositories.UserRepository(db).get_by_username(payload.username)
    if existing:
        return {'id': existing.id, 'username': existing.username}
    try:
        user = services.AuthService(db).register(
            payload.username, payload.password,
            full_name=payload.full_name, phone=payload.phone, email=payload.email,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {'id': user.id, 'username': user.username}


@app.post('/auth/login')
def login(request: Request, payload: LoginIn, db: Session = Depends(get_session)):
    """Authenticate a user and return a short-lived JWT token."""
    _enforce_rate_limit(request)
    token = services.AuthService(db).authenticate(payload.username, payload.password)
    if not token:
        raise HTTPException(status_code=401, detail='invalid credentials')
    return {'access_token': token}


@app.get('/me')
def me(user: models.User = Depends(get_current_user), db: Session = Depends(get_session)):
    """Return the caller's profile and role grants."""
    profile = repositories.ProfileRepository(db).get_for_user(user.id)
    return {
        'id': user.id,
        'username': user.username,
        'full_name': profile.full_name if profile else None,
        'phone': profile.phone if profile else None,
        'email': profile.email if profile else None,
        'roles': repositories.RoleRepository(db).roles_for_user(user.id),
    }


@app.get('/categories')
def list_categories(db: Session = Depends(get_session)):
    """List active service categories for the home screen."""
    return [_category_to_dict(c) for c in services.CatalogService(db).categories()]


@app.get('/packages')
def list_packages(category_id: Optional[int] = None, db: Session = Depends(get_session)):
    """List active packages, optionally for a single category."""
    return [_package_to_dict(p) for p in services.CatalogService(db).packages(category_id)]


@app.get('/addons')
def list_addons(include_inactive: bool = False, db: Session = Depends(get_session)):
    """List add-on services ordered by display order."""
    return [services.addon_to_dict(a) for a in services.AddonCatalogService(db).list(include_inactive)]


@app.post('/addons', status_code=201)
def create_addon(payload: AddonIn, db: Session = Depends(get_session), user: models.User = Depends(require_manager)):
    try:
        addon = services.AddonCatalogService(db).create(payload.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return services.addon_to_dict(addon)


@app.patch('/addons/{addon_id}')
def update_addon(addon_id: int, payload: AddonUpdate, db: Session = Depends(get_session), user: models.User = Depends(require_manager)):
    """Apply a partial update to an add-on service."""
    svc = services.AddonCatalogService(db)
    try:
        addon = svc.update(addon_id, payload.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return services.addon_to_dict(addon)


@app.delete('/addons/{addon_id}', status_code=204)
def delete_addon(addon_id: int, db: Session = Depends(get_session), user: models.User = Depends(require_manager)):
    try:
        services.AddonCatalogService(db).delete(addon_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=204)


@app.get('/admin/roles')
def list_roles(search: str = '', role: Optional[models.AppRole] = None, db: Session = Depends(get_session), user: models.User = Depends(require_manager)):
    """List all users with their roles for the permission-management screen.

    `search` matches name, phone or email; `role` narrows to one role.
    """
    return services.PermissionService(db).list_users(search, role)


@app.patch('/admin/roles/{role_id}')
def change_role(role_id: int, payload: RoleChangeIn, db: Session = Depends(get_session), user: models.User = Depends(require_manager)):
    """Change the role held by one role grant."""
    try:
        return services.PermissionService(db).change_role(role_id, payload.role, actor_id=user.id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail={'title': 'Failed to update role', 'description': str(e)})
    except LookupError as e:
        raise HTTPException(status_code=404, detail={'title': 'Failed to update role', 'description': str(e)})


def _place_booking(db: Session, package_id: int, addon_ids, form: dict, user: Optional[models.User]):
    svc = services.BookingService(db)
    try:
        booking = svc.create_booking(package_id, list(addon_ids), form, user_id=user.id if user else None)
    except ValueError as e:
        raise HTTPException(status_code=400, detail={'title': 'Booking Failed', 'description': str(e)})
    except LookupError as e:
        raise HTTPException(status_code=404, detail={'title': 'Booking Failed', 'description': str(e)})
    return svc.booking_to_dict(booking)


@app.post('/bookings', status_code=201)
def create_booking(request: Request, payload: BookingIn, db: Session = Depends(get_session), user: Optional[models.User] = Depends(get_optional_user)):
    """Book a package with optional add-ons in a single request.

    Prices are computed server-side from the catalog.
    """
    _enforce_rate_limit(request)
    form = payload.model_dump(exclude={'package_id', 'addon_ids'})
    result = _place_booking(db, payload.package_id, payload.addon_ids, form, user)
    result['message'] = f"Your booking number is {result['booking_number']}"
    return result


@app.get('/bookings/{booking_number}')
def track_booking(booking_number: str, db: Session = Depends(get_session)):
    """Look up a booking by its booking number."""
    try:
        return services.BookingService(db).track(booking_number)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


def _run_flow(flow_id: str, fn):
    """Apply `fn` to a stored flow and return the flow's new state."""
    try:
        _flows.update(flow_id, fn)
    except KeyError:
        raise HTTPException(status_code=404, detail='flow not found')
    except FlowError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _flow_state(flow_id)


def _flow_state(flow_id: str) -> dict:
    flow = _flows.get(flow_id)
    if flow is None:
        raise HTTPException(status_code=404, detail='flow not found')
    return {'flow_id': flow_id, **flow.to_dict()}


@app.post('/flows', status_code=201)
def start_flow():
    """Start a customer booking flow on the splash screen."""
    flow_id, _ = _flows.create()
    return _flow_state(flow_id)


@app.get('/flows/{flow_id}')
def get_flow(flow_id: str):
    return _flow_state(flow_id)


@app.post('/flows/{flow_id}/splash')
def flow_complete_splash(flow_id: str):
    return _run_flow(flow_id, lambda f: f.complete_splash())


@app.post('/flows/{flow_id}/category')
def flow_select_category(flow_id: str, payload: CategorySelectIn, db: Session = Depends(get_session)):
    try:
        category = services.CatalogService(db).get_category(payload.category_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _run_flow(flow_id, lambda f: f.select_category(category.id, category.name))


@app.post('/flows/{flow_id}/package')
def flow_select_package(flow_id: str, payload: PackageSelectIn, db: Session = Depends(get_session)):
    try:
        pkg = services.CatalogService(db).get_package(payload.package_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _run_flow(flow_id, lambda f: f.select_package(pkg.id, pkg.price))


@app.post('/flows/{flow_id}/property')
def flow_submit_property(flow_id: str, payload: PropertyDetailsIn):
    return _run_flow(flow_id, lambda f: f.submit_property(payload.model_dump()))


@app.post('/flows/{flow_id}/upgrade')
def flow_request_upgrade(flow_id: str):
    return _run_flow(flow_id, lambda f: f.request_upgrade())


@app.post('/flows/{flow_id}/addons/{addon_id}/toggle')
def flow_toggle_addon(flow_id: str, addon_id: int, db: Session = Depends(get_session)):
    """Select or deselect one add-on and return the recomputed totals."""
    addon = next((a for a in services.AddonCatalogService(db).list() if a.id == addon_id), None)
    if addon is None:
        raise HTTPException(status_code=404, detail=f'addon not found: {addon_id}')
    return _run_flow(flow_id, lambda f: f.toggle_addon(addon.id, addon.price))


@app.post('/flows/{flow_id}/addons/submit')
def flow_submit_addons(flow_id: str, db: Session = Depends(get_session)):
    addons = services.AddonCatalogService(db).list()
    return _run_flow(flow_id, lambda f: f.submit_addons(addons))


@app.post('/flows/{flow_id}/quick_clean')
def flow_quick_clean(flow_id: str, db: Session = Depends(get_session)):
    """Jump to booking with the basic home-cleaning package when available."""
    category, pkg = services.CatalogService(db).quick_clean()
    category_id = category.id if category else None
    category_name = category.name if category else None
    if pkg is not None:
        return _run_flow(flow_id, lambda f: f.quick_clean(category_id, pkg.id, pkg.price, category_name))
    return _run_flow(flow_id, lambda f: f.quick_clean(category_id, category_name=category_name))


@app.post('/flows/{flow_id}/booking')
def flow_submit_booking(request: Request, flow_id: str, payload: BookingFormIn,
                        db: Session = Depends(get_session),
                        user: Optional[models.User] = Depends(get_optional_user)):
    """Place the booking collected by the flow and move to confirmation.

    The flow is claimed under the store lock before anything is written,
    so concurrent submits of one flow store at most one booking.
    """
    _enforce_rate_limit(request)
    try:
        flow, claim = _flows.update(flow_id, lambda f: (f, f.begin_submit()))
    except KeyError:
        raise HTTPException(status_code=404, detail='flow not found')
    except FlowError as e:
        raise HTTPException(status_code=409, detail=str(e))
    form = payload.model_dump()
    details = claim['property_details']
    for key in ('property_sqft', 'floor_number'):
        if form.get(key) is None:
            form[key] = details.get(key)
    try:
        result = _place_booking(db, claim['package_id'], claim['addon_ids'], form, user)
    except Exception:
        flow.abort_submit()
        raise
    number = result['booking_number']
    try:
        _flows.update(flow_id, lambda f: f.confirm(number))
    except KeyError:
        # Expired mid-write: the booking is stored, so still confirm it.
        logger.warning("flow %s expired before confirming booking %s", flow_id, number)
        flow.confirm(number)
    state = {'flow_id': flow_id, **flow.to_dict()}
    state['booking'] = result
    state['message'] = f"Your booking number is {result['booking_number']}"
    return state


@app.post('/flows/{flow_id}/back')
def flow_back(flow_id: str):
    return _run_flow(flow_id, lambda f: f.back())


@app.post('/flows/{flow_id}/restart')
def flow_restart(flow_id: str):
    return _run_flow(flow_id, lambda f: f.restart())


@app.get("/", response_class=HTMLResponse)
def home():
    """Minimal homepage for quick manual testing."""
    return """
    <!DOCTYPE html>
    <html>
    <head>
      <meta charset="UTF-8" />
      <title>HandRest API</title>
      <style>
        body { font-family: Arial, sans-serif; margin: 32px; }
        a { color: #0a6; }
        .card { max-width: 640px; padding: 16px; border: 1px solid #ddd; border-radius: 8px; }
      </style>
    </head>
    <body>
      <div class="card">
        <h1>HandRest Booking API</h1>
        <p><em>You Relax. We Restore.</em></p>
        <ul>
          <li><a href="/docs">Swagger UI</a></li>
          <li><a href="/categories">Service categories</a></li>
          <li><a href="/addons">Add-on services</a></li>
        </ul>
        <p>Start a booking with <code>POST /flows</code>, or track one at <code>/bookings/{booking_number}</code>.</p>
      </div>
    </body>
    </html>
    """


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
