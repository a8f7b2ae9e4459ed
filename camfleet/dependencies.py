# camfleet/dependencies.py
"""
Service wiring shared by the routers.
One Services bundle lives on app.state for the lifetime of the process.
Admin mode and dashboard filters are per client: they live in request.session
(SessionMiddleware in main.py), never on the shared bundle.
"""

from dataclasses import dataclass, field
from fastapi import Depends, HTTPException, Request, status
from camfleet.config import settings
from camfleet.database import SessionLocal
from camfleet.services.admin_session import AdminSession
from camfleet.services.blob_storage import BlobStorage, build_blob_storage
from camfleet.services.filter_service import FilterCoordinator
from camfleet.services.gateway import Gateway, SqlGateway
from camfleet.services.layout_service import LayoutEditor
from camfleet.services.state_cache import StateCache


@dataclass
class Services:
    gateway: Gateway
    storage: BlobStorage
    cache: StateCache
    layouts: LayoutEditor
    admin_password: str = field(default_factory=lambda: settings.ADMIN_PASSWORD)


def build_services(session_factory=SessionLocal, storage: BlobStorage = None) -> Services:
    gateway = SqlGateway(session_factory)
    storage = storage or build_blob_storage()
    cache = StateCache(gateway)
    return Services(
        gateway=gateway,
        storage=storage,
        cache=cache,
        layouts=LayoutEditor(gateway, storage, cache),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_admin(request: Request, services: Services = Depends(get_services)) -> AdminSession:
    return AdminSession(request.session, services.admin_password)


def get_filters(request: Request) -> FilterCoordinator:
    return FilterCoordinator(request.session)


def require_admin(services: Services = Depends(get_services),
                  admin: AdminSession = Depends(get_admin)) -> Services:
    if not admin.is_admin:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Modo administrador necessário. Faça login em /api/v1/admin/login.",
        )
    return services
