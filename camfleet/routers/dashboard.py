# camfleet/routers/dashboard.py
"""
Dashboard: statistics over the whole fleet plus the filtered device list.
Filters toggle: posting the active value again clears it.
"""

from fastapi import APIRouter, Depends
from camfleet.dependencies import Services, get_filters, get_services
from camfleet.schemas.dashboard import (
    ActionFilterIn, DashboardOut, DivisionFilterIn, FilterStateOut, StatusFilterIn,
)
from camfleet.schemas.stats import CameraStats
from camfleet.services.filter_service import FilterCoordinator, active_filter_label
from camfleet.services.stats_service import compute_stats

router = APIRouter()


def _filters(services: Services, filters: FilterCoordinator) -> FilterStateOut:
    state = filters.state
    return FilterStateOut(
        status=state.status,
        division_id=state.division_id,
        action=state.action,
        label=active_filter_label(state, services.cache.divisions),
    )


def _dashboard(services: Services, filters: FilterCoordinator) -> DashboardOut:
    cache = services.cache
    return DashboardOut(
        stats=compute_stats(cache.devices, cache.divisions),
        filters=_filters(services, filters),
        devices=filters.apply(cache.devices),
    )


@router.get("/dashboard", response_model=DashboardOut, summary="Stats, active filters and visible devices")
def get_dashboard(services: Services = Depends(get_services),
                  filters: FilterCoordinator = Depends(get_filters)):
    return _dashboard(services, filters)


@router.get("/dashboard/stats", response_model=CameraStats)
def get_stats(services: Services = Depends(get_services)):
    return compute_stats(services.cache.devices, services.cache.divisions)


@router.post("/dashboard/filters/status", response_model=DashboardOut)
def toggle_status_filter(body: StatusFilterIn, services: Services = Depends(get_services),
                         filters: FilterCoordinator = Depends(get_filters)):
    filters.set_status(body.value)
    return _dashboard(services, filters)


@router.post("/dashboard/filters/division", response_model=DashboardOut)
def toggle_division_filter(body: DivisionFilterIn, services: Services = Depends(get_services),
                         filters: FilterCoordinator = Depends(get_filters)):
    filters.set_division(body.value)
    return _dashboard(services, filters)


@router.post("/dashboard/filters/action", response_model=DashboardOut, summary="Also forces status Offline")
def toggle_action_filter(body: ActionFilterIn, services: Services = Depends(get_services),
                         filters: FilterCoordinator = Depends(get_filters)):
    filters.set_action(body.value)
    return _dashboard(services, filters)


@router.delete("/dashboard/filters", response_model=DashboardOut, summary="Clear all filters")
def clear_filters(services: Services = Depends(get_services),
                  filters: FilterCoordinator = Depends(get_filters)):
    filters.clear()
    return _dashboard(services, filters)


@router.post("/dashboard/refresh", response_model=DashboardOut, summary="Manual resync from the store")
async def refresh(services: Services = Depends(get_services),
                  filters: FilterCoordinator = Depends(get_filters)):
    await services.cache.refresh()
    return _dashboard(services, filters)
