# camfleet/routers/report.py
from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from camfleet.dependencies import Services, get_services
from camfleet.schemas.dashboard import ReportIn
from camfleet.schemas.stats import SummaryParts
from camfleet.services.report_service import build_summary_text, render_report
from camfleet.services.stats_service import compute_stats

router = APIRouter()


@router.get("/report/summary", response_model=SummaryParts, summary="Summary parts for editing the conclusion")
def get_summary(services: Services = Depends(get_services)):
    return compute_stats(services.cache.devices, services.cache.divisions).summary_parts


@router.get("/report/summary/text", summary="Assembled summary text (markup, not HTML)")
def get_summary_text(services: Services = Depends(get_services)):
    stats = compute_stats(services.cache.devices, services.cache.divisions)
    return {"text": build_summary_text(stats.summary_parts)}


@router.post("/report", response_class=HTMLResponse, summary="Self-contained HTML report")
def generate_report(body: ReportIn = None, services: Services = Depends(get_services)):
    """`conclusion` replaces the default conclusion; an empty string removes the section."""
    devices = services.cache.devices
    stats = compute_stats(devices, services.cache.divisions)
    conclusion = body.conclusion if body is not None else None
    return HTMLResponse(render_report(devices, stats, conclusion))
