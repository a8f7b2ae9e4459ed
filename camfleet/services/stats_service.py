# camfleet/services/stats_service.py
"""
Dashboard statistics.

compute_stats() is a pure function of (devices, divisions): no I/O, no hidden
state, safe to recompute on every snapshot. It feeds the header cards, the three
charts and the executive summary of the report.

Ordering rules:
  - status/action chart data: ascending by name (code-point order)
  - division chart data: descending by channel count, ties keep division input
    order (the cache lists divisions by name)
"""

from camfleet.config import settings
from camfleet.models.enums import CameraStatus, DeviceType
from camfleet.schemas.device import DeviceOut
from camfleet.schemas.division import DivisionOut
from camfleet.schemas.stats import (
    CameraStats, ChartDatum, DeviceStats, ProblemChannel, SummaryParts, Totals,
)

KNOWN_STATUSES = (CameraStatus.ONLINE.value, CameraStatus.OFFLINE.value)
PENDING_ACTION = "Pendente de análise"

DEFAULT_CONCLUSION = (
    "As ações para restabelecer 100% da cobertura de vigilância estão em andamento. "
    "Acompanharemos de perto a resolução de cada chamado para garantir a normalização "
    "dos serviços o mais breve possível."
)


def _chart(counts: dict) -> list[ChartDatum]:
    return sorted((ChartDatum(name=name, value=value) for name, value in counts.items()),
                  key=lambda d: d.name)


def _available_channels(devices: list[DeviceOut]) -> int:
    # Clamped per device: more channels than capacity (data drift) counts as zero free
    return sum(max(0, (device.channel_count or 0) - len(device.channels)) for device in devices)


def _incident_line(problem: ProblemChannel) -> str:
    channel = problem.channel
    return (f"- **Dispositivo {problem.device_name} (Canal: {channel.name})**: "
            f"Status {channel.status}. Ação registrada: *{channel.action_taken or PENDING_ACTION}*.")


def build_summary_parts(totals: Totals, division_count: int, problems: list[ProblemChannel],
                        signature: str = None) -> SummaryParts:
    base = dict(
        title="📝 **Relatório Executivo de Status das Câmeras**",
        greeting="Prezados Gestores,",
        intro="Este relatório sumariza a condição atual do nosso sistema de vigilância:",
        overview_title="**Visão Geral:**",
        signature=signature if signature is not None else settings.REPORT_SIGNATURE,
    )
    fleet_line = (f"- Nosso sistema de vigilância atualmente monitora **{division_count} Divisões/Áreas**, "
                  f"com um total de **{totals.devices} Gravadores NVR/DVR** e "
                  f"**{totals.channels} câmeras** instaladas.")
    available_line = (f"- Existem **{totals.available_channels} canais disponíveis** "
                      f"em nossos dispositivos para futuras expansões.")

    if totals.problems == 0:
        items = [fleet_line,
                 f"- Todos os **{totals.channels} canais** estão **operando normalmente (Online)**."]
        if totals.available_channels > 0:
            items.append(available_line)
        return SummaryParts(
            **base,
            overview_items=items,
            problem_intro="Nenhuma falha foi detectada, garantindo 100% de cobertura e segurança em nossas instalações.",
            conclusion="",
        )

    items = [fleet_line,
             f"- Do total de câmeras, **{totals.online}** estão **operando normalmente (Online)**."]
    if totals.offline > 0:
        items.append(f"- Foram identificadas ##{totals.offline} câmeras Offline##, que requerem atenção imediata.")
    if totals.available_channels > 0:
        items.append(available_line)

    return SummaryParts(
        **base,
        overview_items=items,
        problem_intro=(f"Identificamos um total de {totals.problems} canais que requerem atenção. "
                       f"As equipes responsáveis já foram acionadas conforme as necessidades "
                       f"específicas de cada incidente."),
        incident_details_title="**Detalhes dos Incidentes:**",
        incident_details="\n".join(_incident_line(p) for p in problems),
        conclusion_title="**Conclusão:**",
        conclusion=DEFAULT_CONCLUSION,
    )


def compute_stats(devices: list[DeviceOut], divisions: list[DivisionOut],
                  signature: str = None) -> CameraStats:
    pairs = [(device, channel) for device in devices for channel in device.channels]
    all_channels = [channel for _, channel in pairs]
    problems = [ProblemChannel(channel=channel, device_name=device.name)
                for device, channel in pairs if channel.status != CameraStatus.ONLINE.value]

    status_counts: dict[str, int] = {}
    for channel in all_channels:
        if channel.status in KNOWN_STATUSES:
            status_counts[channel.status] = status_counts.get(channel.status, 0) + 1

    action_counts: dict[str, int] = {}
    for problem in problems:
        action = problem.channel.action_taken
        if action:
            action_counts[action] = action_counts.get(action, 0) + 1

    division_chart = []
    for division in divisions:
        count = sum(len(d.channels) for d in devices if d.division_id == division.id)
        if count > 0:
            division_chart.append(ChartDatum(id=division.id, name=division.name, value=count))
    division_chart.sort(key=lambda d: d.value, reverse=True)

    device_stats = DeviceStats(
        total=len(devices),
        nvr=sum(1 for d in devices if d.type == DeviceType.NVR.value),
        dvr=sum(1 for d in devices if d.type == DeviceType.DVR.value),
    )

    totals = Totals(
        devices=len(devices),
        channels=len(all_channels),
        online=status_counts.get(CameraStatus.ONLINE.value, 0),
        offline=status_counts.get(CameraStatus.OFFLINE.value, 0),
        problems=len(problems),
        available_channels=_available_channels(devices),
    )

    return CameraStats(
        all_channels=all_channels,
        problem_channels=problems,
        status_counts=status_counts,
        action_counts=action_counts,
        status_chart_data=_chart(status_counts),
        action_chart_data=_chart(action_counts),
        division_chart_data=division_chart,
        device_stats=device_stats,
        totals=totals,
        summary_parts=build_summary_parts(totals, len(divisions), problems, signature),
    )
