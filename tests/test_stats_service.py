# tests/test_stats_service.py
"""Unit tests for the dashboard statistics."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from camfleet.schemas.channel import ChannelOut
from camfleet.schemas.device import DeviceOut
from camfleet.schemas.division import DivisionOut
from camfleet.schemas.stats import ChartDatum, Totals
from camfleet.services.stats_service import compute_stats, DEFAULT_CONCLUSION, PENDING_ACTION


def make_channel(channel_id, device_id=1, status="Online", action=None, name=None):
    return ChannelOut(id=channel_id, device_id=device_id, name=name or f"Cam {channel_id}",
                      status=status, action_taken=action)


def make_device(device_id=1, name="NVR-01", division_id=1, type="NVR", channel_count=16, channels=()):
    return DeviceOut(id=device_id, name=name, location="Portaria", type=type,
                     division_id=division_id, channel_count=channel_count, channels=list(channels))


MATRIZ = DivisionOut(id=1, name="Matriz")


class TestScenarios:
    def test_all_online_uses_zero_problem_summary(self):
        device = make_device(channels=[make_channel(1), make_channel(2)])
        stats = compute_stats([device], [MATRIZ])

        assert stats.totals == Totals(devices=1, channels=2, online=2, offline=0,
                                      problems=0, available_channels=14)
        parts = stats.summary_parts
        assert parts.incident_details is None
        assert parts.conclusion == ""
        assert any("operando normalmente" in item for item in parts.overview_items)
        assert any("14 canais disponíveis" in item for item in parts.overview_items)
        assert "Nenhuma falha" in parts.problem_intro

    def test_offline_channel_with_action(self):
        device = make_device(channels=[
            make_channel(1),
            make_channel(2, status="Offline", action="Chamado para Obras"),
        ])
        stats = compute_stats([device], [MATRIZ])

        assert stats.totals.offline == 1
        assert stats.totals.problems == 1
        assert stats.action_chart_data == [ChartDatum(name="Chamado para Obras", value=1)]
        details = stats.summary_parts.incident_details
        assert "Dispositivo NVR-01 (Canal: Cam 2)" in details
        assert "Ação registrada: *Chamado para Obras*" in details
        assert any("##1 câmeras Offline##" in item for item in stats.summary_parts.overview_items)
        assert stats.summary_parts.conclusion == DEFAULT_CONCLUSION

    def test_offline_without_action_is_pending(self):
        device = make_device(channels=[make_channel(1, status="Offline")])
        stats = compute_stats([device], [MATRIZ])
        assert f"*{PENDING_ACTION}*" in stats.summary_parts.incident_details
        assert stats.action_chart_data == []


class TestEdgeCases:
    def test_empty_inputs(self):
        stats = compute_stats([], [])
        assert stats.totals == Totals()
        assert stats.status_chart_data == []
        assert stats.division_chart_data == []
        assert stats.device_stats.total == 0
        assert stats.summary_parts.incident_details is None

    def test_available_channels_clamped_per_device(self):
        overfull = make_device(1, channel_count=16, channels=[make_channel(i) for i in range(1, 19)])
        roomy = make_device(2, name="DVR-01", type="DVR", channel_count=32,
                            channels=[make_channel(100, device_id=2)])
        stats = compute_stats([overfull, roomy], [MATRIZ])
        assert stats.totals.available_channels == 31

    def test_unknown_status_is_a_problem_but_not_charted(self):
        device = make_device(channels=[make_channel(1), make_channel(2, status="Manutenção")])
        stats = compute_stats([device], [MATRIZ])
        assert stats.status_counts == {"Online": 1}
        assert stats.totals.problems == 1
        assert stats.totals.offline == 0
        assert sum(d.value for d in stats.status_chart_data) == 1

    def test_action_on_online_channel_not_counted(self):
        device = make_device(channels=[make_channel(1, action="Requisição de Compras")])
        assert compute_stats([device], [MATRIZ]).action_counts == {}


class TestOrdering:
    def test_status_chart_sorted_by_name(self):
        device = make_device(channels=[make_channel(1), make_channel(2, status="Offline")])
        names = [d.name for d in compute_stats([device], [MATRIZ]).status_chart_data]
        assert names == ["Offline", "Online"]

    def test_division_chart_descending_and_drops_empty(self):
        divisions = [DivisionOut(id=1, name="Almoxarifado"), DivisionOut(id=2, name="Fábrica"),
                     DivisionOut(id=3, name="Matriz"), DivisionOut(id=4, name="Vazia")]
        devices = [
            make_device(1, division_id=1, channels=[make_channel(1)]),
            make_device(2, division_id=2, channels=[make_channel(i, device_id=2) for i in (2, 3, 4)]),
            make_device(3, division_id=3, channels=[make_channel(5, device_id=3)]),
        ]
        chart = compute_stats(devices, divisions).division_chart_data
        assert [(d.name, d.value) for d in chart] == [("Fábrica", 3), ("Almoxarifado", 1), ("Matriz", 1)]
        assert chart[0].id == 2


class TestProperties:
    def test_chart_sums_match_totals(self):
        devices = [
            make_device(1, division_id=1, channels=[make_channel(1), make_channel(2, status="Offline")]),
            make_device(2, division_id=99, type="DVR", channels=[make_channel(3, device_id=2)]),
        ]
        stats = compute_stats(devices, [MATRIZ])
        assert sum(d.value for d in stats.status_chart_data) == stats.totals.channels
        assert sum(d.value for d in stats.division_chart_data) <= stats.totals.channels
        assert stats.totals.problems == stats.totals.offline
        assert stats.device_stats.nvr == 1 and stats.device_stats.dvr == 1

    def test_idempotent(self):
        device = make_device(channels=[make_channel(1), make_channel(2, status="Offline", action="Relatório de Inspeção (RIF)")])
        assert compute_stats([device], [MATRIZ]) == compute_stats([device], [MATRIZ])

    def test_signature_override(self):
        stats = compute_stats([], [], signature="Equipe de Segurança")
        assert stats.summary_parts.signature == "Equipe de Segurança"
