"""Tests for heartbeat handling and derived connection status."""
import pytest
from datetime import timedelta

from app.db.models import ConnectionStatus, utcnow
from app.services import heartbeat


class TestConnectionStatus:
    """Online/offline derived from heartbeat age."""

    def test_fresh_heartbeat_is_online(self, test_enrollment):
        _, enrollment = test_enrollment
        assert heartbeat.connection_status(enrollment) == ConnectionStatus.ONLINE

    def test_boundary_is_two_intervals(self, test_enrollment):
        _, enrollment = test_enrollment
        window = timedelta(minutes=enrollment.ping_interval * 2)

        at_edge = enrollment.last_heartbeat + window
        past_edge = at_edge + timedelta(seconds=1)
        assert heartbeat.connection_status(enrollment, now=at_edge) == ConnectionStatus.ONLINE
        assert heartbeat.connection_status(enrollment, now=past_edge) == ConnectionStatus.OFFLINE

    def test_window_follows_ping_interval(self, test_db, test_enrollment):
        _, enrollment = test_enrollment
        enrollment.ping_interval = 60
        test_db.commit()

        ninety_minutes_later = enrollment.last_heartbeat + timedelta(minutes=90)
        assert heartbeat.connection_status(enrollment, now=ninety_minutes_later) == ConnectionStatus.ONLINE


class TestRecordHeartbeat:
    """Heartbeat acknowledgement."""

    def test_stamps_and_reports_interval(self, test_db, test_enrollment):
        _, enrollment = test_enrollment
        now = utcnow() + timedelta(hours=2)

        response = heartbeat.record_heartbeat(test_db, enrollment, now=now)
        assert response.success is True
        assert response.status == "online"
        assert response.ping_interval == 15
        assert response.server_time == now

        test_db.refresh(enrollment)
        assert enrollment.last_heartbeat == now

    def test_revives_offline_device(self, test_db, test_enrollment):
        _, enrollment = test_enrollment
        much_later = enrollment.last_heartbeat + timedelta(days=1)
        assert heartbeat.connection_status(enrollment, now=much_later) == ConnectionStatus.OFFLINE

        heartbeat.record_heartbeat(test_db, enrollment, now=much_later)
        assert heartbeat.connection_status(enrollment, now=much_later) == ConnectionStatus.ONLINE


class TestSummary:
    """Operator-facing enrollment view."""

    def test_summary_includes_status(self, test_enrollment):
        _, enrollment = test_enrollment
        summary = heartbeat.enrollment_summary(enrollment)
        assert summary.device_id == enrollment.device_id
        assert summary.status == "online"

        stale = heartbeat.enrollment_summary(enrollment, now=enrollment.last_heartbeat + timedelta(hours=2))
        assert stale.status == "offline"

    def test_delivery_window(self, test_enrollment):
        _, enrollment = test_enrollment
        assert heartbeat.delivery_window_minutes(enrollment) == enrollment.ping_interval
