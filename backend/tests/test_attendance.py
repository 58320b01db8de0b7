"""Tests for member join/leave, the capacity ledger and the audit trail.

Covers:
- Join confirms under capacity, waitlists at capacity, FIFO positions
- Leave cancels and hands the freed seat to the head of the waitlist
- Typed error bodies (code + message) for every rejected transition
- Re-join after cancel starts a fresh record
- Unlimited capacity never waitlists
- Every transition lands in the attendance history
"""
from rally.models.attendance import AttendanceRecord, AttendanceStatus
from tests.conftest import ORGANIZER_ID, create_test_event, join, leave


def _summary(client, event_id):
    return client.get(f"/api/events/{event_id}/attendance/summary").json()


class TestJoin:

    def test_capacity_two_scenario(self, client):
        """A and B fill the event, C lands on the waitlist at position 1."""
        event_id = create_test_event(client, capacity=2)["event_id"]

        resp = join(client, event_id, "A")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "CONFIRMED"
        assert data["waitlisted"] is False
        assert data["summary"] == {"confirmed_count": 1, "waitlist_count": 0, "capacity": 2, "is_full": False}

        data = join(client, event_id, "B").json()
        assert data["status"] == "CONFIRMED"
        assert data["summary"]["is_full"] is True

        data = join(client, event_id, "C").json()
        assert data["status"] == "WAITLISTED"
        assert data["waitlisted"] is True
        assert data["position"] == 1
        assert _summary(client, event_id) == {
            "confirmed_count": 2, "waitlist_count": 1, "capacity": 2, "is_full": True,
        }

    def test_sold_out_flag_written_back(self, client):
        event_id = create_test_event(client, capacity=1)["event_id"]
        join(client, event_id, "A")
        assert client.get(f"/api/events/{event_id}").json()["is_sold_out"] is True

    def test_waitlist_positions_increase(self, client):
        event_id = create_test_event(client, capacity=1)["event_id"]
        join(client, event_id, "A")
        positions = [join(client, event_id, u).json()["position"] for u in ("B", "C", "D")]
        assert positions == [1, 2, 3]

    def test_already_confirmed(self, client):
        event_id = create_test_event(client)["event_id"]
        join(client, event_id, "A")
        resp = join(client, event_id, "A")
        assert resp.status_code == 409
        assert resp.json() == {
            "code": "ALREADY_CONFIRMED",
            "message": "User already confirmed for this event",
            "retryable": False,
        }

    def test_rejoin_while_waitlisted_is_noop(self, client):
        event_id = create_test_event(client, capacity=1)["event_id"]
        join(client, event_id, "A")
        first = join(client, event_id, "B").json()
        again = join(client, event_id, "B")
        assert again.status_code == 200
        assert again.json()["status"] == "WAITLISTED"
        assert again.json()["position"] == first["position"]
        assert _summary(client, event_id)["waitlist_count"] == 1

    def test_waitlist_disabled(self, client):
        event_id = create_test_event(client, capacity=1, waitlist_enabled=False)["event_id"]
        join(client, event_id, "A")
        resp = join(client, event_id, "B")
        assert resp.status_code == 409
        assert resp.json()["code"] == "WAITLIST_DISABLED"
        assert _summary(client, event_id)["waitlist_count"] == 0

    def test_unlimited_capacity_always_confirms(self, client):
        event_id = create_test_event(client, capacity=None, waitlist_enabled=False)["event_id"]
        for user in ("A", "B", "C", "D", "E"):
            assert join(client, event_id, user).json()["status"] == "CONFIRMED"
        assert _summary(client, event_id) == {
            "confirmed_count": 5, "waitlist_count": 0, "capacity": None, "is_full": False,
        }

    def test_unknown_event(self, client):
        resp = join(client, "missing-event", "A")
        assert resp.status_code == 404
        assert resp.json()["code"] == "EVENT_NOT_FOUND"

    def test_blank_user_rejected(self, client):
        event_id = create_test_event(client)["event_id"]
        assert join(client, event_id, "").status_code == 422


class TestLeave:

    def test_leave_promotes_waitlist_head(self, client):
        """From the capacity-two scenario, A leaves and C is promoted."""
        event_id = create_test_event(client, capacity=2)["event_id"]
        for user in ("A", "B", "C"):
            join(client, event_id, user)

        resp = leave(client, event_id, "A")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "CANCELLED"
        assert data["promoted_user_id"] == "C"
        assert data["summary"] == {"confirmed_count": 2, "waitlist_count": 0, "capacity": 2, "is_full": True}

    def test_fifo_promotion_order(self, client):
        event_id = create_test_event(client, capacity=1)["event_id"]
        for user in ("X", "A", "B", "C"):
            join(client, event_id, user)

        assert leave(client, event_id, "X").json()["promoted_user_id"] == "A"
        assert leave(client, event_id, "A").json()["promoted_user_id"] == "B"
        assert leave(client, event_id, "B").json()["promoted_user_id"] == "C"
        assert leave(client, event_id, "C").json()["promoted_user_id"] is None

    def test_leaving_waitlist_promotes_nobody(self, client):
        event_id = create_test_event(client, capacity=1)["event_id"]
        for user in ("A", "B", "C"):
            join(client, event_id, user)

        data = leave(client, event_id, "B").json()
        assert data["promoted_user_id"] is None
        assert data["summary"]["waitlist_count"] == 1
        assert data["summary"]["confirmed_count"] == 1

    def test_leave_clears_sold_out(self, client):
        event_id = create_test_event(client, capacity=1)["event_id"]
        join(client, event_id, "A")
        leave(client, event_id, "A")
        assert client.get(f"/api/events/{event_id}").json()["is_sold_out"] is False

    def test_not_attending(self, client):
        event_id = create_test_event(client)["event_id"]
        resp = leave(client, event_id, "stranger")
        assert resp.status_code == 409
        assert resp.json()["code"] == "NOT_ATTENDING"

    def test_leave_twice(self, client):
        event_id = create_test_event(client)["event_id"]
        join(client, event_id, "A")
        leave(client, event_id, "A")
        assert leave(client, event_id, "A").json()["code"] == "NOT_ATTENDING"

    def test_organizer_cannot_leave(self, client):
        event_id = create_test_event(client)["event_id"]
        join(client, event_id, ORGANIZER_ID)
        resp = leave(client, event_id, ORGANIZER_ID)
        assert resp.status_code == 403
        assert resp.json()["code"] == "ORGANIZER_CANNOT_LEAVE"
        assert _summary(client, event_id)["confirmed_count"] == 1


class TestRejoin:

    def test_rejoin_after_cancel_confirms(self, client, db):
        event_id = create_test_event(client, capacity=2)["event_id"]
        join(client, event_id, "A")
        leave(client, event_id, "A")

        resp = join(client, event_id, "A")
        assert resp.status_code == 200
        assert resp.json()["status"] == "CONFIRMED"

        records = (
            db.query(AttendanceRecord)
            .filter(AttendanceRecord.event_id == event_id, AttendanceRecord.user_id == "A")
            .order_by(AttendanceRecord.record_id)
            .all()
        )
        assert [r.status for r in records] == [AttendanceStatus.CANCELLED, AttendanceStatus.CONFIRMED]

    def test_at_most_one_active_record(self, client, db):
        event_id = create_test_event(client, capacity=1)["event_id"]
        for _ in range(3):
            join(client, event_id, "A")
            join(client, event_id, "A")
            leave(client, event_id, "A")
        join(client, event_id, "A")

        active = (
            db.query(AttendanceRecord)
            .filter(
                AttendanceRecord.event_id == event_id,
                AttendanceRecord.user_id == "A",
                AttendanceRecord.status != AttendanceStatus.CANCELLED,
            )
            .count()
        )
        total = db.query(AttendanceRecord).filter(AttendanceRecord.event_id == event_id).count()
        assert active == 1
        assert total == 4


class TestHistory:

    def test_every_transition_logged(self, client):
        event_id = create_test_event(client, capacity=1)["event_id"]
        join(client, event_id, "A")
        join(client, event_id, "B")
        leave(client, event_id, "A")

        entries = client.get(f"/api/events/{event_id}/attendance/history").json()
        assert [(e["user_id"], e["action"]) for e in entries] == [
            ("A", "RSVP_CONFIRMED"),
            ("B", "WAITLISTED"),
            ("A", "CANCELLED"),
            ("B", "PROMOTED"),
        ]
        promoted = entries[-1]
        assert promoted["actor_id"] == "A"
        assert promoted["reason"] == "waitlist-promoted"
        assert promoted["details"]["previous_status"] == "WAITLISTED"

    def test_history_filtered_by_user(self, client):
        event_id = create_test_event(client)["event_id"]
        join(client, event_id, "A")
        join(client, event_id, "B")
        entries = client.get(
            f"/api/events/{event_id}/attendance/history", params={"user_id": "B"},
        ).json()
        assert len(entries) == 1
        assert entries[0]["user_id"] == "B"

    def test_rejected_join_writes_nothing(self, client):
        event_id = create_test_event(client, capacity=1, waitlist_enabled=False)["event_id"]
        join(client, event_id, "A")
        join(client, event_id, "B")
        entries = client.get(f"/api/events/{event_id}/attendance/history").json()
        assert [e["user_id"] for e in entries] == ["A"]

    def test_history_unknown_event(self, client):
        assert client.get("/api/events/nope/attendance/history").status_code == 404
