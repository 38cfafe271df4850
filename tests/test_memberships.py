"""
Membership, join request and QR check-in tests
"""

import pytest

from sportcamp.access import AccessContext, Role, club_role_of
from sportcamp.memberships import (
    add_membership,
    assignable_roles,
    check_in,
    set_join_request_status,
    set_membership_role,
    submit_join_request,
)


@pytest.fixture
def club(seed):
    return seed.club("Alpha", seed.sport())


def _wallet_count(conn, user_id, club_id):
    return conn.execute(
        "SELECT COUNT(*) AS n FROM wallets WHERE student_id=? AND club_id=?",
        (user_id, club_id),
    ).fetchone()["n"]


class TestMemberships:
    def test_assignable_roles(self):
        root = AccessContext(user_id=1, user_label="r", role=Role.superadmin, is_superadmin=True)
        admin = AccessContext(user_id=2, user_label="a", role=Role.admin)
        assert assignable_roles(root) == [Role.admin, Role.coach, Role.student]
        assert assignable_roles(admin) == [Role.coach, Role.student]

    def test_student_membership_creates_wallet(self, db, seed, club):
        uid = seed.user()
        with db.connection() as conn:
            add_membership(conn, club_id=club, user_id=uid, role=Role.student)
            assert _wallet_count(conn, uid, club) == 1

    def test_coach_membership_has_no_wallet(self, db, seed, club):
        uid = seed.user()
        with db.connection() as conn:
            membership_id = add_membership(conn, club_id=club, user_id=uid, role="coach")
            assert _wallet_count(conn, uid, club) == 0
            set_membership_role(conn, membership_id, Role.student)
            assert _wallet_count(conn, uid, club) == 1
            assert club_role_of(conn, uid, club) == Role.student

    def test_missing_targets(self, db, seed, club):
        uid = seed.user()
        with db.connection() as conn:
            with pytest.raises(LookupError, match="club_not_found"):
                add_membership(conn, club_id=9999, user_id=uid, role=Role.student)
            with pytest.raises(LookupError, match="user_not_found"):
                add_membership(conn, club_id=club, user_id=9999, role=Role.student)
            with pytest.raises(ValueError, match="invalid_role"):
                add_membership(conn, club_id=club, user_id=uid, role="owner")


class TestJoinRequests:
    def test_approval_creates_student_membership(self, db, seed, club):
        uid = seed.user()
        with db.connection() as conn:
            request_id = submit_join_request(conn, user_id=uid, club_id=club, note="  please  ")
        with db.connection() as conn:
            result = set_join_request_status(conn, request_id, "approved")
            note = conn.execute("SELECT note FROM club_join_requests WHERE request_id=?", (request_id,)).fetchone()["note"]

            assert result["status"] == "approved"
            assert result["membershipId"] is not None
            assert club_role_of(conn, uid, club) == Role.student
            assert _wallet_count(conn, uid, club) == 1
            assert note == "please"

    def test_rejection_creates_nothing(self, db, seed, club):
        uid = seed.user()
        with db.connection() as conn:
            request_id = submit_join_request(conn, user_id=uid, club_id=club)
            result = set_join_request_status(conn, request_id, "rejected")
            assert result == {"id": request_id, "status": "rejected", "membershipId": None}
            assert club_role_of(conn, uid, club) is None

    def test_unknown_status_rejected(self, db, seed, club):
        uid = seed.user()
        with db.connection() as conn:
            request_id = submit_join_request(conn, user_id=uid, club_id=club)
            with pytest.raises(ValueError, match="invalid_status"):
                set_join_request_status(conn, request_id, "maybe")
            status = conn.execute("SELECT status FROM club_join_requests WHERE request_id=?", (request_id,)).fetchone()["status"]
            assert status == "pending"

    def test_approving_existing_member_keeps_role(self, db, seed, club):
        uid = seed.user()
        with db.connection() as conn:
            request_id = submit_join_request(conn, user_id=uid, club_id=club)
        seed.member(uid, club, Role.coach)
        with db.connection() as conn:
            set_join_request_status(conn, request_id, "approved")
            assert club_role_of(conn, uid, club) == Role.coach

    def test_duplicate_and_member_requests(self, db, seed, club):
        uid = seed.user()
        member = seed.user()
        seed.member(member, club, Role.student)
        with db.connection() as conn:
            submit_join_request(conn, user_id=uid, club_id=club)
            with pytest.raises(ValueError, match="request_pending"):
                submit_join_request(conn, user_id=uid, club_id=club)
            with pytest.raises(ValueError, match="already_member"):
                submit_join_request(conn, user_id=member, club_id=club)
            with pytest.raises(LookupError, match="club_not_found"):
                submit_join_request(conn, user_id=uid, club_id=9999)

    def test_missing_request(self, db):
        with db.connection() as conn:
            with pytest.raises(LookupError, match="request_not_found"):
                set_join_request_status(conn, 4242, "approved")


class TestCheckIn:
    def test_idempotent_per_session_and_student(self, db, seed, club):
        uid = seed.user()
        seed.member(uid, club, Role.student)
        session = seed.training(club)
        with db.connection() as conn:
            first = check_in(conn, user_id=uid, qr_token=session["token"])
            second = check_in(conn, user_id=uid, qr_token=session["token"])
            rows = conn.execute(
                "SELECT COUNT(*) AS n FROM attendance WHERE session_id=? AND student_id=?",
                (session["id"], uid),
            ).fetchone()["n"]

        assert first == {"sessionId": session["id"], "recorded": True}
        assert second == {"sessionId": session["id"], "recorded": False}
        assert rows == 1

    def test_only_students_of_that_club(self, db, seed, club):
        other = seed.club("Beta", seed.sport("Rugby"))
        coach = seed.user()
        outsider = seed.user()
        seed.member(coach, club, Role.coach)
        seed.member(outsider, other, Role.student)
        session = seed.training(club)
        with db.connection() as conn:
            with pytest.raises(PermissionError, match="students_only"):
                check_in(conn, user_id=coach, qr_token=session["token"])
            with pytest.raises(PermissionError, match="students_only"):
                check_in(conn, user_id=outsider, qr_token=session["token"])

    def test_unknown_token(self, db, seed):
        uid = seed.user()
        with db.connection() as conn:
            with pytest.raises(LookupError, match="session_not_found"):
                check_in(conn, user_id=uid, qr_token="missing")
