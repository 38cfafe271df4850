"""
Access resolver tests: coarse role collapsing and per-club checks.
"""

import pytest

from sportcamp.access import (
    AccessContext,
    Role,
    club_id_for,
    club_role_of,
    effective_role,
    parse_club_role,
    require_club_role,
    resolve_access,
    resolve_access_for_session,
    scope_join,
)
from sportcamp.auth.sessions import create_session


class TestEffectiveRole:
    """Pure priority fallback, no database"""

    def test_superadmin_flag_wins(self):
        assert effective_role([Role.student], True) == Role.superadmin
        assert effective_role([], True) == Role.superadmin

    def test_no_memberships_is_student(self):
        assert effective_role([], False) == Role.student

    def test_admin_beats_coach_and_student(self):
        assert effective_role([Role.student, Role.admin, Role.coach], False) == Role.admin

    def test_coach_beats_student(self):
        assert effective_role([Role.student, Role.coach], False) == Role.coach

    def test_only_student(self):
        assert effective_role([Role.student, Role.student], False) == Role.student


class TestParseClubRole:
    def test_known_roles(self):
        assert parse_club_role("admin") == Role.admin
        assert parse_club_role("coach") == Role.coach
        assert parse_club_role("student") == Role.student

    def test_unknown_or_global_role_is_denied(self):
        assert parse_club_role("owner") is None
        assert parse_club_role("superadmin") is None
        assert parse_club_role(None) is None


class TestResolveAccess:
    """Access context built from membership rows"""

    def test_unauthenticated(self, db):
        with db.connection() as conn:
            assert resolve_access(conn, None) is None
            assert resolve_access_for_session(conn, None) is None
            assert resolve_access_for_session(conn, "no-such-session") is None

    def test_superadmin_has_no_club_list(self, db, seed):
        sport = seed.sport()
        club = seed.club("Alpha", sport)
        root = seed.user("root@example.com", superadmin=True)
        seed.member(root, club, Role.student)

        with db.connection() as conn:
            sid, _ = create_session(conn, root)
        with db.connection() as conn:
            ctx = resolve_access_for_session(conn, sid)

        assert ctx.role == Role.superadmin
        assert ctx.is_superadmin is True
        assert ctx.clubs == []

    def test_no_memberships(self, db, seed):
        uid = seed.user("loner@example.com", full_name="Lone Wolf")
        with db.connection() as conn:
            sid, _ = create_session(conn, uid)
            ctx = resolve_access_for_session(conn, sid)

        assert ctx.role == Role.student
        assert ctx.clubs == []
        assert ctx.user_label == "Lone Wolf"

    def test_admin_in_one_club_student_in_another(self, db, seed):
        sport = seed.sport("Tennis")
        x = seed.club("Xylo Club", sport)
        y = seed.club("Yonder Club", sport)
        uid = seed.user("mixed@example.com")
        seed.member(uid, x, Role.admin)
        seed.member(uid, y, Role.student)

        with db.connection() as conn:
            sid, _ = create_session(conn, uid)
            ctx = resolve_access_for_session(conn, sid)

        assert ctx.role == Role.admin
        assert [(c.id, c.role) for c in ctx.clubs] == [(x, Role.admin), (y, Role.student)]
        assert ctx.clubs[0].sport == "Tennis"
        # Label falls back to email when no name is set.
        assert ctx.user_label == "mixed@example.com"

    def test_to_dict_is_camel_case(self, db, seed):
        sport = seed.sport()
        club = seed.club("Alpha", sport)
        uid = seed.user("coach@example.com", full_name="Coach Carter")
        seed.member(uid, club, Role.coach)
        with db.connection() as conn:
            ctx = resolve_access(conn, {"user_id": uid, "email": "coach@example.com", "full_name": "Coach Carter"})

        assert ctx.to_dict() == {
            "userId": uid,
            "userLabel": "Coach Carter",
            "role": "coach",
            "clubs": [{"id": club, "name": "Alpha", "sport": "Football", "role": "coach"}],
            "isSuperadmin": False,
        }


class TestClubScopedChecks:
    """Per-club re-check independent of the coarse role"""

    def test_club_role_of(self, db, seed):
        sport = seed.sport()
        a = seed.club("A", sport)
        b = seed.club("B", sport)
        uid = seed.user()
        seed.member(uid, a, Role.admin)
        with db.connection() as conn:
            assert club_role_of(conn, uid, a) == Role.admin
            assert club_role_of(conn, uid, b) is None

    def test_admin_elsewhere_cannot_act_in_student_club(self, db, seed):
        sport = seed.sport()
        a = seed.club("A", sport)
        b = seed.club("B", sport)
        uid = seed.user()
        seed.member(uid, a, Role.admin)
        seed.member(uid, b, Role.student)

        with db.connection() as conn:
            ctx = resolve_access(conn, {"user_id": uid, "email": "x@example.com"})
            assert ctx.role == Role.admin
            assert require_club_role(conn, ctx, a, [Role.admin]) == Role.admin
            with pytest.raises(PermissionError):
                require_club_role(conn, ctx, b, [Role.admin, Role.coach])

    def test_superadmin_passes_any_club(self, db, seed):
        sport = seed.sport()
        a = seed.club("A", sport)
        ctx = AccessContext(user_id=999, user_label="root", role=Role.superadmin, is_superadmin=True)
        with db.connection() as conn:
            assert require_club_role(conn, ctx, a, [Role.admin]) == Role.superadmin

    def test_unrecognized_stored_role_is_denied(self, db, seed):
        sport = seed.sport()
        a = seed.club("A", sport)
        uid = seed.user()
        seed.member(uid, a, Role.coach)
        ctx = AccessContext(user_id=uid, user_label="u", role=Role.coach)
        with db.connection() as conn:
            # Bypass the CHECK constraint to simulate a legacy value.
            conn.execute("PRAGMA ignore_check_constraints = ON")
            conn.execute("UPDATE club_memberships SET role='owner' WHERE user_id=?", (uid,))
            assert club_role_of(conn, uid, a) is None
            with pytest.raises(PermissionError):
                require_club_role(conn, ctx, a, [Role.coach])

    def test_club_id_for(self, db, seed):
        sport = seed.sport()
        a = seed.club("A", sport)
        uid = seed.user()
        membership_id = seed.member(uid, a, Role.student)
        session = seed.training(a)
        with db.connection() as conn:
            assert club_id_for(conn, "club_memberships", membership_id) == a
            assert club_id_for(conn, "training_sessions", session["id"]) == a
            assert club_id_for(conn, "wallets", 12345) is None
            with pytest.raises(ValueError):
                club_id_for(conn, "users", uid)


class TestScopeJoin:
    def test_superadmin_unrestricted(self):
        ctx = AccessContext(user_id=1, user_label="root", role=Role.superadmin, is_superadmin=True)
        assert scope_join(ctx, "c.club_id") == ("", [])

    def test_member_restricted_by_roles(self):
        ctx = AccessContext(user_id=7, user_label="u", role=Role.admin)
        sql, params = scope_join(ctx, "w.club_id", roles=[Role.admin], alias="cm_admin")
        assert "cm_admin.club_id = w.club_id" in sql
        assert "cm_admin.role IN (?)" in sql
        assert params == [7, "admin"]
