"""
Tests for the authorization context and driver-scoped project access
"""

import pytest

from driver_portal.errors import ContextError, NotOwned
from driver_portal.services.context import (
    AuthorizationContext,
    DriverProjects,
    ResolvedDriver,
    bind_context,
)

ANA = ResolvedDriver(driver_id="d-1", driver_name="Ana")
BRUNO = ResolvedDriver(driver_id="d-2", driver_name="Bruno")


class TestAuthorizationContext:
    def test_bind_exposes_driver(self):
        context = bind_context(ANA)

        assert context.is_active
        assert context.driver_id == "d-1"
        assert context.driver is ANA

    def test_unbound_context_has_no_driver(self):
        context = AuthorizationContext()

        assert not context.is_active
        with pytest.raises(ContextError):
            context.driver_id

    def test_binds_only_once(self):
        context = bind_context(ANA)

        with pytest.raises(ContextError):
            context.bind(BRUNO)
        assert context.driver_id == "d-1"

    def test_cleared_context_cannot_be_rebound(self):
        context = bind_context(ANA)
        context.clear()

        assert not context.is_active
        with pytest.raises(ContextError):
            context.driver
        with pytest.raises(ContextError):
            context.bind(BRUNO)

    def test_generation_changes_on_clear(self):
        context = bind_context(ANA)
        before = context.generation

        context.clear()

        assert context.generation != before

    def test_contexts_are_independent(self):
        first = bind_context(ANA)
        second = bind_context(BRUNO)

        first.clear()

        assert second.driver_id == "d-2"
        assert first.generation != second.generation

    def test_with_block_clears(self):
        with bind_context(ANA) as context:
            assert context.driver_id == "d-1"
        assert not context.is_active


class TestDriverProjects:
    def test_lists_only_own_projects_in_schedule_order(self, db, seeded, ctx_d1):
        projects = DriverProjects(db, ctx_d1).list()

        assert [p.id for p in projects] == [seeded.p2.id, seeded.p4.id, seeded.p1.id]
        assert all(p.driver_id == seeded.d1.id for p in projects)

    def test_foreign_project_is_not_owned(self, db, seeded, ctx_d1):
        with pytest.raises(NotOwned):
            DriverProjects(db, ctx_d1).get(seeded.p3.id)

    def test_missing_and_foreign_look_the_same(self, db, seeded, ctx_d1):
        scoped = DriverProjects(db, ctx_d1)

        with pytest.raises(NotOwned) as missing:
            scoped.get("does-not-exist")
        with pytest.raises(NotOwned) as foreign:
            scoped.get(seeded.p3.id)

        assert missing.value.message == foreign.value.message

    def test_cleared_context_cannot_read(self, db, seeded, ctx_d1):
        scoped = DriverProjects(db, ctx_d1)
        ctx_d1.clear()

        with pytest.raises(ContextError):
            scoped.list()

    def test_update_carries_ownership(self, db, seeded, ctx_d2):
        updated = DriverProjects(db, ctx_d2).update(seeded.p1.id, {"description": "hijacked"})

        assert updated == 0
        db.expire_all()
        assert seeded.p1.description is None

    def test_ownership_predicate(self, db, seeded, ctx_d1):
        from driver_portal.models.sql_models import Project

        owned = db.query(Project).filter(ctx_d1.ownership_clause()).all()

        assert {p.id for p in owned} == {seeded.p1.id, seeded.p2.id, seeded.p4.id}
        assert ctx_d1.owns(seeded.p1)
        assert not ctx_d1.owns(seeded.p3)
        assert not ctx_d1.owns(None)
