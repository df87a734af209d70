"""
Tests for the project status machine
"""

from datetime import datetime, timezone

import pytest

from driver_portal.errors import NotOwned, TransitionRejected, ValidationError
from driver_portal.models.pydantic_models import TargetStatusEnum
from driver_portal.models.sql_models import Project
from driver_portal.repositories.project import ProjectRepository
from driver_portal.services.project_service import (
    AcceptTransition,
    CompleteTransition,
    DeclineTransition,
    ProjectStatusMachine,
    StartTransition,
    list_driver_projects,
    transition_for,
)

NOW = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)


def _snapshot(db, project_id):
    db.expire_all()
    p = db.get(Project, project_id)
    return (p.driver_id, p.status, p.acceptance_status, p.accepted_at, p.declined_at, p.completed_at)


class TestTransitionTypes:
    @pytest.mark.parametrize("target,cls", [
        ("accepted", AcceptTransition),
        ("started", StartTransition),
        ("declined", DeclineTransition),
        (TargetStatusEnum.completed, CompleteTransition),
    ])
    def test_target_maps_to_variant(self, target, cls):
        assert isinstance(transition_for(target, "d-1", NOW), cls)

    @pytest.mark.parametrize("target", ["pending", "active", "cancelled", ""])
    def test_unknown_target(self, target):
        with pytest.raises(ValidationError):
            transition_for(target, "d-1", NOW)

    def test_each_variant_writes_only_its_own_fields(self):
        assert set(AcceptTransition("d-1", NOW).values()) == {
            "acceptance_status", "accepted_at", "accepted_by", "updated_at"
        }
        assert set(DeclineTransition("d-1", NOW).values()) == {
            "acceptance_status", "declined_at", "declined_by", "updated_at"
        }
        assert "acceptance_status" not in CompleteTransition("d-1", NOW).values()


class TestStatusMachine:
    def test_owner_accepts_pending_project(self, db, seeded, ctx_d1):
        project = ProjectStatusMachine(db, ctx_d1).transition(seeded.p1.id, "accepted")

        assert project.acceptance_status == "accepted"
        assert project.accepted_at is not None
        assert project.accepted_by == seeded.d1.id
        assert project.status == "active"

    def test_other_driver_gets_not_owned_and_nothing_changes(self, db, seeded, ctx_d2):
        before = _snapshot(db, seeded.p1.id)

        with pytest.raises(NotOwned):
            ProjectStatusMachine(db, ctx_d2).transition(seeded.p1.id, "accepted")

        assert _snapshot(db, seeded.p1.id) == before

    def test_full_forward_path(self, db, seeded, ctx_d1):
        machine = ProjectStatusMachine(db, ctx_d1)

        machine.transition(seeded.p1.id, "accepted")
        started = machine.transition(seeded.p1.id, "started")
        assert started.acceptance_status == "started"
        assert started.started_by == seeded.d1.id

        done = machine.transition(seeded.p1.id, "completed")
        assert done.status == "completed"
        assert done.completed_at is not None
        # completion leaves the acceptance axis alone
        assert done.acceptance_status == "started"

    def test_complete_from_accepted_keeps_acceptance(self, db, seeded, ctx_d1):
        machine = ProjectStatusMachine(db, ctx_d1)
        machine.transition(seeded.p1.id, "accepted")

        done = machine.transition(seeded.p1.id, "completed")

        assert done.status == "completed"
        assert done.acceptance_status == "accepted"

    def test_decline_from_accepted(self, db, seeded, ctx_d1):
        machine = ProjectStatusMachine(db, ctx_d1)
        machine.transition(seeded.p1.id, "accepted")

        declined = machine.transition(seeded.p1.id, "declined")

        assert declined.acceptance_status == "declined"
        assert declined.declined_by == seeded.d1.id

    @pytest.mark.parametrize("target", ["started", "completed"])
    def test_pending_cannot_skip_acceptance(self, db, seeded, ctx_d1, target):
        with pytest.raises(TransitionRejected) as exc:
            ProjectStatusMachine(db, ctx_d1).transition(seeded.p1.id, target)

        assert exc.value.current_status == "pending"
        assert _snapshot(db, seeded.p1.id)[2] == "pending"

    def test_started_cannot_be_declined(self, db, seeded, ctx_d1):
        machine = ProjectStatusMachine(db, ctx_d1)
        machine.transition(seeded.p1.id, "accepted")
        machine.transition(seeded.p1.id, "started")

        with pytest.raises(TransitionRejected):
            machine.transition(seeded.p1.id, "declined")

    @pytest.mark.parametrize("target", ["accepted", "started", "declined", "completed"])
    def test_declined_is_terminal(self, db, seeded, ctx_d1, target):
        machine = ProjectStatusMachine(db, ctx_d1)
        machine.transition(seeded.p1.id, "declined")

        with pytest.raises(TransitionRejected):
            machine.transition(seeded.p1.id, target)

    @pytest.mark.parametrize("target", ["accepted", "started", "declined", "completed"])
    def test_completed_is_absorbing(self, db, seeded, ctx_d1, target):
        machine = ProjectStatusMachine(db, ctx_d1)
        machine.transition(seeded.p1.id, "accepted")
        machine.transition(seeded.p1.id, "completed")

        with pytest.raises(TransitionRejected):
            machine.transition(seeded.p1.id, target)

    def test_repeated_accept_is_rejected(self, db, seeded, ctx_d1):
        machine = ProjectStatusMachine(db, ctx_d1)
        first = machine.transition(seeded.p1.id, "accepted")
        stamp = first.accepted_at

        with pytest.raises(TransitionRejected):
            machine.transition(seeded.p1.id, "accepted")

        assert _snapshot(db, seeded.p1.id)[3] == stamp

    def test_reassignment_between_check_and_write(self, db, seeded, ctx_d1):
        machine = ProjectStatusMachine(db, ctx_d1)
        load_owned = machine.projects.get

        def get_then_reassign(project_id):
            project = load_owned(project_id)
            # dispatcher moves the trip to another driver right after the ownership check
            ProjectRepository(db).assign(project_id, seeded.d2.id)
            return project

        machine.projects.get = get_then_reassign

        with pytest.raises(TransitionRejected):
            machine.transition(seeded.p1.id, "accepted")

        driver_id, status, acceptance, accepted_at, _, _ = _snapshot(db, seeded.p1.id)
        assert driver_id == seeded.d2.id
        assert acceptance == "pending"
        assert accepted_at is None

    def test_reassignment_after_commit_still_returns_the_write(self, db, seeded, ctx_d1):
        machine = ProjectStatusMachine(db, ctx_d1)
        write_owned = machine.projects.update

        def update_then_reassign(project_id, fields, guards=None):
            updated = write_owned(project_id, fields, guards)
            ProjectRepository(db).assign(project_id, seeded.d2.id)
            return updated

        machine.projects.update = update_then_reassign

        project = machine.transition(seeded.p1.id, "accepted")

        assert project.id == seeded.p1.id
        assert project.driver_id == seeded.d2.id

    def test_reassigned_project_drops_out_of_old_driver_list(self, db, seeded, ctx_d1):
        ProjectRepository(db).assign(seeded.p1.id, seeded.d2.id)

        ids = [p.id for p in list_driver_projects(db, ctx_d1)]

        assert seeded.p1.id not in ids
        with pytest.raises(NotOwned):
            ProjectStatusMachine(db, ctx_d1).transition(seeded.p1.id, "accepted")
