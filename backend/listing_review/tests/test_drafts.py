import uuid

import pytest

from listing_review import audit, errors, models
from listing_review.services import drafts, review


def _submit(db, owner, lineage_id, payload, summary=None, kind="vendor", vendor_id=None):
    draft = drafts.submit_draft(
        db,
        entity_kind=kind,
        lineage_id=lineage_id,
        payload=payload,
        change_summary=summary,
        author=owner,
        vendor_id=vendor_id,
    )
    db.commit()
    return draft


def test_submit_creates_first_version_and_audit_row(db, owner, vendor):
    draft = _submit(db, owner, vendor.id, {"name": "Acme"}, summary="shorter name")
    assert draft.version_number == 1
    assert draft.state == "SUBMITTED"
    assert draft.vendor_id == vendor.id
    assert draft.submitted_at is not None
    actions = audit.list_actions_for_draft(db, draft.id)
    assert [a.action_type for a in actions] == ["SUBMIT"]
    assert actions[0].draft_version_number == 1
    assert actions[0].actor_id == owner.id
    assert actions[0].notes == "shorter name"


def test_only_one_pending_draft_per_lineage(db, owner, vendor):
    _submit(db, owner, vendor.id, {"name": "Acme"})
    with pytest.raises(errors.ConflictError):
        _submit(db, owner, vendor.id, {"name": "Acme Again"})
    db.rollback()
    pending = drafts.list_pending(db, "vendor")
    assert len(pending) == 1


def test_pending_queue_is_oldest_first_and_filterable(db, owner, vendor, service):
    first = _submit(db, owner, vendor.id, {"name": "Acme"})
    second = _submit(db, owner, service.id, {"price": 175}, kind="service")
    assert [d.id for d in drafts.list_pending(db)] == [first.id, second.id]
    assert [d.id for d in drafts.list_pending(db, "service")] == [second.id]
    with pytest.raises(errors.ValidationError):
        drafts.list_pending(db, "listing")


def test_resubmission_after_changes_requested_gets_next_version(db, admin, owner, vendor):
    v1 = _submit(db, owner, vendor.id, {"name": "Acme"})
    review.review_draft(db, draft_id=v1.id, reviewer=admin, action="approve")
    v2 = _submit(db, owner, vendor.id, {"description": "Roofs, cheap"})
    review.review_draft(db, draft_id=v2.id, reviewer=admin, action="request_changes", reason="fix pricing")
    v3 = _submit(db, owner, vendor.id, {"description": "Roofs"})

    assert (v1.version_number, v2.version_number, v3.version_number) == (1, 2, 3)
    versions = drafts.list_versions(db, "vendor", vendor.id)
    assert [v.draft.version_number for v in versions] == [3, 2, 1]
    assert [v.is_latest for v in versions] == [True, False, False]
    db.refresh(v2)
    assert v2.state == "CHANGES_REQUESTED"
    assert v2.rejection_reason == "fix pricing"

    log = list(reversed(audit.list_actions(db, "vendor", vendor.id)))
    labels = [(a.action_type, a.draft_version_number) for a in log]
    assert labels.index(("REQUEST_CHANGES", 2)) < labels.index(("SUBMIT", 3))
    assert log[-1].meta == {"resubmission": True}


def test_rejected_lineage_accepts_a_new_proposal(db, admin, owner, vendor):
    v1 = _submit(db, owner, vendor.id, {"name": "Acme"})
    review.review_draft(db, draft_id=v1.id, reviewer=admin, action="reject", reason="not allowed")
    v2 = _submit(db, owner, vendor.id, {"name": "Acme Home"})
    assert v2.version_number == 2
    db.refresh(v1)
    assert v1.state == "REJECTED"


def test_save_draft_tracks_row_version_and_writes_no_audit(db, owner, vendor):
    saved = drafts.save_draft(
        db,
        entity_kind="vendor",
        lineage_id=vendor.id,
        payload={"name": "Acme"},
        change_summary="wip",
        author=owner,
    )
    db.commit()
    assert saved.state == "DRAFT"
    assert saved.row_version == 1

    again = drafts.save_draft(
        db,
        entity_kind="vendor",
        lineage_id=vendor.id,
        payload={"name": "Acme", "location": "Austin"},
        change_summary="wip 2",
        author=owner,
        expected_row_version=1,
    )
    db.commit()
    assert again.id == saved.id
    assert again.row_version == 2
    assert again.version_number == 1

    with pytest.raises(errors.ConflictError):
        drafts.save_draft(
            db,
            entity_kind="vendor",
            lineage_id=vendor.id,
            payload={"name": "Stale"},
            change_summary=None,
            author=owner,
            expected_row_version=1,
        )
    db.rollback()
    db.refresh(saved)
    assert saved.payload == {"name": "Acme", "location": "Austin"}
    assert audit.list_actions(db, "vendor", vendor.id) == []


def test_submit_saved_draft(db, owner, vendor):
    saved = drafts.save_draft(
        db,
        entity_kind="vendor",
        lineage_id=vendor.id,
        payload={"location": "Austin"},
        change_summary="move",
        author=owner,
    )
    db.commit()
    drafts.submit_saved_draft(db, saved, actor=owner)
    db.commit()
    db.refresh(saved)
    assert saved.state == "SUBMITTED"
    assert [a.action_type for a in audit.list_actions_for_draft(db, saved.id)] == ["SUBMIT"]

    with pytest.raises(errors.ConflictError):
        drafts.submit_saved_draft(db, saved, actor=owner)


def test_submit_reuses_open_draft_row(db, owner, vendor):
    saved = drafts.save_draft(
        db,
        entity_kind="vendor",
        lineage_id=vendor.id,
        payload={"location": "Austin"},
        change_summary="move",
        author=owner,
    )
    db.commit()
    submitted = _submit(db, owner, vendor.id, {"location": "Dallas"})
    assert submitted.id == saved.id
    assert submitted.version_number == 1
    assert submitted.state == "SUBMITTED"
    assert submitted.payload == {"location": "Dallas"}
    assert submitted.change_summary == "move"


def test_saving_while_review_pending_conflicts(db, owner, vendor):
    _submit(db, owner, vendor.id, {"name": "Acme"})
    with pytest.raises(errors.ConflictError):
        drafts.save_draft(
            db,
            entity_kind="vendor",
            lineage_id=vendor.id,
            payload={"name": "Other"},
            change_summary=None,
            author=owner,
        )


def test_new_vendor_proposal_allocates_lineage(db, owner):
    draft = _submit(db, owner, None, {"name": "Brand New"})
    assert draft.entity_lineage_id is not None
    assert db.get(models.Vendor, draft.entity_lineage_id) is None
    assert draft.vendor_id is None


def test_new_service_requires_existing_vendor(db, owner, vendor):
    with pytest.raises(errors.ValidationError):
        _submit(db, owner, None, {"title": "Gutter cleaning"}, kind="service")
    with pytest.raises(errors.NotFoundError):
        _submit(db, owner, None, {"title": "Gutter cleaning"}, kind="service", vendor_id=uuid.uuid4())
    draft = _submit(db, owner, None, {"title": "Gutter cleaning"}, kind="service", vendor_id=vendor.id)
    assert draft.vendor_id == vendor.id


@pytest.mark.parametrize(
    "payload",
    [{}, [], {"name": "Acme", "unknown_field": 1}, "name=Acme"],
)
def test_malformed_payload_is_rejected(db, owner, vendor, payload):
    with pytest.raises(errors.ValidationError):
        _submit(db, owner, vendor.id, payload)


def test_unknown_kind_and_lineage(db, owner, vendor):
    with pytest.raises(errors.ValidationError):
        _submit(db, owner, vendor.id, {"name": "x"}, kind="listing")
    with pytest.raises(errors.NotFoundError):
        _submit(db, owner, uuid.uuid4(), {"name": "x"})


def test_get_draft_not_found(db):
    with pytest.raises(errors.NotFoundError):
        drafts.get_draft(db, uuid.uuid4())


def test_changeset_against_live_vendor(db, owner, vendor):
    draft = _submit(db, owner, vendor.id, {"name": "Acme", "location": None, "description": "Home inspections"})
    changes = drafts.compute_draft_changeset(db, draft)
    assert [(c.field, c.old_value, c.new_value) for c in changes] == [("name", "Acme Co", "Acme")]


def test_compare_versions(db, admin, owner, vendor):
    v1 = _submit(db, owner, vendor.id, {"name": "Acme"})
    review.review_draft(db, draft_id=v1.id, reviewer=admin, action="approve")
    _submit(db, owner, vendor.id, {"name": "Acme", "location": "Austin"})
    changes = drafts.compare_versions(db, "vendor", vendor.id, 1, 2)
    assert [(c.field, c.old_value, c.new_value) for c in changes] == [("location", None, "Austin")]
    with pytest.raises(errors.NotFoundError):
        drafts.compare_versions(db, "vendor", vendor.id, 1, 7)


def test_history_of_unknown_lineage_is_not_found(db, admin):
    with pytest.raises(errors.NotFoundError):
        drafts.list_versions(db, "vendor", uuid.uuid4())
