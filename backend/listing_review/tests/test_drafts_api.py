import uuid


def _propose(client, headers, lineage_id, payload, kind="vendor", **extra):
    body = {"entity_kind": kind, "entity_lineage_id": str(lineage_id) if lineage_id else None, "payload": payload}
    body.update(extra)
    return client.post("/api/drafts", json=body, headers=headers)


def test_submit_review_publish_flow(client, admin, owner, vendor, headers_for):
    owner_headers = headers_for(owner)
    admin_headers = headers_for(admin)

    resp = _propose(client, owner_headers, vendor.id, {"name": "Acme"}, change_summary="shorter name")
    assert resp.status_code == 201
    draft = resp.json()
    assert draft["version_number"] == 1
    assert draft["state"] == "SUBMITTED"

    changeset = client.get(f"/api/drafts/{draft['id']}/changeset", headers=admin_headers)
    assert changeset.status_code == 200
    assert changeset.json()["changes"] == [
        {
            "field": "name",
            "old_value": "Acme Co",
            "new_value": "Acme",
            "old_display": "Acme Co",
            "new_display": "Acme",
        }
    ]

    queue = client.get("/api/admin/drafts/pending", headers=admin_headers)
    assert [d["id"] for d in queue.json()] == [draft["id"]]

    decided = client.post(
        f"/api/admin/drafts/{draft['id']}/review",
        json={"action": "approve"},
        headers=admin_headers,
    )
    assert decided.status_code == 200
    assert decided.json()["state"] == "PUBLISHED"

    live = client.get(f"/api/vendors/{vendor.id}", headers=owner_headers)
    assert live.json()["name"] == "Acme"
    assert client.get("/api/admin/drafts/pending", headers=admin_headers).json() == []

    log = client.get(
        "/api/admin/audit",
        params={"entity_kind": "vendor", "entity_lineage_id": str(vendor.id)},
        headers=admin_headers,
    ).json()
    assert [(a["action_type"], a["draft_version_number"]) for a in log] == [("APPROVE", 1), ("SUBMIT", 1)]
    assert log[0]["metadata"] == {"changed_fields": ["name"]}

    per_draft = client.get(f"/api/admin/drafts/{draft['id']}/actions", headers=admin_headers).json()
    assert [a["action_type"] for a in per_draft] == ["SUBMIT", "APPROVE"]


def test_submission_notifies_admins(client, admin, owner, vendor, headers_for):
    _propose(client, headers_for(owner), vendor.id, {"name": "Acme"})
    inbox = client.get("/api/notifications/", headers=headers_for(admin)).json()
    assert [n["event_type"] for n in inbox] == ["draft.submitted"]
    assert inbox[0]["meta"]["entity_lineage_id"] == str(vendor.id)
    assert client.get("/api/notifications/", headers=headers_for(owner)).json() == []


def test_second_pending_submission_conflicts(client, owner, vendor, headers_for):
    headers = headers_for(owner)
    assert _propose(client, headers, vendor.id, {"name": "Acme"}).status_code == 201
    again = _propose(client, headers, vendor.id, {"name": "Acme 2"})
    assert again.status_code == 409


def test_review_requires_admin_and_reason(client, admin, owner, vendor, headers_for):
    draft = _propose(client, headers_for(owner), vendor.id, {"name": "Acme"}).json()
    url = f"/api/admin/drafts/{draft['id']}/review"

    assert client.post(url, json={"action": "approve"}, headers=headers_for(owner)).status_code == 403
    assert client.get("/api/admin/drafts/pending", headers=headers_for(owner)).status_code == 403
    missing = client.post(url, json={"action": "reject"}, headers=headers_for(admin))
    assert missing.status_code == 400
    assert client.post(url, json={"action": "publish"}, headers=headers_for(admin)).status_code == 422

    rejected = client.post(url, json={"action": "reject", "reason": "duplicate"}, headers=headers_for(admin))
    assert rejected.status_code == 200
    assert rejected.json()["rejection_reason"] == "duplicate"

    late = client.post(url, json={"action": "approve"}, headers=headers_for(admin))
    assert late.status_code == 409


def test_invalid_payload_surfaces_as_unprocessable(client, admin, owner, vendor, headers_for):
    draft = _propose(client, headers_for(owner), vendor.id, {"website_url": "ftp://acme"}).json()
    resp = client.post(
        f"/api/admin/drafts/{draft['id']}/review",
        json={"action": "approve"},
        headers=headers_for(admin),
    )
    assert resp.status_code == 422
    assert client.get(f"/api/drafts/{draft['id']}", headers=headers_for(owner)).json()["state"] == "SUBMITTED"


def test_other_vendors_cannot_touch_lineage(client, owner, vendor, make_user, headers_for):
    stranger = headers_for(make_user())
    draft = _propose(client, headers_for(owner), vendor.id, {"name": "Acme"}).json()

    assert _propose(client, stranger, vendor.id, {"name": "Hijack"}).status_code == 403
    assert client.get(f"/api/drafts/{draft['id']}", headers=stranger).status_code == 403
    history = client.get(
        "/api/drafts/history",
        params={"entity_kind": "vendor", "entity_lineage_id": str(vendor.id)},
        headers=stranger,
    )
    assert history.status_code == 403
    new_service = _propose(client, stranger, None, {"title": "Fake"}, kind="service", vendor_id=str(vendor.id))
    assert new_service.status_code == 403


def test_resubmission_history_and_compare(client, admin, owner, vendor, headers_for):
    owner_headers = headers_for(owner)
    admin_headers = headers_for(admin)

    v1 = _propose(client, owner_headers, vendor.id, {"description": "Roofs"}).json()
    client.post(f"/api/admin/drafts/{v1['id']}/review", json={"action": "approve"}, headers=admin_headers)
    v2 = _propose(client, owner_headers, vendor.id, {"description": "Roofs, cheap"}).json()
    sent_back = client.post(
        f"/api/admin/drafts/{v2['id']}/review",
        json={"action": "request_changes", "reason": "fix pricing"},
        headers=admin_headers,
    )
    assert sent_back.json()["state"] == "CHANGES_REQUESTED"
    v3 = _propose(client, owner_headers, vendor.id, {"description": "Roofs and gutters"}).json()
    assert v3["version_number"] == 3

    history = client.get(
        "/api/drafts/history",
        params={"entity_kind": "vendor", "entity_lineage_id": str(vendor.id)},
        headers=owner_headers,
    ).json()
    assert [(h["version_number"], h["is_latest"]) for h in history] == [(3, True), (2, False), (1, False)]

    compare = client.get(
        "/api/drafts/compare",
        params={
            "entity_kind": "vendor",
            "entity_lineage_id": str(vendor.id),
            "from_version": 2,
            "to_version": 3,
        },
        headers=owner_headers,
    )
    assert compare.status_code == 200
    assert compare.json()["changes"][0]["new_value"] == "Roofs and gutters"

    missing = client.get(
        "/api/drafts/compare",
        params={
            "entity_kind": "vendor",
            "entity_lineage_id": str(vendor.id),
            "from_version": 1,
            "to_version": 9,
        },
        headers=owner_headers,
    )
    assert missing.status_code == 404

    inbox = client.get("/api/notifications/", headers=owner_headers).json()
    assert {n["event_type"] for n in inbox} == {"draft.approved", "draft.changes_requested"}


def test_save_then_submit_saved_draft(client, owner, vendor, headers_for):
    headers = headers_for(owner)
    body = {
        "entity_kind": "vendor",
        "entity_lineage_id": str(vendor.id),
        "payload": {"location": "Austin"},
    }
    first = client.put("/api/drafts", json=body, headers=headers)
    assert first.status_code == 200
    assert first.json()["row_version"] == 1

    second = client.put("/api/drafts", json={**body, "expected_row_version": 1}, headers=headers)
    assert second.json()["row_version"] == 2
    stale = client.put("/api/drafts", json={**body, "expected_row_version": 1}, headers=headers)
    assert stale.status_code == 409

    submitted = client.post(f"/api/drafts/{first.json()['id']}/submit", headers=headers)
    assert submitted.status_code == 200
    assert submitted.json()["state"] == "SUBMITTED"
    assert client.post(f"/api/drafts/{first.json()['id']}/submit", headers=headers).status_code == 409


def test_new_service_through_review(client, admin, owner, vendor, headers_for):
    proposal = _propose(
        client,
        headers_for(owner),
        None,
        {"title": "Gutter cleaning", "price": 80},
        kind="service",
        vendor_id=str(vendor.id),
    )
    assert proposal.status_code == 201
    lineage_id = proposal.json()["entity_lineage_id"]
    assert client.get(f"/api/services/{lineage_id}", headers=headers_for(owner)).status_code == 404

    client.post(
        f"/api/admin/drafts/{proposal.json()['id']}/review",
        json={"action": "approve"},
        headers=headers_for(admin),
    )
    services = client.get(f"/api/vendors/{vendor.id}/services", headers=headers_for(owner)).json()
    assert [s["id"] for s in services] == [lineage_id]
    assert services[0]["title"] == "Gutter cleaning"


def test_unknown_draft_and_bad_payload(client, owner, vendor, headers_for):
    headers = headers_for(owner)
    assert client.get(f"/api/drafts/{uuid.uuid4()}", headers=headers).status_code == 404
    assert _propose(client, headers, vendor.id, {"colour": "red"}).status_code == 400
    assert _propose(client, headers, vendor.id, {}).status_code == 400
    assert _propose(client, headers, vendor.id, {"name": "x"}, kind="listing").status_code == 422


def test_moderation_report(client, admin, owner, vendor, headers_for):
    draft = _propose(client, headers_for(owner), vendor.id, {"name": "Acme"}).json()
    client.post(
        f"/api/admin/drafts/{draft['id']}/review",
        json={"action": "request_changes", "reason": "logo missing"},
        headers=headers_for(admin),
    )
    resp = client.get(
        "/api/admin/audit/report",
        params={"start": "2000-01-01T00:00:00", "end": "2100-01-01T00:00:00", "reviewer_id": str(admin.id)},
        headers=headers_for(admin),
    )
    assert resp.status_code == 200
    assert resp.json() == [{"action_type": "REQUEST_CHANGES", "count": 1}]


def test_my_vendors(client, owner, vendor, headers_for):
    resp = client.get("/api/vendors/mine", headers=headers_for(owner))
    assert [v["id"] for v in resp.json()] == [str(vendor.id)]
