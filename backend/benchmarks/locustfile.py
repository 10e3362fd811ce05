import os
import uuid

from locust import HttpUser, task, between


class VendorUser(HttpUser):
    wait_time = between(1, 3)

    def on_start(self):
        payload = {"email": f"load-{uuid.uuid4()}@vendor.com", "password": "password"}
        r = self.client.post("/api/auth/register", json=payload)
        if r.status_code != 200:
            r = self.client.post("/api/auth/login", json=payload)
        token = r.json().get("access_token")
        self.headers = {"Authorization": f"Bearer {token}"}
        self.lineage_id = None

    @task(1)
    def propose_vendor(self):
        data = {
            "entity_kind": "vendor",
            "entity_lineage_id": self.lineage_id,
            "payload": {"name": f"Bench Vendor {uuid.uuid4().hex[:6]}", "location": "Austin"},
            "change_summary": "load test",
        }
        r = self.client.post("/api/drafts", json=data, headers=self.headers)
        if r.status_code == 201:
            self.lineage_id = r.json()["entity_lineage_id"]

    @task(3)
    def read_history(self):
        if not self.lineage_id:
            return
        self.client.get(
            "/api/drafts/history",
            params={"entity_kind": "vendor", "entity_lineage_id": self.lineage_id},
            headers=self.headers,
            name="/api/drafts/history",
        )


class ReviewerUser(HttpUser):
    """Needs ADMIN_TOKEN for an account with is_admin set."""

    wait_time = between(1, 2)

    def on_start(self):
        self.headers = {"Authorization": f"Bearer {os.getenv('ADMIN_TOKEN', '')}"}

    @task
    def review_queue(self):
        r = self.client.get("/api/admin/drafts/pending", headers=self.headers)
        if r.status_code != 200 or not r.json():
            return
        draft = r.json()[0]
        # 409 is expected when another reviewer got there first
        with self.client.post(
            f"/api/admin/drafts/{draft['id']}/review",
            json={"action": "approve"},
            headers=self.headers,
            name="/api/admin/drafts/[id]/review",
            catch_response=True,
        ) as resp:
            if resp.status_code in (200, 409):
                resp.success()
