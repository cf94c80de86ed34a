"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overbooking
  locust -f locustfile.py --tags throughput   # Test cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
import threading
from locust import HttpUser, task, between, tag
from datetime import datetime, timezone, timedelta

CONCURRENCY_SEATS = 10

# Shared state
EVENT_IDS = []
CONCURRENCY_EVENT_ID = None
_setup_lock = threading.Lock()


def random_email():
    return f"load_{random.randint(100000, 999999)}@example.com"


def future_date(days: int = 30) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def create_user(client) -> int | None:
    resp = client.post("/api/v1/users/", json={"name": "Load Tester", "email": random_email()})
    if resp.status_code == 201:
        return resp.json()["id"]
    return None


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users → 10 seats

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM registrations WHERE event_id = X;
    Should be exactly 10, and GET /api/v1/events/X/stats should report 100.00%
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        global CONCURRENCY_EVENT_ID
        self.user_id = create_user(self.client)

        with _setup_lock:
            if CONCURRENCY_EVENT_ID is None:
                resp = self.client.post("/api/v1/events/", json={
                    "title": "Concurrency Test Event",
                    "date": future_date(),
                    "location": "Test",
                    "capacity": CONCURRENCY_SEATS,
                })
                if resp.status_code == 201:
                    CONCURRENCY_EVENT_ID = resp.json()["id"]
                    print(f"\n✓ Created event {CONCURRENCY_EVENT_ID} with {CONCURRENCY_SEATS} seats\n")

    @tag("concurrency")
    @task
    def register_for_limited_event(self):
        """All users fight for the same 10 seats."""
        if not CONCURRENCY_EVENT_ID or not self.user_id:
            return

        with self.client.post(
            f"/api/v1/events/{CONCURRENCY_EVENT_ID}/register",
            json={"user_id": self.user_id},
            name="/api/v1/events/{id}/register",
            catch_response=True,
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409: full or already registered
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice, with and without Redis, and compare P95/P99 latency:
      locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_upcoming_cached(self):
        resp = self.client.get("/api/v1/events/upcoming", name="/api/v1/events/upcoming [cached]")
        if resp.status_code == 200:
            for event in resp.json()[:50]:
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @tag("throughput", "read")
    @task(3)
    def get_event_stats(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}/stats",
                name="/api/v1/events/{id}/stats")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, method, url, allowed, **kwargs):
        with self.client.request(method, url, catch_response=True, **kwargs) as resp:
            if resp.status_code in allowed:
                resp.success()
            else:
                resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_event_id(self):
        self._expect("POST", "/api/v1/events/999999/register", [404], json={"user_id": 1})

    @tag("edge")
    @task
    def unknown_user(self):
        if EVENT_IDS:
            self._expect("POST", f"/api/v1/events/{random.choice(EVENT_IDS)}/register",
                [400, 404, 409], json={"user_id": 999999})

    @tag("edge")
    @task
    def zero_capacity(self):
        self._expect("POST", "/api/v1/events/", [422], json={
            "title": "Zero", "date": future_date(), "location": "Nowhere", "capacity": 0,
        })

    @tag("edge")
    @task
    def malformed_json(self):
        self._expect("POST", "/api/v1/events/1/register", [400, 422], data="not json at all")

    @tag("edge")
    @task
    def cancel_missing(self):
        self._expect("DELETE", "/api/v1/events/1/register", [404], json={"user_id": 999999})


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly browsing, some registrations and cancellations, rare creates.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.user_id = create_user(self.client)
        self.registered = []

    @task(50)
    def browse_events(self):
        resp = self.client.get("/api/v1/events/upcoming")
        if resp.status_code == 200:
            for event in resp.json()[:50]:
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @task(20)
    def view_event(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}", name="/api/v1/events/{id}")

    @task(10)
    def register(self):
        if EVENT_IDS and self.user_id:
            event_id = random.choice(EVENT_IDS)
            resp = self.client.post(f"/api/v1/events/{event_id}/register",
                json={"user_id": self.user_id}, name="/api/v1/events/{id}/register")
            if resp.status_code == 201:
                self.registered.append(event_id)

    @task(3)
    def cancel(self):
        if self.registered:
            event_id = self.registered.pop()
            self.client.request("DELETE", f"/api/v1/events/{event_id}/register",
                json={"user_id": self.user_id}, name="/api/v1/events/{id}/register [cancel]")

    @task(3)
    def create_event(self):
        resp = self.client.post("/api/v1/events/", json={
            "title": f"Event {random.randint(1, 10000)}",
            "date": future_date(random.randint(1, 90)),
            "location": random.choice(["Austin", "Berlin", "Boston", "Lagos"]),
            "capacity": random.randint(10, 500),
        })
        if resp.status_code == 201:
            EVENT_IDS.append(resp.json()["id"])
