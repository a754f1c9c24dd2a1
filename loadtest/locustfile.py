from __future__ import annotations

from locust import HttpUser, between, task


class QueryUser(HttpUser):
    wait_time = between(1, 5)

    @task(3)
    def ask_question(self) -> None:
        payload = {"question": "Total transaction amount per day for the last 30 days"}
        self.client.post("/api/query", json=payload)

    @task
    def daily_insight(self) -> None:
        self.client.get("/api/insights/daily")
