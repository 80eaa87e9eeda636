"""Sample day used by the demo command and the default API wiring."""

from __future__ import annotations

from fieldplan.domain.models import Coordinates, Job, RequiredPart, StockItem, UserPreferences

SAMPLE_USER_ID = "demo-tech"


def sample_jobs() -> list[Job]:
    return [
        Job(
            id="job-boiler",
            title="Annual boiler service",
            description="Routine inspection and filter change",
            job_type="maintenance",
            priority="low",
            customer_id="cust-17",
            coordinates=Coordinates(latitude=37.7599, longitude=-122.4148),
            estimated_duration=60,
            required_parts=[RequiredPart(item_name="Air filter", quantity=1, category="hvac")],
        ),
        Job(
            id="job-leak",
            title="Kitchen sink leak",
            description="Water pooling under the cabinet",
            job_type="plumbing",
            priority="high",
            customer_id="cust-02",
            coordinates=Coordinates(latitude=37.7858, longitude=-122.4064),
            estimated_duration=90,
            required_parts=[
                RequiredPart(item_name="Ball valve", quantity=2, category="plumbing", inventory_item_id="stk-valve"),
                RequiredPart(item_name="Pipe sealant", quantity=1, category="plumbing"),
            ],
        ),
        Job(
            id="job-outlets",
            title="Install outlets in garage",
            description="Customer wants two new duplex outlets",
            job_type="electrical_install",
            priority="medium",
            customer_id="cust-vip",
            coordinates=Coordinates(latitude=37.7446, longitude=-122.4418),
            estimated_duration=120,
            required_parts=[
                RequiredPart(item_name="Electrical outlet", quantity=2, category="electrical"),
                RequiredPart(item_name="Wire nuts", quantity=1, category="electrical"),
            ],
        ),
    ]


def sample_preferences() -> UserPreferences:
    return UserPreferences(vip_customer_ids=["cust-vip"], emergency_job_types=["gas_leak"])


def sample_stock() -> list[StockItem]:
    return [
        StockItem(id="stk-valve", name="Ball valve", quantity=1, category="plumbing"),
        StockItem(id="stk-outlet", name="Electrical outlet", quantity=4, category="electrical"),
        StockItem(id="stk-nuts", name="Wire nuts", quantity=0, category="electrical"),
    ]


__all__ = ["SAMPLE_USER_ID", "sample_jobs", "sample_preferences", "sample_stock"]
