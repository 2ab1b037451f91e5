import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest

from errors import Conflict
from main import create_app


def race_accepts(service, drivers):
    barrier = threading.Barrier(len(drivers))

    def attempt(driver):
        barrier.wait()
        try:
            service.accept_ride("rider1", driver, f"name-{driver}", f"car-{driver}")
            return driver
        except Conflict as exc:
            return exc

    with ThreadPoolExecutor(max_workers=len(drivers)) as pool:
        return list(pool.map(attempt, drivers))


def test_two_concurrent_accepts_exactly_one_wins(service, store):
    service.request_ride("rider1", (40.0, -73.0), "dest", "a@x.com")
    results = race_accepts(service, ["driverA", "driverB"])
    winners = [r for r in results if isinstance(r, str)]
    losers = [r for r in results if isinstance(r, Conflict)]
    assert len(winners) == 1
    assert len(losers) == 1
    rr = store.get("rider1")
    assert rr.status == "accepted"
    assert rr.driver_id == winners[0]
    assert rr.driver_name == f"name-{winners[0]}"
    assert rr.driver_vehicle == f"car-{winners[0]}"


def test_many_concurrent_accepts_exactly_one_wins(service, store):
    service.request_ride("rider1", (40.0, -73.0), "dest", "a@x.com")
    drivers = [f"driver{i}" for i in range(8)]
    results = race_accepts(service, drivers)
    winners = [r for r in results if isinstance(r, str)]
    assert len(winners) == 1
    assert store.get("rider1").driver_id == winners[0]


@pytest.mark.asyncio
async def test_concurrent_accepts_over_http(service):
    service.request_ride("rider1", (40.0, -73.0), "dest", "a@x.com")
    app = create_app(service)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as client:
        tasks = [
            client.post("/api/ride-requests/rider1/accept", json={
                "driverId": f"driver{i}", "driverName": f"Driver {i}", "driverVehicle": "Civic",
            })
            for i in range(5)
        ]
        res = await asyncio.gather(*tasks)
    codes = sorted(r.status_code for r in res)
    assert codes == [200, 409, 409, 409, 409]
