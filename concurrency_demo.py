"""Race several drivers for the same ride request against the ASGI app.
This runs in-process and doesn't require the server to be started separately.
Exactly one accept should come back 200; the rest get 409.
Run: python concurrency_demo.py
"""
import asyncio
from main import app
from db import init_db
import httpx


async def run(drivers=5):
    init_db()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        await client.post("/api/ride-requests", json={
            "riderId": "demo-rider",
            "pickupLatitude": 40.7128, "pickupLongitude": -74.0060,
            "destination": "Penn Station",
        })
        tasks = [
            client.post("/api/ride-requests/demo-rider/accept", json={
                "driverId": f"driver{i}", "driverName": f"Driver {i}", "driverVehicle": "Civic",
            })
            for i in range(drivers)
        ]
        res = await asyncio.gather(*tasks)
        for r in res:
            print(r.status_code, r.json())
        final = await client.get("/api/ride-requests/demo-rider")
        print("final:", final.json())


if __name__ == "__main__":
    asyncio.run(run())
