from db import init_db
from lifecycle import LifecycleService
from store import RideRequestStore
import random


def seed(count=20):
    init_db()
    store = RideRequestStore()
    service = LifecycleService(store)
    # sample: riders scattered around a city center
    center = (40.7128, -74.0060)  # Manhattan approximate
    try:
        for i in range(1, count + 1):
            lat = center[0] + (random.random() - 0.5) * 0.18
            lng = center[1] + (random.random() - 0.5) * 0.18
            service.request_ride(
                f"rider{i}",
                (lat, lng),
                random.choice(["JFK Terminal 4", "Penn Station", "Central Park", "Brooklyn Bridge"]),
                f"rider{i}@example.com",
            )
    finally:
        store.close()
    print(f"Seeded {count} pending ride requests")


if __name__ == "__main__":
    seed()
