"""Migration / setup helper
This script creates the ride request table if it does not exist yet.
Run: python migrate.py
"""
from config import DATABASE_URL
from db import init_db


def main():
    init_db()
    print(f"Database initialized ({DATABASE_URL})")


if __name__ == "__main__":
    main()
