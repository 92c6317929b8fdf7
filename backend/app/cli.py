"""Management CLI.

Usage:
    python -m app.cli seed-step-config      # Insert default assignments for unassigned components
    python -m app.cli show-step-config      # Print the current component → page mapping
    python -m app.cli admin-token [name]    # Mint an admin bearer token
"""

import asyncio
import sys

from app.auth.jwt import create_admin_token
from app.database import async_session, engine
from app.services.components import REGISTRY
from app.services.record_store import RecordStore
from app.services.step_config import StepConfigStore


async def seed_step_config():
    async with async_session() as db:
        added = await StepConfigStore(RecordStore(db)).seed_defaults()
    await engine.dispose()
    print(f"  Seeded {added} assignment(s)")


async def show_step_config():
    async with async_session() as db:
        snapshot = await StepConfigStore(RecordStore(db)).snapshot()
    await engine.dispose()
    print(f"  Version {snapshot.version}")
    for page, components in snapshot.by_page().items():
        labels = ", ".join(REGISTRY[c].label for c in components) or "(empty)"
        print(f"  Page {page}: {labels}")


def admin_token(name: str):
    print(create_admin_token(name))


if __name__ == "__main__":
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    if cmd == "seed-step-config":
        asyncio.run(seed_step_config())
    elif cmd == "show-step-config":
        asyncio.run(show_step_config())
    elif cmd == "admin-token":
        admin_token(sys.argv[2] if len(sys.argv) > 2 else "admin")
    else:
        print("Usage: python -m app.cli [seed-step-config|show-step-config|admin-token [name]]")
