"""Seed the database with demo content."""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from tokengate.core.config import settings
from tokengate.db.session import AsyncSessionLocal, Base, engine
from tokengate.integrations.adapters.mock import DEMO_COLLECTION_ID
from tokengate.models.content import Content, ContentType

DEMO_CREATOR_ID = "00000000-0000-0000-0000-000000000001"

DEMO_CONTENT = [
    {
        "title": "Exclusive Aptos Development Guide",
        "description": (
            "Learn how to build on Aptos blockchain with this comprehensive "
            "development guide, from basic setup to advanced Move programming."
        ),
        "content_type": ContentType.PDF,
        "storage_path": "demo/aptos-development-guide.pdf",
    },
    {
        "title": "Holder Livestream Replay",
        "description": "Recording of the holders-only community call.",
        "content_type": ContentType.VIDEO,
        "storage_path": "demo/holder-livestream.mp4",
    },
]


async def seed_database():
    """Create tables and demo content gated by the mock adapter's collection."""
    print("Creating tables...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    storage_root = Path(settings.STORAGE_ROOT)

    async with AsyncSessionLocal() as db:
        result = await db.execute(select(Content).where(Content.creator_id == DEMO_CREATOR_ID))
        if result.scalars().first():
            print("Database already seeded!")
            return

        for item in DEMO_CONTENT:
            asset = storage_root / item["storage_path"]
            asset.parent.mkdir(parents=True, exist_ok=True)
            if not asset.exists():
                asset.write_bytes(b"demo asset\n")

            db.add(
                Content(
                    creator_id=DEMO_CREATOR_ID,
                    nft_collection_address=DEMO_COLLECTION_ID,
                    **item,
                )
            )

        await db.commit()

    print("Database seeded successfully!")
    print(f"  Content gated by collection {DEMO_COLLECTION_ID}")
    print("  Run with CHAIN_ADAPTER=mock to have every wallet hold it")


if __name__ == "__main__":
    asyncio.run(seed_database())
