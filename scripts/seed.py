"""Populate the database with users and articles for local development.

All seeded users share the password ``password123``.  The article cache is
cleared afterwards so no page cached before seeding survives it.
"""
import argparse
import asyncio
import random
import time
from datetime import datetime, timedelta, timezone

from content_api.cache import cache
from content_api.config import settings
from content_api.database import Base, async_session, engine
from content_api.errors import CacheError
from content_api.models import Article, User
from content_api.security import hash_password

TOPICS = ["python", "fastapi", "postgresql", "redis", "docker", "caching",
          "testing", "performance", "security", "asyncio"]


async def seed(small: bool = False) -> None:
    num_users = 5 if small else 50
    num_articles = 100 if small else 5000

    print(f"Seeding: {num_users} users, {num_articles} articles")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    # One hash for everyone: bcrypt is deliberately slow.
    password_hash = hash_password("password123")

    async with async_session() as session:
        users = [
            User(name=f"User {i}", email=f"user_{i:04d}@example.com", password_hash=password_hash)
            for i in range(num_users)
        ]
        session.add_all(users)
        await session.flush()
        print(f"  Created {len(users)} users")

        batch_size = 500
        for batch_start in range(0, num_articles, batch_size):
            batch_end = min(batch_start + batch_size, num_articles)
            for i in range(batch_start, batch_end):
                created = datetime.now(timezone.utc) - timedelta(days=random.randint(0, 365))
                topic = random.choice(TOPICS)
                session.add(Article(
                    title=f"Article {i}: notes on {topic}",
                    content=f"This is the full content of article {i} about {topic}. " * 20,
                    author_id=random.choice(users).id,
                    created_at=created,
                    updated_at=created,
                ))
            await session.flush()
            print(f"  Batch {batch_start}-{batch_end}: articles created")

        await session.commit()

    if settings.CACHE_BACKEND.lower() == "redis":
        await cache.connect(settings.REDIS_URL)
        try:
            removed = await cache.delete_pattern("article:*")
            print(f"  Cleared {removed} cached article key(s)")
        except CacheError as exc:
            print(f"  Cache not cleared, entries expire within {settings.CACHE_TTL}s: {exc}")
        finally:
            await cache.disconnect()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")


def main():
    parser = argparse.ArgumentParser(description="Seed the content database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (100 articles)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
