#!/usr/bin/env python3
"""
Seed script — creates a small dataset for trying the feed and messaging.

Creates:
  • 8 profiles (written straight to the database; the API has no sign-up)
  • 4 videos per profile (32 total)
  • A few promotions through POST /videos/{id}/promote
  • A handful of direct messages through POST /conversations/messages

Run after the API is up:
  python scripts/seed_data.py --api-url http://localhost:8000

Database settings come from the same environment variables as the API.
"""
import argparse
import asyncio
import json
import random
import time
import urllib.request
import urllib.error
from dataclasses import dataclass

from clipfeed.database import AsyncSessionLocal, init_db
from clipfeed.models import Profile, Video


BASE_USERS = [
    ("corner_bakery", "Corner Bakery"),
    ("tonys_tacos", "Tony's Tacos"),
    ("bloom_florist", "Bloom Florist"),
    ("ironworks_gym", "Ironworks Gym"),
    ("page_turner", "Page Turner Books"),
    ("quick_fix_bikes", "Quick Fix Bikes"),
    ("lena_eats", "Lena Park"),
    ("sam_walks", "Sam Ortiz"),
]

SAMPLE_CAPTIONS = [
    "Fresh sourdough out of the oven at 7am every day 🍞",
    "Taco Tuesday special: three al pastor for $6.",
    "Spring bouquets just arrived. Walk-ins welcome!",
    "New squat racks installed. Come try them this week.",
    "Staff picks for rainy weekends 📚",
    "Flat tyre? We fix it while you grab a coffee next door.",
    "Tried the new ramen spot on 5th. Worth the queue.",
    "Sunset loop around the harbour, 4.2 km.",
    "Behind the scenes: how we laminate croissant dough.",
    "Our salsa verde recipe, finally revealed.",
    "Wedding season setup, start to finish in 60 seconds.",
    "Member spotlight: 100 kg deadlift at 62 years young.",
]

SAMPLE_MESSAGES = [
    "Hi! Are you open this Sunday?",
    "Loved your latest video 👏",
    "Do you take custom orders?",
    "See you tomorrow at 9.",
]


@dataclass
class ApiClient:
    base_url: str

    def post(self, path: str, data: dict) -> dict:
        url = f"{self.base_url}{path}"
        body = json.dumps(data).encode()
        req = urllib.request.Request(
            url, data=body, headers={"Content-Type": "application/json"}, method="POST"
        )
        try:
            with urllib.request.urlopen(req, timeout=10) as resp:
                return json.loads(resp.read())
        except urllib.error.HTTPError as e:
            body = e.read().decode()
            print(f"  HTTP {e.code} on POST {path}: {body}")
            return {}

    def get(self, path: str) -> dict:
        url = f"{self.base_url}{path}"
        req = urllib.request.Request(url, method="GET")
        try:
            with urllib.request.urlopen(req, timeout=10) as resp:
                return json.loads(resp.read())
        except urllib.error.HTTPError as e:
            print(f"  HTTP {e.code} on GET {path}")
            return {}


def wait_for_api(client: ApiClient, retries: int = 15) -> None:
    print(f"Waiting for API at {client.base_url} ...")
    for i in range(retries):
        try:
            result = client.get("/health")
            if result.get("status") == "ok":
                print("  API is ready!\n")
                return
        except Exception:
            pass
        time.sleep(3)
    raise RuntimeError(f"API not reachable at {client.base_url} after {retries} retries")


async def seed_database() -> dict[str, list[str]]:
    """Insert profiles and videos; returns {user_id: [video_id, ...]}."""
    await init_db()
    owned: dict[str, list[str]] = {}
    async with AsyncSessionLocal() as session:
        async with session.begin():
            for username, display_name in BASE_USERS:
                profile = Profile(username=username, display_name=display_name, coin_balance=500)
                session.add(profile)
                await session.flush()
                owned[profile.user_id] = []
                for caption in random.sample(SAMPLE_CAPTIONS, k=4):
                    video = Video(
                        user_id=profile.user_id,
                        caption=caption,
                        video_url=f"https://cdn.example.com/videos/{username}/{len(owned[profile.user_id])}.mp4",
                    )
                    session.add(video)
                    await session.flush()
                    owned[profile.user_id].append(video.video_id)
                print(f"  ✓ {username} ({profile.user_id})")
    return owned


def main(api_url: str) -> None:
    client = ApiClient(api_url)
    wait_for_api(client)

    # ── Profiles + videos ────────────────────────────────────────────────
    print("Creating profiles and videos...")
    owned = asyncio.run(seed_database())
    user_ids = list(owned)

    # ── Promotions ───────────────────────────────────────────────────────
    print("\nPromoting videos...")
    for user_id in random.sample(user_ids, k=3):
        video_id = owned[user_id][0]
        coins = random.choice([50, 100, 250])
        result = client.post(f"/videos/{video_id}/promote", {"user_id": user_id, "coins": coins})
        if result:
            print(f"  ✓ {video_id}: boost {result['previous_boost']} → {result['new_boost']}")

    # ── Messages ─────────────────────────────────────────────────────────
    print("\nSending messages...")
    sent = 0
    for sender_id in user_ids:
        receiver_id = random.choice([u for u in user_ids if u != sender_id])
        result = client.post(
            "/conversations/messages",
            {
                "sender_id": sender_id,
                "receiver_id": receiver_id,
                "content": random.choice(SAMPLE_MESSAGES),
            },
        )
        if result:
            sent += 1
    print(f"  ✓ {sent} messages sent")

    # ── Print summary ─────────────────────────────────────────────────────
    print("\n" + "=" * 60)
    print("Seed complete! Here are some commands to try:\n")
    u = user_ids[0]
    print("# Get a boost-weighted feed page:")
    print(f"  curl -s '{api_url}/feed/?limit=10' | python3 -m json.tool\n")
    print(f"# List conversations for '{BASE_USERS[0][0]}':")
    print(f"  curl -s '{api_url}/conversations/?user_id={u}' | python3 -m json.tool\n")
    print("# Check Jaeger traces: http://localhost:16686")
    print("# Check Prometheus: http://localhost:9090")
    print("=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the Clipfeed system")
    parser.add_argument("--api-url", default="http://localhost:8000", help="API base URL")
    args = parser.parse_args()
    main(args.api_url)
