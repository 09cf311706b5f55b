"""
Seed script to populate database with test data for development/testing.
Run with: python scripts/seed_test_data.py
"""

import asyncio
import random
import sys
from datetime import timedelta
from pathlib import Path
from uuid import UUID, uuid4

# Add parent directory to path so we can import app
sys.path.insert(0, str(Path(__file__).parent.parent))

from faker import Faker

from app.core.security import create_access_token
from app.database import async_session_maker
from app.models.chat_room import ChatRoom, RoomStatus
from app.models.invitation import Invitation, InvitationStatus
from app.models.message import Message
from app.models.profile import Profile
from app.services import expiry
from app.services.contact_filter import redact
from app.services.profile_service import generate_short_id

fake = Faker("ko_KR")

# Configuration
NUM_USERS = 40
NUM_PROFILES = 30
NUM_ROOMS = 25
MESSAGES_PER_ROOM = 8

INTEREST_TAGS = ["여행", "카페", "운동", "영화", "독서", "요리", "전시", "캠핑", "음악", "게임"]
OCCUPATIONS = ["대학생", "직장인", "전문직", "프리랜서", "자영업", "공무원"]
MUSIC_GENRES = ["발라드", "인디", "힙합", "R&B", "K-POP", "재즈"]
MBTI_TYPES = ["ENFP", "INFJ", "ISTJ", "ESTP", "INTP", "ESFJ", "ENTJ", "ISFP"]
SAMPLE_LINES = [
    "안녕하세요! 프로필 보고 연락드려요",
    "주말에 보통 뭐 하세요?",
    "저도 그 카페 좋아해요",
    "010-1234-5678로 연락주세요",
    "인스타 아이디 알려드릴까요?",
    "오늘 날씨 정말 좋네요",
]


def seed_user_ids() -> list[UUID]:
    """Identities live in the external auth broker; we only need ids."""
    print(f"Creating {NUM_USERS} test user ids...")
    return [uuid4() for _ in range(NUM_USERS)]


async def seed_profiles(db, user_ids: list[UUID]) -> list[Profile]:
    """Create self-authored and invitation-originated profiles."""
    profiles = []
    now = expiry.utcnow()

    print(f"Creating {NUM_PROFILES} profiles...")

    for i in range(NUM_PROFILES):
        creator_id = user_ids[i % len(user_ids)]
        gender = "male" if i % 2 == 0 else "female"
        invited = random.random() < 0.3
        created_at = now - timedelta(hours=random.randint(0, 30))

        invitation = None
        if invited:
            invitation = Invitation(
                id=uuid4(),
                invite_code=generate_short_id(),
                matchmaker_id=random.choice([u for u in user_ids if u != creator_id]),
                status=InvitationStatus.completed.value,
                target_id=creator_id,
                expires_at=expiry.invitation_expires_at(created_at),
                created_at=created_at,
            )
            db.add(invitation)
            await db.flush()

        profile = Profile(
            id=uuid4(),
            short_id=generate_short_id(),
            creator_id=creator_id,
            matchmaker_id=invitation.matchmaker_id if invitation else None,
            invitation_id=invitation.id if invitation else None,
            photo_url=f"https://picsum.photos/seed/{i}/400/500?blur=10",
            original_photo_url=f"https://picsum.photos/seed/{i}/400/500",
            name=fake.first_name(),
            age=random.randint(20, 35),
            gender=gender,
            occupation_category=random.choice(OCCUPATIONS),
            bio=fake.catch_phrase()[:50].ljust(10, "."),
            interest_tags=random.sample(INTEREST_TAGS, 3),
            mbti=random.choice(MBTI_TYPES),
            music_genre=random.choice(MUSIC_GENRES),
            instagram_id=fake.user_name()[:30],
            kakao_open_chat_id=f"https://open.kakao.com/o/{generate_short_id()}",
            expires_at=expiry.profile_expires_at(created_at),
            # Invited profiles stay dormant until the matchmaker shares them
            is_active=not invited or random.choice([True, False]),
            created_at=created_at,
        )
        db.add(profile)
        profiles.append(profile)

    await db.flush()
    print(f"  Created {len(profiles)} profiles")
    print(f"    - Self-authored: {len([p for p in profiles if p.is_self_authored])}")
    print(f"    - Invited: {len([p for p in profiles if not p.is_self_authored])}")
    return profiles


async def seed_rooms(db, profiles: list[Profile], user_ids: list[UUID]) -> list[ChatRoom]:
    """Create chat rooms in every state, each for a distinct (profile, requester)."""
    rooms = []
    pairs = set()
    now = expiry.utcnow()
    statuses = [
        RoomStatus.pending,
        RoomStatus.active,
        RoomStatus.active,
        RoomStatus.rejected,
        RoomStatus.expired,
        RoomStatus.completed,
    ]

    print(f"Creating up to {NUM_ROOMS} chat rooms...")

    live_profiles = [p for p in profiles if p.is_active]
    for _ in range(NUM_ROOMS * 3):
        if len(rooms) >= NUM_ROOMS or not live_profiles:
            break
        profile = random.choice(live_profiles)
        requester_id = random.choice(user_ids)
        if requester_id in (profile.creator_id, profile.matchmaker_id, profile.answering_user_id):
            continue
        if (profile.id, requester_id) in pairs:
            continue
        pairs.add((profile.id, requester_id))

        status = random.choice(statuses)
        created_at = now - timedelta(hours=random.randint(1, 60))
        room = ChatRoom(
            id=uuid4(),
            profile_id=profile.id,
            requester_id=requester_id,
            target_id=profile.answering_user_id,
            status=status.value,
            created_at=created_at,
        )
        if status in (RoomStatus.active, RoomStatus.expired, RoomStatus.completed):
            room.expires_at = expiry.room_expires_at(created_at)
        if status == RoomStatus.expired:
            room.expires_at = now - timedelta(hours=1)
        if status == RoomStatus.completed:
            room.profile_revealed = True
            room.profile_revealed_at = now - timedelta(minutes=random.randint(1, 120))
        db.add(room)
        profile.chat_request_count += 1
        rooms.append(room)

    await db.flush()
    print(f"  Created {len(rooms)} chat rooms")
    return rooms


async def seed_messages(db, rooms: list[ChatRoom]) -> list[Message]:
    messages = []
    for room in rooms:
        if room.status == RoomStatus.pending.value or room.status == RoomStatus.rejected.value:
            continue
        sent_at = room.created_at
        for i in range(random.randint(1, MESSAGES_PER_ROOM)):
            sent_at = sent_at + timedelta(minutes=random.randint(1, 30))
            content, _ = redact(random.choice(SAMPLE_LINES))
            message = Message(
                id=uuid4(),
                room_id=room.id,
                sender_id=room.requester_id if i % 2 == 0 else room.target_id,
                content=content,
                is_read=random.choice([True, False]),
                created_at=sent_at,
            )
            db.add(message)
            messages.append(message)
        room.last_message_at = sent_at

    await db.flush()
    print(f"  Created {len(messages)} messages")
    return messages


async def main():
    print("=" * 50)
    print("Seeding test data for Mannam Backend")
    print("=" * 50)

    async with async_session_maker() as db:
        try:
            print("\nCreating test data...")

            user_ids = seed_user_ids()
            profiles = await seed_profiles(db, user_ids)
            rooms = await seed_rooms(db, profiles, user_ids)
            messages = await seed_messages(db, rooms)

            # Commit all changes
            await db.commit()

            # Print summary
            print("\n" + "=" * 50)
            print("Summary:")
            print("=" * 50)
            print(f"  Profiles created: {len(profiles)}")
            print(f"    - Live: {len([p for p in profiles if p.is_active])}")
            print(f"  Chat rooms created: {len(rooms)}")
            for status in RoomStatus:
                print(f"    - {status.value}: {len([r for r in rooms if r.status == status.value])}")
            print(f"  Messages created: {len(messages)}")
            print("\nDev token for the first profile's creator:")
            print(f"  {create_access_token(profiles[0].creator_id)}")
            print("=" * 50)

        except Exception as e:
            print(f"\nError: {e}")
            await db.rollback()
            raise


if __name__ == "__main__":
    asyncio.run(main())
