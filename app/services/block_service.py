from uuid import UUID

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AlreadyExistsError, NotFoundError, ValidationError
from app.models.block import Block


async def is_blocked(db: AsyncSession, user_a: UUID, user_b: UUID) -> bool:
    """True if either user has blocked the other."""
    result = await db.execute(
        select(Block.id)
        .where(
            or_(
                and_(Block.blocker_id == user_a, Block.blocked_id == user_b),
                and_(Block.blocker_id == user_b, Block.blocked_id == user_a),
            )
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def block_user(db: AsyncSession, blocker_id: UUID, blocked_id: UUID) -> Block:
    if blocker_id == blocked_id:
        raise ValidationError("본인은 차단할 수 없어요", field="user_id")

    block = Block(blocker_id=blocker_id, blocked_id=blocked_id)
    db.add(block)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise AlreadyExistsError("이미 차단한 사용자예요")
    await db.refresh(block)
    return block


async def unblock_user(db: AsyncSession, blocker_id: UUID, block_id: UUID) -> None:
    result = await db.execute(
        delete(Block).where(and_(Block.id == block_id, Block.blocker_id == blocker_id))
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError("차단 정보를 찾을 수 없어요", resource="block")
    await db.commit()


async def get_blocks(db: AsyncSession, blocker_id: UUID) -> list[Block]:
    result = await db.execute(
        select(Block).where(Block.blocker_id == blocker_id).order_by(Block.created_at.desc())
    )
    return list(result.scalars().all())
