from sqlalchemy import update

TEST_PHONE = "612345678"


async def set_columns(session_factory, model, where, **values):
    """Rewrite rows directly, e.g. to move timestamps into the past"""
    async with session_factory() as session:
        await session.execute(update(model).where(where).values(**values))
        await session.commit()
