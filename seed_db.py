import asyncio

from wishboard.database import async_session, create_tables, engine
from wishboard.models.comment import Comment
from wishboard.models.vote import Vote, VoteType
from wishboard.models.wish import Wish


async def async_main():
    await create_tables(engine)

    async with async_session() as session:
        # Create wishes
        w1 = Wish(text="I wish to run my first marathon this year")
        w2 = Wish(text="Learning to cook something other than pasta")
        w3 = Wish(text="Visit my grandparents more often")
        w4 = Wish(text="Ship the side project I keep postponing")
        session.add_all([w1, w2, w3, w4])
        await session.flush()

        # Add comments
        comments = [
            Comment(wish_id=w1.id, text="You got this! Start with a 10k."),
            Comment(wish_id=w1.id, text="Same wish here, let's go"),
            Comment(wish_id=w2.id, text="Try a simple curry, it's hard to get wrong"),
            Comment(wish_id=w3.id, text="The best wish on this board"),
        ]
        session.add_all(comments)

        # Upvotes from a few sample devices
        devices = ["seed-device-a", "seed-device-b", "seed-device-c"]
        votes = [
            Vote(wish_id=w1.id, client_id=d, type=VoteType.UPVOTE.value) for d in devices
        ] + [
            Vote(wish_id=w3.id, client_id=devices[0], type=VoteType.UPVOTE.value),
            Vote(wish_id=w4.id, client_id=devices[1], type=VoteType.UPVOTE.value),
        ]
        session.add_all(votes)

        await session.commit()
    await engine.dispose()
    print("Store seeded with sample wishes, comments and likes.")


if __name__ == "__main__":
    asyncio.run(async_main())
