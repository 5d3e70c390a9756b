# tests/test_realtime.py
import asyncio
import json

from app.auth.models import User
from app.comment import services as comment_service
from app.comment.schemas import CommentCreate
from app.realtime.broker import ChangeBroker, ChangeEvent, broker, comments_channel, notify, tickets_channel
from app.realtime.routes import change_events
from app.ticket import services as ticket_service
from app.ticket.models import Ticket, TicketStatus
from app.ticket.schemas import TicketCreate
from app.vote import services as vote_service
from app.vote.models import VoteType


def test_broker_fans_out_to_every_subscriber():
    local = ChangeBroker()

    async def scenario():
        first = local.subscribe("tickets")
        second = local.subscribe("tickets")
        other = local.subscribe("comments:1")
        delivered = local.publish("tickets", ChangeEvent(table="tickets", event="INSERT", record={"id": 1}))
        got = [await asyncio.wait_for(q.get(), timeout=1) for q in (first, second)]
        return delivered, got, other.empty()

    delivered, got, other_empty = asyncio.run(scenario())
    assert delivered == 2
    assert [e.record for e in got] == [{"id": 1}, {"id": 1}]
    assert other_empty


def test_subscription_context_unsubscribes():
    local = ChangeBroker()

    async def scenario():
        async with local.subscription("presence:3"):
            assert local.subscriber_count("presence:3") == 1
        return local.subscriber_count("presence:3")

    assert asyncio.run(scenario()) == 0
    assert local.publish("presence:3", ChangeEvent(table="presence", event="UPDATE", record={})) == 0


def test_full_queue_drops_events():
    local = ChangeBroker(max_queue=1)

    async def scenario():
        queue = local.subscribe("tickets")
        for i in range(3):
            local.publish("tickets", ChangeEvent(table="tickets", event="INSERT", record={"id": i}))
        await asyncio.sleep(0)
        return queue.qsize(), queue.get_nowait().record

    size, record = asyncio.run(scenario())
    assert size == 1
    assert record == {"id": 0}


def test_services_publish_changes(client, alice, db_session):
    _, profile = alice
    user = db_session.get(User, profile["user_id"])

    async def scenario():
        async with broker.subscription(tickets_channel()) as ticket_feed:
            ticket = ticket_service.create_ticket(
                db_session,
                user,
                TicketCreate(title="Realtime ticket", description="Published to every open stream."),
            )
            async with broker.subscription(comments_channel(ticket.id)) as comment_feed:
                comment_service.add_comment(db_session, ticket.id, user, CommentCreate(content="first!"))
                ticket_event = await asyncio.wait_for(ticket_feed.get(), timeout=1)
                comment_event = await asyncio.wait_for(comment_feed.get(), timeout=1)
        return ticket_event, comment_event

    ticket_event, comment_event = asyncio.run(scenario())
    assert (ticket_event.table, ticket_event.event) == ("tickets", "INSERT")
    assert ticket_event.record["title"] == "Realtime ticket"
    assert (comment_event.table, comment_event.event) == ("comments", "INSERT")
    assert comment_event.record["content"] == "first!"


def test_unknown_channel_is_404(client):
    r = client.get("/realtime/everything")
    assert r.status_code == 404
    assert r.json() == {"detail": "Unknown channel", "code": "NOT_FOUND"}


def test_stream_yields_sse_messages_until_closed():
    channel = comments_channel(4242)

    async def never_disconnected():
        return False

    async def scenario():
        events = change_events(channel, never_disconnected, poll_seconds=0.05)

        async def first():
            return await events.__anext__()

        pending = asyncio.create_task(first())
        for _ in range(100):
            if broker.subscriber_count(channel):
                break
            await asyncio.sleep(0.01)
        notify([channel], "comments", "INSERT", {"id": 7, "content": "hello"})
        message = await asyncio.wait_for(pending, timeout=1)
        await events.aclose()
        return message, broker.subscriber_count(channel)

    message, remaining = asyncio.run(scenario())
    assert message["event"] == "comments"
    data = json.loads(message["data"])
    assert (data["table"], data["event"]) == ("comments", "INSERT")
    assert data["record"] == {"id": 7, "content": "hello"}
    assert "at" in data
    assert remaining == 0


def test_stream_stops_when_client_disconnects():
    channel = comments_channel(4243)

    async def disconnected():
        return True

    async def scenario():
        return [message async for message in change_events(channel, disconnected, poll_seconds=0.05)]

    assert asyncio.run(scenario()) == []
    assert broker.subscriber_count(channel) == 0


def test_same_status_is_a_silent_no_op(client, alice, make_ticket, db_session):
    tid = make_ticket(alice[0])["id"]
    before = db_session.get(Ticket, tid).updated_at

    async def scenario():
        async with broker.subscription(tickets_channel()) as feed:
            ticket_service.update_status(db_session, tid, TicketStatus.pending, "root")
            await asyncio.sleep(0.05)
            return feed.empty()

    assert asyncio.run(scenario()) is True
    ticket = db_session.get(Ticket, tid)
    assert ticket.status == "pending"
    assert ticket.updated_at == before


def test_votes_publish_vote_rows_then_counters(client, alice, bob, make_ticket, db_session):
    tid = make_ticket(alice[0])["id"]
    voter = db_session.get(User, bob[1]["user_id"])

    async def scenario():
        async with broker.subscription(tickets_channel()) as feed:
            vote_service.cast_vote(db_session, tid, voter, VoteType.up)
            vote_service.cast_vote(db_session, tid, voter, VoteType.down)
            vote_service.cast_vote(db_session, tid, voter, VoteType.down)
            return [await asyncio.wait_for(feed.get(), timeout=1) for _ in range(6)]

    changes = asyncio.run(scenario())
    assert [(c.table, c.event) for c in changes] == [
        ("votes", "INSERT"),
        ("tickets", "UPDATE"),
        ("votes", "UPDATE"),
        ("tickets", "UPDATE"),
        ("votes", "DELETE"),
        ("tickets", "UPDATE"),
    ]
    assert changes[0].record == {"ticket_id": tid, "user_id": voter.id, "vote_type": "up"}
    assert changes[3].record["downvotes"] == 1
    assert changes[5].record["downvotes"] == 0
