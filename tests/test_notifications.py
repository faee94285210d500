import asyncio

from starlette.websockets import WebSocketState

from jitprep.services.notifications import ConnectionHub


class FakeSocket:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []
        self.application_state = WebSocketState.CONNECTED

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("connection closed")
        self.sent.append(message)


def test_publish_reaches_only_the_order_room_and_drops_dead_sockets():
    hub = ConnectionHub()
    listener, dead, other_room = FakeSocket(), FakeSocket(fail=True), FakeSocket()

    async def scenario():
        hub.bind_loop(asyncio.get_running_loop())
        hub.join("o1", listener)
        hub.join("o1", dead)
        hub.join("o2", other_room)
        hub.publish("o1", "eta_update", {"orderId": "o1", "eta": 12, "slack": 2, "degraded": False})
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert listener.sent == [
        {"event": "eta_update", "data": {"orderId": "o1", "eta": 12, "slack": 2, "degraded": False}}
    ]
    assert other_room.sent == []
    assert hub.listener_count("o1") == 1
    assert hub.listener_count("o2") == 1


def test_publish_without_listeners_or_loop_is_a_no_op():
    hub = ConnectionHub()
    hub.publish("o1", "prep_started", {"orderId": "o1", "message": "go"})

    socket = FakeSocket()
    hub.join("o1", socket)
    hub.publish("o1", "prep_started", {"orderId": "o1", "message": "go"})

    assert socket.sent == []
    hub.leave("o1", socket)
    assert hub.listener_count("o1") == 0


def test_socket_mid_handshake_is_skipped_not_evicted():
    hub = ConnectionHub()
    pending = FakeSocket()
    pending.application_state = WebSocketState.CONNECTING

    async def scenario():
        hub.bind_loop(asyncio.get_running_loop())
        hub.join("o1", pending)
        hub.publish("o1", "eta_update", {"orderId": "o1", "eta": 12, "slack": 2, "degraded": False})
        await asyncio.sleep(0.05)
        assert hub.listener_count("o1") == 1

        pending.application_state = WebSocketState.CONNECTED
        hub.publish("o1", "prep_started", {"orderId": "o1", "message": "Start cooking! ETA: 9 min."})
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert pending.sent == [
        {"event": "prep_started", "data": {"orderId": "o1", "message": "Start cooking! ETA: 9 min."}}
    ]
    assert hub.listener_count("o1") == 1
