"""
SSE Integration Tests
====================

End-to-end tests pairing an Emitter with a Receiver:
- Demo progress stream served by the FastAPI app
- Protocol headers on the wire
- Channel tag isolation over HTTP
- Emitter output consumed by a Receiver
"""

import asyncio
import pytest
from typing import Any, List

import httpx

from essence_sse.api.main import create_app
from essence_sse.api.routes import sse as sse_routes
from essence_sse.sse import (
    AbortSignal,
    ChannelClosedError,
    ChannelError,
    Emitter,
    Envelope,
    Receiver,
)

from tests.fixtures.sse_fixtures import (
    TERMINATE_DATA,
    CallbackRecorder,
    parse_events,
    raw_frame,
    read_body,
    stream_client,
)

EXPECTED_HEADERS = {
    "access-control-allow-origin": "*",
    "content-type": "text/event-stream; charset=utf-8",
    "connection": "keep-alive",
    "cache-control": "no-cache, no-transform",
    "x-accel-buffering": "no",
    "content-encoding": "none",
}


async def emit(values: List[Any], channel_tag: str = "progress") -> bytes:
    """Push ``values`` through an emitter and return the bytes it streamed."""
    emitter: Emitter[Any] = Emitter(AbortSignal(), channel_tag, heartbeat_interval=0)
    response = emitter.open()
    for value in values:
        assert await emitter.push(value)
    assert await emitter.close()
    return await read_body(response)


@pytest.mark.sse
class TestEmitterReceiverPairing:
    """Test emitter output decoded by a receiver."""

    @pytest.mark.asyncio
    async def test_progress_scenario(self, recorder: CallbackRecorder):
        body = await emit([{"percent": 10}, {"percent": 50}])

        async with stream_client(body) as client:
            receiver = Receiver(
                "http://testserver/sse", "progress", recorder.on_data, client=client
            )
            await receiver.run()

        assert recorder.payloads == [{"percent": 10}, {"percent": 50}]
        assert receiver.terminated
        assert receiver.closed

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [0, 1, 7, 50])
    async def test_callback_count_matches_pushes(self, count, recorder: CallbackRecorder):
        values = [{"index": i} for i in range(count)]
        body = await emit(values)

        async with stream_client(body) as client:
            await Receiver("http://testserver/sse", "progress", recorder.on_data, client=client).run()

        assert recorder.payloads == values

    @pytest.mark.asyncio
    async def test_malformed_frame_between_valid_frames(self, recorder: CallbackRecorder):
        first = await emit([{"percent": 10}])
        second = await emit([{"percent": 50}])
        # Drop the termination frame from the first stream and splice in garbage
        first_data = first.split(b"\n\n")[0] + b"\n\n"
        body = first_data + raw_frame("progress", "not-json") + second

        async with stream_client(body) as client:
            receiver = Receiver(
                "http://testserver/sse",
                "progress",
                recorder.on_data,
                on_error=recorder.on_error,
                client=client,
            )
            await receiver.run()

        assert recorder.payloads == [{"percent": 10}, {"percent": 50}]
        assert len(recorder.errors) == 1
        assert receiver.terminated

    @pytest.mark.asyncio
    async def test_abort_then_receiver_sees_termination(self, recorder: CallbackRecorder):
        signal = AbortSignal()
        emitter: Emitter[Any] = Emitter(signal, "progress", heartbeat_interval=0)
        response = emitter.open()
        await emitter.push({"percent": 30})
        await signal.abort("client disconnected")
        body = await read_body(response)

        assert body.count(TERMINATE_DATA.encode()) == 1

        async with stream_client(body) as client:
            receiver = Receiver("http://testserver/sse", "progress", recorder.on_data, client=client)
            await receiver.run()

        assert recorder.payloads == [{"percent": 30}]
        assert receiver.terminated


@pytest.mark.sse
class TestProgressEndpoint:
    """Test the demo progress stream over HTTP."""

    @pytest.mark.asyncio
    async def test_health(self, api_client: httpx.AsyncClient):
        response = await api_client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_protocol_headers(self, api_client: httpx.AsyncClient):
        response = await api_client.get("/sse/progress", params={"steps": 2})

        assert response.status_code == 200
        for name, value in EXPECTED_HEADERS.items():
            assert response.headers[name] == value

    @pytest.mark.asyncio
    async def test_wire_format(self, api_client: httpx.AsyncClient):
        response = await api_client.get("/sse/progress", params={"steps": 2})

        events = parse_events(response.content)
        assert [event.event for event in events] == ["progress"] * 3
        assert events[0].data == '{"payload":{"step":1,"percent":50},"status":"running"}'
        assert events[1].data == '{"payload":{"step":2,"percent":100},"status":"running"}'
        assert events[2].data == TERMINATE_DATA

    @pytest.mark.asyncio
    async def test_receiver_consumes_progress(
        self, api_client: httpx.AsyncClient, recorder: CallbackRecorder
    ):
        receiver = Receiver(
            "/sse/progress?steps=4", "progress", recorder.on_data, client=api_client
        )
        await receiver.run()

        assert [payload["percent"] for payload in recorder.payloads] == [25, 50, 75, 100]
        assert [payload["step"] for payload in recorder.payloads] == [1, 2, 3, 4]
        assert receiver.terminated
        assert not api_client.is_closed

    @pytest.mark.asyncio
    async def test_custom_channel_isolation(self, api_client: httpx.AsyncClient):
        on_progress = CallbackRecorder()
        on_alpha = CallbackRecorder()

        progress_receiver = Receiver(
            "/sse/progress?steps=3&channel=alpha", "progress", on_progress.on_data, client=api_client
        )
        alpha_receiver = Receiver(
            "/sse/progress?steps=3&channel=alpha", "alpha", on_alpha.on_data, client=api_client
        )
        await progress_receiver.run()
        await alpha_receiver.run()

        assert on_progress.envelopes == []
        assert not progress_receiver.terminated
        assert len(on_alpha.envelopes) == 3
        assert alpha_receiver.terminated

    @pytest.mark.asyncio
    async def test_typed_receiver(self, api_client: httpx.AsyncClient):
        from essence_sse.api.routes.sse import ProgressUpdate

        received: List[Envelope[ProgressUpdate]] = []
        receiver = Receiver(
            "/sse/progress?steps=2",
            "progress",
            received.append,
            payload_type=ProgressUpdate,
            client=api_client,
        )
        await receiver.run()

        assert [envelope.payload for envelope in received] == [
            ProgressUpdate(step=1, percent=50),
            ProgressUpdate(step=2, percent=100),
        ]

    @pytest.mark.asyncio
    async def test_invalid_channel_rejected(self, api_client: httpx.AsyncClient):
        response = await api_client.get("/sse/progress", params={"channel": "bad\ntag"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_invalid_steps_rejected(self, api_client: httpx.AsyncClient):
        response = await api_client.get("/sse/progress", params={"steps": 0})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_client_disconnect_stops_producer(self, monkeypatch):
        reported: List[ChannelError] = []

        class RecordingEmitter(Emitter):
            def __init__(self, abort_signal: AbortSignal, channel_tag: str):
                super().__init__(
                    abort_signal, channel_tag, on_error=reported.append, heartbeat_interval=0
                )

        monkeypatch.setattr(sse_routes, "Emitter", RecordingEmitter)
        app = create_app()
        scope = {
            "type": "http",
            "asgi": {"version": "3.0", "spec_version": "2.3"},
            "http_version": "1.1",
            "method": "GET",
            "scheme": "http",
            "server": ("testserver", 80),
            "client": ("127.0.0.1", 50000),
            "root_path": "",
            "path": "/sse/progress",
            "raw_path": b"/sse/progress",
            "query_string": b"steps=1000&interval=0.01",
            "headers": [(b"host", b"testserver")],
        }
        sent = []

        async def receive():
            await asyncio.sleep(0.1)
            return {"type": "http.disconnect"}

        async def send(message):
            sent.append(message)

        await asyncio.wait_for(app(scope, receive, send), timeout=5)

        producers = list(sse_routes._producer_tasks)
        assert producers
        await asyncio.wait_for(asyncio.gather(*producers), timeout=5)

        assert sent[0]["status"] == 200
        body = b"".join(message.get("body", b"") for message in sent[1:])
        events = parse_events(body)
        assert len(events) < 1000
        assert all(event.data != TERMINATE_DATA for event in events)
        assert any(isinstance(error, ChannelClosedError) for error in reported)
