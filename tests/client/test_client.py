import json

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from a2a_dispatch.client import (
    A2ACardResolver,
    A2AClient,
    A2AClientHTTPError,
    A2AClientJSONError,
)
from a2a_dispatch.client.helpers import summarize_task
from a2a_dispatch.types import Task
from a2a_dispatch.utils.errors import ErrorKind


PEER = 'http://peer'

AGENT_CARD: dict[str, Any] = {
    'name': 'PeerAgent',
    'description': 'A peer',
    'url': PEER,
    'version': '1.0',
    'capabilities': {},
    'skills': ['math'],
}


def completed(task_id: str, parts: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        'id': task_id,
        'status': {
            'state': 'completed',
            'message': {'role': 'assistant', 'parts': parts},
        },
    }


def make_client(
    handler: Callable[[httpx.Request], httpx.Response],
) -> A2AClient:
    return A2AClient(httpx.AsyncClient(transport=httpx.MockTransport(handler)))


class PeerServer:
    """Records requests and answers like a minimal peer agent."""

    def __init__(self, card: dict[str, Any] | None = None, reply: Any = None):
        self.card = card if card is not None else AGENT_CARD
        self.reply = reply
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == 'GET':
            return httpx.Response(200, json=self.card)
        body = json.loads(request.content)
        if callable(self.reply):
            return self.reply(body)
        return httpx.Response(
            200,
            json=completed(
                body['task']['id'], [{'type': 'text', 'content': '4'}]
            ),
        )

    @property
    def sent(self) -> list[dict[str, Any]]:
        return [
            json.loads(r.content) for r in self.requests if r.method == 'POST'
        ]


class TestA2ACardResolver:
    @pytest.mark.asyncio
    async def test_get_agent_card(self):
        server = PeerServer()
        resolver = A2ACardResolver(
            httpx.AsyncClient(transport=httpx.MockTransport(server)), PEER + '/'
        )
        card = await resolver.get_agent_card()
        assert card.name == 'PeerAgent'
        assert str(server.requests[0].url) == 'http://peer/.well-known/agent.json'

    @pytest.mark.asyncio
    async def test_invalid_card_raises_json_error(self):
        server = PeerServer(card={'description': 'no name'})
        resolver = A2ACardResolver(
            httpx.AsyncClient(transport=httpx.MockTransport(server)), PEER
        )
        with pytest.raises(A2AClientJSONError):
            await resolver.get_agent_card()

    @pytest.mark.asyncio
    async def test_http_error_carries_status(self):
        resolver = A2ACardResolver(
            httpx.AsyncClient(
                transport=httpx.MockTransport(
                    lambda request: httpx.Response(404, text='not here')
                )
            ),
            PEER,
        )
        with pytest.raises(A2AClientHTTPError) as exc_info:
            await resolver.get_agent_card()
        assert exc_info.value.status_code == 404
        assert exc_info.value.payload == 'not here'

    @pytest.mark.asyncio
    async def test_non_json_body_raises_json_error(self):
        resolver = A2ACardResolver(
            httpx.AsyncClient(
                transport=httpx.MockTransport(
                    lambda request: httpx.Response(200, text='<html>')
                )
            ),
            PEER,
        )
        with pytest.raises(A2AClientJSONError):
            await resolver.get_agent_card()


class TestDiscover:
    @pytest.mark.asyncio
    async def test_default_endpoint(self):
        client = make_client(PeerServer())
        assert await client.discover(PEER) == 'http://peer/a2a/message'

    @pytest.mark.asyncio
    async def test_declared_endpoint_resolved_against_card_url(self):
        card = {
            **AGENT_CARD,
            'url': 'http://public-peer:8080/',
            'taskEndpoints': {'send': '/tasks/send'},
        }
        client = make_client(PeerServer(card=card))
        assert await client.discover(PEER) == 'http://public-peer:8080/tasks/send'

    @pytest.mark.asyncio
    async def test_card_without_url_uses_target(self):
        card = {key: value for key, value in AGENT_CARD.items() if key != 'url'}
        client = make_client(PeerServer(card=card))
        assert await client.discover(PEER) == 'http://peer/a2a/message'


class TestSendTask:
    @pytest.mark.asyncio
    async def test_each_send_uses_a_fresh_task_id(self):
        server = PeerServer()
        client = make_client(server)

        await client.send_task('http://peer/a2a/message', '2+2')
        await client.send_task('http://peer/a2a/message', '2+2')

        first, second = server.sent
        assert first['task']['id'] != second['task']['id']
        assert first['task']['message'] == {
            'role': 'user',
            'parts': [{'type': 'text', 'content': '2+2'}],
        }

    @pytest.mark.asyncio
    async def test_structured_input_is_sent_as_data_part(self):
        server = PeerServer()
        client = make_client(server)

        await client.send_task('http://peer/a2a/message', {'x': 1})

        assert server.sent[0]['task']['message']['parts'] == [
            {'type': 'data', 'content': {'x': 1}}
        ]

    @pytest.mark.asyncio
    async def test_invalid_task_response(self):
        server = PeerServer(
            reply=lambda body: httpx.Response(200, json={'unexpected': True})
        )
        client = make_client(server)
        with pytest.raises(A2AClientJSONError):
            await client.send_task('http://peer/a2a/message', 'x')


class TestAskAgent:
    @pytest.mark.asyncio
    async def test_text_reply_summary(self):
        client = make_client(PeerServer())
        result = await client.ask_agent(PEER, '2+2')
        assert result.ok
        assert result.text == 'Response from http://peer (completed): 4'

    @pytest.mark.asyncio
    async def test_data_reply_summary(self):
        server = PeerServer(
            reply=lambda body: httpx.Response(
                200,
                json=completed(
                    body['task']['id'],
                    [{'type': 'data', 'content': {'answer': 4}}],
                ),
            )
        )
        result = await make_client(server).ask_agent(PEER, '2+2')
        assert result.text == 'Response from http://peer (completed): {"answer": 4}'

    @pytest.mark.asyncio
    async def test_peer_failure_state_is_reported(self):
        server = PeerServer(
            reply=lambda body: httpx.Response(
                200,
                json={
                    'id': body['task']['id'],
                    'status': {
                        'state': 'failed',
                        'message': {
                            'role': 'assistant',
                            'parts': [{'type': 'text', 'content': 'nope'}],
                        },
                    },
                },
            )
        )
        result = await make_client(server).ask_agent(PEER, '2+2')
        assert result.ok
        assert result.text == 'Response from http://peer (failed): nope'

    @pytest.mark.asyncio
    async def test_invalid_target_url(self):
        server = PeerServer()
        result = await make_client(server).ask_agent('not a url', '2+2')
        assert result.error.kind == ErrorKind.validation_error
        assert server.requests == []

    @pytest.mark.asyncio
    async def test_discovery_failure(self):
        result = await make_client(
            lambda request: httpx.Response(404, json={'error': 'missing'})
        ).ask_agent(PEER, '2+2')
        assert result.error.kind == ErrorKind.network_error
        assert result.text == 'Error: Could not contact agent http://peer. Status 404'

    @pytest.mark.asyncio
    async def test_discovery_connection_error(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError('connection refused', request=request)

        result = await make_client(refuse).ask_agent(PEER, '2+2')
        assert result.text.startswith('Error: Could not contact agent http://peer.')
        assert 'Network communication error' in result.text

    @pytest.mark.asyncio
    async def test_send_error_embeds_payload(self):
        server = PeerServer(
            reply=lambda body: httpx.Response(500, json={'error': 'x'})
        )
        result = await make_client(server).ask_agent(PEER, '2+2')
        assert not result.ok
        assert result.text == (
            'Error communicating with agent http://peer. {"error": "x"}'
        )

    @pytest.mark.asyncio
    async def test_undecodable_reply_is_parse_error(self):
        server = PeerServer(
            reply=lambda body: httpx.Response(200, content=b'\x80\x81')
        )
        result = await make_client(server).ask_agent(PEER, '2+2')
        assert not result.ok
        assert result.error.kind == ErrorKind.parse_error
        assert result.text.startswith('Error communicating with agent http://peer.')

    @pytest.mark.asyncio
    async def test_malformed_card_url_is_parse_error(self):
        server = PeerServer(card={**AGENT_CARD, 'url': 'http://[bad'})
        result = await make_client(server).ask_agent(PEER, '2+2')
        assert not result.ok
        assert result.error.kind == ErrorKind.parse_error
        assert result.text.startswith('Error: Could not contact agent http://peer.')
        assert server.sent == []

    @pytest.mark.asyncio
    async def test_send_timeout(self):
        def reply(body):
            raise httpx.ReadTimeout('too slow')

        result = await make_client(PeerServer(reply=reply)).ask_agent(
            PEER, '2+2'
        )
        assert result.text == (
            'Error communicating with agent http://peer. '
            'Request timed out after 15s'
        )


def test_summary_with_artifacts_only():
    task = Task.model_validate(
        {
            'id': 't1',
            'status': {'state': 'completed'},
            'artifacts': [{'name': 'a'}, {'name': 'b'}],
        }
    )
    assert summarize_task(PEER, task) == (
        'Response from http://peer (completed): Artifacts: 2'
    )
