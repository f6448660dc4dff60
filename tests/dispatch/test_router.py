from unittest.mock import AsyncMock

import pytest

from a2a_dispatch.capabilities.invoker import StaticCapabilityInvoker
from a2a_dispatch.client.client import A2AClient
from a2a_dispatch.dispatch.peers import Peer, PeerRegistry
from a2a_dispatch.dispatch.result import CapabilityResult, Directive
from a2a_dispatch.dispatch.router import (
    REMOTE_DELEGATION_CAPABILITY,
    CapabilityRouter,
)
from a2a_dispatch.utils.errors import ErrorKind


SELF_ID = 'http://localhost:3000'


def add(a, b):
    return a + b


async def lookup(city):
    return {'city': city, 'temp': 21}


def explode():
    raise RuntimeError('boom')


@pytest.fixture
def remote_client() -> AsyncMock:
    client = AsyncMock(spec=A2AClient)
    client.ask_agent.return_value = CapabilityResult.success(
        'Response from http://peer (completed): 4'
    )
    return client


@pytest.fixture
def invoker() -> StaticCapabilityInvoker:
    return StaticCapabilityInvoker(
        {'add': add, 'lookup': lookup, 'explode': explode}
    )


def make_router(remote_client, invoker, peers=None) -> CapabilityRouter:
    return CapabilityRouter(
        remote_client=remote_client,
        local_invoker=invoker,
        peers=PeerRegistry(self_id=SELF_ID, peers=peers),
    )


def delegation(**arguments) -> Directive:
    return Directive(
        capability_name=REMOTE_DELEGATION_CAPABILITY, arguments=arguments
    )


def test_capability_names_include_remote_delegation(remote_client, invoker):
    router = make_router(remote_client, invoker)
    assert router.capability_names() == [
        'add',
        'lookup',
        'explode',
        REMOTE_DELEGATION_CAPABILITY,
    ]


@pytest.mark.asyncio
async def test_delegation_calls_remote_client(remote_client, invoker):
    router = make_router(remote_client, invoker)
    result = await router.route(
        delegation(targetAgentId='http://peer', taskInput='2+2')
    )
    assert result.ok
    assert result.text == 'Response from http://peer (completed): 4'
    remote_client.ask_agent.assert_awaited_once_with('http://peer', '2+2')


@pytest.mark.asyncio
async def test_delegation_passes_structured_input(remote_client, invoker):
    router = make_router(remote_client, invoker)
    await router.route(
        delegation(targetAgentId='http://peer', taskInput={'x': 1})
    )
    remote_client.ask_agent.assert_awaited_once_with('http://peer', {'x': 1})


@pytest.mark.asyncio
@pytest.mark.parametrize('task_input', [{}, [], 0, False])
async def test_delegation_accepts_empty_structured_input(
    remote_client, invoker, task_input
):
    router = make_router(remote_client, invoker)
    result = await router.route(
        delegation(targetAgentId='http://peer', taskInput=task_input)
    )
    assert result.ok
    remote_client.ask_agent.assert_awaited_once_with('http://peer', task_input)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    'arguments',
    [
        {'taskInput': '2+2'},
        {'targetAgentId': 'http://peer'},
        {'targetAgentId': '', 'taskInput': '2+2'},
    ],
)
async def test_delegation_missing_parameters(remote_client, invoker, arguments):
    router = make_router(remote_client, invoker)
    result = await router.route(delegation(**arguments))
    assert not result.ok
    assert result.error.kind == ErrorKind.missing_parameters
    assert result.text == (
        'Error: Missing required parameters for ask_another_a2a_agent '
        '(targetAgentId, taskInput)'
    )
    remote_client.ask_agent.assert_not_awaited()


@pytest.mark.asyncio
async def test_self_delegation_is_redirected(remote_client, invoker):
    router = make_router(
        remote_client,
        invoker,
        peers=[Peer(name='MathAgent', base_url='http://math:4000')],
    )
    await router.route(delegation(targetAgentId=SELF_ID, taskInput='2+2'))
    remote_client.ask_agent.assert_awaited_once_with('http://math:4000', '2+2')


@pytest.mark.asyncio
async def test_self_delegation_without_peer_is_rejected(remote_client, invoker):
    router = make_router(remote_client, invoker)
    result = await router.route(
        delegation(targetAgentId=SELF_ID, taskInput='2+2')
    )
    assert result.error.kind == ErrorKind.self_reference
    assert 'cannot delegate a task to itself' in result.text
    remote_client.ask_agent.assert_not_awaited()


@pytest.mark.asyncio
async def test_delegation_by_peer_name(remote_client, invoker):
    router = make_router(
        remote_client,
        invoker,
        peers=[Peer(name='MathAgent', base_url='http://math:4000')],
    )
    await router.route(delegation(targetAgentId='MathAgent', taskInput='2+2'))
    remote_client.ask_agent.assert_awaited_once_with('http://math:4000', '2+2')


@pytest.mark.asyncio
async def test_local_capability(remote_client, invoker):
    router = make_router(remote_client, invoker)
    result = await router.route(
        Directive(capability_name='add', arguments={'a': 2, 'b': 3})
    )
    assert result.ok
    assert result.text == '5'


@pytest.mark.asyncio
async def test_local_async_capability_result_is_rendered(remote_client, invoker):
    router = make_router(remote_client, invoker)
    result = await router.route(
        Directive(capability_name='lookup', arguments={'city': 'Oslo'})
    )
    assert result.text == '{\n  "city": "Oslo",\n  "temp": 21\n}'


@pytest.mark.asyncio
async def test_unknown_capability(remote_client, invoker):
    router = make_router(remote_client, invoker)
    result = await router.route(Directive(capability_name='missing'))
    assert result.error.kind == ErrorKind.capability_not_found
    assert result.text == "Error: Capability 'missing' not found"


@pytest.mark.asyncio
async def test_capability_exception_becomes_error_result(remote_client, invoker):
    router = make_router(remote_client, invoker)
    result = await router.route(Directive(capability_name='explode'))
    assert result.error.kind == ErrorKind.capability_error
    assert result.text == "Error executing capability 'explode': boom"


@pytest.mark.asyncio
async def test_bad_arguments_become_error_result(remote_client, invoker):
    router = make_router(remote_client, invoker)
    result = await router.route(
        Directive(capability_name='add', arguments={'a': 1})
    )
    assert result.error.kind == ErrorKind.capability_error
    assert result.text.startswith("Error executing capability 'add':")
