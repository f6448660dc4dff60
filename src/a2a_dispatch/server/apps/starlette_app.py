import contextlib
import logging
import uuid

from typing import Any

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from a2a_dispatch.server.context import DispatchContext
from a2a_dispatch.server.middleware import RequestIdMiddleware, get_request_id
from a2a_dispatch.server.task_handler import A2ATaskHandler
from a2a_dispatch.utils.errors import ReasoningEngineError
from a2a_dispatch.utils.task import failed_task


logger = logging.getLogger(__name__)

AGENT_CARD_URL = '/.well-known/agent.json'
TASK_SEND_URL = '/a2a/message'
INVOKE_URL = '/api/invoke'


class A2ADispatchApplication:
    """A Starlette application exposing the agent over HTTP.

    Serves the agent card, accepts delegated tasks from peers and offers a
    direct invocation endpoint for users.
    """

    def __init__(self, context: DispatchContext):
        """Initializes the A2ADispatchApplication.

        Args:
            context: The dispatch context shared by every request.
        """
        self.context = context
        self.task_handler = A2ATaskHandler(
            agent_card=context.agent_card,
            memory=context.memory,
            pipeline=context.pipeline,
        )

    async def _handle_get_agent_card(self, request: Request) -> JSONResponse:
        """Handles GET requests for the agent card endpoint."""
        return JSONResponse(
            self.task_handler.agent_card().model_dump(
                mode='json', exclude_none=True
            )
        )

    async def _handle_task_send(self, request: Request) -> JSONResponse:
        """Handles tasks/send POST requests from peer agents.

        The response body is always a Task; the HTTP status mirrors the
        task outcome (200 completed, 400 invalid request, 500 failed).
        """
        try:
            body = await request.json()
        except ValueError as e:
            logger.error(f'Invalid JSON in tasks/send request: {e}')
            task = failed_task(None, 'Invalid tasks/send request format.')
            return JSONResponse(
                task.model_dump(mode='json', exclude_none=True),
                status_code=400,
            )

        outcome = await self.task_handler.handle(body)
        logger.debug(
            f'Sending A2A task response for {outcome.task.id}: '
            f'{outcome.task.model_dump_json(exclude_none=True)}'
        )
        return JSONResponse(
            outcome.task.model_dump(mode='json', exclude_none=True),
            status_code=outcome.status_code,
        )

    async def _handle_invoke(self, request: Request) -> JSONResponse:
        """Handles direct user invocations.

        Unlike delegated tasks, these conversations persist across calls
        under the caller-supplied `conversationId`.
        """
        request_id = get_request_id(request)
        try:
            body: Any = await request.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}

        user_prompt = body.get('userPrompt')
        if not user_prompt or not isinstance(user_prompt, str):
            return JSONResponse(
                {'error': 'userPrompt (string) is required in the request body'},
                status_code=400,
            )

        conversation_id = body.get('conversationId')
        if not conversation_id or not isinstance(conversation_id, str):
            conversation_id = f'conv_{uuid.uuid4()}'

        conversation = await self.context.memory.get_or_create(conversation_id)
        try:
            reply = await self.context.pipeline.run(conversation, user_prompt)
        except ReasoningEngineError as e:
            logger.error(
                f'[{request_id}] Error during agent execution for {conversation_id}: {e.message}'
            )
            return JSONResponse(
                {
                    'error': e.message,
                    'conversationId': conversation_id,
                    'requestId': request_id,
                },
                status_code=500,
            )
        return JSONResponse(
            {
                'reply': reply,
                'conversationId': conversation_id,
                'status': 'complete',
                'requestId': request_id,
            }
        )

    def routes(
        self,
        agent_card_url: str = AGENT_CARD_URL,
        task_send_url: str = TASK_SEND_URL,
        invoke_url: str = INVOKE_URL,
    ) -> list[Route]:
        """Returns the Starlette Routes for the agent's endpoints."""
        return [
            Route(
                agent_card_url,
                self._handle_get_agent_card,
                methods=['GET'],
                name='agent_card',
            ),
            Route(
                task_send_url,
                self._handle_task_send,
                methods=['POST'],
                name='a2a_task_send',
            ),
            Route(
                invoke_url,
                self._handle_invoke,
                methods=['POST'],
                name='invoke',
            ),
        ]

    @contextlib.asynccontextmanager
    async def lifespan(self, app: Starlette):
        await self.context.startup()
        try:
            yield
        finally:
            await self.context.shutdown()

    def build(self, **kwargs: Any) -> Starlette:
        """Builds and returns the Starlette application instance.

        Args:
            **kwargs: Additional keyword arguments to pass to the Starlette
              constructor.
        """
        app_routes = self.routes()
        if 'routes' in kwargs:
            kwargs['routes'].extend(app_routes)
        else:
            kwargs['routes'] = app_routes

        kwargs.setdefault('lifespan', self.lifespan)
        kwargs['middleware'] = [
            Middleware(RequestIdMiddleware),
            *kwargs.get('middleware', []),
        ]
        return Starlette(**kwargs)
