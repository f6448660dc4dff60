"""Pydantic models for the agent-to-agent wire format."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Sender of a message."""

    user = 'user'
    assistant = 'assistant'


class TaskState(str, Enum):
    """Terminal states a task response can report."""

    completed = 'completed'
    failed = 'failed'


class Part(BaseModel):
    """A single piece of message content.

    `text` parts carry a string; `data` parts carry an arbitrary JSON payload.
    """

    type: str
    content: Any = None


class Message(BaseModel):
    """A role-tagged message made of one or more parts."""

    role: Role | str
    parts: list[Part]


class TaskStatus(BaseModel):
    """Lifecycle state of a task plus the message that accompanies it."""

    state: TaskState | str
    message: Message | None = None


class Task(BaseModel):
    """A unit of delegated work exchanged between agents."""

    model_config = ConfigDict(extra='allow')

    id: str
    status: TaskStatus
    artifacts: list[dict[str, Any]] | None = None


class TaskPayload(BaseModel):
    """The `task` member of a tasks/send request."""

    id: str
    message: Message


class TaskSendRequest(BaseModel):
    """Body of a tasks/send request: ``{"task": {"id", "message"}}``."""

    task: TaskPayload


class AgentCapabilities(BaseModel):
    """Optional protocol features an agent advertises."""

    model_config = ConfigDict(frozen=True)

    streaming: bool = False
    pushNotifications: bool = False
    stateTransitionHistory: bool = False


class AgentSkill(BaseModel):
    """A skill declared on the agent card."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ''
    inputModes: list[str] = Field(default_factory=lambda: ['text/plain'])
    outputModes: list[str] = Field(default_factory=lambda: ['text/plain'])


class TaskEndpoints(BaseModel):
    """Where peers should submit tasks, relative to the agent url."""

    model_config = ConfigDict(frozen=True)

    send: str = '/a2a/message'


class AgentCard(BaseModel):
    """Self-describing document served at ``/.well-known/agent.json``."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ''
    url: str | None = None
    version: str = '1.0'
    capabilities: AgentCapabilities = Field(default_factory=AgentCapabilities)
    skills: list[AgentSkill | str] = Field(default_factory=list)
    taskEndpoints: TaskEndpoints | None = None
