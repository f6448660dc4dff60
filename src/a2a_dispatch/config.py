"""Agent configuration.

Configuration is layered: built-in defaults, then an optional YAML file
(`agent-config.yml` / `agent-config.yaml`), then environment variables
(a `.env` file is honoured). YAML keys use camelCase, matching the wire
format of the agent card.
"""

import copy
import logging
import os

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

import yaml

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from a2a_dispatch.types import (
    AgentCapabilities,
    AgentCard,
    AgentSkill,
    TaskEndpoints,
)


logger = logging.getLogger(__name__)

CONFIG_FILE_NAMES = ('agent-config.yml', 'agent-config.yaml')

DEFAULT_SYSTEM_PROMPT = """You are {name}, {description}.
Your Agent ID is {baseUrl}. You have access to tools that provide various capabilities,
and an A2A tool ('ask_another_a2a_agent') to interact with other agents.

When you need to use a tool, respond with ONLY a JSON object in one of these formats:
{"tool": "tool_name", "tool_input": {"param1": "value1"}}
{"tool": "ask_another_a2a_agent", "targetAgentId": "<agent base URL>", "taskInput": "<question or data>"}
{"action": "tool_name", "action_input": {"param1": "value1"}}

If no tool is needed, answer the user's question directly as plain text."""


class _Section(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra='ignore'
    )


class ServerConfig(_Section):
    port: int = 3000
    base_url: str = 'http://localhost:3000'
    name: str = 'A2ADispatchAgent'
    description: str = 'A helpful agent that can use tools and delegate to other agents.'


class McpConfig(_Section):
    server_url: str | None = None


class OpenAIConfig(_Section):
    api_key: str | None = None
    api_url: str | None = None


class OllamaConfig(_Section):
    base_url: str | None = 'http://localhost:11434'


class AnthropicConfig(_Section):
    api_key: str | None = None
    max_tokens: int = 1024


LLM_PROVIDERS = ('openai', 'ollama', 'anthropic')


class LlmConfig(_Section):
    provider: Literal['openai', 'ollama', 'anthropic'] = 'openai'
    model: str = 'gpt-4o-mini'
    temperature: float = 0.7
    timeout: float = 60.0
    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    ollama: OllamaConfig = Field(default_factory=OllamaConfig)
    anthropic: AnthropicConfig = Field(default_factory=AnthropicConfig)

    @field_validator('provider', mode='before')
    @classmethod
    def _normalize_provider(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        provider = value.strip().lower()
        if provider not in LLM_PROVIDERS:
            logger.warning(
                f'Unsupported LLM provider {value!r}, using openai instead'
            )
            return 'openai'
        return provider


class AgentSettings(_Section):
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    verbose: bool = False


class KnownAgentConfig(_Section):
    name: str
    base_url: str
    skills: list[str] = Field(default_factory=list)


class A2AConfig(_Section):
    version: str = '1.0'
    skills: list[AgentSkill] = Field(
        default_factory=lambda: [
            AgentSkill(
                id='general_query',
                name='General Query',
                description='Accepts natural language questions and attempts to answer using internal knowledge and tools.',
            )
        ]
    )
    known_agents: list[KnownAgentConfig] = Field(default_factory=list)
    self_redirect_peer: str | None = None

    @field_validator('skills', mode='before')
    @classmethod
    def _skills_from_names(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        return [
            {'id': skill, 'name': skill} if isinstance(skill, str) else skill
            for skill in value
        ]


class BackendConfig(_Section):
    url: str | None = None
    chat_history_ttl: int = 86400


class MemoryConfig(_Section):
    type: Literal['memory', 'redis', 'database'] = 'memory'
    redis: BackendConfig = Field(default_factory=BackendConfig)
    database: BackendConfig = Field(default_factory=BackendConfig)

    @property
    def backend(self) -> BackendConfig | None:
        if self.type == 'redis':
            return self.redis
        if self.type == 'database':
            return self.database
        return None


class LoggingConfig(_Section):
    level: Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'] = 'INFO'

    @field_validator('level', mode='before')
    @classmethod
    def _normalize_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.upper()
            return {'WARN': 'WARNING', 'FATAL': 'CRITICAL'}.get(value, value)
        return value


class AgentConfig(_Section):
    """Complete agent configuration."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    mcp: McpConfig = Field(default_factory=McpConfig)
    llm: LlmConfig = Field(default_factory=LlmConfig)
    agent: AgentSettings = Field(default_factory=AgentSettings)
    # to_camel('a2a') would be 'a2A'.
    a2a: A2AConfig = Field(default_factory=A2AConfig, alias='a2a')
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# Environment variable -> (section, key...) path in the camelCase document.
ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    'PORT': ('server', 'port'),
    'AGENT_BASE_URL': ('server', 'baseUrl'),
    'AGENT_NAME': ('server', 'name'),
    'AGENT_DESCRIPTION': ('server', 'description'),
    'MCP_SERVER_URL': ('mcp', 'serverUrl'),
    'MODEL': ('llm', 'model'),
    'TEMPERATURE': ('llm', 'temperature'),
    'OPENAI_API_KEY': ('llm', 'openai', 'apiKey'),
    'OPENAI_URL': ('llm', 'openai', 'apiUrl'),
    'OLLAMA_BASE_URL': ('llm', 'ollama', 'baseUrl'),
    'ANTHROPIC_API_KEY': ('llm', 'anthropic', 'apiKey'),
    'A2A_VERSION': ('a2a', 'version'),
    'MEMORY_TYPE': ('memory', 'type'),
    'REDIS_URL': ('memory', 'redis', 'url'),
    'DATABASE_URL': ('memory', 'database', 'url'),
    'LOG_LEVEL': ('logging', 'level'),
}


def deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merges `override` into a copy of `base`."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Reads a YAML configuration file; unreadable files yield `{}`."""
    try:
        with path.open(encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f'Error loading configuration from {path}: {e}')
        return {}
    if not isinstance(data, dict):
        logger.error(f'Configuration in {path} is not a mapping, ignoring it')
        return {}
    logger.info(f'Loaded configuration from {path}')
    return data


def find_config_file(search_dir: Path | None = None) -> Path | None:
    directory = search_dir or Path.cwd()
    for name in CONFIG_FILE_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def apply_environment(
    document: dict[str, Any], environ: Mapping[str, str]
) -> dict[str, Any]:
    """Overlays environment variables onto a configuration document."""
    document = copy.deepcopy(document)
    for variable, path in ENV_OVERRIDES.items():
        value = environ.get(variable)
        if not value:
            continue
        target = document
        for key in path[:-1]:
            target = target.setdefault(key, {})
        target[path[-1]] = value

    provider = environ.get('LLM_PROVIDER')
    if provider:
        if provider.strip().lower() in LLM_PROVIDERS:
            document.setdefault('llm', {})['provider'] = provider.strip().lower()
        else:
            logger.warning(f'Ignoring unsupported LLM_PROVIDER {provider!r}')

    ttl = environ.get('MEMORY_CHAT_HISTORY_TTL')
    if ttl:
        for backend in ('redis', 'database'):
            document.setdefault('memory', {}).setdefault(backend, {})[
                'chatHistoryTtl'
            ] = ttl
    return document


def render_system_prompt(config: AgentConfig) -> str:
    """Substitutes `{name}`, `{description}` and `{baseUrl}` in the prompt."""
    return (
        config.agent.system_prompt.replace('{name}', config.server.name)
        .replace('{description}', config.server.description)
        .replace('{baseUrl}', config.server.base_url)
    )


def validate_config(config: AgentConfig) -> list[str]:
    """Logs configuration problems and downgrades unusable memory backends.

    Returns:
        The warnings that were logged.
    """
    warnings: list[str] = []
    if config.llm.provider == 'openai' and not config.llm.openai.api_key:
        warnings.append(
            'OpenAI API Key is not set. OpenAI LLM features will not work correctly.'
        )
    if config.llm.provider == 'ollama' and not config.llm.ollama.base_url:
        warnings.append('Ollama Base URL is not set.')
    if config.llm.provider == 'anthropic' and not config.llm.anthropic.api_key:
        warnings.append(
            'Anthropic API Key is not set. Anthropic Claude features will not work correctly.'
        )

    backend = config.memory.backend
    if backend is not None and not backend.url:
        warnings.append(
            f'{config.memory.type} URL is not set but memory type is '
            f'"{config.memory.type}". Falling back to in-memory storage.'
        )
        config.memory.type = 'memory'

    if not config.mcp.server_url:
        warnings.append(
            'MCP Server URL is not set. MCP features will not be available.'
        )

    for warning in warnings:
        logger.warning(warning)
    return warnings


def load_config(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> AgentConfig:
    """Loads and validates the agent configuration.

    Args:
        path: Explicit YAML file. When None the working directory is
            searched for `agent-config.yml` / `agent-config.yaml`.
        environ: Environment to read overrides from. Defaults to
            `os.environ` after loading `.env`.

    Returns:
        The resulting `AgentConfig`.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    config_path = Path(path) if path else find_config_file()
    file_document: dict[str, Any] = {}
    if config_path is not None:
        file_document = load_yaml_config(config_path)
    else:
        logger.info('Configuration file not found, using defaults')

    defaults = AgentConfig().model_dump(mode='json', by_alias=True)
    document = apply_environment(deep_merge(defaults, file_document), environ)
    config = AgentConfig.model_validate(document)
    config.agent.system_prompt = render_system_prompt(config)
    validate_config(config)
    return config


def build_agent_card(config: AgentConfig) -> AgentCard:
    """Derives the static agent card from configuration."""
    return AgentCard(
        name=config.server.name,
        description=config.server.description,
        url=config.server.base_url,
        version=config.a2a.version,
        capabilities=AgentCapabilities(
            streaming=False,
            pushNotifications=False,
            stateTransitionHistory=False,
        ),
        skills=list(config.a2a.skills),
        taskEndpoints=TaskEndpoints(send='/a2a/message'),
    )
