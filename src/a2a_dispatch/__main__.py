import logging

import click
import uvicorn

from a2a_dispatch.config import load_config
from a2a_dispatch.server.apps import A2ADispatchApplication
from a2a_dispatch.server.context import build_context


logger = logging.getLogger(__name__)


@click.command()
@click.option(
    '--config',
    'config_path',
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help='Path to an agent-config.yml file.',
)
@click.option('--host', 'host', default='0.0.0.0')
@click.option('--port', 'port', type=int, default=None)
def main(config_path: str | None, host: str, port: int | None):
    config = load_config(config_path)
    logging.basicConfig(
        level=config.logging.level,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    context = build_context(config)
    server = A2ADispatchApplication(context)
    port = port or config.server.port

    logger.info(f'{config.server.name} listening on port {port}')
    logger.info(f'Agent Base URL / ID: {config.server.base_url}')
    logger.info(
        f'Agent Card available at: {config.server.base_url}/.well-known/agent.json'
    )
    logger.info(
        f'A2A Task Endpoint (tasks/send): POST {config.server.base_url}/a2a/message'
    )
    uvicorn.run(server.build(), host=host, port=port)


if __name__ == '__main__':
    main()
