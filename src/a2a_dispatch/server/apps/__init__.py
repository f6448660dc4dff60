"""HTTP application components for the A2A dispatch server."""

from a2a_dispatch.server.apps.starlette_app import A2ADispatchApplication


__all__ = ['A2ADispatchApplication']
