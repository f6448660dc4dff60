"""An A2A agent that dispatches reasoning output to tools and peer agents."""

__version__ = '0.1.0'
