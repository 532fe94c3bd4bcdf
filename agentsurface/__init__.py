"""AgentSurface orchestration prototype.

A coordinating process delegates sub-tasks to worker agents over a streaming
RPC protocol and drives a declarative UI surface by pushing a component
catalog and path-addressed data model updates over a server-push stream.
"""

__version__ = "0.1.0"
