"""
API dependencies: hand the shared AgentContext to route handlers.

The context is built at startup (see main.lifespan); if a request arrives without one
(e.g. TestClient used without a lifespan) it is built on first use. Tests override
get_agent_context via app.dependency_overrides.
"""

from fastapi import Request

from inventory_agent.agent.context import AgentContext, build_default_context


def get_agent_context(request: Request) -> AgentContext:
    ctx = getattr(request.app.state, "agent_context", None)
    if ctx is None:
        ctx = build_default_context()
        request.app.state.agent_context = ctx
    return ctx
