"""Research agents: discovery, execution and artifact storage."""

from docloom.agents.cache import ArtifactCache
from docloom.agents.executor import AgentExecutor
from docloom.agents.registry import AgentRegistry, load_agent_file

__all__ = ["AgentExecutor", "AgentRegistry", "ArtifactCache", "load_agent_file"]
