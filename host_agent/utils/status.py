"""Agent lifecycle state enumeration."""

from enum import Enum


class AgentState(Enum):
    """Lifecycle states of the host agent orchestrator."""

    STOPPED = "stopped"
    REGISTERING = "registering"
    RUNNING = "running"
    STOPPING = "stopping"

    def accepts_cycles(self) -> bool:
        """
        Whether scheduled cycles may still start in this state.

        Returns:
            bool: True only while the agent is running
        """
        return self is AgentState.RUNNING
