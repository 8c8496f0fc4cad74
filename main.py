"""Command-line entry point for the agent orchestrator."""

from agentOrchestrator.cli import main


if __name__ == "__main__":
    main()
