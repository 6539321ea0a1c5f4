"""Cement plant advisory service.

Ingests plant telemetry and runs a chain of LLM agents (four telemetry
sub-agents, a super-agent, an optimization agent and a safety gate) that
produces operator-reviewable optimization proposals.
"""

__version__ = "0.1.0"
