"""AI Agents package."""

from spendeka.agents.ai_agents import (
    CAPTION_TASK,
    TRANSACTION_TASK,
    CaptionAgent,
    StructuredPayloadAgent,
    StructuredTask,
    TransactionAgent,
)

__all__ = [
    "CAPTION_TASK",
    "TRANSACTION_TASK",
    "CaptionAgent",
    "StructuredPayloadAgent",
    "StructuredTask",
    "TransactionAgent",
]
