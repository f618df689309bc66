"""Prompt templates package."""

from spendeka.prompts.builder import build_caption_prompt, build_transaction_prompt

__all__ = ["build_caption_prompt", "build_transaction_prompt"]
