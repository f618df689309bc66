"""
Spendeka - Source Package

Turns free text, receipt photos and item photos into strictly typed
personal-finance transactions.

PIPELINE:
1. Prompt → generation backend → raw text
2. Raw text → first JSON object → validated model
3. Receipt photo → OCR → same text pipeline
4. Temporary uploads are always released
"""

__version__ = "1.0.0"
__author__ = "Spendeka Team"
