"""
Prompt construction for the generation backend.

Two tasks:
1. Text → transaction JSON (caption, amount, category, type, createdAt)
2. Image → caption JSON (items, caption)

Both builders are pure functions of their arguments. The reference
datetime is captured once by the caller at request start and passed in;
nothing here reads the clock.
"""

from datetime import datetime

from spendeka.models.transaction import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    Language,
)
from spendeka.validation.dates import format_iso_datetime


_CAPTION_EXAMPLES = {
    Language.VIETNAMESE: '"Cà phê sáng", "Ăn trưa"',
    Language.ENGLISH: '"Morning coffee", "Lunch"',
}

_ITEM_EXAMPLES = {
    Language.VIETNAMESE: '"trà sữa", "hamburger", "giày thể thao"',
    Language.ENGLISH: '"milk tea", "hamburger", "sneakers"',
}

MAX_CAPTION_ITEMS = 5
MAX_CAPTION_LENGTH = 50


def _quoted(categories) -> str:
    return ", ".join(f'"{category.value}"' for category in categories)


def build_transaction_prompt(
    text: str,
    language: Language,
    reference: datetime,
) -> str:
    """
    Build the text → transaction prompt.

    Args:
        text: Raw user text or OCR text
        language: Language for the caption
        reference: Request-start datetime used to resolve relative dates
    """
    language = Language.parse(language)
    reference_iso = format_iso_datetime(reference)

    return f"""You are a transaction parser for a personal finance app.

Convert the user text below into exactly ONE JSON object.

Current datetime reference (ISO 8601):
{reference_iso}

User text:
\"\"\"
{text}
\"\"\"

Return exactly ONE JSON object with this shape and nothing else:

{{
  "caption": string,
  "amount": number,
  "category": string,
  "type": "income" | "spent",
  "createdAt": string
}}

CAPTION:
- "caption" is a short note in {language.display_name} (e.g. {_CAPTION_EXAMPLES[language]}).
- Keep it concise; it is shown as the transaction note.

AMOUNT:
- "amount" is a positive number.
- If several items are listed, use their sum.

TYPE:
- "income" if money was received, otherwise "spent".

CATEGORY:
- Use exactly one of these values.
- Expenses: {_quoted(EXPENSE_CATEGORIES)}
- Income: {_quoted(INCOME_CATEGORIES)}
- Never invent new categories.

CREATEDAT:
- "createdAt" is an ISO 8601 datetime.
- If the text contains a specific date, use that date.
- If the text says "today" or "yesterday", resolve it against the current datetime reference.
- If the text gives a date but no time, set the time to exactly 00:00:00.
- If the text gives no date at all, use the current datetime reference unchanged.

OUTPUT:
- Only the JSON object.
- No backticks, no explanations.
"""


def build_caption_prompt(language: Language) -> str:
    """
    Build the image → caption prompt.

    The image itself is sent alongside as inline data.
    """
    language = Language.parse(language)
    name = language.display_name

    return f"""You are helping a user log a personal expense.

Look carefully at the attached image (items, food, a bill, or a scene related to spending).

Your task:
- Identify the main items in the image (at most {MAX_CAPTION_ITEMS} short names).
- Write ONE very short {name} caption (at most {MAX_CAPTION_LENGTH} characters) usable as the expense note.

Return ONLY a JSON object with this exact shape:
{{
  "items": string[],
  "caption": string
}}

Rules:
- "items" are short phrases in {name}, e.g. {_ITEM_EXAMPLES[language]}.
- "caption" is in {name}, friendly and concise.
- Do NOT include a currency or an amount in the caption.
- Output valid JSON only, no comments, no extra text.
"""
