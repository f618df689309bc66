"""Tests for prompt construction."""

from datetime import datetime, timedelta, timezone

from spendeka.models.transaction import Language, TransactionCategory
from spendeka.prompts import build_caption_prompt, build_transaction_prompt


REFERENCE = datetime(2024, 1, 2, 10, 0, 0, tzinfo=timezone.utc)


class TestTransactionPrompt:
    """Tests for the text → transaction prompt."""

    def test_embeds_reference_and_text(self):
        prompt = build_transaction_prompt("Bought lunch for 12", Language.ENGLISH, REFERENCE)
        assert "2024-01-02T10:00:00.000Z" in prompt
        assert "Bought lunch for 12" in prompt

    def test_lists_every_category(self):
        prompt = build_transaction_prompt("x", Language.ENGLISH, REFERENCE)
        for category in TransactionCategory:
            assert f'"{category.value}"' in prompt

    def test_caption_language(self):
        vie = build_transaction_prompt("cà phê 30k", Language.VIETNAMESE, REFERENCE)
        eng = build_transaction_prompt("coffee 3", Language.ENGLISH, REFERENCE)
        assert "in Vietnamese" in vie
        assert "in English" in eng

    def test_states_date_rules(self):
        prompt = build_transaction_prompt("x", Language.ENGLISH, REFERENCE)
        assert "00:00:00" in prompt
        assert "no date at all" in prompt

    def test_is_deterministic(self):
        first = build_transaction_prompt("taxi 8", Language.ENGLISH, REFERENCE)
        second = build_transaction_prompt("taxi 8", Language.ENGLISH, REFERENCE)
        assert first == second

    def test_non_utc_reference_keeps_offset(self):
        reference = datetime(2024, 1, 2, 17, 0, tzinfo=timezone(timedelta(hours=7)))
        prompt = build_transaction_prompt("x", Language.ENGLISH, reference)
        assert "2024-01-02T17:00:00.000+07:00" in prompt


class TestCaptionPrompt:
    """Tests for the image → caption prompt."""

    def test_limits(self):
        prompt = build_caption_prompt(Language.ENGLISH)
        assert "at most 5" in prompt
        assert "at most 50 characters" in prompt

    def test_language_examples(self):
        assert "trà sữa" in build_caption_prompt(Language.VIETNAMESE)
        assert "milk tea" in build_caption_prompt(Language.ENGLISH)

    def test_unknown_language_falls_back_to_english(self):
        assert build_caption_prompt("fr") == build_caption_prompt(Language.ENGLISH)
