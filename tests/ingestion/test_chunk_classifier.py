# -*- coding: utf-8 -*-
"""
Chunk classification tests (qa / procedure / fact).
"""
import pytest

from docgraph.ingestion.chunk_classifier import (
    classify_chunk, count_imperative_sentences, count_step_markers, extract_qa,
)
from docgraph.utils.dataclasses import NodeType

pytestmark = pytest.mark.ingestion


class TestQuestionAnswer:

    def test_refund_pair_extracted(self):
        """Question and answer are split at the markers"""
        result = classify_chunk("Q: How do I process a refund? A: Visit settings > refunds.")

        assert result.chunk_type == NodeType.QA
        assert result.question == "How do I process a refund?"
        assert result.answer == "Visit settings > refunds."

    def test_long_form_markers(self):
        """Question:/Answer: markers are recognised"""
        result = classify_chunk("Question: Where is my invoice?\nAnswer: Under Billing.")

        assert result.chunk_type == NodeType.QA
        assert result.question == "Where is my invoice?"
        assert result.answer == "Under Billing."

    def test_answer_stops_at_next_question(self):
        """An answer ends at the next question marker"""
        result = extract_qa("Q: One? A: First answer. Q: Two? A: Second answer.")

        assert result.answer == "First answer."

    def test_unanswered_question_is_skipped(self):
        """An unanswered question does not swallow the next pair"""
        result = extract_qa("Q: Anyone there? Q: Second question? A: Yes.")

        assert result.question == "Second question?"
        assert result.answer == "Yes."

    def test_question_without_answer_is_not_qa(self):
        """A lone question is not qa"""
        assert classify_chunk("Q: Is this answered anywhere?").chunk_type != NodeType.QA

    def test_marker_inside_word_ignored(self):
        """FAQ: does not count as a question marker"""
        assert extract_qa("FAQ: general notes. A: nothing") is None


class TestProcedureAndFact:

    def test_numbered_steps(self):
        """Numbered steps make a procedure"""
        text = "1. Open the app.\n2. Tap settings.\n3. Choose refunds."

        assert count_step_markers(text) == 3
        assert classify_chunk(text).chunk_type == NodeType.PROCEDURE

    def test_step_keyword_markers(self):
        """Step N markers make a procedure"""
        text = "Step 1: log in to the portal. Step 2: download the report."

        assert classify_chunk(text).chunk_type == NodeType.PROCEDURE

    def test_imperative_sentences(self):
        """Two imperative sentences make a procedure"""
        text = "Open the settings page. Select refunds from the menu. The refund arrives soon."

        assert count_imperative_sentences(text) == 2
        assert classify_chunk(text).chunk_type == NodeType.PROCEDURE

    def test_isolated_number_is_fact(self):
        """A single number is not a step list"""
        text = "The tool reached version 2. The release notes list many changes."

        assert classify_chunk(text).chunk_type == NodeType.FACT

    def test_plain_fact(self):
        """Plain statements are facts"""
        text = "The refund policy lasts thirty days. Customers are notified by email."

        result = classify_chunk(text)

        assert result.chunk_type == NodeType.FACT
        assert result.question is None and result.answer is None
