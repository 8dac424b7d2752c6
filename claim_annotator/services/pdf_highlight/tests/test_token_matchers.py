"""
Unit tests for surgery and hospitalization token matching.
"""

import pytest

from claim_annotator.services.pdf_highlight.token_matchers import (
    extract_inpatient_days,
    extract_surgery_token,
    find_hospitalization_tokens,
    has_hospitalization,
    has_real_surgery_token,
    strip_whitespace,
)


class TestSurgeryPredicate:
    """has_real_surgery_token"""

    def test_accepts_real_procedure(self):
        assert has_real_surgery_token("부분층피부이식수술")

    def test_accepts_token_before_dose_columns(self):
        assert has_real_surgery_token("서울병원 처치및수술료 부분층피부이식수술 1 1 1")

    @pytest.mark.parametrize("text", [
        "창상수술후처치",
        "외과 단순처치 수술",
        "수술후처치 1 1 1",
    ])
    def test_rejects_false_positives(self, text):
        assert not has_real_surgery_token(text)

    def test_rejects_fee_category_word(self):
        assert not has_real_surgery_token("처치및수술료")

    def test_matches_across_wrapped_whitespace(self):
        assert has_real_surgery_token("부분층피부이식 수 술")

    def test_empty(self):
        assert not has_real_surgery_token(None)
        assert not has_real_surgery_token("   ")


class TestSurgeryToken:
    """extract_surgery_token"""

    def test_plain_token(self):
        assert extract_surgery_token("부분층피부이식수술 1 1 1") == "부분층피부이식수술"

    def test_category_word_removed(self):
        assert extract_surgery_token("양방 충수절제수술 1 1 1") == "충수절제수술"

    def test_leading_separators_removed(self):
        assert extract_surgery_token("-/관절경수술") == "관절경수술"

    def test_window_limits_prefix(self):
        token = extract_surgery_token("가나다라마바사아자차카타파하거너더수술")
        assert token == "바사아자차카타파하거너더수술"
        assert len(token) == 14

    def test_token_is_contiguous_in_stripped_text(self):
        text = "서울병원 처치및수술료 부분층 피부이식수술 1 1 1"
        token = extract_surgery_token(text)
        assert token in strip_whitespace(text)
        assert token.endswith("수술")

    def test_false_positive_yields_none(self):
        assert extract_surgery_token("창상수술후처치") is None
        assert extract_surgery_token("혈액검사") is None


class TestHospitalization:
    """Inpatient day helpers."""

    @pytest.mark.parametrize("token,expected", [
        ("11(0)", 11),
        ("0(3)", 0),
        ("2（1）", 2),
        ("1 (0)", 1),
        ("7", 0),
        (None, 0),
    ])
    def test_extract_inpatient_days(self, token, expected):
        assert extract_inpatient_days(token) == expected

    def test_has_hospitalization(self):
        assert has_hospitalization("3(0)")
        assert not has_hospitalization("0(5)")

    def test_find_tokens_keeps_page_characters(self):
        text = strip_whitespace("1 A 0(2) 100 2 B 11（0） 200 3 C 4(1)")
        assert find_hospitalization_tokens(text) == ["11（0）", "4(1)"]

    def test_find_tokens_empty(self):
        assert find_hospitalization_tokens("") == []
