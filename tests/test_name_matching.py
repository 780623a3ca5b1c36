"""Tests for name normalization and similarity scoring."""
import pytest

from services.name_matching import (
    TOKEN_MATCH_THRESHOLD,
    char_similarity,
    clinic_similarity,
    levenshtein,
    name_similarity,
    normalize_name,
    round_half_up,
    strip_clinic_name,
)


NAMES = [
    "",
    "   ",
    "Иванов Иван",
    "  ИВАНОВ   Пётр\tСЕМЁНОВИЧ ",
    "ООО «Клиника Мечта»",
    "Ёлкина\nЁлка",
]


class TestNormalizeName:

    def test_normalize(self):
        assert normalize_name("  ИВАНОВ   Пётр\tСЕМЁНОВИЧ ") == "иванов петр семенович"

    def test_empty(self):
        assert normalize_name("") == ""
        assert normalize_name("   ") == ""

    @pytest.mark.parametrize("name", NAMES)
    def test_idempotent(self, name):
        assert normalize_name(normalize_name(name)) == normalize_name(name)


class TestLevenshtein:

    def test_known_distance(self):
        assert levenshtein("kitten", "sitting") == 3
        assert levenshtein("иван", "иванов") == 2

    def test_empty(self):
        assert levenshtein("", "abc") == 3
        assert levenshtein("abc", "") == 3
        assert levenshtein("", "") == 0

    @pytest.mark.parametrize("a,b", [
        ("иванов", "петров"),
        ("мечта", "мечта плюс"),
        ("abc", "cab"),
    ])
    def test_symmetric(self, a, b):
        assert levenshtein(a, b) == levenshtein(b, a)
        assert levenshtein(a, a) == 0


class TestCharSimilarity:

    def test_both_empty_is_no_signal(self):
        assert char_similarity("", "") == 0

    def test_identical(self):
        assert char_similarity("мечта", "мечта") == 100

    def test_rounding(self):
        # 1 - 2/6 = 66.67%
        assert char_similarity("иван", "иванов") == 67

    def test_round_half_up(self):
        assert round_half_up(62.5) == 63
        assert round_half_up(91.5) == 92
        assert round_half_up(0.49) == 0


class TestNameSimilarity:

    def test_same_name(self):
        assert name_similarity("Иванов Иван", "Иванов Иван") == 100
        assert name_similarity("Семёнов", "СЕМЕНОВ") == 100

    def test_token_order_invariance(self):
        assert name_similarity("Иванов Иван", "Иван Иванов") >= 90

    def test_dissimilar_names(self):
        assert name_similarity("Иванов Иван", "Петров Пётр") < 30

    def test_missing_patronymic_penalized_by_coverage(self):
        # both tokens match perfectly, but only 2 of 3 tokens are covered
        assert name_similarity("Иванов Иван", "Иванов Иван Иванович") == 67

    def test_typo(self):
        # (83 + 100) / 2 = 91.5
        assert name_similarity("Иванов Иван", "Иваноф Иван") == 92

    def test_tokens_below_threshold_are_dropped(self):
        assert TOKEN_MATCH_THRESHOLD == 60
        # "анна" vs "петр" scores 0 and is not paired
        assert name_similarity("Иванов Анна", "Иванов Петр") == 50

    def test_empty(self):
        assert name_similarity("", "Иванов Иван") == 0
        assert name_similarity("Иванов Иван", "") == 0
        assert name_similarity("", "") == 0


class TestClinicSimilarity:

    def test_org_form_stripping(self):
        assert strip_clinic_name('ООО «Клиника Мечта»') == "мечта"
        assert strip_clinic_name('ОАО "Здоровье"') == "здоровье"

    def test_org_form_and_substring(self):
        assert clinic_similarity("ООО «Клиника Мечта»", "Мечта") >= 90

    def test_substring(self):
        assert clinic_similarity("Мечта", "Мечта Плюс") == 90
        assert clinic_similarity("Мечта Плюс", "Мечта") == 90

    def test_org_words_only_removed_as_whole_words(self):
        assert strip_clinic_name("Поликлиника №1") == "поликлиника №1"
        assert clinic_similarity("Поликлиника №1", "поликлиника  №1") == 100

    def test_levenshtein_fallback(self):
        assert clinic_similarity("Альфа", "Омега") == 20

    def test_empty(self):
        assert clinic_similarity("", "Мечта") == 0
        assert clinic_similarity("ООО", "Клиника") == 0
