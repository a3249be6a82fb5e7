"""Test the category registry and the budget fraction table."""

import json

import pytest

from astrobot.categories import (
    DEFAULT_BUDGET_FRACTIONS,
    PIPELINE_STAGES,
    ComponentCategory,
    load_budget_fractions,
)
from astrobot.errors import ConfigurationError


class TestCatalogTranslation:
    """Test translation between categories and catalog labels."""

    @pytest.mark.parametrize(
        "tag,expected",
        [
            ("PROCESSEUR", ComponentCategory.CPU),
            ("CARTE MÈRE", ComponentCategory.MOTHERBOARD),
            ("carte graphique", ComponentCategory.GPU),
            ("BARETTE MÉMOIRE", ComponentCategory.RAM),
            ("ALIMENTATION", ComponentCategory.PSU),
            ("BOITIER", ComponentCategory.CASE),
            ("REFROIDISSEMENT", ComponentCategory.COOLING),
        ],
    )
    def test_from_catalog_tag(self, tag, expected):
        assert ComponentCategory.from_catalog_tag(tag) is expected

    @pytest.mark.parametrize("tag", ["DISQUE-SSD", "DISQUE-NVME", "DISQUE-HDD", "STORAGE"])
    def test_storage_tags_map_to_storage(self, tag):
        assert ComponentCategory.from_catalog_tag(tag) is ComponentCategory.STORAGE

    @pytest.mark.parametrize("tag", [None, "", "VENTILATEUR", 42])
    def test_unknown_tags(self, tag):
        assert ComponentCategory.from_catalog_tag(tag) is None

    def test_labels_round_trip(self):
        for category in ComponentCategory:
            assert ComponentCategory.from_catalog_tag(category.catalog_label) is category

    def test_from_value_accepts_value_and_label(self):
        assert ComponentCategory.from_value("gpu") is ComponentCategory.GPU
        assert ComponentCategory.from_value("CARTE GRAPHIQUE") is ComponentCategory.GPU
        with pytest.raises(ValueError):
            ComponentCategory.from_value("keyboard")


class TestPipelineStages:
    def test_cpu_and_motherboard_are_chosen_together_first(self):
        assert PIPELINE_STAGES[0] == (ComponentCategory.CPU, ComponentCategory.MOTHERBOARD)
        assert PIPELINE_STAGES[1] == (ComponentCategory.GPU,)

    def test_remaining_order_is_fixed(self):
        remaining = [stage[0] for stage in PIPELINE_STAGES[2:]]
        assert remaining == [
            ComponentCategory.RAM,
            ComponentCategory.STORAGE,
            ComponentCategory.PSU,
            ComponentCategory.CASE,
            ComponentCategory.COOLING,
        ]

    def test_every_category_appears_exactly_once(self):
        flat = [c for stage in PIPELINE_STAGES for c in stage]
        assert sorted(flat, key=lambda c: c.value) == sorted(ComponentCategory, key=lambda c: c.value)


class TestBudgetFractions:
    """Test the fraction table and its file override."""

    def test_defaults_cover_every_category(self):
        assert set(DEFAULT_BUDGET_FRACTIONS) == set(ComponentCategory)
        for low, high in DEFAULT_BUDGET_FRACTIONS.values():
            assert 0 <= low <= high

    def test_cpu_fractions(self):
        assert DEFAULT_BUDGET_FRACTIONS[ComponentCategory.CPU] == (0.1517, 0.3209)

    def test_no_path_returns_copy_of_defaults(self):
        fractions = load_budget_fractions()
        assert fractions == DEFAULT_BUDGET_FRACTIONS
        fractions[ComponentCategory.CPU] = (0.0, 1.0)
        assert DEFAULT_BUDGET_FRACTIONS[ComponentCategory.CPU] == (0.1517, 0.3209)

    def test_file_overrides_listed_categories(self, tmp_path):
        path = tmp_path / "fractions.json"
        path.write_text(
            json.dumps({"cpu": {"min": 0.2, "max": 0.25}, "CARTE GRAPHIQUE": [0.3, 0.5]}),
            encoding="utf-8",
        )

        fractions = load_budget_fractions(path)

        assert fractions[ComponentCategory.CPU] == (0.2, 0.25)
        assert fractions[ComponentCategory.GPU] == (0.3, 0.5)
        assert fractions[ComponentCategory.RAM] == DEFAULT_BUDGET_FRACTIONS[ComponentCategory.RAM]

    @pytest.mark.parametrize(
        "content",
        [
            {"keyboard": {"min": 0.1, "max": 0.2}},
            {"cpu": {"min": 0.3, "max": 0.2}},
            {"cpu": {"min": -0.1, "max": 0.2}},
            {"cpu": {"min": "low", "max": 0.2}},
            {"cpu": 0.2},
            ["cpu"],
        ],
    )
    def test_invalid_files_are_rejected(self, tmp_path, content):
        path = tmp_path / "fractions.json"
        path.write_text(json.dumps(content), encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_budget_fractions(path)

    def test_missing_file_is_rejected(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_budget_fractions(tmp_path / "nope.json")
