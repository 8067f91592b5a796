import pytest
from types import SimpleNamespace

from app.core.enums import RuleType
from app.services.eligibility import (
    BrandPartRule,
    DEFAULT_BRAND_PART_RULES,
    RuleSet,
    build_rule_set,
    describe_part_for_brand,
    filter_available,
    filter_unavailable,
    is_available,
    normalize_brand,
    rule_from_record,
)
from app.services.parts_rules import evaluate_parts


def record(part_name, rule_type, brands, description=None):
    return SimpleNamespace(
        part_name=part_name, rule_type=rule_type, brands=brands, description=description
    )


class TestIsAvailable:

    @pytest.mark.parametrize("brand", ["Audi", "Toyota", "", None, "Anything"])
    def test_part_without_rule_is_available(self, brand):
        assert is_available("Bonnet", brand, DEFAULT_BRAND_PART_RULES) is True

    @pytest.mark.parametrize("brand,expected", [
        ("Audi", True),
        ("Toyota", False),
        ("BMW", True),
        ("Ssang Yong", True),
    ])
    def test_camera(self, brand, expected):
        assert is_available("Camera", brand, DEFAULT_BRAND_PART_RULES) is expected

    def test_exclusion_beats_inclusion(self):
        rules = {"Oil Cooler": BrandPartRule(required_for=("Subaru",), not_required_for=("Subaru",))}
        assert is_available("Oil Cooler", "Subaru", rules) is False

    def test_not_required_for_only_excludes_listed_brands(self):
        assert is_available("Oil Cooler", "Subaru", DEFAULT_BRAND_PART_RULES) is False
        assert is_available("Oil Cooler", "Toyota", DEFAULT_BRAND_PART_RULES) is True

    @pytest.mark.parametrize("brand", ["audi", "AUDI", "  Audi  ", "aUdI\t"])
    def test_brand_compare_ignores_case_and_whitespace(self, brand):
        assert is_available("Camera", brand, DEFAULT_BRAND_PART_RULES) is True

    def test_rule_brands_are_normalized_too(self):
        rules = {"Camera": BrandPartRule(required_for=(" land rover ",))}
        assert is_available("Camera", "Land Rover", rules) is True

    @pytest.mark.parametrize("brand", ["", "   ", None])
    def test_empty_brand(self, brand):
        assert is_available("Camera", brand, DEFAULT_BRAND_PART_RULES) is False
        assert is_available("Oil Cooler", brand, DEFAULT_BRAND_PART_RULES) is True

    def test_empty_rule_allows_everything(self):
        rules = {"Camera": BrandPartRule()}
        assert is_available("Camera", "Toyota", rules) is True


class TestFiltering:

    parts = ["Camera", "Bonnet", "Oil Cooler", "Parking Sensor", "Left Rear Lamp"]

    def test_partition(self):
        available = filter_available(self.parts, "Toyota", DEFAULT_BRAND_PART_RULES)
        unavailable = filter_unavailable(self.parts, "Toyota", DEFAULT_BRAND_PART_RULES)

        assert available == ["Bonnet", "Oil Cooler", "Left Rear Lamp"]
        assert unavailable == ["Camera", "Parking Sensor"]
        assert sorted(available + unavailable) == sorted(self.parts)

    @pytest.mark.parametrize("brand", ["Audi", "Toyota", "Subaru", "Nissan", ""])
    def test_filter_is_idempotent(self, brand):
        once = filter_available(self.parts, brand, DEFAULT_BRAND_PART_RULES)
        twice = filter_available(once, brand, DEFAULT_BRAND_PART_RULES)
        assert once == twice

    def test_order_is_preserved(self):
        parts = ["Left Rear Lamp", "Bonnet", "Camera"]
        assert filter_available(parts, "Kia", DEFAULT_BRAND_PART_RULES) == ["Left Rear Lamp", "Bonnet"]


class TestDescribe:

    def test_listed_brand(self):
        assert describe_part_for_brand("Camera", "Audi", DEFAULT_BRAND_PART_RULES) == "Required for Audi"

    def test_excluded_brand(self):
        assert (
            describe_part_for_brand("Intercooler", "Subaru", DEFAULT_BRAND_PART_RULES)
            == "Not required for Subaru"
        )

    def test_unlisted_brand_gets_rule_description(self):
        assert (
            describe_part_for_brand("Camera", "Toyota", DEFAULT_BRAND_PART_RULES)
            == "Required for European and Chinese brands"
        )

    def test_no_rule(self):
        assert describe_part_for_brand("Bonnet", "Audi", DEFAULT_BRAND_PART_RULES) is None


class TestRuleSet:

    def test_records_replace_defaults_per_part(self):
        rule_set = build_rule_set([record("Camera", RuleType.REQUIRED_FOR, ["Toyota"])])

        assert is_available("Camera", "Toyota", rule_set) is True
        assert is_available("Camera", "Audi", rule_set) is False
        assert is_available("Oil Cooler", "Subaru", rule_set) is False

    def test_not_required_for_record(self):
        rule_set = build_rule_set(
            [record("Turbo", "not_required_for", ["Subaru"], "No turbo on Subaru")], defaults={}
        )
        assert list(rule_set) == ["Turbo"]
        assert rule_set["Turbo"].not_required_for == ("Subaru",)
        assert is_available("Turbo", "subaru", rule_set) is False

    def test_unknown_rule_type_is_unrestricted(self):
        rule = rule_from_record("sometimes", ["Audi"], "odd")
        assert rule == BrandPartRule(description="odd")

    def test_blank_brands_are_dropped(self):
        rule = rule_from_record(RuleType.REQUIRED_FOR, ["Audi", "  ", None, ""])
        assert rule.required_for == ("Audi",)

    def test_version_tracks_content(self):
        first = build_rule_set()
        assert first.version == build_rule_set().version

        changed = build_rule_set([record("Camera", RuleType.REQUIRED_FOR, ["Toyota"])])
        assert changed.version != first.version

    def test_dict_round_trip_keeps_version(self):
        rule_set = build_rule_set()
        restored = RuleSet.from_dict(rule_set.to_dict())
        assert restored.version == rule_set.version
        assert restored["Camera"] == rule_set["Camera"]

    def test_mapping_is_read_only(self):
        rule_set = build_rule_set()
        with pytest.raises(TypeError):
            rule_set["Camera"] = BrandPartRule()


class TestEvaluateParts:

    def test_camera_scenario(self):
        rule_set = RuleSet({"Camera": BrandPartRule(required_for=("Audi", "BMW"))})

        assert evaluate_parts(rule_set, "Audi", ["Camera"])["available"] == ["Camera"]
        assert evaluate_parts(rule_set, "Toyota", ["Camera"])["unavailable"] == ["Camera"]
        assert evaluate_parts(rule_set, "Toyota", ["Bonnet"])["available"] == ["Bonnet"]

    def test_defaults_to_known_parts(self):
        rule_set = build_rule_set()
        result = evaluate_parts(rule_set, "Subaru")

        assert sorted(result["available"] + result["unavailable"]) == sorted(rule_set)
        assert "Oil Cooler" in result["unavailable"]
        assert result["descriptions"]["Oil Cooler"] == "Not required for Subaru"
        assert result["rules_version"] == rule_set.version


def test_normalize_brand():
    assert normalize_brand("  Land Rover ") == "land rover"
    assert normalize_brand(None) == ""
