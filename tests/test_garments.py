"""
Tests for garment resolution: group classification, variant and
blueprint lookup, and catalog loading.
"""

import json
from types import MappingProxyType

import pytest

from teegetha.config import GarmentCatalog, load_catalog
from teegetha.garments import (
    EXPLICIT, INFERRED, classify_member_group, resolve_blueprint, resolve_group,
    resolve_line, resolve_variant
)
from teegetha.models import GarmentGroup, Member


class TestClassifyMemberGroup:

    @pytest.mark.parametrize('name, description, expected', [
        ('Tommy', 'Young boy with a cap', GarmentGroup.KIDS),
        ('Daughter Amy', '', GarmentGroup.KIDS),
        ('Grandma Rose', 'Smiling', GarmentGroup.WOMEN),
        ('Pat', 'Aunt with red hair', GarmentGroup.WOMEN),
        ('Bob', 'Man with a beard', GarmentGroup.MEN),
        (None, None, GarmentGroup.MEN),
    ])
    def test_keywords(self, name, description, expected):
        assert classify_member_group(name, description) == expected

    def test_kid_hints_win_over_women_hints(self):
        # "girl" appears in both lists; kids are checked first
        assert classify_member_group('Little girl', '') == GarmentGroup.KIDS


class TestResolveGroup:

    def test_explicit_always_wins(self):
        member = Member(name='Mom', description='mother of three', shirt_type=GarmentGroup.MEN)
        resolution = resolve_group(member)

        assert resolution.group == GarmentGroup.MEN
        assert resolution.source == EXPLICIT

    def test_inferred_when_absent(self):
        resolution = resolve_group(Member(name='Mom'))

        assert resolution.group == GarmentGroup.WOMEN
        assert resolution.source == INFERRED
        assert resolution.is_inferred


class TestResolveVariant:

    def test_exact_match(self, catalog):
        assert resolve_variant(catalog, GarmentGroup.MEN, 'L', 'Black') == 103
        assert resolve_variant(catalog, GarmentGroup.MEN, 'M', 'Solid Athletic Grey') == 202
        assert resolve_variant(catalog, GarmentGroup.WOMEN, 'L', 'White') == 403

    def test_unknown_color_falls_back_to_black(self, catalog):
        assert resolve_variant(catalog, GarmentGroup.MEN, 'M', 'Neon Pink') == 102

    def test_falls_back_to_white_when_no_black(self):
        catalog = GarmentCatalog(variants_women={'White': {'M': 402}})
        assert resolve_variant(catalog, GarmentGroup.WOMEN, 'M', 'Red') == 402

    def test_missing_size_is_not_found(self, catalog):
        assert resolve_variant(catalog, GarmentGroup.MEN, '3XL', 'Black') is None

    def test_fallback_is_per_color_entry(self, catalog):
        # Grey exists but lacks size L; lookup does not retry under Black
        assert resolve_variant(catalog, GarmentGroup.MEN, 'L', 'Solid Athletic Grey') is None

    def test_kids_ignore_color(self, catalog):
        assert resolve_variant(catalog, GarmentGroup.KIDS, 'M', 'White') == 502
        assert resolve_variant(catalog, GarmentGroup.KIDS, 'M', None) == 502
        assert resolve_variant(catalog, GarmentGroup.KIDS, 'XL', 'Black') is None

    def test_empty_catalog_never_raises(self):
        catalog = GarmentCatalog()
        for group in GarmentGroup:
            assert resolve_variant(catalog, group, 'M', 'Black') is None


class TestResolveBlueprint:

    def test_per_group(self, catalog):
        assert resolve_blueprint(catalog, GarmentGroup.MEN) == 12
        assert resolve_blueprint(catalog, GarmentGroup.WOMEN) == 9
        assert resolve_blueprint(catalog, GarmentGroup.KIDS) == 81

    def test_unconfigured_group_uses_men(self):
        catalog = GarmentCatalog(blueprint_men=12)
        assert resolve_blueprint(catalog, GarmentGroup.KIDS) == 12

    def test_nothing_configured(self):
        assert resolve_blueprint(GarmentCatalog(), GarmentGroup.WOMEN) == 0


class TestResolveLine:

    def test_member_color_then_order_color(self, catalog):
        member = Member(shirt_type=GarmentGroup.WOMEN, size='M', shirt_color_name='White')
        assert resolve_line(catalog, member, 'Black') == (9, 402)

        member = Member(shirt_type=GarmentGroup.WOMEN, size='M')
        assert resolve_line(catalog, member, 'White') == (9, 402)
        assert resolve_line(catalog, member) == (9, 302)

    def test_unresolvable(self, catalog):
        member = Member(shirt_type=GarmentGroup.MEN, size='XS')
        assert resolve_line(catalog, member, 'Black') is None


class TestLoadCatalog:

    def test_catalog_is_immutable(self, catalog):
        assert isinstance(catalog.variants_men, MappingProxyType)
        with pytest.raises(TypeError):
            catalog.variants_men['Black']['M'] = 1
        with pytest.raises(Exception):
            catalog.blueprint_men = 1

    def test_yaml_with_env_overrides(self, tmp_path, monkeypatch):
        path = tmp_path / 'catalog.yaml'
        path.write_text(
            "print_provider_id: 3\n"
            "blueprint_men: 12\n"
            "variants_men:\n"
            "  Black:\n"
            "    M: 1\n"
        )
        monkeypatch.setenv('PRINTIFY_PRINT_PROVIDER_ID', '29')
        monkeypatch.setenv('PRINTIFY_VARIANT_MAP_KIDS', json.dumps({'S': 77}))
        monkeypatch.delenv('PRINTIFY_VARIANTS_MEN', raising=False)

        catalog = load_catalog(str(path))

        assert catalog.print_provider_id == 29
        assert catalog.blueprint_men == 12
        assert catalog.variants_men['Black']['M'] == 1
        assert catalog.variants_kids['S'] == 77

    def test_bad_json_env_is_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setenv('PRINTIFY_VARIANTS_WOMEN', '{not json')
        catalog = load_catalog(str(tmp_path / 'missing.yaml'))

        assert dict(catalog.variants_women) == {}
