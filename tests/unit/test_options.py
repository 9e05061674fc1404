"""
Unit tests for FilterOptions (options.py).
"""
import pytest
from asmfilter.parsing.options import FilterOptions


class TestFilterOptions:
    def test_defaults_all_off(self):
        assert FilterOptions().enabled() == []

    def test_non_bool_rejected(self):
        with pytest.raises(TypeError):
            FilterOptions(directives=1)

    def test_none_rejected(self):
        with pytest.raises(TypeError):
            FilterOptions(labels=None)

    def test_is_frozen(self):
        with pytest.raises(Exception):
            FilterOptions().labels = True

    def test_mask_filenames_needs_library(self):
        assert not FilterOptions().mask_filenames
        assert FilterOptions(library_code=True).mask_filenames
        assert not FilterOptions(library_code=True, dont_mask_filenames=True).mask_filenames


class TestMappings:
    def test_from_camel_case(self):
        opts = FilterOptions.from_mapping({"commentOnly": True, "libraryCode": True})
        assert opts.comment_only and opts.library_code

    def test_from_snake_case(self):
        assert FilterOptions.from_mapping({"dont_mask_filenames": True}).dont_mask_filenames

    def test_unknown_key(self):
        with pytest.raises(TypeError):
            FilterOptions.from_mapping({"trim": True})

    def test_wrong_value_type(self):
        with pytest.raises(TypeError):
            FilterOptions.from_mapping({"labels": "yes"})

    def test_to_mapping_uses_camel_case(self):
        mapping = FilterOptions(comment_only=True).to_mapping()
        assert mapping["commentOnly"] is True
        assert set(mapping) == {"directives", "labels", "commentOnly", "binary", "libraryCode", "dontMaskFilenames"}

    def test_mapping_roundtrip(self):
        opts = FilterOptions(directives=True, binary=True)
        assert FilterOptions.from_mapping(opts.to_mapping()) == opts


class TestToggleAndOrder:
    def test_toggle_camel(self):
        assert FilterOptions().toggled("commentOnly").comment_only

    def test_toggle_back(self):
        assert FilterOptions().toggled("labels").toggled("labels") == FilterOptions()

    def test_toggle_unknown(self):
        with pytest.raises(KeyError):
            FilterOptions().toggled("nope")

    def test_enabled_order(self):
        assert FilterOptions(labels=True, directives=True).enabled() == ["directives", "labels"]

    def test_subset_ordering(self):
        small = FilterOptions(labels=True)
        big = FilterOptions(labels=True, directives=True)
        assert small <= big
        assert not big <= small
