"""Tests for turning a selector into a recorded constraint."""

import pytest

from fakes import packument
from versioning.errors import InvalidSelectorError, NoSatisfyingVersionError
from versioning.models import PackageMetadata
from versioning.selection import select_version


def _metadata(versions, dist_tags=None, name="pkg"):
    return PackageMetadata.from_document(packument(name, {v: None for v in versions}, dist_tags), name)


class TestSelectorEncoding:
    """Result shape follows the selector's operator."""

    def test_wildcard_pins_highest_version(self):
        meta = _metadata(["1.0.0", "2.3.0", "2.3.1"])
        assert select_version(meta, "*") == "2.3.1"

    def test_caret_is_preserved(self):
        meta = _metadata(["1.0.0", "1.4.2", "2.0.0"])
        assert select_version(meta, "^1.0.0") == "^1.4.2"

    def test_tilde_is_preserved(self):
        meta = _metadata(["1.2.0", "1.2.7", "1.3.0"])
        assert select_version(meta, "~1.2.0") == "~1.2.7"

    def test_dist_tag_pins(self):
        meta = _metadata(["2.0.0", "3.0.0"], {"latest": "3.0.0"})
        assert select_version(meta, "latest") == "3.0.0"

    def test_dist_tag_loose(self):
        meta = _metadata(["2.0.0", "3.0.0"], {"latest": "3.0.0"})
        assert select_version(meta, "latest", loose=True) == "~3.0.0"

    def test_other_tags(self):
        meta = _metadata(["3.0.0", "4.0.0-rc.1"], {"latest": "3.0.0", "next": "4.0.0-rc.1"})
        assert select_version(meta, "next") == "4.0.0-rc.1"

    def test_exact_version_pins(self):
        meta = _metadata(["1.2.0", "1.2.5"])
        assert select_version(meta, "1.2.0") == "1.2.0"

    def test_exact_version_loose_widens_to_tilde(self):
        meta = _metadata(["1.2.0", "1.2.5", "1.3.0"])
        assert select_version(meta, "1.2.0", loose=True) == "~1.2.5"

    def test_partial_version_pins_best_match(self):
        meta = _metadata(["1.0.0", "1.4.2", "2.0.0"])
        assert select_version(meta, "1.x") == "1.4.2"
        assert select_version(meta, "1.x", loose=True) == "~1.4.2"

    def test_comparator_range_pins_best_match(self):
        meta = _metadata(["1.0.0", "1.4.2", "2.0.0"])
        assert select_version(meta, ">=1.0.0 <2.0.0") == "1.4.2"


class TestSelectorErrors:
    """Invalid and unsatisfiable selectors."""

    def test_unknown_tag_is_invalid(self):
        meta = _metadata(["1.0.0"])
        with pytest.raises(InvalidSelectorError) as excinfo:
            select_version(meta, "canary")
        assert str(excinfo.value) == 'Invalid range or version: "canary".'

    def test_no_satisfying_version(self):
        meta = _metadata(["1.0.0", "1.1.0"], name="left-pad")
        with pytest.raises(NoSatisfyingVersionError) as excinfo:
            select_version(meta, "^2.0.0")
        assert excinfo.value.package == "left-pad"
        assert str(excinfo.value) == 'Version "^2.0.0" has no satisfying version for package left-pad'

    def test_no_satisfying_version_reports_widened_selector(self):
        meta = _metadata(["1.3.0"])
        with pytest.raises(NoSatisfyingVersionError) as excinfo:
            select_version(meta, "1.2.0", loose=True)
        assert excinfo.value.selector == "~1.2.0"
