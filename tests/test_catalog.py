"""
Tests for the outlet catalog loader.

Catalog format:
    codename,name,type,pic

We need to:
1. Parse header + comma-delimited rows (no quoting support)
2. Drop rows whose field count does not match the header, and report them
3. Flag mainstream outlets
4. Fail loudly when nothing usable can be loaded
"""

import logging

import pytest

from mbi.catalog import (
    CatalogLoadError,
    find_outlet,
    load_catalog,
    outlets_by_type,
    parse_catalog,
    parse_catalog_string,
)


class TestCatalogParsing:
    """Test basic row parsing."""

    def test_parses_all_rows(self, catalog_csv, mainstream):
        outlets = parse_catalog_string(catalog_csv, mainstream)
        assert len(outlets) == 13
        assert [o.codename for o in outlets[:3]] == ["tg1", "tg2", "tg3"]

    def test_optional_pic(self, catalog):
        assert find_outlet(catalog, "tg1").pic == "https://example.org/tg1.png"
        assert find_outlet(catalog, "tg2").pic is None

    def test_mainstream_flag(self, catalog):
        assert find_outlet(catalog, "corriere").is_mainstream is True
        assert find_outlet(catalog, "repubblica").is_mainstream is False

    def test_whitespace_trimmed(self):
        outlets = parse_catalog_string("codename , name , type\n  tg1 ,  TG1 , tg  \n")
        assert outlets[0].codename == "tg1"
        assert outlets[0].name == "TG1"
        assert outlets[0].type == "tg"

    def test_pic_column_optional(self):
        outlets = parse_catalog_string("codename,name,type\ntg1,TG1,tg\n")
        assert outlets[0].pic is None

    def test_outlets_by_type(self, catalog):
        assert len(outlets_by_type(catalog, "radio")) == 2
        assert len(outlets_by_type(catalog, "tg")) == 5
        assert outlets_by_type(catalog, "podcast") == []


class TestLossyRows:
    """Rows with the wrong field count are dropped, not fixed up."""

    def test_extra_field_dropped(self):
        content = "codename,name,type\ntg1,TG1,tg\nfatto,Il Fatto, Quotidiano,press\nradio24,Radio 24,radio\n"
        result = parse_catalog(content)
        assert [o.codename for o in result.outlets] == ["tg1", "radio24"]
        assert result.dropped_lines == [3]

    def test_missing_field_dropped(self):
        result = parse_catalog("codename,name,type,pic\ntg1,TG1,tg\ntg2,TG2,tg,\n")
        assert [o.codename for o in result.outlets] == ["tg2"]
        assert result.dropped_lines == [2]

    def test_drops_are_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="mbi.catalog"):
            parse_catalog("codename,name,type\ntg1,TG1\ntg2,TG2,tg\n")
        assert "Dropped 1 malformed catalog row" in caplog.text


class TestCatalogErrors:
    """Failures that make a catalog unusable."""

    def test_empty_content(self):
        with pytest.raises(CatalogLoadError):
            parse_catalog_string("")

    def test_header_only(self):
        with pytest.raises(CatalogLoadError, match="No outlets"):
            parse_catalog_string("codename,name,type\n")

    def test_all_rows_dropped(self):
        with pytest.raises(CatalogLoadError):
            parse_catalog_string("codename,name,type\na,b\nc,d\n")

    def test_missing_required_column(self):
        with pytest.raises(CatalogLoadError, match="Missing required columns"):
            parse_catalog_string("codename,name\ntg1,TG1\n")

    def test_duplicate_codename(self):
        with pytest.raises(CatalogLoadError, match="Duplicate codename"):
            parse_catalog_string("codename,name,type\ntg1,TG1,tg\ntg1,TG1 bis,tg\n")

    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogLoadError, match="Failed to read"):
            load_catalog(str(tmp_path / "missing.csv"))


class TestLoadCatalogFile:

    def test_load_from_file(self, tmp_path, catalog_csv, mainstream):
        path = tmp_path / "outlets.csv"
        path.write_text(catalog_csv, encoding="utf-8")
        outlets = load_catalog(str(path), mainstream)
        assert len(outlets) == 13
        assert sum(o.is_mainstream for o in outlets) == 4
