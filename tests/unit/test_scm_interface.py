"""Unit tests for SCM model types."""

from datetime import datetime

import pytest

from svn_updater.scm.interface import Depth, External, ModuleLocation, Revision, RevisionKind


class TestRevision:
    """Test Revision parsing and rendering."""

    def test_parse_number(self):
        """Test plain and r-prefixed revision numbers."""
        assert Revision.parse("100") == Revision.of(100)
        assert Revision.parse("r42").number == 42
        assert Revision.parse(" 7 ").number == 7

    def test_parse_keywords(self):
        """Test keyword revisions are case-insensitive."""
        assert Revision.parse("HEAD") is not None
        assert Revision.parse("head") == Revision.HEAD
        assert Revision.parse("Base").kind is RevisionKind.BASE
        assert Revision.parse("PREV").kind is RevisionKind.PREV
        assert Revision.parse("committed").kind is RevisionKind.COMMITTED

    def test_parse_date(self):
        """Test braced ISO dates."""
        revision = Revision.parse("{2024-01-31T12:30:00}")
        assert revision.kind is RevisionKind.DATE
        assert revision.date == datetime(2024, 1, 31, 12, 30)
        assert revision.to_cli() == "{2024-01-31T12:30:00}"

    @pytest.mark.parametrize("text", ["", "abc", "-1", "{not a date}", "12x"])
    def test_parse_invalid(self, text):
        """Test unparseable specifiers raise ValueError."""
        with pytest.raises(ValueError):
            Revision.parse(text)

    def test_to_cli(self):
        """Test rendering for svn -r."""
        assert Revision.of(5).to_cli() == "5"
        assert Revision.HEAD.to_cli() == "HEAD"
        assert str(Revision.of(12)) == "12"

    def test_negative_number_rejected(self):
        """Test that negative revision numbers are invalid."""
        with pytest.raises(ValueError):
            Revision.of(-1)


class TestDepth:
    """Test depth option mapping."""

    def test_known_options(self):
        """Test each depth name maps to its member."""
        assert Depth.from_option("empty") is Depth.EMPTY
        assert Depth.from_option("files") is Depth.FILES
        assert Depth.from_option("immediates") is Depth.IMMEDIATES
        assert Depth.from_option("infinity") is Depth.INFINITY

    def test_as_it_is(self):
        """Test as-it-is keeps the client default."""
        assert Depth.from_option("as-it-is") is Depth.UNKNOWN
        assert Depth.from_option("unknown") is Depth.UNKNOWN

    def test_unrecognized_defaults_to_infinity(self):
        """Test unknown options check out everything."""
        assert Depth.from_option("bogus") is Depth.INFINITY
        assert Depth.from_option(None) is Depth.INFINITY


class TestModuleLocation:
    """Test ModuleLocation derived properties."""

    def test_plain_url(self):
        """Test URL without peg revision."""
        location = ModuleLocation("https://svn.example.com/repo/trunk", local="src")
        assert location.url == "https://svn.example.com/repo/trunk"
        assert location.revision is None
        assert location.local_dir == "src"

    def test_peg_suffix(self):
        """Test @REV suffix is split off the URL."""
        location = ModuleLocation("https://svn.example.com/repo/trunk@1234")
        assert location.url == "https://svn.example.com/repo/trunk"
        assert location.revision == Revision.of(1234)

    def test_user_in_authority_is_not_peg(self):
        """Test user@host is left alone."""
        location = ModuleLocation("svn+ssh://builder@svn.example.com/repo/trunk")
        assert location.url == "svn+ssh://builder@svn.example.com/repo/trunk"
        assert location.revision is None

    def test_local_dir_defaults_to_basename(self):
        """Test local dir falls back to the last URL segment."""
        assert ModuleLocation("https://svn.example.com/repo/trunk/").local_dir == "trunk"
        assert ModuleLocation("https://svn.example.com/repo/app@7").local_dir == "app"

    def test_depth(self):
        """Test depth option is mapped."""
        assert ModuleLocation("file:///r", depth_option="files").depth is Depth.FILES
        assert ModuleLocation("file:///r").depth is Depth.INFINITY


class TestExternal:
    """Test External records."""

    def test_revision_fixed(self):
        """Test pinned and floating externals."""
        assert External("mod/lib", "file:///r/lib", 3).is_revision_fixed is True
        assert External("mod/lib", "file:///r/lib").is_revision_fixed is False
