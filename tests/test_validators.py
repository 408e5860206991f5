"""
Tests for validation utilities.
"""

import pytest

from allbeads.utils.validators import (
    validate_rig_name,
    validate_remote,
    validate_bead_id,
    ValidationError,
)


class TestValidateRigName:
    """Tests for rig name validation."""

    def test_valid_names(self):
        assert validate_rig_name("alpha") == "alpha"
        assert validate_rig_name("my-repo.v2") == "my-repo.v2"
        assert validate_rig_name("  padded ") == "padded"

    @pytest.mark.parametrize("name", ["", "has/slash", "has space", "-leading", "a" * 101])
    def test_invalid_names(self, name):
        with pytest.raises(ValidationError) as exc:
            validate_rig_name(name)
        assert exc.value.field == "name"


class TestValidateRemote:
    """Tests for git remote validation."""

    @pytest.mark.parametrize("remote", [
        "https://github.com/example/repo.git",
        "ssh://git@github.com/example/repo.git",
        "git@github.com:example/repo.git",
        "file:///srv/git/repo.git",
    ])
    def test_valid_remotes(self, remote):
        assert validate_remote(remote) == remote

    def test_unknown_scheme(self):
        with pytest.raises(ValidationError):
            validate_remote("ftp://example.com/repo")

    def test_missing_host(self):
        with pytest.raises(ValidationError):
            validate_remote("https:///repo.git")

    def test_plain_text(self):
        with pytest.raises(ValidationError) as exc:
            validate_remote("just words")
        assert exc.value.field == "remote"


class TestValidateBeadId:
    """Tests for bead id validation."""

    def test_valid_ids(self):
        assert validate_bead_id("ab-12") == "ab-12"
        assert validate_bead_id("shadow-e1-a2") == "shadow-e1-a2"

    @pytest.mark.parametrize("bead_id", ["", "a/b", "with space", "tab\there"])
    def test_invalid_ids(self, bead_id):
        with pytest.raises(ValidationError):
            validate_bead_id(bead_id)
