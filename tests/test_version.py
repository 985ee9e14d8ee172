import pytest

from rukpak.version import BuildInfo, version_string


def test_default_string():
    assert str(BuildInfo()) == 'revision: "unknown", date: "unknown", state: "unknown"'


def test_version_string_without_settings():
    assert version_string() == str(BuildInfo())


@pytest.mark.parametrize("modified,state", [("true", "dirty"), ("false", "clean")])
def test_modified_maps_to_state(modified, state):
    info = BuildInfo.from_settings({"vcs.modified": modified})
    assert info.repo_state == state


def test_unexpected_modified_value_stays_unknown():
    info = BuildInfo.from_settings({"vcs.modified": "maybe"})
    assert info.repo_state == BuildInfo().repo_state


def test_revision_and_time_from_pairs():
    info = BuildInfo.from_settings(
        [("vcs.revision", "abc123"), ("vcs.time", "2023-03-01T00:00:00Z"), ("other", "x")]
    )
    assert info.git_commit == "abc123"
    assert info.commit_date == "2023-03-01T00:00:00Z"
    assert 'revision: "abc123"' in str(info)


def test_quotes_are_escaped():
    info = BuildInfo.from_settings({"vcs.revision": 'a"b'})
    assert str(info).startswith('revision: "a\\"b"')