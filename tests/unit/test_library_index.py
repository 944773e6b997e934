"""
Unit tests for LibraryIndex.

Each test builds a throwaway Steam root with steamapps/ manifests and an
optional libraryfolders.vdf pointing at extra libraries.
"""

import os

import pytest

from core.exceptions import LibraryNotFound, ManifestParseError
from core.library_index import LibraryIndex, parse_library_paths, parse_manifest


def _manifest(appid, name, installdir=None, extra=""):
    lines = ['"AppState"', "{", f'\t"appid"\t\t"{appid}"', '\t"Universe"\t\t"1"']
    if name is not None:
        lines.append(f'\t"name"\t\t"{name}"')
    if installdir is not None:
        lines.append(f'\t"installdir"\t\t"{installdir}"')
    lines.append(extra)
    lines.append("}")
    return "\n".join(lines)


def _write_manifest(library, appid, name, installdir=None, filename=None, extra=""):
    os.makedirs(library, exist_ok=True)
    path = os.path.join(library, filename or f"appmanifest_{appid}.acf")
    with open(path, "w", encoding="utf-8") as f:
        f.write(_manifest(appid, name, installdir, extra))
    return path


def _write_library_list(steam_root, *paths, subdir="steamapps"):
    body = ['"libraryfolders"', "{"]
    for i, p in enumerate(paths):
        escaped = p.replace("\\", "\\\\")
        body += [f'\t"{i}"', "\t{", f'\t\t"path"\t\t"{escaped}"', '\t\t"label"\t\t""', "\t}"]
    body.append("}")
    os.makedirs(os.path.join(steam_root, subdir), exist_ok=True)
    with open(os.path.join(steam_root, subdir, "libraryfolders.vdf"), "w", encoding="utf-8") as f:
        f.write("\n".join(body))


@pytest.fixture
def steam_root(tmp_path):
    root = tmp_path / "Steam"
    (root / "steamapps").mkdir(parents=True)
    return str(root)


# ── Discovery ─────────────────────────────────────────────────────────────────

class TestDiscover:
    def test_reads_default_library(self, steam_root):
        library = os.path.join(steam_root, "steamapps")
        _write_manifest(library, 70, "Half-Life", "Half-Life")

        games = LibraryIndex().discover(steam_root)

        assert len(games) == 1
        game = games[0]
        assert game.app_id == 70
        assert game.name == "Half-Life"
        assert game.install_dir == "Half-Life"
        assert game.install_path == os.path.join(library, "common", "Half-Life")
        assert game.library_path == library
        assert game.manifest_path.endswith("appmanifest_70.acf")

    def test_duplicate_appid_first_root_wins(self, steam_root, tmp_path):
        second = str(tmp_path / "Games")
        _write_manifest(os.path.join(steam_root, "steamapps"), 440, "Team Fortress 2", "Team Fortress 2")
        _write_manifest(os.path.join(second, "steamapps"), 440, "TF2 Copy", "tf2copy")
        _write_library_list(steam_root, steam_root, second)

        games = LibraryIndex().discover(steam_root)

        assert [g.app_id for g in games] == [440]
        assert games[0].name == "Team Fortress 2"
        assert games[0].library_path == os.path.join(steam_root, "steamapps")

    def test_duplicates_inside_one_library_kept_once(self, steam_root):
        library = os.path.join(steam_root, "steamapps")
        _write_manifest(library, 10, "Counter-Strike", "cs")
        _write_manifest(library, 10, "Counter-Strike", "cs", filename="appmanifest_10_backup.acf")

        games = LibraryIndex().discover(steam_root)

        assert len(games) == 1

    def test_extra_libraries_follow_default_library(self, steam_root, tmp_path):
        extra_a = str(tmp_path / "LibA")
        extra_b = str(tmp_path / "LibB")
        _write_manifest(os.path.join(steam_root, "steamapps"), 1, "Default Game")
        _write_manifest(os.path.join(extra_a, "steamapps"), 2, "Game A")
        _write_manifest(os.path.join(extra_b, "steamapps"), 3, "Game B")
        _write_library_list(steam_root, extra_b, extra_a)

        games = LibraryIndex().discover(steam_root)

        assert [g.app_id for g in games] == [1, 3, 2]

    def test_missing_extra_library_skipped(self, steam_root, tmp_path):
        _write_manifest(os.path.join(steam_root, "steamapps"), 1, "Default Game")
        _write_library_list(steam_root, str(tmp_path / "Unplugged"))

        games = LibraryIndex().discover(steam_root)

        assert [g.app_id for g in games] == [1]

    def test_empty_library_list_falls_back_to_config_copy(self, steam_root, tmp_path):
        extra = str(tmp_path / "LibA")
        _write_manifest(os.path.join(extra, "steamapps"), 2, "Game A")
        _write_library_list(steam_root)
        _write_library_list(steam_root, extra, subdir="config")

        index = LibraryIndex()

        assert index.library_roots(steam_root) == [
            os.path.join(steam_root, "steamapps"),
            os.path.join(extra, "steamapps"),
        ]
        assert [g.app_id for g in index.discover(steam_root)] == [2]

    def test_first_non_empty_library_list_wins(self, steam_root, tmp_path):
        extra_a = str(tmp_path / "LibA")
        extra_b = str(tmp_path / "LibB")
        _write_manifest(os.path.join(extra_a, "steamapps"), 2, "Game A")
        _write_manifest(os.path.join(extra_b, "steamapps"), 3, "Game B")
        _write_library_list(steam_root, extra_a)
        _write_library_list(steam_root, extra_b, subdir="config")

        games = LibraryIndex().discover(steam_root)

        assert [g.app_id for g in games] == [2]

    def test_invalid_manifests_skipped(self, steam_root):
        library = os.path.join(steam_root, "steamapps")
        _write_manifest(library, 20, None, "noname")
        with open(os.path.join(library, "appmanifest_garbage.acf"), "w", encoding="utf-8") as f:
            f.write("not a manifest at all {{{")
        _write_manifest(library, 30, "Valid Game", "valid")

        games = LibraryIndex().discover(steam_root)

        assert [g.app_id for g in games] == [30]

    def test_other_files_ignored(self, steam_root):
        library = os.path.join(steam_root, "steamapps")
        _write_manifest(library, 40, "Game", filename="appmanifest_40.acf.tmp")
        _write_manifest(library, 41, "Game", filename="notes.acf")

        assert LibraryIndex().discover(steam_root) == []

    def test_uses_constructor_root(self, steam_root):
        _write_manifest(os.path.join(steam_root, "steamapps"), 50, "Game")

        assert LibraryIndex(steam_root).discover()[0].app_id == 50

    def test_find_by_appid(self, steam_root):
        library = os.path.join(steam_root, "steamapps")
        _write_manifest(library, 60, "Sixty")
        _write_manifest(library, 61, "Sixty-One")

        index = LibraryIndex(steam_root)

        assert index.find(61).name == "Sixty-One"
        assert index.find("60").name == "Sixty"
        assert index.find(62) is None


class TestLibraryNotFound:
    def test_missing_root(self, tmp_path):
        with pytest.raises(LibraryNotFound):
            LibraryIndex().discover(str(tmp_path / "nowhere"))

    def test_root_without_steamapps(self, tmp_path):
        with pytest.raises(LibraryNotFound):
            LibraryIndex().discover(str(tmp_path))

    def test_no_root_configured(self):
        with pytest.raises(LibraryNotFound):
            LibraryIndex().discover()


# ── Text scanning ─────────────────────────────────────────────────────────────

class TestParsing:
    def test_library_paths_unescaped(self):
        content = '"0" { "path" "C:\\\\Program Files (x86)\\\\Steam" }\n"1" { "PATH"  "D:\\\\SteamLibrary" }'

        assert parse_library_paths(content) == ["C:\\Program Files (x86)\\Steam", "D:\\SteamLibrary"]

    def test_manifest_missing_appid(self):
        with pytest.raises(ManifestParseError):
            parse_manifest('"AppState" { "name" "Game" }', "m.acf", "/lib")

    def test_manifest_empty_name(self):
        with pytest.raises(ManifestParseError):
            parse_manifest('"AppState" { "appid" "5" "name" "" }', "m.acf", "/lib")

    def test_manifest_without_installdir(self):
        game = parse_manifest('"AppState" { "appid" "5" "name" "Game" }', "m.acf", "/lib")

        assert game.install_dir is None
        assert game.install_path is None

    def test_manifest_launch_executables(self):
        extra = (
            '\t"launch"\n\t{\n'
            '\t\t"0" { "executable" "bin\\\\Game.exe" "workingdir" "bin" }\n'
            '\t\t"1" { "executable" "Game.exe" }\n'
            '\t\t"2" { "executable" "bin\\\\Game.exe" }\n'
            "\t}"
        )
        game = parse_manifest(_manifest(7, "Game", "game", extra), "m.acf", "/lib")

        assert game.launch_executables == ("bin\\Game.exe", "Game.exe")

    def test_manifest_keys_case_insensitive(self):
        game = parse_manifest('"AppState" { "AppID" " 8 " "Name" "Eight" "InstallDir" "eight" }', "m.acf", "/lib")

        assert (game.app_id, game.name, game.install_dir) == (8, "Eight", "eight")
