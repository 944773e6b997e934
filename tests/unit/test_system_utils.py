"""
Unit tests for the run-flag and launch boundaries.
"""

import os
import subprocess

import pytest

from core.exceptions import LaunchError, RunFlagUnavailable
from utils import system_utils
from utils.system_utils import (
    RegistryRunFlag,
    RunFlag,
    VdfRunFlag,
    build_launch_uri,
    create_run_flag,
    launch_via_uri,
)


REGISTRY_VDF = """
"Registry"
{
	"HKCU"
	{
		"Software"
		{
			"Valve"
			{
				"Steam"
				{
					"RunningAppID"		"70"
					"apps"
					{
						"70"
						{
							"Running"		"1"
							"installed"		"1"
						}
						"440"
						{
							"Running"		"0"
						}
						"620"
						{
							"installed"		"1"
						}
					}
				}
			}
		}
	}
}
"""


@pytest.fixture
def registry_vdf(tmp_path):
    path = tmp_path / "registry.vdf"
    path.write_text(REGISTRY_VDF, encoding="utf-8")
    return str(path)


# ── Run flag ──────────────────────────────────────────────────────────────────

class TestVdfRunFlag:
    def test_running_app(self, registry_vdf):
        assert VdfRunFlag(registry_vdf).is_running(70)

    def test_stopped_app(self, registry_vdf):
        assert not VdfRunFlag(registry_vdf).is_running(440)

    def test_app_without_running_key(self, registry_vdf):
        assert not VdfRunFlag(registry_vdf).is_running(620)

    def test_unknown_app_is_not_running(self, registry_vdf):
        assert not VdfRunFlag(registry_vdf).is_running(9999)

    def test_missing_file_is_not_running(self, tmp_path):
        assert not VdfRunFlag(str(tmp_path / "missing.vdf")).is_running(70)

    def test_unavailable_raised_internally(self, tmp_path):
        with pytest.raises(RunFlagUnavailable):
            VdfRunFlag(str(tmp_path / "missing.vdf"))._read(70)


class TestRunFlagBase:
    def test_unavailable_maps_to_false(self):
        class Broken(RunFlag):
            def _read(self, app_id):
                raise RunFlagUnavailable("no registry")

        assert Broken().is_running(1) is False

    @pytest.mark.skipif(os.name == "nt", reason="registry exists on Windows")
    def test_registry_flag_off_windows(self):
        assert RegistryRunFlag().is_running(70) is False

    def test_platform_choice(self):
        expected = RegistryRunFlag if os.name == "nt" else VdfRunFlag
        assert isinstance(create_run_flag(), expected)


# ── Launch ────────────────────────────────────────────────────────────────────

class TestLaunchUri:
    def test_plain_uri(self):
        assert build_launch_uri(2477340) == "steam://run/2477340"

    def test_uri_with_options(self):
        assert build_launch_uri("70", "-novid -console") == "steam://run/70//-novid -console"

    def test_custom_scheme(self):
        assert build_launch_uri(70, scheme="app") == "app://run/70"

    @pytest.mark.parametrize("bad", [0, -1, "abc", None])
    def test_invalid_target(self, bad):
        with pytest.raises(LaunchError):
            build_launch_uri(bad)


@pytest.mark.skipif(os.name == "nt", reason="POSIX opener")
class TestLaunchViaUri:
    def test_hands_uri_to_opener(self, monkeypatch):
        calls = []
        monkeypatch.setattr(system_utils.subprocess, "run", lambda args, **kw: calls.append(args))

        assert launch_via_uri(70) == "steam://run/70"
        assert calls[0][-1] == "steam://run/70"

    def test_os_rejection_raises(self, monkeypatch):
        def _reject(args, **kw):
            raise subprocess.CalledProcessError(4, args, stderr=b"no handler")

        monkeypatch.setattr(system_utils.subprocess, "run", _reject)

        with pytest.raises(LaunchError, match="no handler"):
            launch_via_uri(70)

    def test_missing_opener_raises(self, monkeypatch):
        def _missing(args, **kw):
            raise FileNotFoundError(args[0])

        monkeypatch.setattr(system_utils.subprocess, "run", _missing)

        with pytest.raises(LaunchError):
            launch_via_uri(70)
