"""Tests for shared.build_info module."""

import importlib
from unittest.mock import patch

import shared.build_info as build_info_module


class TestBuildInfo:
    def test_app_version_reads_from_env(self):
        with patch.dict("os.environ", {"APP_VERSION": "1.2.3"}):
            importlib.reload(build_info_module)
            assert build_info_module.APP_VERSION == "1.2.3"
        importlib.reload(build_info_module)

    def test_git_commit_reads_from_env(self):
        with patch.dict("os.environ", {"GIT_COMMIT": "abc1234"}):
            importlib.reload(build_info_module)
            assert build_info_module.GIT_COMMIT == "abc1234"
        importlib.reload(build_info_module)

    def test_version_defaults_to_dev_when_not_installed(self):
        with patch("shared.build_info.version", side_effect=build_info_module.PackageNotFoundError):
            assert build_info_module._package_version() == "dev"
