"""
Tests for EnvironmentSnapshot: environment and platform resolution.
"""

import pytest

from prism.platform.environment import (
    DEFAULT_APP_VERSION,
    Environment,
    EnvironmentSnapshot,
    Platform,
)


class TestSnapshotValues:

    def test_empty_strings_are_absent(self, make_snapshot):
        snapshot = make_snapshot(SUPABASE_URL="", SWELL_STORE_ID="store")

        assert not snapshot.has("SUPABASE_URL")
        assert snapshot.get("SUPABASE_URL") is None
        assert snapshot.has("SWELL_STORE_ID")

    def test_values_are_read_only(self, make_snapshot):
        snapshot = make_snapshot(SUPABASE_URL="https://x")

        with pytest.raises(TypeError):
            snapshot.values["SUPABASE_URL"] = "other"

    def test_from_environ_keeps_only_tracked_variables(self):
        snapshot = EnvironmentSnapshot.from_environ({
            "SUPABASE_URL": "https://x",
            "HOME": "/root",
            "PATH": "/usr/bin",
        })

        assert dict(snapshot.values) == {"SUPABASE_URL": "https://x"}

    def test_from_environ_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv("SWELL_STORE_ID", "from-env")

        assert EnvironmentSnapshot.from_environ().get("SWELL_STORE_ID") == "from-env"


class TestEnvironmentResolution:

    def test_defaults_to_development(self, make_snapshot):
        assert make_snapshot().environment == Environment.DEVELOPMENT

    def test_env_production_marker(self, make_snapshot):
        assert make_snapshot(ENV="production").environment == Environment.PRODUCTION

    @pytest.mark.parametrize("value", ["development", "preview", "production"])
    def test_explicit_override_wins(self, make_snapshot, value):
        snapshot = make_snapshot(DEPLOYMENT_ENV=value, ENV="production")

        assert snapshot.environment == Environment(value)

    def test_invalid_override_is_ignored(self, make_snapshot):
        snapshot = make_snapshot(DEPLOYMENT_ENV="staging", ENV="production")

        assert snapshot.environment == Environment.PRODUCTION

    def test_non_production_env_value_is_development(self, make_snapshot):
        assert make_snapshot(ENV="test").environment == Environment.DEVELOPMENT


class TestPlatformResolution:

    def test_vercel(self, make_snapshot):
        assert make_snapshot(VERCEL="1").platform == Platform.VERCEL

    def test_render(self, make_snapshot):
        assert make_snapshot(RENDER="true", ENV="production").platform == Platform.RENDER

    def test_local_in_development(self, make_snapshot):
        assert make_snapshot().platform == Platform.LOCAL

    def test_other_outside_development(self, make_snapshot):
        assert make_snapshot(ENV="production").platform == Platform.OTHER


def test_app_version_default_and_override(make_snapshot):
    assert make_snapshot().app_version == DEFAULT_APP_VERSION
    assert make_snapshot(APP_VERSION="2.4.1").app_version == "2.4.1"
