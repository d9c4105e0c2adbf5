"""Tests for layered settings resolution."""
import pytest
from pathlib import Path

from flexlist.core.config import Settings, load_settings, read_settings_file
from flexlist.core.exceptions import ValidationError


@pytest.fixture
def config_file(tmp_dir):
    """YAML settings file selecting the local backend."""
    path = tmp_dir / "flexlist.yaml"
    path.write_text(
        "backend: local\n"
        "snapshot_path: /srv/catalog/flexlist_db.json\n"
        "seed_sample_data: false\n",
        encoding="utf-8",
    )
    return path


class TestReadSettingsFile:
    """Tests for read_settings_file."""

    def test_missing_file_is_empty(self, tmp_dir):
        assert read_settings_file(tmp_dir / "absent.yaml") == {}

    def test_reads_mapping(self, config_file):
        data = read_settings_file(config_file)
        assert data["backend"] == "local"
        assert data["seed_sample_data"] is False

    def test_rejects_non_mapping(self, tmp_dir):
        path = tmp_dir / "list.yaml"
        path.write_text("- durable\n- local\n", encoding="utf-8")
        with pytest.raises(ValidationError):
            read_settings_file(path)


class TestLoadSettings:
    """Tests for the defaults < file < environment < overrides layering."""

    def test_defaults(self, tmp_dir):
        settings = load_settings(tmp_dir / "absent.yaml", environ={})
        assert settings.backend == Settings().backend == "durable"
        assert settings.seed_sample_data is True

    def test_file_layer(self, config_file):
        settings = load_settings(config_file, environ={})
        assert settings.backend == "local"
        assert settings.snapshot_path == Path("/srv/catalog/flexlist_db.json")
        assert settings.seed_sample_data is False

    def test_environment_beats_file(self, config_file):
        settings = load_settings(
            config_file,
            environ={"FLEXLIST_BACKEND": "durable", "FLEXLIST_SEED": "yes"},
        )
        assert settings.backend == "durable"
        assert settings.seed_sample_data is True

    def test_overrides_beat_environment(self, config_file, tmp_dir):
        settings = load_settings(
            config_file,
            overrides={"backend": "local", "db_path": str(tmp_dir / "x.db"), "log_dir": None},
            environ={"FLEXLIST_BACKEND": "durable"},
        )
        assert settings.backend == "local"
        assert settings.db_path == tmp_dir / "x.db"

    def test_unknown_backend(self, tmp_dir):
        with pytest.raises(ValidationError) as exc_info:
            load_settings(tmp_dir / "absent.yaml", environ={"FLEXLIST_BACKEND": "cloud"})
        assert exc_info.value.field == "backend"

    def test_bad_boolean(self, tmp_dir):
        with pytest.raises(ValidationError):
            load_settings(tmp_dir / "absent.yaml", environ={"FLEXLIST_SEED": "maybe"})

    def test_paths_expand_user(self, tmp_dir):
        settings = load_settings(
            tmp_dir / "absent.yaml", environ={"FLEXLIST_LOG_DIR": "~/flexlist-logs"}
        )
        assert settings.log_dir == Path("~/flexlist-logs").expanduser()
