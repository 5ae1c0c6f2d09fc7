"""ConfigLoaderクラスのテスト.

実際のPython設定ファイルを作成してロードする.
"""

import pytest

from trtpredict.utils.config_loader import ConfigLoader


class TestConfigLoaderLoadConfig:
    """ConfigLoader.load_config()のテスト."""

    def test_load_basic_config(self, tmp_path):
        """基本的な設定ファイルを読み込める."""
        config_file = tmp_path / "config.py"
        config_file.write_text(
            'precision = "fp16"\nmax_batch_size = 8\nworkspace_size = 1 << 28\n',
            encoding="utf-8",
        )

        config = ConfigLoader.load_config(config_file)

        assert config["precision"] == "fp16"
        assert config["max_batch_size"] == 8
        assert config["workspace_size"] == 1 << 28

    def test_load_config_with_string_path(self, tmp_path):
        """文字列パスでも読み込める."""
        config_file = tmp_path / "config.py"
        config_file.write_text('trt_log_severity = "ERROR"\n', encoding="utf-8")

        assert ConfigLoader.load_config(str(config_file))["trt_log_severity"] == "ERROR"

    def test_excludes_private_and_callable(self, tmp_path):
        """アンダースコアで始まる変数と関数は除外される."""
        config_file = tmp_path / "config.py"
        config_file.write_text(
            '_private = "hidden"\npublic = "visible"\ndef helper():\n    return 1\n',
            encoding="utf-8",
        )

        config = ConfigLoader.load_config(config_file)

        assert config == {"public": "visible"}

    def test_missing_file(self, tmp_path):
        """存在しないファイルはFileNotFoundErrorになる."""
        with pytest.raises(FileNotFoundError, match="設定ファイルが見つかりません"):
            ConfigLoader.load_config(tmp_path / "missing.py")

    def test_syntax_error_is_runtime_error(self, tmp_path):
        """構文エラーのある設定ファイルはRuntimeErrorになる."""
        config_file = tmp_path / "config.py"
        config_file.write_text("max_batch_size = (\n", encoding="utf-8")

        with pytest.raises(RuntimeError, match="設定ファイルの実行に失敗しました"):
            ConfigLoader.load_config(config_file)
