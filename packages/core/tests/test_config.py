"""core.config 单元测试 -- 环境变量覆盖与非法值回退"""

from vistachat.core import config


class TestCoreConfig:
    """配置读取"""

    def test_defaults(self, monkeypatch):
        for var in (
            "VISTACHAT_DB_PATH",
            "VISTACHAT_DATA_DIR",
            "VISTACHAT_IMAGE_TARGET_KB",
            "VISTACHAT_IMAGE_MAX_DIMENSION",
            "VISTACHAT_IMAGE_NORMALIZE",
            "VISTACHAT_MAX_CONTEXT_MESSAGES",
        ):
            monkeypatch.delenv(var, raising=False)

        assert config.get_db_path().endswith("vistachat.db")
        assert config.get_image_target_kb() == 100
        assert config.get_image_max_dimension() == 1024
        assert config.is_image_normalize_enabled() is True
        assert config.get_max_context_messages() == 2

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("VISTACHAT_DB_PATH", "/tmp/x.db")
        monkeypatch.setenv("VISTACHAT_IMAGE_TARGET_KB", "250")
        monkeypatch.setenv("VISTACHAT_IMAGE_NORMALIZE", "false")
        monkeypatch.setenv("VISTACHAT_MAX_CONTEXT_MESSAGES", "6")

        assert config.get_db_path() == "/tmp/x.db"
        assert config.get_image_target_kb() == 250
        assert config.is_image_normalize_enabled() is False
        assert config.get_max_context_messages() == 6

    def test_invalid_int_falls_back(self, monkeypatch):
        monkeypatch.setenv("VISTACHAT_IMAGE_TARGET_KB", "lots")
        assert config.get_image_target_kb() == 100

    def test_negative_context_clamped(self, monkeypatch):
        monkeypatch.setenv("VISTACHAT_MAX_CONTEXT_MESSAGES", "-3")
        assert config.get_max_context_messages() == 0
