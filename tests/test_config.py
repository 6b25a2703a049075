import dataclasses

from occams_rpc.config import ClientConfig, ServerConfig


def test_client_defaults():
    cfg = ClientConfig()
    assert cfg.task_timeout == 20
    assert cfg.thresholds == 128
    assert cfg.read_timeout == cfg.write_timeout
    assert cfg.idle_timeout > cfg.connect_timeout > cfg.read_timeout


def test_server_defaults():
    cfg = ServerConfig()
    assert cfg.server_close_wait == 90
    assert cfg.read_timeout == cfg.write_timeout
    assert cfg.idle_timeout == ClientConfig().idle_timeout
    assert cfg.stream_buf_size == ClientConfig().stream_buf_size


def test_copy_is_independent():
    cfg = ClientConfig()
    other = dataclasses.replace(cfg, thresholds=cfg.thresholds * 2)
    assert other.thresholds == cfg.thresholds * 2
    assert cfg == ClientConfig()
    assert other != cfg


def test_server_fields_settable():
    cfg = ServerConfig(stream_buf_size=4096)
    assert cfg.stream_buf_size == 4096
    assert dataclasses.replace(cfg) == cfg