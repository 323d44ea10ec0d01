from apichain.config import DEFAULT_TIMEOUT, ExecutorConfig


def test_defaults():
    config = ExecutorConfig()
    assert config.timeout == DEFAULT_TIMEOUT == 30.0
    assert config.verify_ssl is True
    assert config.follow_redirects is True
    assert config.headers == {}


def test_from_dict_uses_kebab_case_keys():
    config = ExecutorConfig.from_dict(
        {"timeout": "5", "verify-ssl": False, "follow-redirects": False, "headers": {"X-Env": "ci"}}
    )
    assert config.timeout == 5.0
    assert config.verify_ssl is False
    assert config.follow_redirects is False
    assert config.headers == {"X-Env": "ci"}


def test_update_merges_headers():
    config = ExecutorConfig(headers={"A": "1"})
    config.update(timeout=1.5, headers={"B": "2"})
    assert config.timeout == 1.5
    assert config.verify_ssl is True
    assert config.headers == {"A": "1", "B": "2"}


def test_repr_hides_header_values():
    assert "secret" not in repr(ExecutorConfig(headers={"Authorization": "secret"}))


def test_proto_settings():
    config = ExecutorConfig.from_dict({"proto-files": ["users.proto"], "proto-include-dirs": ["protos"]})
    assert config.proto_files == ["users.proto"]
    assert config.proto_include_dirs == ["protos"]
    config.update(proto_files=["orders.proto"])
    assert config.proto_files == ["users.proto", "orders.proto"]
    assert ExecutorConfig().proto_files == []
