"""
Configuration and core value type tests.

Run: python -m pytest boetools/tests/test_config.py -v
"""

from __future__ import annotations

from pathlib import Path

import pytest

from boetools.core.config import BOEToolsConfig, NodeIndexConfig, QueryConfig
from boetools.core.types import AuthType, LogonToken, NodeList, ObjectBatch


def assert_ok(result, message: str = "Expected Ok result"):
    """Assert that result is Ok."""
    if result.is_err():
        raise AssertionError(f"{message}: {result.error}")
    return result.unwrap()


def assert_err(result, message: str = "Expected Err result"):
    """Assert that result is Err."""
    if result.is_ok():
        raise AssertionError(f"{message}: Got Ok({result.unwrap()})")
    return result.error


class TestQueryConfig:
    def test_default(self):
        assert assert_ok(QueryConfig.from_env({})).max_batch_size == 1000

    def test_override(self):
        assert assert_ok(QueryConfig.from_env({"BOETOOLS_MAX_BATCH": " 50 "})).max_batch_size == 50

    @pytest.mark.parametrize("raw", ["abc", "0", "-5", "1.5"])
    def test_invalid(self, raw):
        error = assert_err(QueryConfig.from_env({"BOETOOLS_MAX_BATCH": raw}))
        assert error.startswith("Configuration error")


class TestBOEToolsConfig:
    def test_defaults(self):
        config = assert_ok(BOEToolsConfig.from_env({}))

        assert config.cluster_nodes == ()
        assert config.session.auth_type is AuthType.ENTERPRISE
        assert config.session.default_token_minutes == 1440
        assert config.session.default_token_uses == 10
        assert config.node_index.backend == "file"
        assert config.observability.log_json is True
        assert config.observability.metrics_enabled is True
        assert_ok(config.validate())

    def test_full_environment(self):
        env = {
            "BOETOOLS_CMS": " cms1:6400 ,cms2:6400 , cms3 ",
            "BOETOOLS_MAX_BATCH": "200",
            "BOETOOLS_AUTH_TYPE": "secLDAP",
            "BOETOOLS_TOKEN_MINUTES": "60",
            "BOETOOLS_TOKEN_USES": "3",
            "BOETOOLS_NODE_INDEX_BACKEND": "Redis",
            "BOETOOLS_NODE_INDEX_REDIS_URL": "redis://cache:6379/2",
            "BOETOOLS_NODE_INDEX_KEY": "ops:boe",
            "BOETOOLS_LOG_LEVEL": "debug",
            "BOETOOLS_LOG_JSON": "no",
            "BOETOOLS_METRICS_ENABLED": "false",
        }
        config = assert_ok(BOEToolsConfig.from_env(env))

        assert config.cluster_nodes == ("cms1:6400", "cms2:6400", "cms3")
        assert config.query.max_batch_size == 200
        assert config.session.auth_type is AuthType.LDAP
        assert (config.session.default_token_minutes, config.session.default_token_uses) == (60, 3)
        assert config.node_index == NodeIndexConfig(
            backend="redis",
            path=Path("./.boetools/node_index"),
            redis_url="redis://cache:6379/2",
            key="ops:boe",
        )
        assert config.observability.log_level == "DEBUG"
        assert config.observability.log_json is False
        assert config.observability.metrics_enabled is False
        assert_ok(config.validate())

    def test_unknown_auth_type(self):
        assert "authentication type" in assert_err(
            BOEToolsConfig.from_env({"BOETOOLS_AUTH_TYPE": "kerberos"})
        )

    def test_bad_token_uses(self):
        assert_err(BOEToolsConfig.from_env({"BOETOOLS_TOKEN_USES": "0"}))

    def test_validate_rejects_unknown_backend(self):
        config = assert_ok(BOEToolsConfig.from_env({"BOETOOLS_NODE_INDEX_BACKEND": "etcd"}))
        assert "backend" in assert_err(config.validate())

    def test_validate_rejects_unknown_log_level(self):
        config = assert_ok(BOEToolsConfig.from_env({"BOETOOLS_LOG_LEVEL": "chatty"}))
        assert_err(config.validate())


class TestNodeList:
    def test_strips_entries(self):
        assert NodeList.of([" a ", "b"]).nodes == ("a", "b")
        assert NodeList.of("a, b,c").nodes == ("a", "b", "c")

    def test_rejects_empty(self):
        with pytest.raises(ValueError):
            NodeList.of([])
        with pytest.raises(ValueError):
            NodeList.of(["a", "  "])

    def test_rotation_visits_each_once(self):
        nodes = NodeList.of(["a", "b", "c"])

        assert list(nodes.rotation(1)) == [(1, "b"), (2, "c"), (0, "a")]
        assert list(nodes.rotation(-4)) == [(2, "c"), (0, "a"), (1, "b")]
        assert list(NodeList.of(["solo"]).rotation(9)) == [(0, "solo")]


class TestValueTypes:
    def test_auth_type_parse(self):
        assert assert_ok(AuthType.parse("secWinAD")) is AuthType.WINDOWS_AD
        assert assert_ok(AuthType.parse("ldap")) is AuthType.LDAP
        assert_err(AuthType.parse("secSAP"))

    def test_token_hint(self):
        token = LogonToken(value="cms1@@0123456789abcdef", valid_minutes=1, valid_uses=1)

        assert token.hint == "cms1...cdef"
        assert str(token) == "cms1@@0123456789abcdef"
        assert "0123456789" not in repr(token)

    def test_object_batch(self):
        batch = ObjectBatch(items=["x", "y"], page_index=3)

        assert batch.count == 2
        assert batch.first() == "x"
        assert list(batch) == ["x", "y"]
        assert ObjectBatch.empty().first() is None
        assert ObjectBatch.empty().is_empty
