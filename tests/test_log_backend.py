"""日志后端工厂与公共行为测试。"""
import pytest

from logquery.core.config import settings
from logquery.core.log_backend import (
    CrateDBLogBackend,
    LogBackendFactory,
    LogBackendType,
    RethinkDBLogBackend,
)


class TestFactory:
    def test_create_rethinkdb(self):
        backend = LogBackendFactory.create_backend(LogBackendType.RETHINKDB)
        assert isinstance(backend, RethinkDBLogBackend)
        assert backend.table_name == settings.rethink_table
        assert backend.max_rows == settings.max_limit == 50000

    def test_create_cratedb(self):
        backend = LogBackendFactory.create_backend(LogBackendType.CRATEDB, crate_url="http://crate:4200", table="t")
        assert isinstance(backend, CrateDBLogBackend)
        assert backend.base_url == "http://crate:4200"
        assert backend.table_name == "t"

    def test_unsupported(self):
        with pytest.raises(ValueError):
            LogBackendFactory.create_backend("loki")

    def test_get_backend_is_shared(self):
        first = LogBackendFactory.get_backend(LogBackendType.CRATEDB)
        assert LogBackendFactory.get_backend(LogBackendType.CRATEDB) is first


class TestRowCap:
    @pytest.mark.parametrize("limit,expected", [(None, 100), (0, 100), (10, 10), (100, 100), (101, 100)])
    def test_cap(self, limit, expected):
        backend = CrateDBLogBackend(crate_url="http://crate:4200", max_rows=100)
        assert backend._cap(limit) == expected
